"""Obtaining tag identifiers.

A tag id reaches the directory either from an NFC reader (the browser's Web
NFC scan reports the tag serial number), from a link written onto the tag, or
typed by hand. The directory treats all of them the same; sources only differ
in how they can fail.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol
from urllib.parse import quote

from src.domain.errors import InvalidInput, InvalidTagId

# Query parameter carried by the URL record written to tags
DEEP_LINK_PARAM = "nfc"


class ScanOutcome(str, Enum):
    OK = "ok"
    UNSUPPORTED = "unsupported"
    PERMISSION_DENIED = "permission_denied"
    NO_SERIAL = "no_serial"


_FAILURE_MESSAGES = {
    ScanOutcome.UNSUPPORTED: "NFC not supported on this device",
    ScanOutcome.PERMISSION_DENIED: "NFC permission denied",
    ScanOutcome.NO_SERIAL: "NFC tag detected but no serial number found",
}


@dataclass(frozen=True)
class ScanResult:
    outcome: ScanOutcome
    tag_id: str | None = None

    @classmethod
    def ok(cls, tag_id: str) -> ScanResult:
        return cls(ScanOutcome.OK, tag_id)

    @classmethod
    def failed(cls, outcome: ScanOutcome) -> ScanResult:
        return cls(outcome)


class TagUnavailable(InvalidInput):
    """The tag source could not produce an identifier."""

    def __init__(self, outcome: ScanOutcome) -> None:
        super().__init__(_FAILURE_MESSAGES.get(outcome, "Error reading NFC tag"))
        self.outcome = outcome


class TagSource(Protocol):
    def scan(self) -> ScanResult: ...


def normalize_tag_id(raw: str | None) -> str:
    tag_id = (raw or "").strip()
    if not tag_id:
        raise InvalidTagId()
    return tag_id


@dataclass(frozen=True)
class ManualTagSource:
    """Tag id typed into a form."""

    text: str | None

    def scan(self) -> ScanResult:
        return ScanResult.ok(normalize_tag_id(self.text))


@dataclass(frozen=True)
class DeepLinkTagSource:
    """Tag id taken from the ``?nfc=`` parameter of a scanned tag's URL."""

    query_value: str | None

    def scan(self) -> ScanResult:
        return ScanResult.ok(normalize_tag_id(self.query_value))


@dataclass(frozen=True)
class ReportedScanSource:
    """Result of a scan performed by the client and reported to the API."""

    outcome: ScanOutcome
    serial_number: str | None = None

    def scan(self) -> ScanResult:
        if self.outcome is not ScanOutcome.OK:
            return ScanResult.failed(self.outcome)
        if not (self.serial_number or "").strip():
            return ScanResult.failed(ScanOutcome.NO_SERIAL)
        return ScanResult.ok(normalize_tag_id(self.serial_number))


def acquire_tag_id(source: TagSource) -> str:
    """Scan ``source`` and return its tag id, or raise :class:`TagUnavailable`."""
    result = source.scan()
    if result.outcome is not ScanOutcome.OK or not result.tag_id:
        raise TagUnavailable(result.outcome)
    return result.tag_id


@dataclass(frozen=True)
class NdefRecord:
    record_type: str
    data: str


def build_ndef_payload(tag_id: str, base_url: str) -> list[NdefRecord]:
    """Records written onto a tag: its id as text and a link back to the scanner."""
    tag_id = normalize_tag_id(tag_id)
    link = f"{base_url.rstrip('/')}?{DEEP_LINK_PARAM}={quote(tag_id, safe='')}"
    return [NdefRecord("text", tag_id), NdefRecord("url", link)]
