import pytest

from src.domain.errors import InvalidTagId
from src.domain.services.tag_acquisition import (
    DeepLinkTagSource,
    ManualTagSource,
    ReportedScanSource,
    ScanOutcome,
    TagUnavailable,
    acquire_tag_id,
    build_ndef_payload,
    normalize_tag_id,
)


def test_normalize_strips_whitespace():
    assert normalize_tag_id("  04:a2:3b \n") == "04:a2:3b"


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_normalize_rejects_blank(raw):
    with pytest.raises(InvalidTagId):
        normalize_tag_id(raw)


def test_manual_and_deep_link_sources_agree():
    assert acquire_tag_id(ManualTagSource("T1")) == acquire_tag_id(DeepLinkTagSource("T1"))


@pytest.mark.parametrize(
    "outcome, message",
    [
        (ScanOutcome.UNSUPPORTED, "NFC not supported on this device"),
        (ScanOutcome.PERMISSION_DENIED, "NFC permission denied"),
    ],
)
def test_failed_scans_raise(outcome, message):
    with pytest.raises(TagUnavailable, match=message) as info:
        acquire_tag_id(ReportedScanSource(outcome))
    assert info.value.outcome is outcome
    assert info.value.status_code == 422


def test_scan_without_serial_number():
    with pytest.raises(TagUnavailable) as info:
        acquire_tag_id(ReportedScanSource(ScanOutcome.OK, "  "))
    assert info.value.outcome is ScanOutcome.NO_SERIAL


def test_ndef_payload_links_back_to_scanner():
    records = build_ndef_payload(" 04:a2 ", "https://cards.example.com/")
    assert [(r.record_type, r.data) for r in records] == [
        ("text", "04:a2"),
        ("url", "https://cards.example.com?nfc=04%3Aa2"),
    ]
