from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.entities.card import CardProfile, CardWithAssigner, HolderDetails
from src.domain.services.tag_acquisition import NdefRecord, ScanOutcome


class HolderFields(BaseModel):
    """Profile fields bound to a tag."""
    holder_name: str = Field(..., min_length=1, max_length=200, description="Name of the card holder", example="Alice Example")
    holder_email: str | None = Field(None, max_length=320, description="Contact email", example="alice@example.com")
    holder_phone: str | None = Field(None, max_length=50, description="Contact phone number")
    department: str | None = Field(None, max_length=200, description="Department", example="Engineering")
    position: str | None = Field(None, max_length=200, description="Job title", example="Technician")
    employee_id: str | None = Field(None, max_length=100, description="Employee number", example="E-1024")
    photo_url: str | None = Field(None, max_length=2048, description="Link to a holder photo")

    def to_details(self) -> HolderDetails:
        return HolderDetails(**self.model_dump(include=set(HolderFields.model_fields)))

    @classmethod
    def from_details(cls, holder: HolderDetails) -> HolderFields:
        return cls(
            holder_name=holder.holder_name,
            holder_email=holder.holder_email,
            holder_phone=holder.holder_phone,
            department=holder.department,
            position=holder.position,
            employee_id=holder.employee_id,
            photo_url=holder.photo_url,
        )


class AssignCardRequest(HolderFields):
    """Request model for binding a tag to a holder."""
    tag_id: str = Field(..., min_length=1, max_length=256, description="NFC tag identifier (serial number or typed id)", example="04:a2:3b:1c:5d:80:00")


class AssignCardResponse(BaseModel):
    id: str = Field(..., description="Identifier of the new card record", example="card_1")


class CardInfoResponse(HolderFields):
    """Public profile returned to anyone scanning an active tag."""
    assigned_at: datetime = Field(..., description="ISO timestamp when the card was assigned")

    @classmethod
    def from_profile(cls, profile: CardProfile) -> CardInfoResponse:
        return cls(**HolderFields.from_details(profile.holder).model_dump(), assigned_at=profile.assigned_at)


class CardListItem(CardInfoResponse):
    id: str = Field(..., description="Identifier of the card record")
    tag_id: str = Field(..., description="NFC tag identifier")
    is_active: bool = Field(..., description="Whether the card is active")
    assigned_by: str = Field(..., description="Identity of the admin who assigned the card")
    assigned_by_email: str | None = Field(None, description="Display identity of the assigning admin")

    @classmethod
    def from_entity(cls, item: CardWithAssigner) -> CardListItem:
        card = item.card
        return cls(
            **HolderFields.from_details(card.holder).model_dump(),
            assigned_at=card.assigned_at,
            id=card.id,
            tag_id=card.tag_id,
            is_active=card.is_active,
            assigned_by=card.assigned_by,
            assigned_by_email=item.assigned_by_email,
        )


class ListCardsResponse(BaseModel):
    cards: list[CardListItem] = Field(..., description="Active cards, newest first")


class ScanReportRequest(BaseModel):
    """Outcome of a client-side NFC scan."""
    outcome: ScanOutcome = Field(ScanOutcome.OK, description="How the scan ended")
    serial_number: str | None = Field(None, max_length=256, description="Serial number reported by the tag")


class NdefRecordItem(BaseModel):
    record_type: str = Field(..., description="NDEF record type", example="url")
    data: str = Field(..., description="Record payload")

    @classmethod
    def from_record(cls, record: NdefRecord) -> NdefRecordItem:
        return cls(record_type=record.record_type, data=record.data)


class NdefPayloadResponse(BaseModel):
    tag_id: str = Field(..., description="NFC tag identifier")
    records: list[NdefRecordItem] = Field(..., description="Records to write onto the tag")
