from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.application.dtos.card_dto import (
    AssignCardRequest,
    AssignCardResponse,
    CardInfoResponse,
    CardListItem,
    ListCardsResponse,
    NdefPayloadResponse,
    NdefRecordItem,
    ScanReportRequest,
)
from src.application.dtos.common_dto import ErrorResponse, SuccessResponse
from src.domain.entities.card import CardProfile
from src.domain.services.card_directory import CardDirectory
from src.domain.services.tag_acquisition import (
    DeepLinkTagSource,
    ManualTagSource,
    ReportedScanSource,
    build_ndef_payload,
)
from src.infrastructure.api.dependencies import (
    get_app_settings,
    get_card_directory,
    get_current_user,
    get_profile_repo,
)
from src.infrastructure.config import Settings
from src.infrastructure.database.repositories.profile_repository import ProfileRepository

router = APIRouter(
    prefix="/cards",
    tags=["NFC Cards"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
        403: {"description": "Forbidden - Only admins can perform this action"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)

_NOT_FOUND_DETAIL = "No active card found with this NFC ID"


def _profile_or_404(profile: CardProfile | None) -> CardInfoResponse:
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND_DETAIL)
    return CardInfoResponse.from_profile(profile)


@router.post(
    "",
    response_model=AssignCardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Assign NFC Card",
    description="""
    Bind an NFC tag identifier to a card holder's profile.

    A tag can be assigned exactly once. Once bound, the tag id stays taken even
    after the card is deactivated; there is no way to reassign it.

    **Authentication required**: Yes (Bearer token, admin role)
    """,
    response_description="Identifier of the created card record",
    responses={409: {"model": ErrorResponse, "description": "Conflict - The tag has already been assigned"}},
)
def assign_card(
    body: AssignCardRequest,
    user=Depends(get_current_user),
    directory: CardDirectory = Depends(get_card_directory),
    profiles: ProfileRepository = Depends(get_profile_repo),
):
    """Assign a tag to a holder."""
    card_id = directory.assign_from(user.id, ManualTagSource(body.tag_id), body.to_details())
    # keep the assigner's display identity resolvable for listings
    profiles.upsert(user.id, user.email)
    return {"id": card_id}


@router.get(
    "",
    response_model=ListCardsResponse,
    summary="List Active Cards",
    description="""
    List every active card, newest assignment first, together with the email of
    the admin who assigned it.

    **Authentication required**: Yes (Bearer token, admin role)
    """,
    response_description="Active cards with assigner information",
)
def list_cards(
    user=Depends(get_current_user),
    directory: CardDirectory = Depends(get_card_directory),
):
    """List all active cards."""
    items = directory.list_all(user.id)
    return ListCardsResponse(cards=[CardListItem.from_entity(i) for i in items])


@router.get(
    "/lookup",
    response_model=CardInfoResponse,
    summary="Look Up Card From Tag Link",
    description="""
    Resolve the `?nfc=<id>` parameter of the link written onto a tag.

    **Authentication required**: No
    """,
    response_description="Profile bound to the tag",
    responses={404: {"description": "Not Found - No active card for this tag"}},
)
def lookup_card_by_link(
    nfc: str = Query(..., description="Tag identifier carried by the tag's URL record"),
    directory: CardDirectory = Depends(get_card_directory),
):
    """Look up a card from a deep link."""
    return _profile_or_404(directory.lookup_from(DeepLinkTagSource(nfc)))


@router.get(
    "/lookup/{tag_id}",
    response_model=CardInfoResponse,
    summary="Look Up Card",
    description="""
    Return the profile bound to a scanned or typed tag identifier.

    Unknown and deactivated tags both answer 404 with the same message.

    **Authentication required**: No
    """,
    response_description="Profile bound to the tag",
    responses={404: {"description": "Not Found - No active card for this tag"}},
)
def lookup_card(
    tag_id: str,
    directory: CardDirectory = Depends(get_card_directory),
):
    """Look up a card by tag id."""
    return _profile_or_404(directory.lookup_from(ManualTagSource(tag_id)))


@router.post(
    "/scan",
    response_model=CardInfoResponse,
    summary="Look Up Card From Scan Result",
    description="""
    Submit the outcome of a client-side NFC scan. A successful scan is looked
    up like a typed id; `unsupported`, `permission_denied` and `no_serial`
    outcomes answer 422 with a readable message.

    **Authentication required**: No
    """,
    response_description="Profile bound to the scanned tag",
    responses={404: {"description": "Not Found - No active card for this tag"}},
)
def lookup_card_by_scan(
    body: ScanReportRequest,
    directory: CardDirectory = Depends(get_card_directory),
):
    """Look up a card from a reported scan."""
    source = ReportedScanSource(outcome=body.outcome, serial_number=body.serial_number)
    return _profile_or_404(directory.lookup_from(source))


@router.post(
    "/{card_id}/deactivate",
    response_model=SuccessResponse,
    summary="Deactivate Card",
    description="""
    Deactivate a card. Scanning its tag no longer returns the profile.
    Deactivating an inactive card succeeds; there is no way to reactivate.

    **Authentication required**: Yes (Bearer token, admin role)
    """,
    response_description="Confirmation of deactivation",
    responses={404: {"description": "Not Found - Card record does not exist"}},
)
def deactivate_card(
    card_id: str,
    user=Depends(get_current_user),
    directory: CardDirectory = Depends(get_card_directory),
):
    """Deactivate a card record."""
    directory.deactivate(user.id, card_id)
    return {"ok": True, "message": "Card deactivated"}


@router.get(
    "/ndef/{tag_id}",
    response_model=NdefPayloadResponse,
    summary="NDEF Payload For Tag",
    description="""
    Records to write onto a tag: a text record holding the tag id and a URL
    record pointing back to the scanner with `?nfc=<id>`.

    **Authentication required**: No
    """,
    response_description="NDEF records",
)
def ndef_payload(
    tag_id: str,
    settings: Settings = Depends(get_app_settings),
):
    """Build the NDEF records for a tag."""
    records = build_ndef_payload(tag_id, settings.public_base_url)
    return NdefPayloadResponse(
        tag_id=records[0].data,
        records=[NdefRecordItem.from_record(r) for r in records],
    )
