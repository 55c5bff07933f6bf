"""
Module: participants.py
Description: Participant REST handlers.

Implements the participant endpoints of the Participants API:
- POST /participants/bulk-upload: Create many participants sharing event fields
- POST /participants: Create one participant (multipart, optional profile picture)
- GET /participants, GET /participants/event/{event_id}: Listings
- GET /participants/{id}, GET /participants/participant/{id}: Fetch by internal ID
- PATCH /participants/archive/{id}: Archive (soft delete)
- PUT /participants/participant/{id}/amenities: Replace amenities
- PATCH /participants/{id}: Allow-listed partial update
- DELETE /participants/{id}: Hard delete

Every handler maps its own failures to an HTTPException; the envelope
is rendered by the exception handlers in main.

Dependencies: FastAPI, pydantic, typing
Author: Participants API Team
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi import status as status_codes
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from participants_api.config.settings import settings
from participants_api.models.participant import Participant
from participants_api.models.request import (
    ALLOWED_UPDATES,
    REQUIRED_CREATE_FIELDS,
    UpdateAmenitiesRequest,
    UpdateParticipantRequest,
)
from participants_api.models.response import DeleteParticipantResponse
from participants_api.storage.dynamodb import ParticipantStore
from participants_api.uploads.s3 import PROFILE_PICTURE_FIELD, ProfilePictureUploader
from participants_api.utils.logger import get_logger
from participants_api.utils.participant_id import (
    ParticipantIdExhaustedError,
    generate_unique_participant_id,
)
from participants_api.utils.payloads import PayloadDecodeError, parse_amenities, parse_participants

router = APIRouter(prefix="/participants", tags=["participants"])
logger = get_logger(__name__)

NOT_FOUND_MESSAGE = "Participant not found"


def get_participant_store() -> ParticipantStore:
    """
    Dependency to get the participant store.

    Returns:
        ParticipantStore bound to the configured DynamoDB table
    """
    return ParticipantStore(
        table_name=settings.participants_table_name,
        region_name=settings.aws_region
    )


def get_uploader() -> ProfilePictureUploader:
    """
    Dependency to get the profile picture uploader.

    Returns:
        ProfilePictureUploader bound to the configured S3 bucket
    """
    return ProfilePictureUploader(
        bucket_name=settings.aws_bucket_name,
        region_name=settings.aws_region
    )


def _http_error(status_code: int, message: str, details: Any = None) -> HTTPException:
    """Build an HTTPException whose detail carries a message and optional details."""
    if details is None:
        return HTTPException(status_code=status_code, detail=message)
    return HTTPException(status_code=status_code, detail={"message": message, "details": details})


def _text(value: Any) -> Optional[str]:
    """Normalize a form/JSON value to an optional string."""
    if value is None or isinstance(value, UploadFile):
        return None
    if isinstance(value, str):
        return value
    return str(value)


def _non_blank(value: Any) -> Optional[str]:
    """Like _text, but empty or whitespace-only values become None."""
    text = _text(value)
    if text is None or not text.strip():
        return None
    return text


def _pick(entry: Dict[str, Any], *keys: str) -> Optional[str]:
    """Return the first non-null value among keys, as text."""
    for key in keys:
        if entry.get(key) is not None:
            return _text(entry[key])
    return None


async def _read_payload(request: Request) -> Dict[str, Any]:
    """
    Read a create request as a flat mapping.

    Multipart and urlencoded forms are the primary format; a JSON object
    body is accepted as well.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise _http_error(status_codes.HTTP_400_BAD_REQUEST, "Request body is not valid JSON")
        if not isinstance(body, dict):
            raise _http_error(status_codes.HTTP_400_BAD_REQUEST, "Request body must be a JSON object")
        return body

    form = await request.form()
    return dict(form)


async def _allocate_participant_id(store: ParticipantStore) -> str:
    return await generate_unique_participant_id(
        store.participant_id_exists,
        max_attempts=settings.participant_id_max_attempts
    )


@router.post("/bulk-upload", status_code=status_codes.HTTP_201_CREATED, response_model=List[Participant])
async def bulk_create_participants(
    request: Request,
    store: ParticipantStore = Depends(get_participant_store)
) -> List[Participant]:
    """
    Create many participants of one event in a single transaction.

    Form fields:
        participants: JSON array of spreadsheet rows (FirstName, last,
            Designation, institute, idCardType, ProfilePicture)
        eventId, eventName, backgroundImage: Shared by every row
        amenities: JSON object shared by every row

    Returns:
        The inserted participants (201)

    Raises:
        HTTPException: 400 if participants or amenities are malformed or the batch is too large
        HTTPException: 503 if no unique participantId could be allocated
        HTTPException: 500 for any other failure (nothing is persisted)
    """
    payload = await _read_payload(request)

    try:
        entries = parse_participants(payload.get("participants"))
    except PayloadDecodeError as e:
        logger.warning("Bulk upload rejected: invalid participants", error=str(e))
        raise _http_error(status_codes.HTTP_400_BAD_REQUEST, "Invalid participants data.", str(e))

    try:
        amenities = parse_amenities(payload.get("amenities"))
    except PayloadDecodeError as e:
        logger.warning("Bulk upload rejected: invalid amenities", error=str(e))
        raise _http_error(status_codes.HTTP_400_BAD_REQUEST, "Invalid amenities format", str(e))

    if len(entries) > settings.max_bulk_size:
        raise _http_error(
            status_codes.HTTP_400_BAD_REQUEST,
            f"batch size cannot exceed {settings.max_bulk_size} participants"
        )

    # EventIndex keys cannot be empty strings
    event_id = _non_blank(payload.get("eventId"))
    event_name = _non_blank(payload.get("eventName"))
    background_image = _non_blank(payload.get("backgroundImage"))

    try:
        chosen = set()

        async def is_taken(candidate: str) -> bool:
            # Earlier rows of this batch are not in the store yet
            return candidate in chosen or await store.participant_id_exists(candidate)

        records = []
        for entry in entries:
            participant_id = await generate_unique_participant_id(
                is_taken,
                max_attempts=settings.participant_id_max_attempts
            )
            chosen.add(participant_id)
            records.append({
                "participant_id": participant_id,
                "first_name": _pick(entry, "FirstName", "firstName"),
                "last_name": _pick(entry, "last", "lastName"),
                "designation": _pick(entry, "Designation", "designation"),
                "institute": _pick(entry, "institute", "Institute"),
                "id_card_type": _pick(entry, "idCardType", "IdCardType"),
                "profile_picture": _pick(entry, "ProfilePicture", "profilePicture"),
                "background_image": background_image,
                "event_id": event_id,
                "event_name": event_name,
                "amenities": amenities,
                "archive": False,
            })

        participants = await store.insert_many(records)

    except ParticipantIdExhaustedError as e:
        raise _http_error(
            status_codes.HTTP_503_SERVICE_UNAVAILABLE,
            "Could not allocate unique participant IDs",
            str(e)
        )

    except Exception as e:
        logger.error(
            "Failed to bulk upload participants",
            event_id=event_id,
            count=len(entries),
            error=str(e)
        )
        raise _http_error(
            status_codes.HTTP_500_INTERNAL_SERVER_ERROR,
            "Error uploading participants.",
            str(e)
        )

    logger.info("Participants bulk uploaded", event_id=event_id, count=len(participants))
    return participants


@router.post("", status_code=status_codes.HTTP_201_CREATED, response_model=Participant)
async def create_participant(
    request: Request,
    store: ParticipantStore = Depends(get_participant_store),
    uploader: ProfilePictureUploader = Depends(get_uploader)
) -> Participant:
    """
    Create a participant.

    Form fields firstName, lastName, designation, idCardType, institute,
    eventId and eventName are required. backgroundImage is optional,
    amenities is an optional JSON object, and an optional profilePicture
    file is uploaded to S3.

    Example:
        POST /participants (multipart/form-data)
        firstName=Ada lastName=Lovelace designation=Speaker idCardType=staff
        institute=RI eventId=E1 eventName=Conf amenities={"wifi": true}

        Response (201):
        {
            "id": "6f1c...", "participantId": "aB3xZ", "firstName": "Ada", ...,
            "profilePicture": null, "amenities": {"wifi": true}, "archive": false
        }

    Raises:
        HTTPException: 400 if fields are missing, amenities are malformed, or saving fails
        HTTPException: 503 if no unique participantId could be allocated
    """
    payload = await _read_payload(request)

    missing = [field for field in REQUIRED_CREATE_FIELDS if not (_text(payload.get(field)) or "").strip()]
    if missing:
        logger.warning("Participant creation rejected: missing fields", missing=missing)
        raise _http_error(status_codes.HTTP_400_BAD_REQUEST, "Missing required fields", {"fields": missing})

    try:
        amenities = parse_amenities(payload.get("amenities"))
    except PayloadDecodeError as e:
        logger.warning("Participant creation rejected: invalid amenities", error=str(e))
        raise _http_error(status_codes.HTTP_400_BAD_REQUEST, "Invalid amenities format", str(e))

    try:
        profile_picture = None
        upload = payload.get(PROFILE_PICTURE_FIELD)
        if isinstance(upload, UploadFile) and upload.filename:
            profile_picture = await uploader.upload_profile_picture(upload)

        participant_id = await _allocate_participant_id(store)

        participant = await store.insert_one({
            "participant_id": participant_id,
            "first_name": _text(payload["firstName"]),
            "last_name": _text(payload["lastName"]),
            "designation": _text(payload["designation"]),
            "id_card_type": _text(payload["idCardType"]),
            "institute": _text(payload["institute"]),
            "event_id": _text(payload["eventId"]),
            "event_name": _text(payload["eventName"]),
            "background_image": _text(payload.get("backgroundImage")),
            "profile_picture": profile_picture,
            "amenities": amenities,
            "archive": False,
        })

    except ParticipantIdExhaustedError as e:
        raise _http_error(
            status_codes.HTTP_503_SERVICE_UNAVAILABLE,
            "Could not allocate a unique participant ID",
            str(e)
        )

    except Exception as e:
        logger.error(
            "Failed to create participant",
            event_id=_text(payload.get("eventId")),
            error=str(e)
        )
        raise _http_error(status_codes.HTTP_400_BAD_REQUEST, "Failed to create participant", str(e))

    logger.info(
        "Participant created",
        id=participant.id,
        participant_id=participant.participant_id,
        event_id=participant.event_id,
        has_profile_picture=profile_picture is not None
    )
    return participant


@router.get("", response_model=List[Participant])
async def list_participants(
    store: ParticipantStore = Depends(get_participant_store)
) -> List[Participant]:
    """List every participant, archived ones included."""
    try:
        return await store.find_all()
    except Exception as e:
        logger.error("Failed to list participants", error=str(e))
        raise _http_error(
            status_codes.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to retrieve participants",
            str(e)
        )


@router.patch("/archive/{id}", response_model=Participant)
async def archive_participant(
    id: str,
    store: ParticipantStore = Depends(get_participant_store)
) -> Participant:
    """
    Archive a participant.

    Archived participants disappear from event listings but can still be
    fetched by ID. Archiving an archived participant is a no-op.
    """
    try:
        participant = await store.update_by_id(id, {"archive": True})
    except Exception as e:
        logger.error("Failed to archive participant", id=id, error=str(e))
        raise _http_error(status_codes.HTTP_400_BAD_REQUEST, "Failed to archive participant", str(e))

    if not participant:
        raise _http_error(status_codes.HTTP_404_NOT_FOUND, NOT_FOUND_MESSAGE)

    logger.info("Participant archived", id=id)
    return participant


@router.get("/event/{event_id}", response_model=List[Participant])
async def list_event_participants(
    event_id: str,
    store: ParticipantStore = Depends(get_participant_store)
) -> List[Participant]:
    """List the non-archived participants of an event."""
    try:
        return await store.find_by_event(event_id)
    except Exception as e:
        logger.error("Failed to list event participants", event_id=event_id, error=str(e))
        raise _http_error(
            status_codes.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to retrieve participants",
            str(e)
        )


async def _fetch_participant(id: str, store: ParticipantStore) -> Participant:
    try:
        participant = await store.find_by_id(id)
    except Exception as e:
        logger.error("Database error retrieving participant", id=id, error=str(e))
        raise _http_error(
            status_codes.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to retrieve participant",
            str(e)
        )

    if not participant:
        raise _http_error(status_codes.HTTP_404_NOT_FOUND, NOT_FOUND_MESSAGE)

    return participant


@router.get("/participant/{id}", response_model=Participant)
async def get_participant_detail(
    id: str,
    store: ParticipantStore = Depends(get_participant_store)
) -> Participant:
    """Retrieve a participant by internal ID."""
    return await _fetch_participant(id, store)


@router.get("/{id}", response_model=Participant)
async def get_participant(
    id: str,
    store: ParticipantStore = Depends(get_participant_store)
) -> Participant:
    """Retrieve a participant by internal ID."""
    return await _fetch_participant(id, store)


@router.put("/participant/{id}/amenities", response_model=Participant)
async def update_participant_amenities(
    id: str,
    request: UpdateAmenitiesRequest,
    store: ParticipantStore = Depends(get_participant_store)
) -> Participant:
    """
    Replace a participant's amenities.

    The new mapping replaces the stored one entirely; keys absent from
    the request are dropped.

    Example:
        PUT /participants/participant/6f1c.../amenities
        {"amenities": {"wifi": true, "lunch": 2}}
    """
    try:
        participant = await store.update_by_id(id, {"amenities": request.amenities})
    except Exception as e:
        logger.error("Failed to update participant amenities", id=id, error=str(e))
        raise _http_error(
            status_codes.HTTP_400_BAD_REQUEST,
            "Error updating participant amenities",
            str(e)
        )

    if not participant:
        raise _http_error(status_codes.HTTP_404_NOT_FOUND, NOT_FOUND_MESSAGE)

    logger.info("Participant amenities replaced", id=id, amenities=sorted(request.amenities))
    return participant


@router.patch("/{id}", response_model=Participant)
async def update_participant(
    id: str,
    updates: Dict[str, Any] = Body(...),
    store: ParticipantStore = Depends(get_participant_store)
) -> Participant:
    """
    Partially update a participant.

    Only firstName, lastName, designation, idCardType, backgroundImage,
    profilePicture, eventId and eventName may be changed. A request naming
    any other field is rejected as a whole and nothing is applied.

    Raises:
        HTTPException: 400 if a field is not updatable or a value is invalid
        HTTPException: 404 if the participant does not exist
    """
    invalid = sorted(set(updates) - ALLOWED_UPDATES)
    if invalid:
        logger.warning("Participant update rejected: fields not updatable", id=id, fields=invalid)
        raise _http_error(status_codes.HTTP_400_BAD_REQUEST, "Invalid updates!", {"fields": invalid})

    try:
        changes = UpdateParticipantRequest.model_validate(updates).to_updates()
    except ValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in e.errors()
        ]
        raise _http_error(status_codes.HTTP_400_BAD_REQUEST, "Invalid updates!", errors)

    try:
        participant = await store.update_by_id(id, changes)
    except Exception as e:
        logger.error("Failed to update participant", id=id, error=str(e))
        raise _http_error(status_codes.HTTP_400_BAD_REQUEST, "Failed to update participant", str(e))

    if not participant:
        raise _http_error(status_codes.HTTP_404_NOT_FOUND, NOT_FOUND_MESSAGE)

    return participant


@router.delete("/{id}", response_model=DeleteParticipantResponse)
async def delete_participant(
    id: str,
    store: ParticipantStore = Depends(get_participant_store)
) -> DeleteParticipantResponse:
    """
    Permanently delete a participant.

    Returns the confirmation together with the participant's last content.
    """
    try:
        participant = await store.delete_by_id(id)
    except Exception as e:
        logger.error("Failed to delete participant", id=id, error=str(e))
        raise _http_error(
            status_codes.HTTP_500_INTERNAL_SERVER_ERROR,
            "An error occurred while trying to delete the participant",
            str(e)
        )

    if not participant:
        raise _http_error(status_codes.HTTP_404_NOT_FOUND, NOT_FOUND_MESSAGE)

    return DeleteParticipantResponse(participant=participant)
