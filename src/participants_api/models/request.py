"""
Module: request.py
Description: API request models for the Participants API.

Create requests arrive as multipart forms and are validated in the
handlers; the JSON endpoints (partial update, amenities replacement)
are validated by the models below.

Key Components:
- ALLOWED_UPDATES: Fields a partial update may touch
- UpdateParticipantRequest: Model for PATCH /participants/{id}
- UpdateAmenitiesRequest: Model for PUT /participants/participant/{id}/amenities
- REQUIRED_CREATE_FIELDS: Form fields required to create a participant

Dependencies: pydantic, typing
Author: Participants API Team
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from participants_api.utils.payloads import ensure_finite

REQUIRED_CREATE_FIELDS = (
    "firstName",
    "lastName",
    "designation",
    "idCardType",
    "institute",
    "eventId",
    "eventName",
)

ALLOWED_UPDATES = frozenset({
    "firstName",
    "lastName",
    "designation",
    "idCardType",
    "backgroundImage",
    "profilePicture",
    "eventId",
    "eventName",
})


class UpdateParticipantRequest(BaseModel):
    """
    Request model for partial participant updates.

    Only allow-listed fields exist on this model and unknown keys are
    forbidden, so a request naming any other field fails as a whole.
    The handler checks ALLOWED_UPDATES first to report the offending keys.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid"
    )

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    designation: Optional[str] = None
    id_card_type: Optional[str] = None
    background_image: Optional[str] = None
    profile_picture: Optional[str] = None
    event_id: Optional[str] = None
    event_name: Optional[str] = None

    @field_validator(
        'first_name', 'last_name', 'designation', 'id_card_type', 'event_id', 'event_name'
    )
    @classmethod
    def validate_required_text(cls, v: Optional[str]) -> Optional[str]:
        """Fields that are mandatory at creation cannot be cleared."""
        if v is None or not v.strip():
            raise ValueError("must be a non-empty string")
        return v

    def to_updates(self) -> Dict[str, Any]:
        """Return only the fields present in the request, keyed by wire name."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class UpdateAmenitiesRequest(BaseModel):
    """Request model replacing a participant's amenities mapping."""

    amenities: Dict[str, Any] = Field(
        ...,
        description="New amenities mapping; replaces the existing one entirely"
    )

    @field_validator('amenities')
    @classmethod
    def validate_amenities(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        """Amenity values must be valid JSON, so NaN and Infinity are refused."""
        return ensure_finite(v, "amenities")
