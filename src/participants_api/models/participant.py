"""
Module: participant.py
Description: Participant data model for the Participants API.

Defines the core Participant record: an attendee tied to one event, used
for badge/ID card generation and amenity tracking. Field names are
snake_case in Python and camelCase on the wire and in storage.

Key Components:
- Participant: Core participant model
- Validation: Pydantic v2 with custom field validators

Dependencies: pydantic, typing
Author: Participants API Team
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from participants_api.utils.participant_id import PARTICIPANT_ID_PATTERN


class Participant(BaseModel):
    """
    Participant record.

    Attributes:
        id: Internal storage identifier assigned by the store at creation
        participant_id: Short public identifier (5 alphanumeric characters)
        first_name: Given name
        last_name: Family name
        designation: Role or job title
        id_card_type: ID card template/category
        institute: Institute or organisation
        event_id: Owning event identifier
        event_name: Owning event display name
        background_image: Badge background image URL (nullable)
        profile_picture: Uploaded profile picture URL (nullable)
        amenities: Schema-free entitlement mapping (meal access, wifi, ...)
        archive: Soft-delete flag excluding the record from event listings
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Internal storage identifier"
    )
    participant_id: str = Field(
        ...,
        pattern=PARTICIPANT_ID_PATTERN,
        description="Public participant identifier"
    )
    first_name: Optional[str] = Field(default=None, description="First name")
    last_name: Optional[str] = Field(default=None, description="Last name")
    designation: Optional[str] = Field(default=None, description="Designation")
    id_card_type: Optional[str] = Field(default=None, description="ID card type")
    institute: Optional[str] = Field(default=None, description="Institute")
    event_id: Optional[str] = Field(default=None, description="Owning event identifier")
    event_name: Optional[str] = Field(default=None, description="Owning event name")
    background_image: Optional[str] = Field(
        default=None,
        description="Background image URL"
    )
    profile_picture: Optional[str] = Field(
        default=None,
        description="Profile picture URL in object storage"
    )
    amenities: Dict[str, Any] = Field(
        default_factory=dict,
        description="Entitlements associated with the participant"
    )
    archive: bool = Field(
        default=False,
        description="Whether the participant is archived"
    )

    @field_validator('amenities', mode='before')
    @classmethod
    def validate_amenities(cls, v: Any) -> Dict[str, Any]:
        """Treat a missing mapping as empty, preserving all JSON types otherwise."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("amenities must be a dictionary")
        return v

    def to_item(self) -> Dict[str, Any]:
        """Serialize to the camelCase mapping used on the wire and in storage."""
        return self.model_dump(by_alias=True)
