"""
Module: models
Description: Package initialization for Pydantic data models.

This package contains all data models used by the Participants API:
- Participant: Core participant record
- UpdateParticipantRequest / UpdateAmenitiesRequest: JSON request models
- DeleteParticipantResponse / ErrorResponse: Response models

All models are exported here for convenient importing.
"""

from .participant import Participant
from .request import ALLOWED_UPDATES, UpdateAmenitiesRequest, UpdateParticipantRequest
from .response import DeleteParticipantResponse, ErrorResponse

__all__ = [
    "ALLOWED_UPDATES",
    "Participant",
    "UpdateParticipantRequest",
    "UpdateAmenitiesRequest",
    "DeleteParticipantResponse",
    "ErrorResponse",
]
