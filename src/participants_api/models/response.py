"""
Module: response.py
Description: API response models for the Participants API.

Most routes return the Participant record itself; the models here cover
the responses with a different shape.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from participants_api.models.participant import Participant


class DeleteParticipantResponse(BaseModel):
    """Confirmation returned after a participant is deleted."""

    message: str = Field(
        default="Participant successfully deleted",
        description="Human-readable confirmation"
    )
    participant: Participant = Field(
        ...,
        description="Last known content of the deleted participant"
    )


class ErrorBody(BaseModel):
    """Inner body of the error envelope."""

    code: int
    message: str
    type: str
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    """
    Error envelope rendered for every failed request.

    Example:
        {"error": {"code": 404, "message": "Participant not found", "type": "http_exception"}}
    """

    error: ErrorBody

    def to_content(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
