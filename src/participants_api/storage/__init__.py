"""
Module: storage
Description: Package initialization for the data persistence layer.

This package contains the storage implementation for the Participants API:
- dynamodb: ParticipantStore for participant storage and retrieval

All storage operations follow async interfaces for consistency.
"""

__all__ = []
