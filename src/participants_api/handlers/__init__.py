"""
Module: handlers
Description: Package initialization for API endpoint handlers.

This package contains FastAPI route handlers for the Participants API:
- participants: Participant CRUD, bulk upload and amenity endpoints

All handlers use dependency injection for the store and uploader.
"""

__all__ = []
