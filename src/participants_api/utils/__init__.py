"""
Module: utils
Description: Package initialization for utility functions.

This package contains shared helpers used throughout the Participants API:
- logger: Structured logging configuration and helpers
- participant_id: Public participant identifier generation
- payloads: Decoding of JSON-encoded form fields
"""

__all__ = []
