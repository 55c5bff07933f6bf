"""
Participants API: REST service for event participants.
"""

__version__ = "1.0.0"
