"""
Module: uploads
Description: Package initialization for object-storage uploads.

- s3: ProfilePictureUploader for participant profile pictures
"""

__all__ = []
