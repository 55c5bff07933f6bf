"""
Module: s3.py
Description: S3 upload client for participant profile pictures.

Uploads the profile picture submitted with a create request to the
configured bucket and returns the object's public URL, which is stored
on the participant record.
"""

import time
from typing import Optional
from urllib.parse import quote

from aioboto3 import Session
from botocore.exceptions import ClientError
from starlette.datastructures import UploadFile

from participants_api.utils.logger import get_logger

logger = get_logger(__name__)

PROFILE_PICTURE_FIELD = "profilePicture"


class ProfilePictureUploader:
    """
    S3 client for profile picture uploads.

    Objects are keyed "<epoch millis>-<original filename>" and tagged
    with the form field they came from.
    """

    def __init__(self, bucket_name: str, region_name: str = "us-east-1"):
        """
        Initialize the uploader.

        Args:
            bucket_name: Target S3 bucket
            region_name: Bucket region, used to build public URLs
        """
        if not bucket_name or not isinstance(bucket_name, str):
            raise ValueError("bucket_name must be a non-empty string")

        self.bucket_name = bucket_name
        self.region_name = region_name
        self.session = Session()

    @staticmethod
    def build_key(filename: str, now_ms: Optional[int] = None) -> str:
        """Build the object key for an uploaded file."""
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return f"{now_ms}-{filename}"

    def public_url(self, key: str) -> str:
        """Return the virtual-hosted style URL of an object in the bucket."""
        return (
            f"https://{self.bucket_name}.s3.{self.region_name}.amazonaws.com/"
            f"{quote(key)}"
        )

    async def upload_profile_picture(self, upload: UploadFile) -> str:
        """
        Upload a profile picture and return its URL.

        Args:
            upload: File received in the profilePicture form field

        Returns:
            Public URL of the stored object

        Raises:
            ClientError: If the S3 operation fails
            ValueError: If the upload has no filename
        """
        if not upload.filename:
            raise ValueError("uploaded file must have a filename")

        key = self.build_key(upload.filename)
        body = await upload.read()

        try:
            async with self.session.client('s3', region_name=self.region_name) as s3:
                await s3.put_object(
                    Bucket=self.bucket_name,
                    Key=key,
                    Body=body,
                    ContentType=upload.content_type or 'application/octet-stream',
                    Metadata={'fieldName': PROFILE_PICTURE_FIELD}
                )

        except ClientError as e:
            logger.error(
                "Failed to upload profile picture to S3",
                bucket=self.bucket_name,
                key=key,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise

        url = self.public_url(key)
        logger.info(
            "Profile picture uploaded",
            bucket=self.bucket_name,
            key=key,
            size=len(body)
        )
        return url
