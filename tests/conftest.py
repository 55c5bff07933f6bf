"""
Module: conftest.py
Description: Shared pytest fixtures for Participants API tests.

Provides reusable fixtures for the participant store, sample payloads,
a fake profile picture uploader and an application test client. Uses
moto for AWS service mocking to keep tests fast and isolated.
"""

import os

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("PARTICIPANTS_TABLE_NAME", "test-participants-table")
os.environ.setdefault("AWS_BUCKET_NAME", "test-profile-pictures")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")

import boto3
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws

from participants_api.config.settings import Settings
from participants_api.handlers.participants import get_participant_store, get_uploader
from participants_api.main import app
from participants_api.storage.dynamodb import ParticipantStore, create_participants_table


class FakeUploader:
    """In-memory stand-in for ProfilePictureUploader."""

    base_url = "https://test-profile-pictures.s3.us-east-1.amazonaws.com"

    def __init__(self):
        self.uploads = []

    async def upload_profile_picture(self, upload):
        content = await upload.read()
        self.uploads.append((upload.filename, content))
        return f"{self.base_url}/1700000000000-{upload.filename}"


@pytest.fixture
def test_settings():
    """
    Provide test configuration settings.

    Disables .env loading for predictable tests.
    """
    return Settings(
        _env_file=None,
        participants_table_name="test-participants-table",
        aws_bucket_name="test-profile-pictures",
        aws_region="us-east-1",
        stage="test",
        log_level="DEBUG"
    )


@pytest.fixture
def sample_participant_form():
    """Required form fields for creating a participant."""
    return {
        "firstName": "A",
        "lastName": "B",
        "designation": "D",
        "idCardType": "staff",
        "institute": "X",
        "eventId": "E1",
        "eventName": "Conf",
    }


@pytest.fixture
def sample_participant_fields():
    """Participant fields as passed to ParticipantStore.insert_one."""
    return {
        "participant_id": "aB3xZ",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "designation": "Speaker",
        "id_card_type": "speaker",
        "institute": "Royal Institution",
        "event_id": "E1",
        "event_name": "Conf",
        "background_image": "https://cdn.example.com/bg.png",
        "amenities": {"wifi": True, "meals": 3, "room": {"floor": 2}},
    }


@pytest.fixture
def participants_table(test_settings):
    """
    Create a mock DynamoDB participants table.

    Uses moto to mock AWS DynamoDB and creates the table with the same
    schema and indexes as production.
    """
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name=test_settings.aws_region)
        table = create_participants_table(dynamodb, test_settings.participants_table_name)
        yield table


@pytest.fixture
def store(test_settings, participants_table):
    """ParticipantStore bound to the mocked table."""
    return ParticipantStore(
        table_name=test_settings.participants_table_name,
        region_name=test_settings.aws_region
    )


@pytest.fixture
def fake_uploader():
    return FakeUploader()


@pytest.fixture
def client(store, fake_uploader):
    """Test client with the store and uploader dependencies overridden."""
    app.dependency_overrides[get_participant_store] = lambda: store
    app.dependency_overrides[get_uploader] = lambda: fake_uploader
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides = {}
