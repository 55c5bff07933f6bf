"""
Module: test_participants.py
Description: Unit tests for participant handlers.

Exercises every participant route through the FastAPI test client with
the store backed by a moto table and a fake profile picture uploader.
Covers request validation, identifier generation, the patch allow-list,
archive semantics, and error envelopes.
"""

import asyncio
import json
import re

import pytest
from unittest.mock import AsyncMock, patch

from participants_api.config.settings import settings
from participants_api.utils.participant_id import PARTICIPANT_ID_PATTERN


def _create(client, form, **kwargs):
    return client.post("/participants", data=form, **kwargs)


def _run(coro):
    return asyncio.run(coro)


class TestCreateParticipant:
    """Test cases for POST /participants."""

    def test_create_participant_success(self, client, store, sample_participant_form):
        existing = _run(store.insert_one({"participant_id": "Exist", "event_id": "E1"}))

        response = _create(client, sample_participant_form)

        assert response.status_code == 201
        data = response.json()
        assert re.match(PARTICIPANT_ID_PATTERN, data["participantId"])
        assert data["participantId"] != existing.participant_id
        assert data["firstName"] == "A"
        assert data["lastName"] == "B"
        assert data["designation"] == "D"
        assert data["idCardType"] == "staff"
        assert data["institute"] == "X"
        assert data["eventId"] == "E1"
        assert data["eventName"] == "Conf"
        assert data["profilePicture"] is None
        assert data["backgroundImage"] is None
        assert data["amenities"] == {}
        assert data["archive"] is False
        assert data["id"]

        stored = _run(store.find_by_id(data["id"]))
        assert stored.participant_id == data["participantId"]

    def test_create_participant_json_body(self, client, sample_participant_form):
        body = {**sample_participant_form, "amenities": {"wifi": True}}

        response = client.post("/participants", json=body)

        assert response.status_code == 201
        assert response.json()["amenities"] == {"wifi": True}

    def test_create_participant_with_amenities_and_background(self, client, sample_participant_form):
        form = {
            **sample_participant_form,
            "amenities": json.dumps({"wifi": True, "meals": 2}),
            "backgroundImage": "https://cdn.example.com/bg.png",
        }

        response = _create(client, form)

        assert response.status_code == 201
        data = response.json()
        assert data["amenities"] == {"wifi": True, "meals": 2}
        assert data["backgroundImage"] == "https://cdn.example.com/bg.png"

    def test_create_participant_with_profile_picture(self, client, fake_uploader, sample_participant_form):
        response = _create(
            client,
            sample_participant_form,
            files={"profilePicture": ("me.png", b"\x89PNG", "image/png")}
        )

        assert response.status_code == 201
        assert response.json()["profilePicture"] == f"{fake_uploader.base_url}/1700000000000-me.png"
        assert fake_uploader.uploads == [("me.png", b"\x89PNG")]

    @pytest.mark.parametrize("field", [
        "firstName", "lastName", "designation", "idCardType", "institute", "eventId", "eventName"
    ])
    def test_create_participant_missing_field(self, client, store, sample_participant_form, field):
        form = {k: v for k, v in sample_participant_form.items() if k != field}

        response = _create(client, form)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == 400
        assert error["message"] == "Missing required fields"
        assert error["details"]["fields"] == [field]
        assert _run(store.find_all()) == []

    def test_create_participant_blank_field(self, client, sample_participant_form):
        response = _create(client, {**sample_participant_form, "firstName": "  "})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Missing required fields"

    def test_create_participant_missing_field_skips_upload(self, client, fake_uploader, sample_participant_form):
        form = {k: v for k, v in sample_participant_form.items() if k != "eventId"}

        response = _create(client, form, files={"profilePicture": ("me.png", b"img", "image/png")})

        assert response.status_code == 400
        assert fake_uploader.uploads == []

    @pytest.mark.parametrize("amenities", ["{wifi: true", '["wifi"]'])
    def test_create_participant_invalid_amenities(self, client, store, sample_participant_form, amenities):
        response = _create(client, {**sample_participant_form, "amenities": amenities})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid amenities format"
        assert _run(store.find_all()) == []

    @pytest.mark.parametrize("amenities", ['{"meals": NaN}', '{"meals": Infinity}', '{"a": {"b": -Infinity}}'])
    def test_create_participant_non_finite_amenities(self, client, store, sample_participant_form, amenities):
        response = _create(client, {**sample_participant_form, "amenities": amenities})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid amenities format"
        assert _run(store.find_all()) == []

    def test_create_participant_json_body_non_finite_amenities(self, client, store, sample_participant_form):
        fields = json.dumps(sample_participant_form)[1:-1]
        body = '{%s, "amenities": {"meals": NaN}}' % fields

        response = client.post(
            "/participants",
            content=body,
            headers={"content-type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid amenities format"
        assert _run(store.find_all()) == []

    def test_create_participant_id_exhausted(self, client, store, sample_participant_form):
        with patch.object(store, 'participant_id_exists', new_callable=AsyncMock, return_value=True):
            response = _create(client, sample_participant_form)

        assert response.status_code == 503
        assert "unique participant ID" in response.json()["error"]["message"]

    def test_create_participant_store_error(self, client, store, sample_participant_form):
        with patch.object(store, 'insert_one', side_effect=Exception("Database error")):
            response = _create(client, sample_participant_form)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["message"] == "Failed to create participant"
        assert error["details"] == "Database error"

    def test_create_participant_ids_are_unique(self, client, sample_participant_form):
        ids = {_create(client, sample_participant_form).json()["participantId"] for _ in range(10)}

        assert len(ids) == 10


class TestBulkUpload:
    """Test cases for POST /participants/bulk-upload."""

    def test_bulk_upload_success(self, client, store):
        form = {
            "participants": json.dumps([
                {"FirstName": "A", "last": "B", "Designation": "D", "institute": "I", "idCardType": "T"}
            ]),
            "eventId": "E1",
            "eventName": "Conf",
        }

        response = client.post("/participants/bulk-upload", data=form)

        assert response.status_code == 201
        data = response.json()
        assert len(data) == 1
        participant = data[0]
        assert re.match(PARTICIPANT_ID_PATTERN, participant["participantId"])
        assert participant["firstName"] == "A"
        assert participant["lastName"] == "B"
        assert participant["designation"] == "D"
        assert participant["institute"] == "I"
        assert participant["idCardType"] == "T"
        assert participant["eventId"] == "E1"
        assert participant["eventName"] == "Conf"
        assert participant["amenities"] == {}
        assert participant["archive"] is False

        assert len(_run(store.find_all())) == 1

    def test_bulk_upload_shared_fields(self, client):
        rows = [
            {"FirstName": f"P{i}", "last": "L", "ProfilePicture": f"https://cdn.example.com/{i}.png"}
            for i in range(3)
        ]
        form = {
            "participants": json.dumps(rows),
            "eventId": "E1",
            "eventName": "Conf",
            "backgroundImage": "https://cdn.example.com/bg.png",
            "amenities": json.dumps({"wifi": True, "meals": 3}),
        }

        response = client.post("/participants/bulk-upload", data=form)

        assert response.status_code == 201
        data = response.json()
        assert [p["firstName"] for p in data] == ["P0", "P1", "P2"]
        assert [p["profilePicture"] for p in data] == [r["ProfilePicture"] for r in rows]
        assert all(p["backgroundImage"] == "https://cdn.example.com/bg.png" for p in data)
        assert all(p["amenities"] == {"wifi": True, "meals": 3} for p in data)

    def test_bulk_upload_ids_unique_within_batch(self, client):
        rows = [{"FirstName": str(i)} for i in range(25)]

        response = client.post(
            "/participants/bulk-upload",
            data={"participants": json.dumps(rows), "eventId": "E1", "eventName": "Conf"}
        )

        assert response.status_code == 201
        ids = [p["participantId"] for p in response.json()]
        assert len(set(ids)) == 25

    def test_bulk_upload_avoids_ids_taken_earlier_in_batch(self, client):
        # Draws AAAAA, AAAAA, BBBBB
        characters = list("A" * 10 + "B" * 5)

        with patch("participants_api.utils.participant_id.random.choice", side_effect=characters):
            response = client.post(
                "/participants/bulk-upload",
                data={"participants": json.dumps([{"FirstName": "A"}, {"FirstName": "B"}])}
            )

        assert response.status_code == 201
        assert [p["participantId"] for p in response.json()] == ["AAAAA", "BBBBB"]

    def test_bulk_upload_json_body(self, client):
        body = {
            "participants": [{"FirstName": "A", "last": "B"}],
            "eventId": "E1",
            "eventName": "Conf",
            "amenities": {"wifi": True},
        }

        response = client.post("/participants/bulk-upload", json=body)

        assert response.status_code == 201
        assert response.json()[0]["amenities"] == {"wifi": True}

    def test_bulk_upload_empty_array(self, client, store):
        response = client.post("/participants/bulk-upload", data={"participants": "[]"})

        assert response.status_code == 201
        assert response.json() == []
        assert _run(store.find_all()) == []

    @pytest.mark.parametrize("participants", [None, "not json", '{"FirstName": "A"}', '["A"]'])
    def test_bulk_upload_invalid_participants(self, client, store, participants):
        form = {"eventId": "E1", "eventName": "Conf"}
        if participants is not None:
            form["participants"] = participants

        response = client.post("/participants/bulk-upload", data=form)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid participants data."
        assert _run(store.find_all()) == []

    def test_bulk_upload_invalid_amenities(self, client, store):
        form = {
            "participants": json.dumps([{"FirstName": "A"}, {"FirstName": "B"}]),
            "amenities": "{broken",
        }

        response = client.post("/participants/bulk-upload", data=form)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid amenities format"
        assert _run(store.find_all()) == []

    def test_bulk_upload_non_finite_amenities(self, client, store):
        form = {
            "participants": json.dumps([{"FirstName": "A"}]),
            "amenities": '{"meals": Infinity}',
        }

        response = client.post("/participants/bulk-upload", data=form)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid amenities format"
        assert _run(store.find_all()) == []

    def test_bulk_upload_blank_shared_fields(self, client, store):
        form = {
            "participants": json.dumps([{"FirstName": "A"}, {"FirstName": "B"}]),
            "eventId": "",
            "eventName": "  ",
            "backgroundImage": "",
        }

        response = client.post("/participants/bulk-upload", data=form)

        assert response.status_code == 201
        data = response.json()
        assert len(data) == 2
        assert all(p["eventId"] is None for p in data)
        assert all(p["eventName"] is None for p in data)
        assert all(p["backgroundImage"] is None for p in data)
        assert len(_run(store.find_all())) == 2

    def test_bulk_upload_too_large(self, client, store):
        rows = [{"FirstName": "A"}] * 3

        with patch.object(settings, "max_bulk_size", 2):
            response = client.post("/participants/bulk-upload", data={"participants": json.dumps(rows)})

        assert response.status_code == 400
        assert "cannot exceed 2" in response.json()["error"]["message"]
        assert _run(store.find_all()) == []

    def test_bulk_upload_store_error(self, client, store):
        with patch.object(store, 'insert_many', side_effect=Exception("Database error")):
            response = client.post(
                "/participants/bulk-upload",
                data={"participants": json.dumps([{"FirstName": "A"}])}
            )

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["message"] == "Error uploading participants."
        assert error["details"] == "Database error"

    def test_bulk_upload_id_exhausted(self, client, store):
        with patch.object(store, 'participant_id_exists', new_callable=AsyncMock, return_value=True):
            response = client.post(
                "/participants/bulk-upload",
                data={"participants": json.dumps([{"FirstName": "A"}])}
            )

        assert response.status_code == 503
        assert _run(store.find_all()) == []


class TestListAndFetch:
    """Test cases for the listing and fetch routes."""

    def test_list_all_includes_archived(self, client, store):
        active = _run(store.insert_one({"participant_id": "AAAAA", "event_id": "E1"}))
        archived = _run(store.insert_one({"participant_id": "BBBBB", "event_id": "E1", "archive": True}))

        response = client.get("/participants")

        assert response.status_code == 200
        assert {p["id"] for p in response.json()} == {active.id, archived.id}

    def test_list_all_store_error(self, client, store):
        with patch.object(store, 'find_all', side_effect=Exception("Database error")):
            response = client.get("/participants")

        assert response.status_code == 500
        assert "error" in response.json()

    def test_list_by_event_excludes_archived(self, client, store):
        active = _run(store.insert_one({"participant_id": "AAAAA", "event_id": "E1"}))
        _run(store.insert_one({"participant_id": "BBBBB", "event_id": "E1", "archive": True}))
        _run(store.insert_one({"participant_id": "CCCCC", "event_id": "E2"}))

        response = client.get("/participants/event/E1")

        assert response.status_code == 200
        data = response.json()
        assert [p["id"] for p in data] == [active.id]
        assert all(p["archive"] is False for p in data)

    def test_list_by_event_after_archive(self, client, store):
        participant = _run(store.insert_one({"participant_id": "AAAAA", "event_id": "E1"}))

        client.patch(f"/participants/archive/{participant.id}")
        response = client.get("/participants/event/E1")

        assert response.status_code == 200
        assert response.json() == []

    def test_list_by_event_store_error(self, client, store):
        with patch.object(store, 'find_by_event', side_effect=Exception("Database error")):
            response = client.get("/participants/event/E1")

        assert response.status_code == 500

    @pytest.mark.parametrize("path", ["/participants/{id}", "/participants/participant/{id}"])
    def test_fetch_by_id(self, client, store, path):
        participant = _run(store.insert_one({"participant_id": "AAAAA", "event_id": "E1", "archive": True}))

        response = client.get(path.format(id=participant.id))

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == participant.id
        assert data["participantId"] == "AAAAA"
        assert data["archive"] is True

    @pytest.mark.parametrize("path", ["/participants/missing", "/participants/participant/missing"])
    def test_fetch_by_id_not_found(self, client, path):
        response = client.get(path)

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == 404
        assert error["message"] == "Participant not found"

    def test_fetch_by_id_store_error(self, client, store):
        with patch.object(store, 'find_by_id', side_effect=Exception("Database error")):
            response = client.get("/participants/abc")

        assert response.status_code == 500


class TestArchive:
    """Test cases for PATCH /participants/archive/{id}."""

    def test_archive_is_idempotent(self, client, store):
        participant = _run(store.insert_one({"participant_id": "AAAAA", "event_id": "E1"}))

        first = client.patch(f"/participants/archive/{participant.id}")
        second = client.patch(f"/participants/archive/{participant.id}")

        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json()["archive"] is True
        assert second.json()["archive"] is True

    def test_archive_not_found(self, client, store):
        response = client.patch("/participants/archive/missing")

        assert response.status_code == 404
        assert _run(store.find_all()) == []

    def test_archive_store_error(self, client, store):
        with patch.object(store, 'update_by_id', side_effect=Exception("Database error")):
            response = client.patch("/participants/archive/abc")

        assert response.status_code == 400


class TestUpdateAmenities:
    """Test cases for PUT /participants/participant/{id}/amenities."""

    def test_amenities_fully_replaced(self, client, store):
        participant = _run(store.insert_one({
            "participant_id": "AAAAA",
            "event_id": "E1",
            "amenities": {"lunch": True, "dinner": False},
        }))

        response = client.put(
            f"/participants/participant/{participant.id}/amenities",
            json={"amenities": {"wifi": True}}
        )

        assert response.status_code == 200
        assert response.json()["amenities"] == {"wifi": True}
        assert _run(store.find_by_id(participant.id)).amenities == {"wifi": True}

    def test_amenities_not_found(self, client):
        response = client.put("/participants/participant/missing/amenities", json={"amenities": {}})

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Participant not found"

    @pytest.mark.parametrize("body", [{}, {"amenities": "wifi"}, {"amenities": ["wifi"]}])
    def test_amenities_invalid_body(self, client, store, body):
        participant = _run(store.insert_one({"participant_id": "AAAAA", "amenities": {"lunch": True}}))

        response = client.put(f"/participants/participant/{participant.id}/amenities", json=body)

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "validation_error"
        assert _run(store.find_by_id(participant.id)).amenities == {"lunch": True}


    @pytest.mark.parametrize("body", [
        '{"amenities": {"x": Infinity}}',
        '{"amenities": {"x": NaN}}',
        '{"amenities": {"room": {"rate": -Infinity}}}',
    ])
    def test_amenities_non_finite_rejected(self, client, store, body):
        participant = _run(store.insert_one({"participant_id": "AAAAA", "amenities": {"lunch": True}}))

        response = client.put(
            f"/participants/participant/{participant.id}/amenities",
            content=body,
            headers={"content-type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "validation_error"
        assert _run(store.find_by_id(participant.id)).amenities == {"lunch": True}


class TestPatchParticipant:
    """Test cases for PATCH /participants/{id}."""

    def test_patch_allowed_fields(self, client, store):
        participant = _run(store.insert_one({
            "participant_id": "AAAAA", "first_name": "A", "last_name": "B", "event_id": "E1"
        }))

        response = client.patch(
            f"/participants/{participant.id}",
            json={"firstName": "Grace", "profilePicture": "https://cdn.example.com/g.png"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["firstName"] == "Grace"
        assert data["lastName"] == "B"
        assert data["profilePicture"] == "https://cdn.example.com/g.png"
        assert data["participantId"] == "AAAAA"

    @pytest.mark.parametrize("body", [
        {"archive": True},
        {"participantId": "X"},
        {"firstName": "Grace", "amenities": {"wifi": True}},
        {"firstName": "Grace", "institute": "Y"},
    ])
    def test_patch_disallowed_field_rejects_whole_request(self, client, store, body):
        participant = _run(store.insert_one({"participant_id": "AAAAA", "first_name": "A", "institute": "X"}))

        response = client.patch(f"/participants/{participant.id}", json=body)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["message"] == "Invalid updates!"
        assert set(error["details"]["fields"]) == set(body) - {"firstName"}
        assert _run(store.find_by_id(participant.id)) == participant

    def test_patch_invalid_value(self, client, store):
        participant = _run(store.insert_one({"participant_id": "AAAAA", "first_name": "A"}))

        response = client.patch(f"/participants/{participant.id}", json={"firstName": ""})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid updates!"
        assert _run(store.find_by_id(participant.id)).first_name == "A"

    def test_patch_not_found(self, client):
        response = client.patch("/participants/missing", json={"firstName": "Grace"})

        assert response.status_code == 404

    def test_patch_store_error(self, client, store):
        with patch.object(store, 'update_by_id', side_effect=Exception("Database error")):
            response = client.patch("/participants/abc", json={"firstName": "Grace"})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Failed to update participant"


class TestDeleteParticipant:
    """Test cases for DELETE /participants/{id}."""

    def test_delete_participant(self, client, store):
        participant = _run(store.insert_one({"participant_id": "AAAAA", "first_name": "A"}))

        response = client.delete(f"/participants/{participant.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Participant successfully deleted"
        assert data["participant"]["id"] == participant.id
        assert data["participant"]["firstName"] == "A"

        assert client.get(f"/participants/{participant.id}").status_code == 404

    def test_delete_not_found(self, client):
        response = client.delete("/participants/missing")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Participant not found"

    def test_delete_store_error(self, client, store):
        with patch.object(store, 'delete_by_id', side_effect=Exception("Database error")):
            response = client.delete("/participants/abc")

        assert response.status_code == 500
