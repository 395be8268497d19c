"""Tests for the identify and health endpoints."""

from datetime import datetime, timedelta
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from contactlink.core.request_context import get_request_id
from contactlink.domain.services.identity_service import ConsolidatedContact, IdentityService
from contactlink.persistence.repositories.contact_repository import ContactRepository


async def test_missing_email_and_phone_returns_400(client):
    """Test that an empty body is rejected."""
    response = await client.post("/identify", json={})

    assert response.status_code == 400
    assert "error" in response.json()


async def test_null_and_empty_fields_return_400(client):
    """Test that null and empty values count as absent."""
    for body in ({"email": None, "phoneNumber": None}, {"email": "", "phoneNumber": ""}):
        response = await client.post("/identify", json=body)
        assert response.status_code == 400


async def test_malformed_body_returns_400(client):
    """Test that a body of the wrong shape is rejected with an error message."""
    response = await client.post("/identify", json={"email": ["a@x.com"]})

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid request body")


async def test_response_format(client):
    """Test the consolidated contact field names."""
    response = await client.post(
        "/identify", json={"email": "test@example.com", "phoneNumber": "123456"}
    )

    assert response.status_code == 200
    contact = response.json()["contact"]
    assert set(contact) == {"primaryContatctId", "emails", "phoneNumbers", "secondaryContactIds"}
    assert contact["emails"] == ["test@example.com"]
    assert contact["phoneNumbers"] == ["123456"]
    assert contact["secondaryContactIds"] == []


async def test_accepts_only_email_or_only_phone(client):
    """Test that a single matching key is enough."""
    response = await client.post("/identify", json={"email": "test@test.com"})
    assert response.status_code == 200

    response = await client.post("/identify", json={"phoneNumber": "123456"})
    assert response.status_code == 200
    assert response.json()["contact"]["emails"] == []


async def test_numeric_phone_number(client):
    """Test that phone numbers sent as JSON numbers are matched as strings."""
    first = await client.post("/identify", json={"email": "n@x.com", "phoneNumber": 123456})
    second = await client.post("/identify", json={"phoneNumber": "123456"})

    assert first.json()["contact"]["phoneNumbers"] == ["123456"]
    assert second.json() == first.json()


async def test_lorraine_and_mcfly(client):
    """Test a new email for a known phone number links both."""
    first = await client.post(
        "/identify", json={"email": "lorraine@hillvalley.edu", "phoneNumber": "123456"}
    )
    primary_id = first.json()["contact"]["primaryContatctId"]

    second = await client.post(
        "/identify", json={"email": "mcfly@hillvalley.edu", "phoneNumber": "123456"}
    )
    contact = second.json()["contact"]
    assert contact["primaryContatctId"] == primary_id
    assert contact["emails"] == ["lorraine@hillvalley.edu", "mcfly@hillvalley.edu"]
    assert contact["phoneNumbers"] == ["123456"]
    assert len(contact["secondaryContactIds"]) == 1

    third = await client.post("/identify", json={"email": "mcfly@hillvalley.edu"})
    contact = third.json()["contact"]
    assert contact["primaryContatctId"] == primary_id
    assert len(contact["emails"]) == 2


async def test_primary_merge(client, make_contact):
    """Test that a request bridging two primaries keeps the older one."""
    t0 = datetime(2023, 4, 11)
    await make_contact("george@hillvalley.edu", "919191", id=11, created_at=t0)
    await make_contact("biffsucks@hillvalley.edu", "717171", id=27, created_at=t0 + timedelta(days=10))

    response = await client.post(
        "/identify", json={"email": "george@hillvalley.edu", "phoneNumber": "717171"}
    )

    assert response.status_code == 200
    contact = response.json()["contact"]
    assert contact["primaryContatctId"] == 11
    assert contact["emails"] == ["george@hillvalley.edu", "biffsucks@hillvalley.edu"]
    assert contact["phoneNumbers"] == ["919191", "717171"]
    assert 27 in contact["secondaryContactIds"]


async def test_store_error_returns_500(client):
    """Test that database failures surface as 500 with a message."""
    with patch.object(
        ContactRepository,
        "find_by_email_or_phone",
        side_effect=OperationalError("SELECT", {}, Exception("DB Error")),
    ):
        response = await client.post("/identify", json={"email": "test@test.com"})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Internal server error"
    assert "DB Error" in body["message"]


async def test_health_check(client):
    """Test health check endpoint."""
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "message": "Server is running"}


async def test_request_id_header_is_echoed(client):
    """Test that a supplied request id comes back on the response."""
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


async def test_request_id_header_is_generated(client):
    """Test that a request id is generated when none is supplied."""
    response = await client.get("/health")

    assert len(response.headers["X-Request-ID"]) == 32


async def test_request_id_visible_to_handler_and_cleared_after(client):
    """Test that the request id is in context while the request is handled."""
    seen = []

    async def fake_identify(self, email=None, phone_number=None):
        seen.append(get_request_id())
        return ConsolidatedContact(primary_contact_id=1, emails=[email])

    with patch.object(IdentityService, "identify", fake_identify):
        response = await client.post(
            "/identify", json={"email": "a@x.com"}, headers={"X-Request-ID": "req-xyz"}
        )

    assert response.status_code == 200
    assert seen == ["req-xyz"]
    assert get_request_id() is None
