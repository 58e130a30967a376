"""Tests for ConnectionService."""

import pytest

from invoicetrack.domain.errors import NotFoundError, UnauthorizedError, ValidationError


def test_connect_and_status(connection_service, owner):
    assert connection_service.get_status(owner).connected is False

    connection = connection_service.connect(owner, "owner@example.com", "app-password", name="Jane Owner")

    assert connection.credential == "app-password"
    status = connection_service.get_status(owner)
    assert status.connected is True
    assert status.email == "owner@example.com"
    assert status.name == "Jane Owner"


def test_connect_replaces_existing(connection_service, owner, temp_db):
    first = connection_service.connect(owner, "owner@example.com", "old")
    second = connection_service.connect(owner, "billing@example.com", "new")

    assert second.id == first.id
    stored = temp_db.get_email_connection(owner.user_id)
    assert stored.email == "billing@example.com"
    assert stored.credential == "new"


def test_connections_are_per_owner(connection_service, owner, other_owner):
    connection_service.connect(owner, "owner@example.com", "secret")

    assert connection_service.get_status(other_owner).connected is False


def test_connect_validation(connection_service, owner):
    with pytest.raises(ValidationError) as exc_info:
        connection_service.connect(owner, "nope", "")

    assert {"email", "credential"} <= set(exc_info.value.field_errors)


def test_disconnect(connection_service, owner):
    connection_service.connect(owner, "owner@example.com", "secret")

    connection_service.disconnect(owner)

    assert connection_service.get_status(owner).connected is False
    with pytest.raises(NotFoundError):
        connection_service.disconnect(owner)


def test_requires_auth(connection_service):
    with pytest.raises(UnauthorizedError):
        connection_service.get_status(None)
