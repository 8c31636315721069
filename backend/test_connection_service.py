"""Connection directory: request, approve/reject, re-request after rejection."""
import pytest

from pharmaledger.core.exceptions import NotFoundError, ValidationError
from pharmaledger.models.tenant import TenantRole
from pharmaledger.services.connection_service import (
    is_connected, list_connections, request_connection, respond_to_connection,
)
from pharmaledger.services.notification_service import list_notifications


def test_request_and_approve(db, pharmacy, distributor):
    link = request_connection(db, pharmacy.id, distributor.id)
    assert link.status == "PENDING"
    assert not is_connected(db, pharmacy.id, distributor.id)

    notes = list_notifications(db, distributor.id, unread_only=True)
    assert [n.type for n in notes] == ["CONNECTION_REQ"]

    respond_to_connection(db, link.id, distributor.id, approve=True)
    assert is_connected(db, pharmacy.id, distributor.id)
    assert [c.id for c in list_connections(db, pharmacy.id)] == [link.id]
    assert [c.id for c in list_connections(db, distributor.id)] == [link.id]


def test_repeat_request_returns_existing_link(db, pharmacy, distributor):
    first = request_connection(db, pharmacy.id, distributor.id)
    again = request_connection(db, pharmacy.id, distributor.id)
    assert again.id == first.id
    assert len(list_notifications(db, distributor.id)) == 1


def test_rejected_link_can_be_requested_again(db, pharmacy, distributor):
    link = request_connection(db, pharmacy.id, distributor.id)
    respond_to_connection(db, link.id, distributor.id, approve=False)
    assert not is_connected(db, pharmacy.id, distributor.id)

    reopened = request_connection(db, pharmacy.id, distributor.id)
    assert reopened.id == link.id
    assert reopened.status == "PENDING"
    assert reopened.responded_at is None


def test_only_the_distributor_can_respond(db, pharmacy, distributor, make_tenant):
    link = request_connection(db, pharmacy.id, distributor.id)
    other = make_tenant("Rival Distributor", TenantRole.DISTRIBUTOR)

    with pytest.raises(NotFoundError):
        respond_to_connection(db, link.id, other.id, approve=True)
    assert not is_connected(db, pharmacy.id, distributor.id)


def test_roles_are_enforced(db, pharmacy, distributor, make_tenant):
    with pytest.raises(ValidationError):
        request_connection(db, distributor.id, pharmacy.id)

    other_pharmacy = make_tenant("City Chemist", TenantRole.PHARMACY)
    with pytest.raises(ValidationError):
        request_connection(db, pharmacy.id, other_pharmacy.id)
