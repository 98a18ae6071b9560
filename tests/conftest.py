"""
Supplier Pro - Test Configuration and Fixtures
Provides signed-in users, sample rows and mocked AWS stores for all test modules
"""

from unittest.mock import MagicMock

import pytest
from django.conf import settings
from django.contrib.sessions.backends.signed_cookies import SessionStore

from supplierapp.models import AuditLog, Contract, ContractIssue, Role, SessionContext
from supplierapp.services import AuditService, ContractService, IssueService
from supplierapp.storage import QRCodeStorage
from supplierapp.stores import AuditLogStore, ContractIssueStore, ContractStore


# ============================================================================
# USERS
# ============================================================================

@pytest.fixture
def supplier():
    return SessionContext(user_id="sup-1", email="supplier@example.com", role=Role.SUPPLIER)


@pytest.fixture
def other_supplier():
    return SessionContext(user_id="sup-2", email="other@example.com", role=Role.SUPPLIER)


@pytest.fixture
def admin():
    return SessionContext(user_id="adm-1", email="admin@example.com", role=Role.ADMIN)


# ============================================================================
# SAMPLE ROWS
# ============================================================================

def make_contract(**overrides):
    values = dict(
        id="c-1",
        supplier_id="sup-1",
        title="Spring Catalogue",
        total_quantity=1000,
        box_size="40x30x20",
        items_per_box=50,
        total_weight_kg=250.0,
        status="draft",
        progress=0,
        created_at="2024-03-10T09:00:00+00:00",
        updated_at="2024-03-10T09:00:00+00:00",
    )
    values.update(overrides)
    return Contract(**values)


def make_issue(**overrides):
    values = dict(
        id="i-1",
        contract_id="c-1",
        reported_by="adm-1",
        title="Damaged pallet",
        severity="minor",
        resolved=False,
        created_at="2024-03-11T09:00:00+00:00",
        updated_at="2024-03-11T09:00:00+00:00",
    )
    values.update(overrides)
    return ContractIssue(**values)


def make_log(**overrides):
    values = dict(
        id="a-1",
        action="create",
        resource="contract",
        user_id="sup-1",
        resource_id="c-1",
        metadata={"title": "Spring Catalogue"},
        created_at="2024-03-10T09:00:00+00:00",
    )
    values.update(overrides)
    return AuditLog(**values)


@pytest.fixture
def contract():
    return make_contract()


# ============================================================================
# MOCKED STORES AND SERVICES
# ============================================================================

@pytest.fixture
def contract_store():
    return MagicMock(spec=ContractStore)


@pytest.fixture
def issue_store():
    return MagicMock(spec=ContractIssueStore)


@pytest.fixture
def audit_store():
    return MagicMock(spec=AuditLogStore)


@pytest.fixture
def qr_storage():
    return MagicMock(spec=QRCodeStorage)


@pytest.fixture
def audit_service(audit_store):
    return AuditService(audit_store)


@pytest.fixture
def contract_service(contract_store, audit_service, qr_storage):
    return ContractService(contract_store, audit_service, qr_storage)


@pytest.fixture
def issue_service(issue_store, contract_store):
    return IssueService(issue_store, contract_store)


class FakeUpload:
    """Just enough of Django's UploadedFile for validation and upload."""

    def __init__(self, name="qr.png", content_type="image/png", size=1024):
        self.name = name
        self.content_type = content_type
        self.size = size
        self.position = None

    def seek(self, position):
        self.position = position

    def read(self, *args):
        return b""


@pytest.fixture
def png_upload():
    return FakeUpload()


# ============================================================================
# DJANGO CLIENT
# ============================================================================

def sign_in(client, user, **extra):
    """Put a signed-in user into the client's signed-cookie session."""
    session = SessionStore()
    session.update({
        "access_token": "access-token",
        "user_id": user.user_id,
        "user_email": user.email,
        "role": user.role.value,
        "member_since": "2024-01-15T10:00:00+00:00",
    })
    session.update(extra)
    session.save()
    client.cookies[settings.SESSION_COOKIE_NAME] = session.session_key
    return client
