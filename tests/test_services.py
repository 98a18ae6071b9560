"""
Service Tests - contract lifecycle, creation with QR upload, issues and audit
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import EndpointConnectionError
from django.core.exceptions import PermissionDenied

from supplierapp.exceptions import ContractValidationError, NotFoundError, QRCodeValidationError, StoreError
from supplierapp.services import (
    STATUS_PROGRESS,
    ContractService,
    filter_by_resolution,
    filter_by_severity,
    filter_contracts,
    has_pending_change,
    stepper_selection,
)
from supplierapp.storage import QRCodeStorage
from tests.conftest import FakeUpload, make_contract, make_issue

MiB = 1024 * 1024


def contract_form(**overrides):
    data = {
        "title": "Summer Stock",
        "total_quantity": "1200",
        "box_size": "60x40x40",
        "items_per_box": "40",
        "total_weight_kg": "300",
        "status": "draft",
    }
    data.update(overrides)
    return data


class TestStepper:

    def test_defaults(self):
        assert STATUS_PROGRESS == {"draft": 0, "preparing": 25, "shipped": 75, "delivered": 100}

    def test_shipped_button_sets_pending_pair(self, contract):
        """Shipped selects (shipped, 75) and leaves a pending change"""
        status, progress = stepper_selection("shipped")
        assert (status, progress) == ("shipped", 75)
        assert has_pending_change(contract, status, progress)

    @pytest.mark.parametrize("status", ["cancelled", "lost", ""])
    def test_cancelled_not_on_stepper(self, status):
        with pytest.raises(ValueError):
            stepper_selection(status)

    def test_no_pending_change_for_persisted_pair(self, contract):
        assert not has_pending_change(contract, contract.status, contract.progress)
        assert has_pending_change(contract, contract.status, 10)


class TestUpdateProgress:

    def test_single_write_then_audit(self, contract_service, contract_store, audit_store, supplier, contract):
        contract_store.get.return_value = contract

        updated = contract_service.update_progress(supplier, "c-1", 75, "shipped")

        contract_store.update.assert_called_once()
        contract_id, values = contract_store.update.call_args.args
        assert contract_id == "c-1"
        assert values["progress"] == 75
        assert values["status"] == "shipped"
        assert values["updated_at"]
        entry = audit_store.append.call_args.args[0]
        assert entry.action == "update_progress"
        assert entry.resource == "contract"
        assert entry.resource_id == "c-1"
        assert entry.metadata == {"progress": 75, "status": "shipped"}
        assert (updated.status, updated.progress) == ("shipped", 75)

    def test_store_failure_propagates_without_audit(self, contract_service, contract_store, audit_store, supplier, contract):
        contract_store.get.return_value = contract
        contract_store.update.side_effect = StoreError("Could not update contracts")

        with pytest.raises(StoreError):
            contract_service.update_progress(supplier, "c-1", 75, "shipped")
        audit_store.append.assert_not_called()

    def test_audit_failure_keeps_update(self, contract_service, contract_store, audit_store, supplier, contract):
        contract_store.get.return_value = contract
        audit_store.append.side_effect = StoreError("Could not insert into audit_logs")

        updated = contract_service.update_progress(supplier, "c-1", 25, "preparing")
        assert updated.progress == 25
        contract_store.update.assert_called_once()

    @pytest.mark.parametrize("progress,status", [(101, "shipped"), (-1, "shipped"), ("abc", "shipped"), (50, "lost")])
    def test_invalid_values_rejected_before_write(self, contract_service, contract_store, supplier, progress, status):
        with pytest.raises(ValueError):
            contract_service.update_progress(supplier, "c-1", progress, status)
        contract_store.update.assert_not_called()

    def test_decoupled_pair_is_allowed(self, contract_service, contract_store, supplier, contract):
        """Status and progress are not forced to match the stepper defaults"""
        contract_store.get.return_value = contract
        updated = contract_service.update_progress(supplier, "c-1", 40, "delivered")
        assert (updated.status, updated.progress) == ("delivered", 40)

    def test_other_supplier_cannot_update(self, contract_service, contract_store, other_supplier, contract):
        contract_store.get.return_value = contract
        with pytest.raises(PermissionDenied):
            contract_service.update_progress(other_supplier, "c-1", 75, "shipped")
        contract_store.update.assert_not_called()

    def test_admin_can_update_any(self, contract_service, contract_store, admin, contract):
        contract_store.get.return_value = contract
        contract_service.update_progress(admin, "c-1", 100, "delivered")
        contract_store.update.assert_called_once()

    def test_missing_contract(self, contract_service, contract_store, supplier):
        contract_store.get.return_value = None
        with pytest.raises(NotFoundError):
            contract_service.update_progress(supplier, "gone", 75, "shipped")


class TestCreateContract:

    def test_insert_upload_patch_audit(self, contract_service, contract_store, audit_store, qr_storage, supplier, png_upload):
        qr_storage.upload.return_value = "https://bucket.s3.amazonaws.com/sup-1/x/qr.png"
        calls = MagicMock()
        calls.attach_mock(contract_store.create, "create")
        calls.attach_mock(qr_storage.upload, "upload")
        calls.attach_mock(contract_store.update, "update")
        calls.attach_mock(audit_store.append, "append")

        contract, qr_ok = contract_service.create(supplier, contract_form(), png_upload)

        assert qr_ok
        assert [c[0] for c in calls.mock_calls] == ["create", "upload", "update", "append"]
        inserted = contract_store.create.call_args.args[0]
        assert inserted.qr_code is None
        assert inserted.supplier_id == "sup-1"
        assert contract_store.update.call_args.args == (contract.id, {"qr_code": qr_storage.upload.return_value})
        assert contract.qr_code == qr_storage.upload.return_value
        entry = audit_store.append.call_args.args[0]
        assert (entry.action, entry.metadata) == ("create", {"title": "Summer Stock"})

    def test_without_image(self, contract_service, contract_store, qr_storage, audit_store, supplier):
        contract, qr_ok = contract_service.create(supplier, contract_form(status="preparing"))
        assert qr_ok
        assert contract.progress == 25
        qr_storage.upload.assert_not_called()
        contract_store.update.assert_not_called()
        audit_store.append.assert_called_once()

    def test_validation_runs_before_any_call(self, contract_service, contract_store, qr_storage, supplier):
        with pytest.raises(ContractValidationError):
            contract_service.create(supplier, contract_form(title="ab"))
        contract_store.create.assert_not_called()
        qr_storage.upload.assert_not_called()

    def test_oversized_image_rejected_before_insert(self, contract_service, contract_store, qr_storage, supplier):
        with pytest.raises(QRCodeValidationError, match="less than 2MB"):
            contract_service.create(supplier, contract_form(), FakeUpload(size=3 * MiB))
        contract_store.create.assert_not_called()
        qr_storage.upload.assert_not_called()

    def test_gif_rejected_before_insert(self, contract_service, contract_store, supplier):
        with pytest.raises(QRCodeValidationError, match="Invalid file type"):
            contract_service.create(supplier, contract_form(), FakeUpload(name="qr.gif", content_type="image/gif"))
        contract_store.create.assert_not_called()

    def test_insert_failure_skips_upload(self, contract_service, contract_store, qr_storage, audit_store, supplier, png_upload):
        contract_store.create.side_effect = StoreError("Could not insert into contracts")
        with pytest.raises(StoreError):
            contract_service.create(supplier, contract_form(), png_upload)
        qr_storage.upload.assert_not_called()
        audit_store.append.assert_not_called()

    def test_upload_failure_keeps_contract(self, contract_service, contract_store, qr_storage, audit_store, supplier, png_upload):
        qr_storage.upload.side_effect = StoreError("QR code upload failed")

        contract, qr_ok = contract_service.create(supplier, contract_form(), png_upload)

        assert not qr_ok
        assert contract.qr_code is None
        contract_store.create.assert_called_once()
        contract_store.update.assert_not_called()
        assert audit_store.append.call_args.args[0].action == "create"

    def test_unreachable_bucket_keeps_contract(self, contract_store, audit_service, audit_store, supplier, png_upload):
        s3 = MagicMock()
        s3.upload_fileobj.side_effect = EndpointConnectionError(endpoint_url="https://qr-bucket.s3.amazonaws.com")
        service = ContractService(contract_store, audit_service, QRCodeStorage(bucket_name="qr-bucket", client=s3))

        contract, qr_ok = service.create(supplier, contract_form(), png_upload)

        assert not qr_ok
        assert contract.qr_code is None
        contract_store.create.assert_called_once()
        contract_store.update.assert_not_called()
        assert audit_store.append.call_args.args[0].action == "create"


class TestQRImageUrl:

    def test_signed_link_for_bucket_object(self, contract_service, qr_storage):
        qr_storage.extract_path.return_value = "sup-1/c-1/qr.png"
        qr_storage.signed_url.return_value = "https://signed"
        assert contract_service.qr_image_url(make_contract(qr_code="https://b.s3.amazonaws.com/sup-1/c-1/qr.png")) == "https://signed"
        qr_storage.signed_url.assert_called_once_with("sup-1/c-1/qr.png")

    def test_foreign_url_used_as_is(self, contract_service, qr_storage):
        qr_storage.extract_path.return_value = None
        assert contract_service.qr_image_url(make_contract(qr_code="https://cdn.example.com/qr.png")) == "https://cdn.example.com/qr.png"
        qr_storage.signed_url.assert_not_called()

    def test_signing_failure_falls_back(self, contract_service, qr_storage):
        qr_storage.extract_path.return_value = "k"
        qr_storage.signed_url.return_value = None
        assert contract_service.qr_image_url(make_contract(qr_code="https://b/k")) == "https://b/k"


class TestDeleteContract:

    def test_delete_keeps_issues(self, contract_service, contract_store, qr_storage, audit_store, issue_store, supplier):
        contract_store.get.return_value = make_contract(qr_code="https://bucket.s3.amazonaws.com/sup-1/c-1/qr.png")

        contract_service.delete(supplier, "c-1")

        contract_store.delete.assert_called_once_with("c-1")
        qr_storage.delete.assert_called_once_with("c-1", "sup-1")
        issue_store.delete.assert_not_called()
        assert audit_store.append.call_args.args[0].action == "delete"

    def test_other_supplier_cannot_delete(self, contract_service, contract_store, other_supplier, contract):
        contract_store.get.return_value = contract
        with pytest.raises(PermissionDenied):
            contract_service.delete(other_supplier, "c-1")
        contract_store.delete.assert_not_called()

    def test_orphaned_issue_shows_unknown(self, contract_service, issue_service, contract_store, issue_store, admin, contract):
        """After deletion the cross-contract issue list still renders the orphan"""
        contract_store.get.return_value = contract
        contract_service.delete(admin, "c-1")

        contract_store.list.return_value = [make_contract(id="c-2", title="Other")]
        issue_store.list.return_value = [make_issue(id="i-1", contract_id="c-1"), make_issue(id="i-2", contract_id="c-2")]

        issues = issue_service.list_all_with_titles(admin)
        assert [i.contract_title for i in issues] == ["Unknown", "Other"]


class TestListing:

    def test_supplier_sees_own(self, contract_service, contract_store, supplier):
        contract_service.list_visible(supplier, limit=3)
        contract_store.list.assert_called_once_with(supplier_id="sup-1", limit=3)

    def test_admin_sees_all(self, contract_service, contract_store, admin):
        contract_service.list_visible(admin)
        contract_store.list.assert_called_once_with(supplier_id=None, limit=None)

    def test_filter_contracts(self):
        rows = [
            make_contract(id="1", title="Spring Catalogue", status="draft"),
            make_contract(id="2", title="Summer Range", status="shipped"),
            make_contract(id="3", title="spring samples", status="shipped"),
        ]
        assert [c.id for c in filter_contracts(rows, "SPRING")] == ["1", "3"]
        assert [c.id for c in filter_contracts(rows, "spring", "shipped")] == ["3"]
        assert [c.id for c in filter_contracts(rows, "", "all")] == ["1", "2", "3"]


class TestIssues:

    def test_admin_creates_with_default_severity(self, issue_service, issue_store, contract_store, admin, contract):
        contract_store.get.return_value = contract
        issue_store.create.side_effect = lambda issue: issue

        issue = issue_service.create(admin, "c-1", "  Late pickup ", "", None)

        assert issue.title == "Late pickup"
        assert issue.severity == "minor"
        assert issue.description is None
        assert issue.resolved is False
        assert issue.reported_by == "adm-1"

    def test_title_required(self, issue_service, issue_store, admin):
        with pytest.raises(ValueError):
            issue_service.create(admin, "c-1", "   ")
        issue_store.create.assert_not_called()

    def test_unknown_severity(self, issue_service, admin):
        with pytest.raises(ValueError):
            issue_service.create(admin, "c-1", "Late", severity="apocalyptic")

    def test_supplier_cannot_manage(self, issue_service, issue_store, supplier):
        with pytest.raises(PermissionDenied):
            issue_service.create(supplier, "c-1", "Late")
        with pytest.raises(PermissionDenied):
            issue_service.set_resolved(supplier, "i-1", True)
        with pytest.raises(PermissionDenied):
            issue_service.delete(supplier, "i-1")
        issue_store.update.assert_not_called()
        issue_store.delete.assert_not_called()

    def test_toggle_twice_restores_value(self, issue_service, issue_store, admin):
        """Both toggles are plain writes and both succeed"""
        issue = make_issue(resolved=False)
        issue_store.update.side_effect = lambda issue_id, values: setattr(issue, "resolved", values["resolved"])

        issue_service.set_resolved(admin, "i-1", not issue.resolved)
        issue_service.set_resolved(admin, "i-1", not issue.resolved)

        assert issue.resolved is False
        assert issue_store.update.call_count == 2

    def test_repeated_resolve_still_writes(self, issue_service, issue_store, admin):
        issue_service.set_resolved(admin, "i-1", True)
        issue_service.set_resolved(admin, "i-1", True)
        assert [c.args[1]["resolved"] for c in issue_store.update.call_args_list] == [True, True]

    def test_delete(self, issue_service, issue_store, admin):
        issue_service.delete(admin, "i-1")
        issue_store.delete.assert_called_once_with("i-1")

    def test_filters(self):
        issues = [
            make_issue(id="1", severity="minor", resolved=True),
            make_issue(id="2", severity="critical"),
            make_issue(id="3", severity="critical", resolved=True),
        ]
        assert [i.id for i in filter_by_resolution(issues, "unresolved")] == ["2"]
        assert [i.id for i in filter_by_resolution(issues, "resolved")] == ["1", "3"]
        assert len(filter_by_resolution(issues, "all")) == 3
        assert [i.id for i in filter_by_severity(issues, "critical")] == ["2", "3"]
        assert len(filter_by_severity(issues, "all")) == 3


class TestAudit:

    def test_recent_scoped_to_contract(self, audit_service, audit_store):
        audit_service.recent(limit=5, contract_id="c-1")
        audit_store.list.assert_called_once_with(resource_id="c-1", limit=5, user_id=None)

    def test_supplier_sees_only_own_actions(self, audit_service, audit_store, supplier):
        audit_service.visible_to(supplier, limit=5)
        audit_store.list.assert_called_once_with(limit=5, user_id="sup-1")

    def test_admin_sees_every_action(self, audit_service, audit_store, admin):
        audit_service.visible_to(admin)
        audit_store.list.assert_called_once_with(limit=None, user_id=None)

    def test_record_swallows_store_failure(self, audit_service, audit_store, supplier):
        audit_store.append.side_effect = StoreError("down")
        assert audit_service.record(supplier, "create", "c-1", {"title": "x"}) is None
