import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from django.core.exceptions import PermissionDenied

from .exceptions import AWS_ERRORS, NotFoundError, StoreError
from .models import (
    CONTRACT_STATUSES,
    SEVERITIES,
    AuditLog,
    Contract,
    ContractIssue,
    ContractStatus,
    Role,
    SessionContext,
    Severity,
    utc_now_iso,
)
from .storage import QRCodeStorage, validate_qr_code_file
from .stores import AuditLogStore, ContractIssueStore, ContractStore
from .validators import validate_contract_input

logger = logging.getLogger(__name__)

# Stepper defaults; cancelled has no fixed progress and is not on the stepper.
STATUS_PROGRESS = {
    ContractStatus.DRAFT.value: 0,
    ContractStatus.PREPARING.value: 25,
    ContractStatus.SHIPPED.value: 75,
    ContractStatus.DELIVERED.value: 100,
}
STEPPER_STATUSES = list(STATUS_PROGRESS)

RESOLUTION_FILTERS = ("all", "unresolved", "resolved")
SEVERITY_FILTERS = ("all",) + tuple(SEVERITIES)


def stepper_selection(status: str) -> Tuple[str, int]:
    """(status, default progress) for a one-click stepper button."""
    if status not in STATUS_PROGRESS:
        raise ValueError(f"'{status}' is not a stepper status")
    return status, STATUS_PROGRESS[status]


def has_pending_change(contract: Contract, status: str, progress: int) -> bool:
    return contract.status != status or contract.progress != progress


def filter_contracts(contracts: List[Contract], search: str = "", status: str = "all") -> List[Contract]:
    term = (search or "").strip().lower()
    return [
        c for c in contracts
        if term in c.title.lower() and (status in ("", "all") or c.status == status)
    ]


def filter_by_resolution(issues: List[ContractIssue], mode: str = "all") -> List[ContractIssue]:
    if mode == "unresolved":
        return [i for i in issues if not i.resolved]
    if mode == "resolved":
        return [i for i in issues if i.resolved]
    return list(issues)


def filter_by_severity(issues: List[ContractIssue], severity: str = "all") -> List[ContractIssue]:
    if severity in SEVERITIES:
        return [i for i in issues if i.severity == severity]
    return list(issues)


@dataclass
class AuditService:
    store: AuditLogStore

    def record(self, session: SessionContext, action: str, resource_id: str,
               metadata: Optional[dict] = None, resource: str = "contract") -> Optional[AuditLog]:
        """Append an audit row. Best effort: a failed write is logged, not raised."""
        entry = AuditLog(
            id=str(uuid.uuid4()),
            user_id=session.user_id,
            action=action,
            resource=resource,
            resource_id=resource_id,
            metadata=metadata or {},
            created_at=utc_now_iso(),
        )
        try:
            return self.store.append(entry)
        except StoreError as e:
            logger.warning("Audit entry %s for %s %s was not written: %s", action, resource, resource_id, e)
            return None

    def recent(self, limit: int = 10, contract_id: Optional[str] = None,
               user_id: Optional[str] = None) -> List[AuditLog]:
        return self.store.list(resource_id=contract_id, limit=limit, user_id=user_id)

    def visible_to(self, session: SessionContext, limit: Optional[int] = None) -> List[AuditLog]:
        """Every row for admins, only the caller's own actions for suppliers."""
        user_id = None if session.is_admin else session.user_id
        return self.store.list(limit=limit, user_id=user_id)


@dataclass
class ContractService:
    contracts: ContractStore
    audit: AuditService
    qr_storage: QRCodeStorage

    def list_visible(self, session: SessionContext, limit: Optional[int] = None) -> List[Contract]:
        """Every contract for admins, the supplier's own otherwise."""
        supplier_id = None if session.is_admin else session.user_id
        return self.contracts.list(supplier_id=supplier_id, limit=limit)

    def list_owned(self, session: SessionContext) -> List[Contract]:
        return self.contracts.list(supplier_id=session.user_id)

    def get(self, session: SessionContext, contract_id: str) -> Contract:
        contract = self.contracts.get(contract_id)
        if contract is None:
            raise NotFoundError(f"Contract {contract_id} not found")
        if not session.can_write(contract):
            raise PermissionDenied("You do not have access to this contract.")
        return contract

    def create(self, session: SessionContext, data, qr_file=None) -> Tuple[Contract, bool]:
        """Insert the row, then attach the QR image.

        Returns ``(contract, qr_ok)``; ``qr_ok`` is False when the image upload
        failed after the row was created (the contract is kept without it).
        All validation happens before the first AWS call.
        """
        cleaned = validate_contract_input(data)
        if qr_file is not None:
            validate_qr_code_file(qr_file)

        now = utc_now_iso()
        contract = Contract(
            id=str(uuid.uuid4()),
            supplier_id=session.user_id,
            title=cleaned["title"],
            total_quantity=cleaned["total_quantity"],
            box_size=cleaned["box_size"],
            items_per_box=cleaned["items_per_box"],
            total_weight_kg=float(cleaned["total_weight_kg"]),
            status=cleaned["status"],
            progress=STATUS_PROGRESS.get(cleaned["status"], 0),
            qr_code=None,
            metadata=cleaned["metadata"],
            created_at=now,
            updated_at=now,
        )
        self.contracts.create(contract)

        qr_ok = True
        if qr_file is not None:
            try:
                url = self.qr_storage.upload(qr_file, contract.id, session.user_id)
                self.contracts.update(contract.id, {"qr_code": url})
                contract.qr_code = url
            except StoreError as e:
                qr_ok = False
                logger.warning("Contract %s created without QR code: %s", contract.id, e)

        self.audit.record(session, "create", contract.id, {"title": contract.title})
        return contract, qr_ok

    def update_progress(self, session: SessionContext, contract_id: str, progress, status: str) -> Contract:
        """Persist status and progress together, then log ``update_progress``."""
        if status not in CONTRACT_STATUSES:
            raise ValueError(f"Unknown status '{status}'")
        try:
            progress = int(progress)
        except (TypeError, ValueError):
            raise ValueError("Progress must be a whole number")
        if not 0 <= progress <= 100:
            raise ValueError("Progress must be between 0 and 100")

        contract = self.get(session, contract_id)
        updated_at = utc_now_iso()
        self.contracts.update(contract.id, {"progress": progress, "status": status, "updated_at": updated_at})
        contract.progress = progress
        contract.status = status
        contract.updated_at = updated_at

        self.audit.record(session, "update_progress", contract.id, {"progress": progress, "status": status})
        return contract

    def qr_image_url(self, contract: Contract) -> Optional[str]:
        """Short-lived signed link to the QR image, falling back to the stored URL."""
        path = self.qr_storage.extract_path(contract.qr_code)
        if path is None:
            return contract.qr_code
        return self.qr_storage.signed_url(path) or contract.qr_code

    def delete(self, session: SessionContext, contract_id: str) -> Contract:
        """Remove the row for good; issues that reference it are left in place."""
        contract = self.get(session, contract_id)
        self.contracts.delete(contract.id)
        if contract.qr_code:
            self.qr_storage.delete(contract.id, contract.supplier_id)
        self.audit.record(session, "delete", contract.id, {"title": contract.title})
        return contract


@dataclass
class IssueService:
    issues: ContractIssueStore
    contracts: ContractStore

    @staticmethod
    def _require_admin(session: SessionContext):
        if not session.is_admin:
            raise PermissionDenied("Only administrators can manage issues.")

    def list_for_contract(self, contract_id: str) -> List[ContractIssue]:
        return self.issues.list(contract_id=contract_id)

    def list_all(self) -> List[ContractIssue]:
        return self.issues.list()

    def list_all_with_titles(self, session: SessionContext) -> List[ContractIssue]:
        """Every issue with its contract's title; orphaned issues show "Unknown"."""
        self._require_admin(session)
        titles = {c.id: c.title for c in self.contracts.list()}
        issues = self.issues.list()
        for issue in issues:
            issue.contract_title = titles.get(issue.contract_id, "Unknown")
        return issues

    def create(self, session: SessionContext, contract_id: str, title: str,
               description: str = "", severity: str = Severity.MINOR.value) -> ContractIssue:
        self._require_admin(session)
        title = (title or "").strip()
        if not title:
            raise ValueError("Issue title is required")
        severity = severity or Severity.MINOR.value
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown severity '{severity}'")
        if self.contracts.get(contract_id) is None:
            raise NotFoundError(f"Contract {contract_id} not found")

        now = utc_now_iso()
        issue = ContractIssue(
            id=str(uuid.uuid4()),
            contract_id=contract_id,
            reported_by=session.user_id,
            title=title,
            description=(description or "").strip() or None,
            severity=severity,
            resolved=False,
            created_at=now,
            updated_at=now,
        )
        return self.issues.create(issue)

    def set_resolved(self, session: SessionContext, issue_id: str, resolved: bool) -> None:
        """Write ``resolved`` unconditionally; repeating the same value is a harmless rewrite."""
        self._require_admin(session)
        self.issues.update(issue_id, {"resolved": bool(resolved), "updated_at": utc_now_iso()})

    def get(self, session: SessionContext, issue_id: str) -> ContractIssue:
        self._require_admin(session)
        issue = self.issues.get(issue_id)
        if issue is None:
            raise NotFoundError(f"Issue {issue_id} not found")
        return issue

    def delete(self, session: SessionContext, issue_id: str) -> None:
        self._require_admin(session)
        self.issues.delete(issue_id)


class CognitoService:
    """Sign-up, sign-in and account lookups against the Cognito user pool.

    Failures come back as ``{"error": message}`` so the auth views can show
    them next to the form.
    """

    def __init__(self, client=None):
        self.client = client or boto3.client(
            "cognito-idp",
            region_name=settings.COGNITO_REGION
        )

    @staticmethod
    def _failure(e):
        if isinstance(e, ClientError):
            message = e.response["Error"]["Message"]
        else:
            message = str(e)
        logger.warning("Cognito request failed: %s", message)
        return {"error": message}

    def _admin(self, operation, email, **kwargs):
        """Run an admin_* call against the configured user pool."""
        return getattr(self.client, operation)(
            UserPoolId=settings.COGNITO_USER_POOL_ID,
            Username=email,
            **kwargs
        )

    def sign_up(self, email, password):
        try:
            response = self.client.sign_up(
                ClientId=settings.COGNITO_CLIENT_ID,
                Username=email,
                Password=password,
                UserAttributes=[{"Name": "email", "Value": email}]
            )
        except AWS_ERRORS as e:
            return self._failure(e)
        return {"success": True, "response": response}

    def auto_confirm_user(self, email):
        """Confirm the account, mark its email verified and file it under suppliers."""
        try:
            self._admin("admin_confirm_sign_up", email)
            self._admin(
                "admin_update_user_attributes", email,
                UserAttributes=[{"Name": "email_verified", "Value": "true"}]
            )
            self._admin("admin_add_user_to_group", email, GroupName=settings.COGNITO_SUPPLIER_GROUP)
        except AWS_ERRORS as e:
            return self._failure(e)
        return {"success": True}

    def login(self, email, password):
        try:
            response = self.client.initiate_auth(
                ClientId=settings.COGNITO_CLIENT_ID,
                AuthFlow="USER_PASSWORD_AUTH",
                AuthParameters={"USERNAME": email, "PASSWORD": password}
            )
        except AWS_ERRORS as e:
            return self._failure(e)
        return {"success": True, "tokens": response["AuthenticationResult"]}

    def user_profile(self, email):
        """Cognito ``sub`` (the user id), creation date and role for an account."""
        try:
            user = self._admin("admin_get_user", email)
            groups = self._admin("admin_list_groups_for_user", email)
        except AWS_ERRORS as e:
            return self._failure(e)

        attributes = {a["Name"]: a["Value"] for a in user.get("UserAttributes", [])}
        group_names = {g["GroupName"] for g in groups.get("Groups", [])}
        role = Role.ADMIN if settings.COGNITO_ADMIN_GROUP in group_names else Role.SUPPLIER
        created = user.get("UserCreateDate")
        return {
            "success": True,
            "user_id": attributes.get("sub", email),
            "email": attributes.get("email", email),
            "role": role.value,
            "member_since": created.isoformat() if created else "",
        }

    def user_exists(self, email):
        try:
            self._admin("admin_get_user", email)
        except ClientError as e:
            if e.response["Error"]["Code"] != "UserNotFoundException":
                logger.error("Error looking up Cognito user %s: %s", email, e)
            return False
        except BotoCoreError as e:
            logger.error("Error looking up Cognito user %s: %s", email, e)
            return False
        return True

    def logout(self, access_token):
        try:
            response = self.client.global_sign_out(AccessToken=access_token)
        except AWS_ERRORS as e:
            return self._failure(e)
        return {"success": True, "response": response}


# -------------------------------------------------------------------
# Service wiring
# -------------------------------------------------------------------

def build_services():
    """Wire stores and services against the configured AWS resources."""
    contracts = ContractStore()
    audit = AuditService(AuditLogStore())
    return {
        "contracts": ContractService(contracts, audit, QRCodeStorage()),
        "issues": IssueService(ContractIssueStore(), contracts),
        "audit": audit,
    }
