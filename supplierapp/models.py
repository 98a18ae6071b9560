from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class Role(str, Enum):
    SUPPLIER = "supplier"
    ADMIN = "admin"


class ContractStatus(str, Enum):
    DRAFT = "draft"
    PREPARING = "preparing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Severity(str, Enum):
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


CONTRACT_STATUSES = [s.value for s in ContractStatus]
ACTIVE_STATUSES = (ContractStatus.PREPARING.value, ContractStatus.SHIPPED.value)
SEVERITIES = [s.value for s in Severity]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as stored in the tables; ``None`` if unreadable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def from_dynamo(value: Any) -> Any:
    """Turn DynamoDB ``Decimal`` values (recursively) back into ints and floats."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value


def to_dynamo(value: Any) -> Any:
    """DynamoDB rejects floats, so numbers are written as ``Decimal``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_dynamo(v) for v in value]
    return value


@dataclass
class Contract:
    id: str
    supplier_id: str
    title: str
    total_quantity: int
    box_size: str
    items_per_box: int
    total_weight_kg: float
    status: str = ContractStatus.DRAFT.value
    progress: int = 0
    qr_code: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_item(cls, item: dict) -> "Contract":
        data = from_dynamo(item)
        return cls(
            id=data["id"],
            supplier_id=data.get("supplier_id", ""),
            title=data.get("title", ""),
            total_quantity=int(data.get("total_quantity", 0) or 0),
            box_size=data.get("box_size", ""),
            items_per_box=int(data.get("items_per_box", 0) or 0),
            total_weight_kg=float(data.get("total_weight_kg", 0) or 0),
            status=data.get("status", ContractStatus.DRAFT.value),
            progress=int(data.get("progress", 0) or 0),
            qr_code=data.get("qr_code"),
            metadata=data.get("metadata") or {},
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )

    def to_item(self) -> dict:
        item = {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "title": self.title,
            "total_quantity": self.total_quantity,
            "box_size": self.box_size,
            "items_per_box": self.items_per_box,
            "total_weight_kg": Decimal(str(self.total_weight_kg)),
            "status": self.status,
            "progress": self.progress,
            "metadata": to_dynamo(self.metadata),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.qr_code:
            item["qr_code"] = self.qr_code
        return item

    @property
    def skus(self) -> List[dict]:
        return list(self.metadata.get("skus") or [])

    @property
    def created(self) -> Optional[datetime]:
        return parse_timestamp(self.created_at)

    @property
    def updated(self) -> Optional[datetime]:
        return parse_timestamp(self.updated_at)


@dataclass
class ContractIssue:
    id: str
    contract_id: str
    reported_by: str
    title: str
    description: Optional[str] = None
    severity: str = Severity.MINOR.value
    resolved: bool = False
    created_at: str = ""
    updated_at: str = ""
    # Filled in by joins for the cross-contract view, never stored.
    contract_title: Optional[str] = None

    @classmethod
    def from_item(cls, item: dict) -> "ContractIssue":
        data = from_dynamo(item)
        return cls(
            id=data["id"],
            contract_id=data.get("contract_id", ""),
            reported_by=data.get("reported_by", ""),
            title=data.get("title", ""),
            description=data.get("description") or None,
            severity=data.get("severity", Severity.MINOR.value),
            resolved=bool(data.get("resolved", False)),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )

    def to_item(self) -> dict:
        item = {
            "id": self.id,
            "contract_id": self.contract_id,
            "reported_by": self.reported_by,
            "title": self.title,
            "severity": self.severity,
            "resolved": self.resolved,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.description:
            item["description"] = self.description
        return item

    @property
    def created(self) -> Optional[datetime]:
        return parse_timestamp(self.created_at)


@dataclass
class AuditLog:
    id: str
    action: str
    resource: str
    user_id: Optional[str] = None
    resource_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: str = ""

    @classmethod
    def from_item(cls, item: dict) -> "AuditLog":
        data = from_dynamo(item)
        return cls(
            id=data["id"],
            action=data.get("action", ""),
            resource=data.get("resource", ""),
            user_id=data.get("user_id"),
            resource_id=data.get("resource_id"),
            metadata=data.get("metadata") or {},
            created_at=data.get("created_at", ""),
        )

    def to_item(self) -> dict:
        item = {
            "id": self.id,
            "action": self.action,
            "resource": self.resource,
            "metadata": to_dynamo(self.metadata),
            "created_at": self.created_at,
        }
        if self.user_id:
            item["user_id"] = self.user_id
        if self.resource_id:
            item["resource_id"] = self.resource_id
        return item

    @property
    def created(self) -> Optional[datetime]:
        return parse_timestamp(self.created_at)

    @property
    def summary(self) -> str:
        text = f"{self.action.replace('_', ' ')} {self.resource}"
        title = self.metadata.get("title")
        if title:
            text += f" - {title}"
        return text


@dataclass
class SessionContext:
    """The signed-in user as resolved at login, passed explicitly to services."""

    user_id: str
    email: str = ""
    role: Role = Role.SUPPLIER
    language: str = "en"
    theme: str = "light"
    member_since: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def can_write(self, contract: Contract) -> bool:
        return self.is_admin or contract.supplier_id == self.user_id
