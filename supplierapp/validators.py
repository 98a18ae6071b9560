from decimal import Decimal, InvalidOperation

from .exceptions import ContractValidationError
from .models import CONTRACT_STATUSES, ContractStatus


def _to_int(value):
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        try:
            return int(float(str(value).strip()))
        except (OverflowError, TypeError, ValueError):
            return 0


def _to_decimal(value):
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError):
        return Decimal("0")
    return number if number.is_finite() else Decimal("0")


def parse_skus(text):
    """Parse ``SKU:QTY`` lines into ``[{"sku": ..., "qty": ...}]``.

    Blank lines are ignored. Raises ``ValueError`` naming the first bad line.
    """
    skus = []
    for number, raw in enumerate((text or "").splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue
        sku, sep, qty = line.partition(":")
        sku = sku.strip()
        try:
            quantity = int(qty.strip())
        except ValueError:
            quantity = 0
        if not sep or not sku or quantity < 1:
            raise ValueError(f"Line {number} must look like SKU:QTY with a positive quantity")
        skus.append({"sku": sku, "qty": quantity})
    return skus


def validate_contract_input(data):
    """Check the new-contract form and return cleaned values.

    Non-numeric quantities count as zero. Raises ``ContractValidationError``
    with one message per offending field.
    """
    title = (data.get("title") or "").strip()
    box_size = (data.get("box_size") or "").strip()
    total_quantity = _to_int(data.get("total_quantity"))
    items_per_box = _to_int(data.get("items_per_box"))
    total_weight_kg = _to_decimal(data.get("total_weight_kg"))
    status = (data.get("status") or ContractStatus.DRAFT.value).strip().lower()

    errors = {}
    if len(title) < 3:
        errors["title"] = "Title must be at least 3 characters"
    if total_quantity < 1:
        errors["total_quantity"] = "Quantity must be at least 1"
    if not box_size:
        errors["box_size"] = "Box size is required"
    if items_per_box < 1:
        errors["items_per_box"] = "Items per box must be at least 1"
    if total_weight_kg <= 0:
        errors["total_weight_kg"] = "Weight must be positive"
    if status not in CONTRACT_STATUSES:
        errors["status"] = "Unknown status"

    metadata = {}
    try:
        skus = parse_skus(data.get("skus"))
    except ValueError as e:
        errors["skus"] = str(e)
    else:
        if skus:
            metadata["skus"] = skus

    if errors:
        raise ContractValidationError(errors)

    return {
        "title": title,
        "total_quantity": total_quantity,
        "box_size": box_size,
        "items_per_box": items_per_box,
        "total_weight_kg": total_weight_kg,
        "status": status,
        "metadata": metadata,
    }
