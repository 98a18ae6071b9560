import logging

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from django.conf import settings

from .exceptions import AWS_ERRORS, NotFoundError, StoreError
from .models import AuditLog, Contract, ContractIssue

logger = logging.getLogger(__name__)


# ===============================================================
# Base class for DynamoDB interactions
# ===============================================================
class DynamoBase:
    """Base class providing common DynamoDB CRUD methods.

    Unlike a fire-and-forget wrapper, every failed request is logged and
    re-raised as ``StoreError`` so the calling view can report it.
    """

    key_name = "id"

    def __init__(self, table_name, region_name=None, table=None):
        self.table_name = table_name
        if table is None:
            dynamodb = boto3.resource("dynamodb", region_name=region_name or settings.AWS_REGION)
            table = dynamodb.Table(table_name)
        self.table = table

    def _fail(self, verb, exc):
        logger.error("Error %s %s: %s", verb, self.table_name, exc)
        return StoreError(f"Could not {verb} {self.table_name}", original=exc)

    # Create / insert a record
    def create_item(self, item):
        try:
            self.table.put_item(Item=item)
        except AWS_ERRORS as e:
            raise self._fail("insert into", e)
        logger.info("Item added to %s: %s", self.table_name, item.get(self.key_name))
        return item

    # Get a record by key
    def get_item(self, key_value):
        try:
            response = self.table.get_item(Key={self.key_name: key_value})
        except AWS_ERRORS as e:
            raise self._fail("read from", e)
        return response.get("Item")

    # List records, following pagination, optionally filtered
    def list_items(self, filter_expression=None):
        kwargs = {}
        if filter_expression is not None:
            kwargs["FilterExpression"] = filter_expression
        items = []
        try:
            while True:
                response = self.table.scan(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except AWS_ERRORS as e:
            raise self._fail("scan", e)
        return items

    # Update record by key
    def update_item(self, key_value, values):
        """SET every attribute in ``values`` on one row in a single request."""
        names = {}
        expr_values = {}
        assignments = []
        for i, (attr, value) in enumerate(values.items()):
            names[f"#a{i}"] = attr
            expr_values[f":v{i}"] = value
            assignments.append(f"#a{i} = :v{i}")
        try:
            self.table.update_item(
                Key={self.key_name: key_value},
                UpdateExpression="SET " + ", ".join(assignments),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=expr_values,
                ConditionExpression=Attr(self.key_name).exists(),
            )
        except AWS_ERRORS as e:
            if isinstance(e, ClientError) and e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise NotFoundError(f"{self.table_name} row {key_value} does not exist")
            raise self._fail("update", e)
        logger.info("Item updated in %s: %s", self.table_name, key_value)

    # Delete record by key
    def delete_item(self, key_value):
        try:
            self.table.delete_item(Key={self.key_name: key_value})
        except AWS_ERRORS as e:
            raise self._fail("delete from", e)
        logger.info("Item deleted from %s: %s", self.table_name, key_value)


def newest_first(rows, limit=None):
    rows = sorted(rows, key=lambda r: r.created_at or "", reverse=True)
    return rows[:limit] if limit else rows


# ===============================================================
# Table-specific classes
# ===============================================================


class ContractStore(DynamoBase):
    """Handles shipping contracts stored in DynamoDB."""

    def __init__(self, table=None):
        super().__init__(settings.CONTRACTS_TABLE, table=table)

    def create(self, contract: Contract) -> Contract:
        self.create_item(contract.to_item())
        return contract

    def get(self, contract_id):
        item = self.get_item(contract_id)
        return Contract.from_item(item) if item else None

    def list(self, supplier_id=None, limit=None):
        condition = Attr("supplier_id").eq(supplier_id) if supplier_id else None
        rows = [Contract.from_item(i) for i in self.list_items(condition)]
        return newest_first(rows, limit)

    def update(self, contract_id, values):
        self.update_item(contract_id, values)

    def delete(self, contract_id):
        self.delete_item(contract_id)


class ContractIssueStore(DynamoBase):
    """Handles contract issues stored in DynamoDB."""

    def __init__(self, table=None):
        super().__init__(settings.ISSUES_TABLE, table=table)

    def create(self, issue: ContractIssue) -> ContractIssue:
        self.create_item(issue.to_item())
        return issue

    def get(self, issue_id):
        item = self.get_item(issue_id)
        return ContractIssue.from_item(item) if item else None

    def list(self, contract_id=None):
        condition = Attr("contract_id").eq(contract_id) if contract_id else None
        return newest_first([ContractIssue.from_item(i) for i in self.list_items(condition)])

    def update(self, issue_id, values):
        self.update_item(issue_id, values)

    def delete(self, issue_id):
        self.delete_item(issue_id)


class AuditLogStore(DynamoBase):
    """Append-only action history; rows are never updated or deleted here."""

    def __init__(self, table=None):
        super().__init__(settings.AUDIT_LOGS_TABLE, table=table)

    def append(self, entry: AuditLog) -> AuditLog:
        self.create_item(entry.to_item())
        return entry

    def list(self, resource_id=None, limit=None, user_id=None):
        condition = None
        if resource_id:
            condition = Attr("resource_id").eq(resource_id)
        if user_id:
            by_user = Attr("user_id").eq(user_id)
            condition = by_user if condition is None else condition & by_user
        return newest_first([AuditLog.from_item(i) for i in self.list_items(condition)], limit)
