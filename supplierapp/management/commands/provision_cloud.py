import logging

import boto3
from botocore.exceptions import ClientError
from django.conf import settings
from django.core.management.base import BaseCommand

logger = logging.getLogger(__name__)


class DynamoProvisioner:
    """Creates required DynamoDB tables automatically if they do not exist."""

    def __init__(self, region=None, client=None):
        self.region = region or settings.AWS_REGION
        self.dynamodb = client or boto3.client("dynamodb", region_name=self.region)

    def table_exists(self, table_name):
        try:
            paginator = self.dynamodb.get_paginator("list_tables")
            for page in paginator.paginate():
                if table_name in page.get("TableNames", []):
                    return True
            return False
        except ClientError as e:
            logger.error("Error listing tables: %s", e)
            return False

    def create_table(self, name, key_name="id"):
        """Create a DynamoDB table with PAY_PER_REQUEST billing."""
        try:
            self.dynamodb.create_table(
                TableName=name,
                KeySchema=[{"AttributeName": key_name, "KeyType": "HASH"}],
                AttributeDefinitions=[{"AttributeName": key_name, "AttributeType": "S"}],
                BillingMode="PAY_PER_REQUEST"
            )
            logger.info("Table '%s' created successfully.", name)
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "ResourceInUseException":
                logger.info("Table '%s' already exists.", name)
            else:
                logger.error("Error creating table %s: %s", name, e)
            return False

    def provision_all(self):
        """Create the contracts, issues and audit log tables; returns the names created."""
        created = []
        for name in (settings.CONTRACTS_TABLE, settings.ISSUES_TABLE, settings.AUDIT_LOGS_TABLE):
            if self.table_exists(name):
                logger.info("Table '%s' already exists, skipping.", name)
            elif self.create_table(name):
                created.append(name)
        return created


class BucketProvisioner:
    """Creates the QR code bucket if it does not exist."""

    def __init__(self, region=None, client=None):
        self.region = region or settings.AWS_REGION
        self.s3 = client or boto3.client("s3", region_name=self.region)

    def ensure_bucket(self, name=None):
        name = name or settings.AWS_S3_BUCKET_NAME
        try:
            self.s3.head_bucket(Bucket=name)
            logger.info("Bucket '%s' already exists, skipping.", name)
            return False
        except ClientError as e:
            if e.response["Error"]["Code"] not in ("404", "NoSuchBucket", "NotFound"):
                logger.error("Error checking bucket %s: %s", name, e)
                return False

        kwargs = {"Bucket": name}
        # us-east-1 rejects an explicit location constraint
        if self.region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            self.s3.create_bucket(**kwargs)
        except ClientError as e:
            logger.error("Error creating bucket %s: %s", name, e)
            return False
        logger.info("Bucket '%s' created successfully.", name)
        return True


class GroupProvisioner:
    """Creates the admin and supplier groups in the Cognito user pool."""

    def __init__(self, client=None):
        self.cognito = client or boto3.client("cognito-idp", region_name=settings.COGNITO_REGION)

    def ensure_groups(self, user_pool_id=None):
        user_pool_id = user_pool_id or settings.COGNITO_USER_POOL_ID
        created = []
        for group in (settings.COGNITO_ADMIN_GROUP, settings.COGNITO_SUPPLIER_GROUP):
            try:
                self.cognito.create_group(GroupName=group, UserPoolId=user_pool_id)
                created.append(group)
                logger.info("Cognito group '%s' created.", group)
            except ClientError as e:
                if e.response["Error"]["Code"] == "GroupExistsException":
                    logger.info("Cognito group '%s' already exists.", group)
                else:
                    logger.error("Error creating group %s: %s", group, e)
        return created


class Command(BaseCommand):
    help = "Provision the DynamoDB tables, QR code bucket and Cognito groups for Supplier Pro."

    def handle(self, *args, **options):
        self.stdout.write("Starting AWS provisioning...")

        created = DynamoProvisioner().provision_all()
        self.stdout.write(f"Tables created: {', '.join(created) or 'none'}")

        if BucketProvisioner().ensure_bucket():
            self.stdout.write(f"Bucket created: {settings.AWS_S3_BUCKET_NAME}")

        if settings.COGNITO_USER_POOL_ID:
            groups = GroupProvisioner().ensure_groups()
            self.stdout.write(f"Groups created: {', '.join(groups) or 'none'}")
        else:
            self.stdout.write("COGNITO_USER_POOL_ID not set, skipping group setup.")

        self.stdout.write(self.style.SUCCESS("All resources verified or created."))
