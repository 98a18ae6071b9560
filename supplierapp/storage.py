"""S3 storage for contract QR code images."""
import logging
import re

import boto3

from django.conf import settings

from .exceptions import AWS_ERRORS, QRCodeValidationError, StoreError

logger = logging.getLogger(__name__)

ALLOWED_QR_TYPES = ("image/png", "image/jpeg", "image/svg+xml")
QR_EXTENSIONS = ("png", "jpg", "jpeg", "svg")
_EXT_BY_TYPE = {"image/png": "png", "image/jpeg": "jpg", "image/svg+xml": "svg"}


def max_qr_bytes():
    return getattr(settings, "QR_MAX_UPLOAD_BYTES", 2 * 1024 * 1024)


def validate_qr_code_file(upload):
    """Raise ``QRCodeValidationError`` unless ``upload`` is a PNG/JPEG/SVG within the size limit.

    ``upload`` is anything with ``content_type`` and ``size`` attributes, e.g. a
    Django ``UploadedFile``.
    """
    if upload is None:
        raise QRCodeValidationError("No file provided")
    if getattr(upload, "content_type", None) not in ALLOWED_QR_TYPES:
        raise QRCodeValidationError("Invalid file type. Only PNG, JPEG, and SVG images are allowed.")
    limit = max_qr_bytes()
    if (upload.size or 0) > limit:
        raise QRCodeValidationError(f"File size must be less than {limit // (1024 * 1024)}MB")


def qr_extension(upload):
    name = getattr(upload, "name", "") or ""
    if "." in name:
        ext = name.rsplit(".", 1)[-1].lower()
        if ext in QR_EXTENSIONS:
            return ext
    return _EXT_BY_TYPE.get(getattr(upload, "content_type", None), "png")


def qr_object_key(supplier_id, contract_id, ext):
    return f"{supplier_id}/{contract_id}/qr.{ext}"


class QRCodeStorage:
    """Upload, link and remove QR images in the contract QR bucket."""

    def __init__(self, bucket_name=None, client=None):
        self.bucket_name = bucket_name or settings.AWS_S3_BUCKET_NAME
        self.s3_client = client or boto3.client("s3", region_name=settings.AWS_REGION)

    def public_url(self, key):
        return f"https://{self.bucket_name}.s3.amazonaws.com/{key}"

    def upload(self, upload, contract_id, supplier_id):
        """Store a validated image and return its public URL."""
        validate_qr_code_file(upload)
        key = qr_object_key(supplier_id, contract_id, qr_extension(upload))
        if hasattr(upload, "seek"):
            upload.seek(0)
        try:
            self.s3_client.upload_fileobj(
                upload,
                self.bucket_name,
                key,
                ExtraArgs={"ContentType": upload.content_type, "CacheControl": "max-age=3600"},
            )
        except AWS_ERRORS as e:
            logger.error("QR upload failed for %s: %s", key, e)
            raise StoreError("QR code upload failed", original=e)
        logger.info("QR code stored at s3://%s/%s", self.bucket_name, key)
        return self.public_url(key)

    def signed_url(self, key, expires_in=None):
        try:
            return self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": key},
                ExpiresIn=expires_in or settings.QR_SIGNED_URL_EXPIRY,
            )
        except AWS_ERRORS as e:
            logger.error("Error generating presigned URL for %s: %s", key, e)
            return None

    def delete(self, contract_id, supplier_id):
        """Remove every QR variant stored for the contract."""
        objects = [{"Key": qr_object_key(supplier_id, contract_id, ext)} for ext in QR_EXTENSIONS]
        try:
            self.s3_client.delete_objects(Bucket=self.bucket_name, Delete={"Objects": objects, "Quiet": True})
        except AWS_ERRORS as e:
            logger.error("Error deleting QR code for contract %s: %s", contract_id, e)
            return False
        return True

    def extract_path(self, url):
        """Object key from a public or presigned bucket URL, else ``None``."""
        if not url:
            return None
        bucket = re.escape(self.bucket_name)
        for pattern in (
            rf"^https://{bucket}\.s3(?:[.-][a-z0-9-]+)?\.amazonaws\.com/([^?]+)",
            rf"^https://s3(?:[.-][a-z0-9-]+)?\.amazonaws\.com/{bucket}/([^?]+)",
        ):
            match = re.match(pattern, url)
            if match:
                return match.group(1)
        return None
