from botocore.exceptions import BotoCoreError, ClientError

class SupplierProError(Exception):
    """Base class for errors raised by the dashboard's services."""


class ContractValidationError(SupplierProError):
    """Form input rejected before any AWS call; ``errors`` maps field -> message."""

    def __init__(self, errors):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))


class QRCodeValidationError(SupplierProError):
    pass


class StoreError(SupplierProError):
    """A DynamoDB or S3 request failed."""

    def __init__(self, message, original=None):
        super().__init__(message)
        self.original = original


class NotFoundError(SupplierProError):
    pass


# Service-side rejections (ClientError) and transport or credential
# failures (BotoCoreError) both count as a failed request.
AWS_ERRORS = (BotoCoreError, ClientError)
