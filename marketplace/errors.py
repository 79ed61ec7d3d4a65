class ServiceError(Exception):
    """Base class for failures of a backing service or third-party API."""

    code = "service_error"
    status = 500

    def __init__(self, message: str = "", details=None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details


class FirestoreUnavailable(ServiceError):
    code = "firestore_unavailable"
    status = 503


class FirestoreError(ServiceError):
    code = "firestore_error"


class StorageError(ServiceError):
    code = "storage_error"


class MailgunError(ServiceError):
    code = "email_failed"


class FlutterwaveError(ServiceError):
    code = "flutterwave_error"


class DocuSignError(ServiceError):
    code = "docusign_error"


class RSSError(ServiceError):
    code = "rss_parse_failed"
