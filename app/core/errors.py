from __future__ import annotations


class MediaStoreError(Exception):
    """Base class for media store failures; the API maps ``status_code`` onto the response."""

    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class WriteFailure(MediaStoreError):
    status_code = 500


class FetchFailure(MediaStoreError):
    status_code = 502


class NotFound(MediaStoreError):
    status_code = 404


class InvalidEntityType(MediaStoreError):
    status_code = 400


class EmptyUpload(MediaStoreError):
    status_code = 400


class InvalidFilename(MediaStoreError):
    status_code = 400


class ReconcileFileError(MediaStoreError):
    """Raised per file inside a sweep; always caught and counted, never surfaced."""

    def __init__(self, filename: str, cause: OSError) -> None:
        super().__init__(f"Failed to delete {filename}: {cause}")
        self.filename = filename
        self.cause = cause


class PayloadTooLarge(MediaStoreError):
    status_code = 413
