"""Error taxonomy shared by the pipeline, the reviewer API and the CLI."""


class CultivateError(Exception):
    """Base error. `code` is machine-readable, the message is for humans."""

    code = "INTERNAL_ERROR"
    http_status = 500

    def __init__(self, message: str, code: str | None = None, **extra):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.extra = extra

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, **self.extra}


class ValidationError(CultivateError):
    """Malformed request, e.g. missing id or unsupported artifact type."""

    code = "VALIDATION_ERROR"
    http_status = 400


class NotFoundError(CultivateError):
    code = "NOT_FOUND"
    http_status = 404


class AuthorizationError(CultivateError):
    """Requester does not own the resource."""

    code = "FORBIDDEN"
    http_status = 403


class ConflictError(CultivateError):
    """Deletion blocked because the artifact is still referenced."""

    code = "ARTIFACT_IS_SOURCE"
    http_status = 409

    def __init__(self, message: str, reasons: list[str] | None = None, code: str | None = None):
        super().__init__(message, code=code, reasons=reasons or [])
        self.reasons = reasons or []


class UpstreamServiceError(CultivateError):
    """Transcription or suggestion worker failed, timed out or answered garbage."""

    code = "UPSTREAM_ERROR"
    http_status = 502


class ReconciliationError(CultivateError):
    """Batch/contact state does not allow the merge (already reviewed, superseded, ...)."""

    code = "RECONCILIATION_ERROR"
    http_status = 409
