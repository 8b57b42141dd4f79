# chat_server/domain/errors.py
from typing import Any


class ChatError(Exception):
    """Base error for everything the chat core reports back to a caller.

    Raised from interactors, gateways and realtime handlers. The HTTP layer
    turns it into a JSON body with the same status code, the socket layer turns
    it into an ``error`` push for the originating connection only.
    """

    status_code: int = 400
    default_code: str = "chat_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: Any | None = None,
    ) -> None:
        self.message = message
        self.code = code if code is not None else self.default_code
        self.details = details
        super().__init__(message)


class AuthenticationRequired(ChatError):
    status_code = 401
    default_code = "authentication_required"


class AccessDenied(ChatError):
    status_code = 403
    default_code = "access_denied"


class ValidationFailed(ChatError):
    status_code = 422
    default_code = "validation_failed"


class NotFound(ChatError):
    status_code = 404
    default_code = "not_found"


class Conflict(ChatError):
    status_code = 409
    default_code = "conflict"


class TransientGatewayFailure(ChatError):
    """Persistence call failed; the caller only ever sees a generic message."""

    status_code = 503
    default_code = "gateway_unavailable"

    def __init__(self, message: str = "Temporary failure, please retry", **kwargs):
        super().__init__(message, **kwargs)
