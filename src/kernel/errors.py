from __future__ import annotations

import re
from typing import Any


_ERROR_CODE_RE = re.compile(r"^[a-z][a-z0-9_]*(\.[a-z][a-z0-9_]*)*$")


class MagnaPortaError(Exception):
    """Base typed error for the Magna Porta API.

    - `code` is stable and dot-separated, for programmatic handling.
    - `message` is shown to API consumers as `detail`.
    - `meta` carries safe-to-expose debugging context.

    Subclasses only set the class-level defaults; callers override `message`
    and `code` per raise site (`company.name_conflict`, `airwallex.unavailable`).
    """

    default_code = "internal.error"
    default_message = "Internal error"
    default_status = 500

    def __init__(
        self,
        *,
        code: str | None = None,
        message: str | None = None,
        status_code: int | None = None,
        meta: dict[str, Any] | None = None,
    ) -> None:
        code = code or self.default_code
        if not _ERROR_CODE_RE.fullmatch(code):
            raise ValueError(
                "Invalid error code. Expected dot-separated lowercase tokens, "
                f"got: {code!r}"
            )
        message = message or self.default_message
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = int(status_code or self.default_status)
        self.meta = dict(meta or {})

    def to_public_dict(self, *, request_id: str | None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "detail": self.message,
            "code": self.code,
        }
        if request_id:
            payload["request_id"] = request_id
        if self.meta:
            payload["meta"] = self.meta
        return payload


class BadRequestError(MagnaPortaError):
    default_code = "request.bad_request"
    default_message = "Bad request"
    default_status = 400


class UnauthorizedError(MagnaPortaError):
    default_code = "auth.unauthorized"
    default_message = "Not authenticated"
    default_status = 401


class ForbiddenError(MagnaPortaError):
    default_code = "auth.forbidden"
    default_message = "Forbidden"
    default_status = 403


class NotFoundError(MagnaPortaError):
    default_code = "resource.not_found"
    default_message = "Not found"
    default_status = 404


class ConflictError(MagnaPortaError):
    default_code = "request.conflict"
    default_message = "Conflict"
    default_status = 409


class ValidationError(MagnaPortaError):
    default_code = "request.validation_error"
    default_message = "Validation failed"
    default_status = 422


class UpstreamError(MagnaPortaError):
    """Airwallex or a mail provider failed; 502 unless the caller says otherwise."""

    default_code = "upstream.error"
    default_message = "Upstream service error"
    default_status = 502
