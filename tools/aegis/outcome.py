"""Tagged response envelope returned by every HTTP operation.

Shape::

    {"status": "Success" | "Failed", "message": str, "data"?: {...}, "error"?: {"message": str}}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .auth.errors import AuthError, InternalError

SUCCESS = "Success"
FAILED = "Failed"


@dataclass(frozen=True)
class Outcome:
    status: str
    message: str
    http_status: int = 200
    data: Optional[dict[str, Any]] = None
    error: Optional[dict[str, str]] = None

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS

    @classmethod
    def success(
        cls, message: str, data: Optional[dict[str, Any]] = None, http_status: int = 200
    ) -> "Outcome":
        return cls(status=SUCCESS, message=message, http_status=http_status, data=data)

    @classmethod
    def failure(cls, error: AuthError, error_message: str) -> "Outcome":
        """Envelope for an AuthError.

        Internal errors become a 500 without an error code; callers only see
        the class default message and the generic ``error_message``.
        """
        if isinstance(error, InternalError):
            return cls.internal(error_message, error.message)
        return cls(
            status=FAILED,
            message=error.message,
            http_status=error.http_status,
            error={"message": error_message, "code": error.code},
        )

    @classmethod
    def internal(cls, error_message: str, message: str = "Internal error") -> "Outcome":
        return cls(
            status=FAILED,
            message=message,
            http_status=500,
            error={"message": error_message},
        )

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"status": self.status, "message": self.message}
        if self.data is not None:
            body["data"] = self.data
        if self.error is not None:
            body["error"] = self.error
        return body
