"""Error taxonomy shared by the services and the HTTP boundary.

Services raise these; ``cashlog.main`` maps them onto responses of the form
``{"error": <message>, "code": <code>}`` (plus ``details`` for validation).
"""


class CashLogError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str | None = None, code: str | None = None):
        self.message = message or self.__class__.default_message()
        if code is not None:
            self.code = code
        super().__init__(self.message)

    @classmethod
    def default_message(cls) -> str:
        return "Internal Server Error"

    def payload(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(CashLogError):
    status_code = 400
    code = "validation_failed"

    def __init__(self, errors: dict[str, list[str]], message: str | None = None):
        self.errors = {k: list(v) for k, v in errors.items()}
        super().__init__(message or "Validation failed")

    def payload(self) -> dict:
        out = super().payload()
        out["details"] = self.errors
        return out


class Unauthorized(CashLogError):
    status_code = 401
    code = "unauthorized"

    @classmethod
    def default_message(cls) -> str:
        return "Unauthorized"


class Forbidden(CashLogError):
    status_code = 403
    code = "forbidden"

    @classmethod
    def default_message(cls) -> str:
        return "Forbidden"


class NotFound(CashLogError):
    status_code = 404
    code = "not_found"

    @classmethod
    def default_message(cls) -> str:
        return "Not found"


class ConflictError(CashLogError):
    status_code = 409
    code = "conflict"

    @classmethod
    def default_message(cls) -> str:
        return "Conflict"


class StoreUnavailableError(CashLogError):
    status_code = 503
    code = "store_unavailable"

    @classmethod
    def default_message(cls) -> str:
        return "Database unavailable"


class ErrorCollector:
    """Accumulates field errors so a single ValidationError lists all of them."""

    def __init__(self):
        self.errors: dict[str, list[str]] = {}

    def add(self, field: str, message: str) -> None:
        self.errors.setdefault(field, []).append(message)

    def __bool__(self) -> bool:
        return bool(self.errors)

    def raise_if_any(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)
