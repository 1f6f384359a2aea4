from typing import Any

from fastapi import status


class AppError(Exception):
    code: str = "APP_ERROR"
    message: str = "Application error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    details: Any | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Any | None = None,
    ):
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        if details is not None:
            self.details = details

        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return error_payload(self.code, self.message, self.details)


class ValidationError(AppError):
    code = "VALIDATION_ERROR"
    message = "Validation error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(
            f"Invalid {field}: {reason}",
            details={"field": field, "reason": reason},
        )


class NotFoundError(AppError):
    code = "NOT_FOUND"
    message = "Resource not found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, id: Any):
        self.entity = entity
        self.id = id
        super().__init__(
            f"{entity} {id} not found",
            details={"entity": entity, "id": str(id)},
        )


class DuplicateNameError(AppError):
    code = "DUPLICATE_NAME"
    message = "Name already exists"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, entity: str, name: str):
        self.entity = entity
        self.name = name
        super().__init__(
            f"{entity} named '{name}' already exists",
            details={"entity": entity, "name": name},
        )


class ConflictError(AppError):
    code = "CONFLICT_ERROR"
    message = "Resource conflict"
    status_code = status.HTTP_409_CONFLICT


class PartialFailureError(AppError):
    code = "PARTIAL_FAILURE"
    message = "Bulk operation partially failed"
    status_code = status.HTTP_207_MULTI_STATUS

    def __init__(self, succeeded: list[Any], failed: list[dict[str, Any]]):
        self.succeeded = list(succeeded)
        self.failed = list(failed)
        total = len(self.succeeded) + len(self.failed)
        super().__init__(
            f"{len(self.succeeded)} of {total} succeeded",
            details={
                "succeeded": [str(item) for item in self.succeeded],
                "failed": self.failed,
            },
        )


class StoreUnavailableError(AppError):
    code = "STORE_UNAVAILABLE"
    message = "Store temporarily unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class InternalError(AppError):
    code = "INTERNAL_ERROR"
    message = "Internal server error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def error_payload(
    code: str,
    message: str,
    details: Any | None = None,
) -> dict[str, Any]:
    return {"error": {"code": code, "message": message, "details": details}}
