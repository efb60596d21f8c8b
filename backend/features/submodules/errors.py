"""Submodule engine errors, mapped onto the AppError contract."""

from typing import Iterable, Optional, Sequence

from backend.core.errors import AuthenticationError, NotFoundError, PermissionError, ValidationError


class SubmoduleNotFoundError(NotFoundError):
    code = "submodule_not_found"

    def __init__(self, submodule_code: str):
        super().__init__(
            f"Submodule {submodule_code} not found in registry",
            details={"submoduleCode": submodule_code},
        )
        self.submodule_code = submodule_code


class SubmoduleValidationError(ValidationError):
    """Rejected enable/disable.

    reason is one of: inactive, missing_dependencies, conflicts, protected,
    has_dependents. `codes` carries the offending set (possibly empty).
    """

    def __init__(self, message: str, *, reason: str, submodule_code: str, codes: Iterable[str] = ()):
        self.reason = reason
        self.submodule_code = submodule_code
        self.codes = tuple(codes)
        super().__init__(
            message,
            details={"reason": reason, "submoduleCode": submodule_code, "codes": list(self.codes)},
        )


class SubmoduleAuthenticationError(AuthenticationError):
    code = "authentication_required"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class SubmoduleAccessError(PermissionError):
    code = "submodule_required"

    def __init__(self, required: Sequence[str], missing: Sequence[str], operation_id: Optional[str] = None):
        self.required = tuple(required)
        self.missing = tuple(missing)
        self.operation_id = operation_id
        super().__init__(
            "Access denied: required submodules not enabled",
            details={"requiredSubmodules": list(self.required), "missingSubmodules": list(self.missing)},
        )
