from typing import Any, Optional


class Say2meError(Exception):
    """Base exception for say2me application."""
    error = "Error"

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)

# --- Validation Errors (400) ---
class ValidationError(Say2meError):
    """Caller-correctable input problem; carries per-field details."""
    def __init__(self, errors: Optional[list[dict[str, Any]]] = None, message: str = "Validation failed"):
        self.errors = errors or []
        super().__init__(message)

    @classmethod
    def for_field(cls, field: str, message: str, value: Any = None) -> "ValidationError":
        error = {"field": field, "message": message}
        if value is not None:
            error["value"] = value
        return cls([error])

# --- Not Found Errors (404) ---
class EntityNotFoundError(Say2meError):
    """Base for Not Found errors."""
    error = "Not found"

class PageNotFoundError(EntityNotFoundError):
    error = "Page not found"

    def __init__(self, message: str = "Username is not valid"):
        super().__init__(message)

class UserNotFoundError(EntityNotFoundError):
    error = "User not found"

    def __init__(self, message: str = "User ID is not valid"):
        super().__init__(message)

# --- Already Exists Errors (400) ---
class EntityAlreadyExistsError(Say2meError):
    error = "Already exists"

class UsernameTakenError(EntityAlreadyExistsError):
    error = "Username is already taken"

    def __init__(self, message: str = "Please choose another username"):
        super().__init__(message)

# --- Rate Limit (429) ---
class RateLimitError(Say2meError):
    error = "Too many requests"

    def __init__(self, retry_after: int = 0, message: str = "Too many requests from this address, please try again later"):
        self.retry_after = retry_after
        super().__init__(message)

# --- System Errors (500) ---
class InternalError(Say2meError):
    error = "Internal server error"

    def __init__(self, message: str = "Please try again later"):
        super().__init__(message)
