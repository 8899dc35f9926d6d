from typing import Any, Iterable, List, Optional


class SentinelError(Exception):
    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class SentinelConfigurationError(SentinelError):
    """A collaborator required by the requested operation was not wired in."""


class ValidationError(SentinelError):
    pass


class UnknownReasonError(ValidationError):
    def __init__(self, unknown: Iterable[str]):
        self.unknown = list(unknown)
        super().__init__(
            f"Unknown ban reasons: {', '.join(self.unknown)}",
            errors=self.unknown,
        )


class ConflictError(SentinelError):
    pass


class AlreadyActiveError(ConflictError):
    def __init__(self, identity, display_name: Optional[str] = None):
        self.identity = identity
        self.display_name = display_name
        target = display_name or str(identity)
        super().__init__(f"Identity already has an active revocation: {target}")


class NotFoundError(SentinelError):
    pass


class IdentityNotFoundError(NotFoundError):
    def __init__(self, target):
        self.target = target
        super().__init__(f"Identity not found: {target}")


class StorageFailure(SentinelError):
    def __init__(self, operation: str, detail: str = "", **context):
        self.operation = operation
        self.context = context
        message = f"Storage failure during {operation}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
