"""Registry exceptions following DDD principles."""


class RegistryError(Exception):
    """Base exception for all registry errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(RegistryError):
    """Domain validation errors."""

    pass


class SerializationError(RegistryError):
    """Serialization/deserialization errors."""

    pass


class StoreError(RegistryError):
    """Transport or command failure reported by the key-value store."""

    def __init__(
        self,
        message: str,
        key: str | None = None,
        operation: str | None = None,
    ):
        super().__init__(message)
        self.key = key
        self.operation = operation
        if key:
            self.details["key"] = key
        if operation:
            self.details["operation"] = operation


class ContextError(RegistryError):
    """A blocked wait ended because its lifetime was canceled or expired."""

    def __init__(self, message: str, cause: str):
        super().__init__(message, details={"cause": cause})
        self.cause = cause


class WatcherStoppedError(ContextError):
    """Raised by a watcher that has been stopped."""

    def __init__(self, prefix: str):
        super().__init__(f"Watcher for '{prefix}' was stopped", cause="canceled")
        self.prefix = prefix
        self.details["prefix"] = prefix


class DeadlineExceededError(ContextError):
    """Raised by a watcher whose deadline has passed."""

    def __init__(self, prefix: str, timeout: float):
        super().__init__(
            f"Watcher for '{prefix}' exceeded its {timeout}s deadline",
            cause="deadline exceeded",
        )
        self.prefix = prefix
        self.timeout = timeout
        self.details["prefix"] = prefix
        self.details["timeout"] = timeout
