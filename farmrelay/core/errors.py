class AuthRejected(Exception):
    """Handshake token is missing, invalid, or carries no usable identity."""


class PersistenceUnavailable(Exception):
    """A store operation failed. Callers log it and keep relaying."""

    def __init__(self, operation: str, cause: BaseException | None = None):
        self.operation = operation
        detail = f"{operation} failed"
        if cause is not None:
            detail = f"{detail}: {cause}"
        super().__init__(detail)
