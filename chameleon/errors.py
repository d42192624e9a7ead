"""Error taxonomy for lobby operations."""


class ChameleonError(Exception):
    """Base class for every error raised by the lobby core."""


class StoreUnavailable(ChameleonError):
    """The store could not be initialised. Blocks all lobby operations."""


class OperationTimeout(ChameleonError):
    """A store call did not complete in time.

    The in-flight effect is assumed not applied.
    """

    def __init__(self, operation: str, path: str, timeout: float):
        super().__init__(f"{operation} on {path!r} timed out after {timeout:g}s")
        self.operation = operation
        self.path = path
        self.timeout = timeout


class ValidationError(ChameleonError):
    """Bad user input (name, lobby code, clue text). Never reaches the store."""


class PreconditionFailed(ChameleonError):
    """The lobby is not in a state that allows the requested operation."""


class TransactionNotCommitted(ChameleonError):
    """A compare-and-swap transaction lost its race or was aborted.

    `aborted` is True when the transaction body refused the write (a failed
    precondition) and False when the write was lost to other writers.
    """

    def __init__(self, path: str, reason: str = "transaction not committed", aborted: bool = False):
        super().__init__(f"{reason} ({path})")
        self.path = path
        self.reason = reason
        self.aborted = aborted


class LobbyVanished(ChameleonError):
    """The subscribed lobby record no longer exists."""

    def __init__(self, code: str):
        super().__init__(f"Lobby {code} was closed")
        self.code = code
