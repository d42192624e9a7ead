"""Contract of the shared document store the lobby core runs on."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..errors import OperationTimeout, StoreUnavailable

logger = logging.getLogger(__name__)

# Placeholder replaced by the store's own clock (milliseconds) on write
SERVER_TIMESTAMP = {".sv": "timestamp"}


class _Abort:
    def __repr__(self) -> str:
        return "ABORT"


# Returned from a transaction function to leave the value untouched
ABORT = _Abort()

SnapshotCallback = Callable[[Optional[Any]], None]
ErrorCallback = Callable[[Exception], None]
TransactionFn = Callable[[Optional[Any]], Any]


@dataclass
class TransactionResult:
    """Outcome of `LobbyStore.transaction`."""
    committed: bool
    value: Optional[Any] = None


def lobby_path(code: str) -> str:
    return f"lobbies/{code}"


def game_path(code: str) -> str:
    return f"lobbies/{code}/game"


def clue_state_path(code: str) -> str:
    return f"lobbies/{code}/game/clueState"


def split_path(path: str) -> list[str]:
    """Split a slash-separated document path into its segments."""
    parts = [part for part in path.strip("/").split("/") if part]
    if not parts:
        raise ValueError("Empty store path")
    return parts


class LobbyStore(ABC):
    """Remote document store with snapshot subscriptions and CAS transactions.

    Values are JSON-like (dicts, lists, str, int, float, bool). Empty
    containers and None are not stored: writing them removes the node.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialise the connection. Raises StoreUnavailable on failure."""

    @abstractmethod
    async def get(self, path: str) -> Optional[Any]:
        """Read the value at `path` once."""

    async def exists(self, path: str) -> bool:
        return await self.get(path) is not None

    @abstractmethod
    async def set(self, path: str, value: Any) -> None:
        """Replace the value at `path`."""

    async def create(self, path: str, value: Any) -> None:
        await self.set(path, value)

    @abstractmethod
    async def update(self, path: str, fields: dict[str, Any]) -> None:
        """Merge `fields` (keys may be slash paths) under `path`.

        Siblings not named in `fields` are untouched; None deletes.
        """

    async def remove(self, path: str) -> None:
        await self.set(path, None)

    @abstractmethod
    async def transaction(self, path: str, fn: TransactionFn) -> TransactionResult:
        """Atomically replace the value at `path` with `fn(current)`.

        `fn` may run several times when concurrent writers conflict. It
        returns the new value, None to delete, or ABORT to leave the value
        untouched (in which case the result is not committed).
        """

    @abstractmethod
    def subscribe(
        self,
        path: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        """Deliver the value at `path` now and after every change.

        Returns a function that cancels the subscription.
        """

    async def server_time_offset(self, local_now: int) -> int:
        """Milliseconds to add to a client clock reading `local_now` to get server time."""
        return 0


class TimedStore(LobbyStore):
    """Races every call of a wrapped store against a timeout."""

    def __init__(self, store: LobbyStore, timeout: float = 10.0):
        """Initialize the wrapper.

        Args:
            store: The store doing the actual work.
            timeout: Seconds each call may take before OperationTimeout.
        """
        self.store = store
        self.timeout = timeout

    async def _timed(self, operation: str, path: str, coro):
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Store %s on %s timed out after %ss", operation, path, self.timeout)
            raise OperationTimeout(operation, path, self.timeout) from None

    async def connect(self) -> None:
        try:
            await self._timed("connect", "/", self.store.connect())
        except OperationTimeout as e:
            raise StoreUnavailable(str(e)) from e

    async def get(self, path: str) -> Optional[Any]:
        return await self._timed("get", path, self.store.get(path))

    async def exists(self, path: str) -> bool:
        return await self._timed("exists", path, self.store.exists(path))

    async def set(self, path: str, value: Any) -> None:
        await self._timed("set", path, self.store.set(path, value))

    async def create(self, path: str, value: Any) -> None:
        await self._timed("create", path, self.store.create(path, value))

    async def update(self, path: str, fields: dict[str, Any]) -> None:
        await self._timed("update", path, self.store.update(path, fields))

    async def remove(self, path: str) -> None:
        await self._timed("remove", path, self.store.remove(path))

    async def transaction(self, path: str, fn: TransactionFn) -> TransactionResult:
        return await self._timed("transaction", path, self.store.transaction(path, fn))

    def subscribe(
        self,
        path: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        return self.store.subscribe(path, on_snapshot, on_error)

    async def server_time_offset(self, local_now: int) -> int:
        return await self._timed(
            "server_time_offset", "/", self.store.server_time_offset(local_now)
        )
