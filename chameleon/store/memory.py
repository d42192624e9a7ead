"""In-process reference implementation of the lobby store.

Behaves like a realtime document database seen from several clients on one
event loop: every call yields to the loop, transactions are optimistic and
retried when another writer got in between read and commit, and
subscribers receive the latest value (intermediate values may be coalesced).
"""

import asyncio
import copy
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..errors import StoreUnavailable
from .base import (
    ABORT,
    SERVER_TIMESTAMP,
    ErrorCallback,
    LobbyStore,
    SnapshotCallback,
    TransactionFn,
    TransactionResult,
    split_path,
)

logger = logging.getLogger(__name__)


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class _Subscription:
    parts: list[str]
    on_snapshot: SnapshotCallback
    on_error: Optional[ErrorCallback]
    loop: asyncio.AbstractEventLoop
    active: bool = True
    pending: bool = False


class InMemoryLobbyStore(LobbyStore):
    """A shared document tree living in this process."""

    MAX_TRANSACTION_ATTEMPTS = 25

    def __init__(
        self,
        clock: Optional[Callable[[], int]] = None,
        latency: float = 0.0,
        available: bool = True,
    ):
        """Initialize the store.

        Args:
            clock: Server clock in milliseconds. Defaults to wall time.
            latency: Seconds every call waits before touching the data.
            available: When False, `connect` raises StoreUnavailable.
        """
        self._root: dict[str, Any] = {}
        self._clock = clock or _wall_clock_ms
        self._subscriptions: list[_Subscription] = []
        self.latency = latency
        self.available = available
        self.commits = 0

    def now(self) -> int:
        """Current server time in milliseconds."""
        return self._clock()

    async def _delay(self) -> None:
        # Always yield so concurrent callers interleave
        await asyncio.sleep(self.latency)

    # --- tree helpers ---

    def _read(self, parts: list[str]) -> Optional[Any]:
        node: Any = self._root
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def _resolve(self, value: Any) -> Any:
        """Replace timestamp sentinels and drop empty nodes."""
        if value == SERVER_TIMESTAMP:
            return self.now()
        if isinstance(value, dict):
            resolved = {}
            for key, child in value.items():
                child = self._resolve(child)
                if child is not None:
                    resolved[str(key)] = child
            return resolved or None
        if isinstance(value, (list, tuple)):
            items = [self._resolve(item) for item in value]
            return [item for item in items if item is not None] or None
        return value

    def _write(self, parts: list[str], value: Any) -> None:
        value = self._resolve(value)
        if value is None:
            self._delete(parts)
            return

        node = self._root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value

    def _delete(self, parts: list[str]) -> None:
        trail = [self._root]
        for part in parts[:-1]:
            child = trail[-1].get(part)
            if not isinstance(child, dict):
                return
            trail.append(child)
        trail[-1].pop(parts[-1], None)

        # Prune parents left empty
        for depth in range(len(trail) - 1, 0, -1):
            if trail[depth]:
                break
            trail[depth - 1].pop(parts[depth - 1], None)

    # --- subscriptions ---

    def _notify(self, parts: list[str]) -> None:
        for sub in self._subscriptions:
            if not sub.active or sub.pending:
                continue
            shared = min(len(sub.parts), len(parts))
            if sub.parts[:shared] != parts[:shared]:
                continue
            sub.pending = True
            sub.loop.call_soon(self._deliver, sub)

    def _deliver(self, sub: _Subscription) -> None:
        sub.pending = False
        if not sub.active:
            return
        value = copy.deepcopy(self._read(sub.parts))
        try:
            sub.on_snapshot(value)
        except Exception as e:
            if sub.on_error is None:
                logger.exception("Subscriber to %s failed", "/".join(sub.parts))
            else:
                sub.on_error(e)

    def _commit(self, parts: list[str], value: Any) -> None:
        self._write(parts, value)
        self.commits += 1
        self._notify(parts)

    # --- LobbyStore ---

    async def connect(self) -> None:
        await self._delay()
        if not self.available:
            raise StoreUnavailable("In-memory store is marked unavailable")

    async def get(self, path: str) -> Optional[Any]:
        await self._delay()
        return copy.deepcopy(self._read(split_path(path)))

    async def set(self, path: str, value: Any) -> None:
        await self._delay()
        self._commit(split_path(path), copy.deepcopy(value))

    async def update(self, path: str, fields: dict[str, Any]) -> None:
        await self._delay()
        parts = split_path(path)
        for key, value in fields.items():
            self._write(parts + split_path(key), copy.deepcopy(value))
        self.commits += 1
        self._notify(parts)

    async def transaction(self, path: str, fn: TransactionFn) -> TransactionResult:
        parts = split_path(path)
        for attempt in range(1, self.MAX_TRANSACTION_ATTEMPTS + 1):
            await self._delay()
            current = copy.deepcopy(self._read(parts))
            new_value = fn(copy.deepcopy(current))
            if new_value is ABORT:
                return TransactionResult(committed=False, value=current)

            # Another writer may commit while this one is in flight
            await asyncio.sleep(0)
            if self._read(parts) != current:
                logger.debug("Transaction on %s conflicted (attempt %d), retrying", path, attempt)
                continue

            self._commit(parts, new_value)
            return TransactionResult(committed=True, value=copy.deepcopy(self._read(parts)))

        logger.warning("Transaction on %s gave up after %d attempts", path, self.MAX_TRANSACTION_ATTEMPTS)
        return TransactionResult(committed=False, value=copy.deepcopy(self._read(parts)))

    def subscribe(
        self,
        path: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Callable[[], None]:
        sub = _Subscription(
            parts=split_path(path),
            on_snapshot=on_snapshot,
            on_error=on_error,
            loop=asyncio.get_running_loop(),
        )
        self._subscriptions.append(sub)
        sub.pending = True
        sub.loop.call_soon(self._deliver, sub)

        def unsubscribe() -> None:
            sub.active = False
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

        return unsubscribe

    async def server_time_offset(self, local_now: int) -> int:
        await self._delay()
        return self.now() - local_now
