"""State sinks receiving address-set replacements.

The resolver only depends on the ``StateSink`` protocol.  ``MemorySink`` is
the in-process implementation: it keeps the latest ``ClientState`` and a
bounded history, and is safe to call from several tasks or threads.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from khs.models import ClientState, EndpointAddress


@runtime_checkable
class StateSink(Protocol):
    def replace_state(self, addresses: Sequence[EndpointAddress], policy: str) -> None: ...


class MemorySink:
    def __init__(self, history_size: int = 100) -> None:
        self._lock = threading.Lock()
        self._state: ClientState | None = None
        self._history: deque[ClientState] = deque(maxlen=history_size)
        self._update_count = 0

    def replace_state(self, addresses: Sequence[EndpointAddress], policy: str) -> None:
        state = ClientState(addresses=tuple(addresses), lb_policy=policy)
        with self._lock:
            self._state = state
            self._history.append(state)
            self._update_count += 1

    @property
    def state(self) -> ClientState | None:
        """Latest pushed state, or None before the first push."""
        with self._lock:
            return self._state

    @property
    def history(self) -> list[ClientState]:
        with self._lock:
            return list(self._history)

    @property
    def update_count(self) -> int:
        """Total pushes received, including ones evicted from ``history``."""
        with self._lock:
            return self._update_count

    def addrs(self) -> list[str]:
        state = self.state
        if state is None:
            return []
        return [a.addr for a in state.addresses]
