"""Resolver for Kubernetes headless services.

``build`` parses the target, runs the first resolution on the caller's task
and only then starts the background refresh loop, so a caller either gets a
resolver whose sink already holds an address set or an exception, never a
half-started resolver.

Every resolution pushes the complete address set.  Nothing is merged with
the previous state: an empty lookup result replaces whatever the sink held.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Iterator
from typing import Any

from khs.config import settings
from khs.errors import LookupFailedError
from khs.logging import resolver_ctx
from khs.lookup import Lookup, create_lookup
from khs.metrics import ACTIVE_RESOLVERS, ENDPOINTS, RESOLUTION_COUNT, RESOLUTION_DURATION
from khs.models import LB_POLICY, ClientState, EndpointAddress
from khs.sink import StateSink
from khs.target import ResolutionTarget, parse_target

logger = logging.getLogger("khs.resolver")

_UNSET: Any = object()


def endpoint_addr(ip: str, port: int) -> str:
    """Affix a fixed port to a looked-up address, bracketing IPv6 literals."""
    if not port:
        return ip
    if ":" in ip:
        return f"[{ip}]:{port}"
    return f"{ip}:{port}"


class KhsResolver:
    def __init__(
        self,
        target: ResolutionTarget,
        sink: StateSink,
        lookup: Lookup,
        *,
        refresh_interval: float = 60.0,
        lookup_timeout: float | None = None,
        scheme: str = "khs",
    ) -> None:
        if refresh_interval <= 0:
            raise ValueError(f"refresh_interval must be positive, got {refresh_interval!r}")
        if lookup_timeout is not None and lookup_timeout <= 0:
            raise ValueError(f"lookup_timeout must be positive or None, got {lookup_timeout!r}")
        self.target = target
        self.scheme = scheme
        self._sink = sink
        self._lookup = lookup
        self._refresh_interval = refresh_interval
        self._lookup_timeout = lookup_timeout
        self._stop = asyncio.Event()
        self._closed = False
        self._task: asyncio.Task | None = None
        self._forced: set[asyncio.Task] = set()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "running" if self.running else "idle"
        return f"<KhsResolver {self.scheme}:///{self.target} {state}>"

    async def __aenter__(self) -> KhsResolver:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
        await self.wait_closed()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def running(self) -> bool:
        """True while the periodic refresh loop is alive."""
        return self._task is not None and not self._task.done()

    @contextlib.contextmanager
    def _log_context(self) -> Iterator[None]:
        token = resolver_ctx.set({"target": str(self.target), "scheme": self.scheme})
        try:
            yield
        finally:
            resolver_ctx.reset(token)

    # ------------------------------------------------------------------
    # Single resolution
    # ------------------------------------------------------------------

    async def _lookup_host(self) -> list[str]:
        host = self.target.host
        if self._lookup_timeout is None:
            return await self._lookup(host)
        try:
            return await asyncio.wait_for(self._lookup(host), timeout=self._lookup_timeout)
        except TimeoutError as exc:
            raise LookupFailedError(host, f"timed out after {self._lookup_timeout}s") from exc

    async def resolve(self, trigger: str = "initial") -> ClientState | None:
        """Look up the target host and push the resulting address set to the sink.

        Raises ``LookupFailedError`` without touching the sink when the lookup
        fails.  Returns the pushed state, or None when the resolver was closed
        while the lookup was in flight (nothing is pushed after close).
        """
        with self._log_context():
            start = time.monotonic()
            try:
                ips = await self._lookup_host()
            except LookupFailedError:
                RESOLUTION_COUNT.labels(trigger=trigger, outcome="failed").inc()
                raise
            finally:
                RESOLUTION_DURATION.labels(trigger=trigger).observe(time.monotonic() - start)

            state = ClientState(
                addresses=tuple(
                    EndpointAddress(addr=endpoint_addr(ip, self.target.port), server_name=self.target.host)
                    for ip in ips
                ),
                lb_policy=LB_POLICY,
            )

            if self._closed:
                RESOLUTION_COUNT.labels(trigger=trigger, outcome="discarded").inc()
                logger.debug("discarding %s resolution of %s: resolver closed", trigger, self.target)
                return None

            self._sink.replace_state(state.addresses, state.lb_policy)
            RESOLUTION_COUNT.labels(trigger=trigger, outcome="pushed").inc()
            ENDPOINTS.labels(target=str(self.target)).set(len(state.addresses))
            logger.debug(
                "resolved %s: %d endpoints (%s)",
                self.target,
                len(state.addresses),
                trigger,
                extra={"trigger": trigger, "endpoints": [a.addr for a in state.addresses]},
            )
            return state

    async def _resolve_logged(self, trigger: str) -> ClientState | None:
        # Post-build failures are reported here and never reach a caller.
        try:
            return await self.resolve(trigger)
        except LookupFailedError as exc:
            logger.warning(
                "error resolving %s (%s): %s",
                self.target,
                trigger,
                exc,
                extra={"trigger": trigger, "error": str(exc)},
            )
        except Exception as exc:
            logger.exception(
                "unexpected error resolving %s (%s)",
                self.target,
                trigger,
                extra={"trigger": trigger, "error": str(exc), "error_type": type(exc).__name__},
            )
        return None

    # ------------------------------------------------------------------
    # Refresh loop and lifecycle
    # ------------------------------------------------------------------

    def start(self) -> asyncio.Task:
        """Spawn the periodic refresh loop on the running event loop."""
        if self._closed:
            raise RuntimeError(f"resolver for {self.target} is closed")
        if self._task is not None:
            raise RuntimeError(f"refresh loop for {self.target} already started")
        with self._log_context():
            self._task = asyncio.create_task(self._periodic_update(), name=f"khs-refresh:{self.target}")
        return self._task

    async def _periodic_update(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self._refresh_interval
        ACTIVE_RESOLVERS.inc()
        logger.info(
            "refresh loop started for %s (every %.1fs)",
            self.target,
            interval,
            extra={"refresh_interval": interval},
        )
        next_tick = loop.time() + interval
        try:
            while True:
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(self._stop.wait(), timeout=max(next_tick - loop.time(), 0))
                if self._stop.is_set():
                    break
                await self._resolve_logged("periodic")
                # Ticks that fell due while resolving are dropped.
                now = loop.time()
                next_tick += interval
                while next_tick <= now:
                    next_tick += interval
        finally:
            ACTIVE_RESOLVERS.dec()
            with contextlib.suppress(KeyError):
                ENDPOINTS.remove(str(self.target))
            logger.info("refresh loop stopped for %s", self.target)

    def resolve_now(self) -> asyncio.Task | None:
        """Schedule an immediate resolution without shifting the refresh schedule.

        A hint from the client that its address set may be stale.  Failures
        are logged, never raised.  Returns the scheduled task, or None once
        the resolver is closed.
        """
        if self._closed:
            logger.debug("ignoring resolve_now on closed resolver for %s", self.target)
            return None
        with self._log_context():
            task = asyncio.create_task(self._resolve_logged("forced"), name=f"khs-resolve-now:{self.target}")
        self._forced.add(task)
        task.add_done_callback(self._forced.discard)
        return task

    def close(self) -> None:
        """Stop the refresh loop. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._stop.set()
        logger.info("resolver for %s closed", self.target, extra={"target": str(self.target)})

    async def wait_closed(self) -> None:
        """Close the resolver and wait for the refresh loop and any forced resolutions to finish."""
        self.close()
        tasks = [t for t in (self._task, *self._forced) if t is not None and not t.done()]
        if tasks:
            await asyncio.wait(tasks)


async def build(
    target: str,
    sink: StateSink,
    *,
    lookup: Lookup | None = None,
    refresh_interval: float | None = None,
    lookup_timeout: float | None = _UNSET,
    scheme: str = "khs",
) -> KhsResolver:
    """Parse ``target``, resolve it once and start the refresh loop.

    Raises ``MalformedTargetError`` / ``MalformedPortError`` for a bad target
    and ``LookupFailedError`` when the first lookup fails.  In all of those
    cases nothing has been pushed to ``sink`` and no task was started.
    """
    parsed = parse_target(target)
    if lookup_timeout is _UNSET:
        lookup_timeout = settings.lookup_timeout
    if lookup is None:
        lookup = create_lookup(settings.lookup_backend, lifetime=lookup_timeout)

    resolver = KhsResolver(
        parsed,
        sink,
        lookup,
        refresh_interval=settings.refresh_interval if refresh_interval is None else refresh_interval,
        lookup_timeout=lookup_timeout,
        scheme=scheme,
    )
    await resolver.resolve("initial")
    resolver.start()
    return resolver
