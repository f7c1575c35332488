"""Scheme → builder registry.

Nothing is registered on import.  The host program opts in at startup::

    from khs.registry import default_registry, register

    register()                                        # adds the khs builder
    resolver = await default_registry.build("khs:///my-svc:9090", sink)

Target URIs follow the gRPC naming convention ``scheme://authority/endpoint``;
the authority is ignored by this resolver and usually left empty.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Protocol

from khs.errors import UnknownSchemeError
from khs.lookup import Lookup
from khs.resolver import KhsResolver, build
from khs.sink import StateSink

logger = logging.getLogger("khs.registry")

SCHEME = "khs"


class TargetURI(NamedTuple):
    scheme: str
    authority: str
    endpoint: str


def parse_uri(uri: str) -> TargetURI:
    """Split ``scheme://authority/endpoint`` into its parts.

    Examples::

        >>> parse_uri("khs:///svc:9090")
        TargetURI(scheme='khs', authority='', endpoint='svc:9090')
        >>> parse_uri("khs://dns-server/svc")
        TargetURI(scheme='khs', authority='dns-server', endpoint='svc')
    """
    scheme, sep, rest = uri.partition("://")
    if not sep or not scheme:
        raise UnknownSchemeError("")
    authority, _, endpoint = rest.partition("/")
    return TargetURI(scheme, authority, endpoint)


class Builder(Protocol):
    scheme: str

    async def build(self, endpoint: str, sink: StateSink) -> KhsResolver: ...


class KhsBuilder:
    """Builds resolvers for ``khs://`` targets.  Immutable, so one instance may be shared."""

    scheme = SCHEME

    def __init__(
        self,
        *,
        lookup: Lookup | None = None,
        refresh_interval: float | None = None,
    ) -> None:
        self._lookup = lookup
        self._refresh_interval = refresh_interval

    async def build(self, endpoint: str, sink: StateSink) -> KhsResolver:
        return await build(
            endpoint,
            sink,
            lookup=self._lookup,
            refresh_interval=self._refresh_interval,
            scheme=self.scheme,
        )


class ResolverRegistry:
    def __init__(self) -> None:
        self._builders: dict[str, Builder] = {}

    def register(self, builder: Builder) -> None:
        """Register ``builder`` for its scheme, replacing any previous one."""
        if builder.scheme in self._builders:
            logger.info("replacing resolver builder for scheme %r", builder.scheme)
        self._builders[builder.scheme] = builder

    def unregister(self, scheme: str) -> None:
        self._builders.pop(scheme, None)

    def get(self, scheme: str) -> Builder:
        try:
            return self._builders[scheme]
        except KeyError:
            raise UnknownSchemeError(scheme) from None

    def schemes(self) -> list[str]:
        return sorted(self._builders)

    async def build(self, uri: str, sink: StateSink) -> KhsResolver:
        """Route ``uri`` to the builder registered for its scheme."""
        target = parse_uri(uri)
        builder = self.get(target.scheme)
        return await builder.build(target.endpoint, sink)


default_registry = ResolverRegistry()


def register(registry: ResolverRegistry | None = None, builder: Builder | None = None) -> Builder:
    """Register the khs builder (or ``builder``) with ``registry``; returns the builder."""
    builder = builder or KhsBuilder()
    (registry or default_registry).register(builder)
    return builder
