"""Name-lookup backends: resolve a host to the addresses behind it.

A headless Service publishes one A/AAAA record per ready pod, so a plain
address lookup of the service host yields the current endpoint set.

Backends are async callables ``(host) -> list[str]`` raising
``LookupFailedError``.  Results keep the order the backend returned them in.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
from typing import Protocol

import dns.asyncresolver
import dns.exception
import dns.resolver

from khs.errors import LookupFailedError

logger = logging.getLogger("khs.lookup")


class Lookup(Protocol):
    async def __call__(self, host: str) -> list[str]: ...


def _is_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return False


class SystemLookup:
    """Lookup through the platform resolver (``getaddrinfo``).

    Honours ``/etc/hosts`` and the pod's resolv.conf search domains, so short
    service names resolve the same way they do for any other process in the
    cluster.  Returns IPv4 and IPv6 addresses.
    """

    async def __call__(self, host: str) -> list[str]:
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(host, None, proto=socket.IPPROTO_TCP)
        except (OSError, UnicodeError) as exc:
            # UnicodeError comes from the IDNA codec for names like "a..b".
            raise LookupFailedError(host, str(exc)) from exc

        seen: set[str] = set()
        resolved: list[str] = []
        for info in infos:
            # Scoped IPv6 sockaddrs carry extra fields; the address is always first.
            ip_str = str(info[4][0])
            if ip_str not in seen:
                seen.add(ip_str)
                resolved.append(ip_str)
        logger.debug("looked up %s: %d addresses", host, len(resolved), extra={"host": host})
        return resolved


class DnsLookup:
    """Lookup straight against DNS with dnspython, querying A and AAAA.

    Bypasses ``/etc/hosts``.  A missing record type contributes no addresses;
    a missing name, unreachable nameservers or an expired lifetime fail the
    whole lookup.
    """

    _RECORD_TYPES = ("A", "AAAA")

    def __init__(self, lifetime: float | None = None) -> None:
        self._lifetime = lifetime

    async def _resolve(self, host: str, rdtype: str) -> list[str]:
        # Own Resolver per query so A and AAAA get independent lifetime budgets.
        resolver = dns.asyncresolver.Resolver()
        if self._lifetime is not None:
            resolver.lifetime = self._lifetime
        answer = await resolver.resolve(host, rdtype, raise_on_no_answer=False)
        return [rdata.to_text() for rdata in answer]

    async def __call__(self, host: str) -> list[str]:
        if _is_ip(host):
            return [host]
        try:
            results = await asyncio.gather(*(self._resolve(host, rdtype) for rdtype in self._RECORD_TYPES))
        except dns.resolver.NXDOMAIN as exc:
            raise LookupFailedError(host, "no such host") from exc
        except dns.resolver.NoNameservers as exc:
            raise LookupFailedError(host, "no nameservers available") from exc
        except dns.exception.Timeout as exc:
            raise LookupFailedError(host, "dns lookup timed out") from exc
        except dns.exception.DNSException as exc:
            raise LookupFailedError(host, f"{type(exc).__name__}: {exc}") from exc
        resolved = [addr for addrs in results for addr in addrs]
        logger.debug("looked up %s: %d addresses", host, len(resolved), extra={"host": host})
        return resolved


def create_lookup(backend: str = "system", *, lifetime: float | None = None) -> Lookup:
    """Factory for lookup backends by name ('system' or 'dns')."""
    if backend == "dns":
        return DnsLookup(lifetime=lifetime)
    if backend == "system":
        return SystemLookup()
    raise ValueError(f"Unknown lookup backend: {backend!r}")
