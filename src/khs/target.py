"""Target parsing for headless-service endpoints.

A target is either ``host`` or ``host:port``.  The port, when present, is
affixed to every address the lookup returns; without it the lookup results
are handed to the client untouched.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from khs.errors import MalformedPortError, MalformedTargetError

_PORT_RE = re.compile(r"[0-9]+")


class ResolutionTarget(NamedTuple):
    host: str
    port: int = 0  # 0 = no fixed port

    def __str__(self) -> str:
        return f"{self.host}:{self.port}" if self.port else self.host


def parse_target(raw: str) -> ResolutionTarget:
    """Split a target endpoint into host and optional fixed port.

    Examples::

        >>> parse_target("svc.ns.svc.cluster.local")
        ResolutionTarget(host='svc.ns.svc.cluster.local', port=0)
        >>> parse_target("svc:9090")
        ResolutionTarget(host='svc', port=9090)
        >>> parse_target("a:b:c")
        Traceback (most recent call last):
        ...
        khs.errors.MalformedTargetError: couldn't parse given target endpoint: 'a:b:c'
    """
    parts = raw.split(":")
    if len(parts) > 2 or not parts[0]:
        raise MalformedTargetError(raw)

    if len(parts) == 1:
        return ResolutionTarget(parts[0])

    # int() alone would accept "+80", " 80" and "8_0"
    if not _PORT_RE.fullmatch(parts[1]):
        raise MalformedPortError(parts[1])
    return ResolutionTarget(parts[0], int(parts[1]))
