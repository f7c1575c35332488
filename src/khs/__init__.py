"""Kubernetes headless-service resolver for RPC clients."""

from khs.errors import LookupFailedError, MalformedPortError, MalformedTargetError, ResolverError, UnknownSchemeError
from khs.models import LB_POLICY, ClientState, EndpointAddress
from khs.registry import SCHEME, KhsBuilder, ResolverRegistry, default_registry, register
from khs.resolver import KhsResolver, build
from khs.sink import MemorySink, StateSink
from khs.target import ResolutionTarget, parse_target

__version__ = "0.3.0"

__all__ = [
    "LB_POLICY",
    "SCHEME",
    "ClientState",
    "EndpointAddress",
    "KhsBuilder",
    "KhsResolver",
    "LookupFailedError",
    "MalformedPortError",
    "MalformedTargetError",
    "MemorySink",
    "ResolutionTarget",
    "ResolverError",
    "ResolverRegistry",
    "StateSink",
    "UnknownSchemeError",
    "build",
    "default_registry",
    "parse_target",
    "register",
]
