class ResolverError(Exception):
    pass


class MalformedTargetError(ResolverError):
    def __init__(self, target: str) -> None:
        super().__init__(f"couldn't parse given target endpoint: {target!r}")
        self.target = target


class MalformedPortError(ResolverError):
    def __init__(self, port: str) -> None:
        super().__init__(f"couldn't parse given port: {port!r}")
        self.port = port


class LookupFailedError(ResolverError):
    def __init__(self, host: str, reason: str) -> None:
        super().__init__(f"lookup of {host} failed: {reason}")
        self.host = host
        self.reason = reason


class UnknownSchemeError(ResolverError):
    def __init__(self, scheme: str) -> None:
        super().__init__(f"no resolver registered for scheme {scheme!r}")
        self.scheme = scheme
