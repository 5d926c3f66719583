from typing import Optional


class FallbackEngineError(Exception):
    """Base class for failures that the resolution cascade absorbs."""


class ConfigurationError(FallbackEngineError):
    def __init__(self, detail: str = "Delegation endpoint is not configured"):
        super().__init__(detail)


class TransportError(FallbackEngineError):
    """Timeout, refused connection, DNS failure."""

    def __init__(self, kind: str, detail: str = ""):
        super().__init__(detail or kind)
        self.kind = kind


class ProtocolError(FallbackEngineError):
    """Non-2xx status or a payload missing required fields."""

    def __init__(self, kind: str, detail: str = "", status_code: Optional[int] = None):
        super().__init__(detail or kind)
        self.kind = kind
        self.status_code = status_code


class RankingError(FallbackEngineError):
    def __init__(self, detail: str = "Ranking collaborator failed"):
        super().__init__(detail)


class CacheFetchError(FallbackEngineError):
    def __init__(self, detail: str = "Policy fetch failed", status_code: Optional[int] = None):
        super().__init__(detail)
        self.status_code = status_code
