"""
Error types for collection runs.

Fetch failures are values, not exceptions: a fetcher returns them inside its
FetchResult so one broken source never aborts the others.
"""
from enum import Enum

import httpx


class FetchErrorKind(str, Enum):
    TRANSPORT = "transport"  # timeout, connection refused, DNS
    STATUS = "status"  # non-success HTTP status
    DECODE = "decode"  # unparsable JSON/HTML payload
    EMPTY = "empty"  # payload parsed but yielded nothing usable


class FetchError(Exception):
    """A source could not be collected on this run."""

    def __init__(self, source: str, kind: FetchErrorKind, message: str):
        super().__init__(f"{source}: {kind.value}: {message}")
        self.source = source
        self.kind = kind
        self.message = message

    @classmethod
    def from_http_error(cls, source: str, error: httpx.HTTPError) -> "FetchError":
        if isinstance(error, httpx.HTTPStatusError):
            return cls(source, FetchErrorKind.STATUS, f"HTTP {error.response.status_code}")
        return cls(source, FetchErrorKind.TRANSPORT, str(error) or type(error).__name__)


class PipelineRunError(Exception):
    """Every source failed or nothing was collected; the previous snapshot is kept."""

    def __init__(self, content_type: str, errors: list[FetchError]):
        detail = "; ".join(str(e) for e in errors) or "no items collected"
        super().__init__(f"{content_type} run failed: {detail}")
        self.content_type = content_type
        self.errors = errors
