"""
Store error hierarchy.

Every error carries a stable snake_case ``code`` and an optional ``data`` dict
so the HTTP layer and the shell can report failures uniformly:

    raise FetchError("tip unavailable", data={"url": url})

Transport failures are retried inside the ledger adapter before they surface;
decode failures never leave the consolidation scan.
"""

from typing import Any, Dict, Mapping, Optional


class StoreError(Exception):
    default_code = "store_error"

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        data: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.data: Dict[str, Any] = dict(data) if data else {}

    def __str__(self) -> str:
        if self.message:
            return f"{self.code}: {self.message}"
        return self.code


class ConfigurationError(StoreError):
    """Unsupported namespace width, unknown backend and similar startup faults."""

    default_code = "configuration_error"


class TransportError(StoreError):
    """Network, timeout or auth failure talking to the ledger node. Retryable."""

    default_code = "transport_error"


class FetchError(TransportError):
    """Reading blobs or the tip failed after the retry budget was spent."""

    default_code = "fetch_error"


class SubmissionError(StoreError):
    """The ledger rejected a blob, or submission ran out of transport retries."""

    default_code = "submission_error"


class RpcError(StoreError):
    """The node answered with a JSON-RPC error object."""

    default_code = "rpc_error"

    def __init__(self, method: str, error: Mapping[str, Any]) -> None:
        super().__init__(
            f"{method}: {error.get('message', 'unknown error')}",
            data={"method": method, "rpc_code": error.get("code")},
        )
        self.rpc_message = str(error.get("message", ""))


class DecodeError(StoreError):
    default_code = "decode_error"


class NotFound(StoreError):
    default_code = "not_found"

    def __init__(self, key: str) -> None:
        super().__init__(f"no record for key {key!r}", data={"key": key})
        self.key = key


class InvalidRecord(StoreError):
    default_code = "invalid_record"
