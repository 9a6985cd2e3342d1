import base64
import itertools
import logging
from typing import Any, Dict, List, Optional
import httpx
from fastapi import status
from core.errors import FetchError, RpcError, SubmissionError, TransportError
from core.ledger import LedgerAdapter
from core.namespace import to_wire
from core.retry import RetryPolicy

logger = logging.getLogger(__name__)

SHARE_VERSION_ZERO = 0
_NOT_FOUND_MARKER = "not found"


class CelestiaLedger(LedgerAdapter):
    """
    Celestia node JSON-RPC adapter (blob.Submit, blob.GetAll, header.LocalHead).

    Transport faults (connect/timeout, HTTP 5xx, 401/403) are retried with
    `retry`; JSON-RPC error objects are not, since the node already answered.
    """

    def __init__(
        self,
        url: str,
        *,
        auth_token: Optional[str] = None,
        timeout: float = 30.0,
        retry: RetryPolicy = RetryPolicy(),
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._url = url
        self._retry = retry
        self._ids = itertools.count(1)
        headers = {"content-type": "application/json"}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        else:
            logger.warning(
                "ledger.auth.missing url=%s (node must run with --rpc.skip-auth)", url
            )
        self._own_client = client is None
        self._client = client or httpx.AsyncClient(
            headers=headers, timeout=httpx.Timeout(timeout, connect=5.0)
        )

    async def aclose(self) -> None:
        if self._own_client:
            await self._client.aclose()

    # ---------------- Adapter contract ----------------

    async def submit(self, namespace: bytes, payload: bytes) -> int:
        blob = {
            "namespace": self._ns(namespace),
            "data": base64.b64encode(payload).decode("ascii"),
            "share_version": SHARE_VERSION_ZERO,
        }
        try:
            result = await self._call_with_retry("blob.Submit", [[blob], {}])
        except RpcError as e:
            logger.error("ledger.submit.rejected err=%s", e.rpc_message)
            raise SubmissionError(e.message, data=e.data) from e
        except TransportError as e:
            raise SubmissionError(f"transport retries exhausted: {e.message}") from e

        try:
            height = int(result)
        except (TypeError, ValueError) as e:
            raise SubmissionError(f"unexpected submit result {result!r}") from e
        logger.debug("ledger.submit.ok height=%d bytes=%d", height, len(payload))
        return height

    async def fetch(self, namespace: bytes, height: int) -> List[bytes]:
        ns = self._ns(namespace)
        try:
            result = await self._call_with_retry("blob.GetAll", [height, [ns]])
        except RpcError as e:
            if _NOT_FOUND_MARKER in e.rpc_message.lower():
                return []
            raise FetchError(e.message, data={"height": height}) from e
        except TransportError as e:
            raise FetchError(e.message, data={"height": height}) from e

        out: List[bytes] = []
        for blob in result or []:
            if blob.get("namespace") not in (None, ns):
                continue
            try:
                out.append(base64.b64decode(blob.get("data") or ""))
            except (TypeError, ValueError):
                logger.debug("ledger.fetch.bad_blob height=%d", height)
                continue
        return out

    async def current_tip(self) -> int:
        try:
            result = await self._call_with_retry("header.LocalHead", [])
        except (RpcError, TransportError) as e:
            raise FetchError(f"tip unavailable: {e.message}") from e
        try:
            return int(result["header"]["height"])
        except (KeyError, TypeError, ValueError) as e:
            raise FetchError(f"unexpected header shape: {result!r}") from e

    # ---------------- JSON-RPC plumbing ----------------

    @staticmethod
    def _ns(namespace: bytes) -> str:
        return base64.b64encode(to_wire(namespace)).decode("ascii")

    async def _call_with_retry(self, method: str, params: List[Any]) -> Any:
        return await self._retry.run(
            lambda: self._call(method, params),
            retry_on=(TransportError,),
            name=f"ledger.{method}",
        )

    async def _call(self, method: str, params: List[Any]) -> Any:
        payload: Dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            res = await self._client.post(self._url, json=payload)
        except httpx.RequestError as e:
            raise TransportError(f"{method}: {type(e).__name__}: {e}") from e

        if res.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
            raise TransportError(f"{method}: unauthorized ({res.status_code})")
        if res.status_code // 100 != 2:
            raise TransportError(f"{method}: bad status {res.status_code}")

        try:
            body = res.json()
        except ValueError as e:
            raise TransportError(f"{method}: non-JSON response") from e

        if body.get("error"):
            raise RpcError(method, body["error"])
        return body.get("result")
