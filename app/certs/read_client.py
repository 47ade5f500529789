"""
Ledger read service.

LedgerReadService is the read-only interface the engine consumes. The
engine never submits transactions. SuiReadClient implements it over Sui
JSON-RPC 2.0 with httpx; any object with the same four coroutines (for
example an in-memory fake) can stand in for it.

Every transport failure surfaces as LedgerLookupError. Timeouts are the
transport's job and surface the same way.
"""

import itertools
import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from app.core.config import ReadClientConfig

from .exceptions import LedgerLookupError

log = logging.getLogger(__name__)

RawObject = Dict[str, Any]
RawEvent = Dict[str, Any]
RawTransaction = Dict[str, Any]

# Sui getObject error codes meaning "no such live object"
OBJECT_ABSENT_CODES = frozenset({"notExists", "deleted", "dynamicFieldNotFound"})

OBJECT_OPTIONS = {"showType": True, "showContent": True, "showOwner": True}


def _dicts(value: Any) -> List[Dict[str, Any]]:
    """The dict entries of a JSON array member; anything else yields []."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


class LedgerReadService(Protocol):
    """Read interface onto the ledger."""

    async def get_owned_objects(self, address: str) -> List[RawObject]:
        """All objects owned by address, with type and content."""
        ...

    async def get_object(self, object_id: str) -> Optional[RawObject]:
        """One object by id, or None when it does not exist."""
        ...

    async def query_events(
        self, event_type: str, limit: int, descending: bool = True
    ) -> List[RawEvent]:
        """Events of one Move event type."""
        ...

    async def query_transactions(
        self, address: str, limit: int, descending: bool = True, show_events: bool = True
    ) -> List[RawTransaction]:
        """Transactions sent by address, optionally with emitted events."""
        ...


class SuiReadClient:
    """Sui fullnode JSON-RPC client.

    Construct one per application (or per test) and pass it to the engine
    entry points; there is no process-wide client.

    Usage:
        async with SuiReadClient(ReadClientConfig(rpc_url=...)) as client:
            objects = await client.get_owned_objects("0xabc...")
    """

    def __init__(
        self,
        config: Optional[ReadClientConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            config: Optional configuration. Uses defaults if not provided.
            http_client: Optional pre-built httpx client (tests inject one
                backed by httpx.MockTransport). Owned by the caller.
        """
        self._config = config or ReadClientConfig()
        self._client = http_client
        self._owns_client = http_client is None
        self._ids = itertools.count(1)

    @property
    def config(self) -> ReadClientConfig:
        return self._config

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout_seconds,
                headers=self._config.headers,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SuiReadClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def _call(self, method: str, params: List[Any]) -> Any:
        """Issue one JSON-RPC call and return its result member.

        Raises:
            LedgerLookupError: On network/timeout/HTTP errors or an RPC error payload.
        """
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        url = self._config.rpc_url
        try:
            response = await self._get_client().post(url, json=body)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException:
            raise LedgerLookupError(
                f"Timeout after {self._config.timeout_seconds}s calling {method}"
            )
        except httpx.HTTPStatusError as e:
            raise LedgerLookupError(
                f"HTTP {e.response.status_code} calling {method}: {e.response.reason_phrase}"
            )
        except httpx.RequestError as e:
            raise LedgerLookupError(f"Request failed calling {method}: {e}")
        except ValueError as e:
            raise LedgerLookupError(f"Invalid JSON from {method}: {e}")

        if not isinstance(payload, dict):
            raise LedgerLookupError(f"Unexpected response shape from {method}")
        if "error" in payload:
            error = payload["error"]
            if isinstance(error, dict):
                detail = f"{error.get('code')} {error.get('message')}"
            else:
                detail = str(error)
            raise LedgerLookupError(f"RPC error from {method}: {detail}")
        return payload.get("result")

    async def _call_object(self, method: str, params: List[Any]) -> Dict[str, Any]:
        """_call() for methods whose result is a JSON object (or null).

        Raises:
            LedgerLookupError: If the result is any other JSON type.
        """
        result = await self._call(method, params)
        if result is None:
            return {}
        if not isinstance(result, dict):
            raise LedgerLookupError(
                f"Unexpected result shape from {method}: {type(result).__name__}"
            )
        return result

    async def get_owned_objects(self, address: str) -> List[RawObject]:
        """Follow nextCursor for at most owned_max_pages pages."""
        objects: List[RawObject] = []
        cursor = None
        for _ in range(max(self._config.owned_max_pages, 1)):
            result = await self._call_object(
                "suix_getOwnedObjects",
                [address, {"options": OBJECT_OPTIONS}, cursor, None],
            )
            for entry in _dicts(result.get("data")):
                data = entry.get("data")
                if isinstance(data, dict):
                    objects.append(data)
            cursor = result.get("nextCursor")
            if not result.get("hasNextPage") or cursor is None:
                break
        else:
            log.info(f"Owned objects for {address[:12]}... truncated at {len(objects)}")
        return objects

    async def get_object(self, object_id: str) -> Optional[RawObject]:
        result = await self._call_object("sui_getObject", [object_id, OBJECT_OPTIONS])
        error = result.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else str(error)
            if code in OBJECT_ABSENT_CODES:
                return None
            raise LedgerLookupError(f"getObject {object_id[:12]}... failed: {code}")
        data = result.get("data")
        return data if isinstance(data, dict) else None

    async def query_events(
        self, event_type: str, limit: int, descending: bool = True
    ) -> List[RawEvent]:
        result = await self._call_object(
            "suix_queryEvents",
            [{"MoveEventType": event_type}, None, limit, descending],
        )
        return _dicts(result.get("data"))

    async def query_transactions(
        self, address: str, limit: int, descending: bool = True, show_events: bool = True
    ) -> List[RawTransaction]:
        query = {
            "filter": {"FromAddress": address},
            "options": {"showEvents": show_events},
        }
        result = await self._call_object(
            "suix_queryTransactionBlocks",
            [query, None, limit, descending],
        )
        return _dicts(result.get("data"))
