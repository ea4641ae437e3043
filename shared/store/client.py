"""
HTTP client for the data store.

The store exposes its tables under ``/rest/v1/<table>``, remote procedures
under ``/rest/v1/rpc/<procedure>`` and token introspection under
``/auth/v1/user``. A client is bound to exactly one credential and is built
per request from configuration; nothing here is shared between requests.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import httpx

from shared.config import BaseConfig
from shared.errors import StoreError, TransientStoreError
from shared.logging import get_logger
from shared.store.operations import RpcOperation

SINGLE_OBJECT = "application/vnd.pgrst.object+json"


@dataclass(frozen=True)
class Condition:
    """A column filter, rendered as ``<operator>.<value>``."""
    column: str
    operator: str
    value: Any

    @classmethod
    def eq(cls, column: str, value: Any) -> "Condition":
        return cls(column, "eq", value)

    @classmethod
    def gte(cls, column: str, value: Any) -> "Condition":
        return cls(column, "gte", value)

    @classmethod
    def lt(cls, column: str, value: Any) -> "Condition":
        return cls(column, "lt", value)

    @classmethod
    def in_(cls, column: str, values: Iterable[Any]) -> "Condition":
        return cls(column, "in", tuple(values))

    @classmethod
    def prefix(cls, column: str, prefix: str) -> "Condition":
        """Case-insensitive ``starts with``."""
        return cls(column, "ilike", f"{prefix}*")

    def render(self) -> str:
        if self.operator == "in":
            quoted = ",".join(f'"{v}"' for v in self.value)
            return f"in.({quoted})"
        return f"{self.operator}.{self.value}"


class StoreCredential(str, Enum):
    """Which key a client authenticates with."""
    USER = "user"
    SERVICE_ROLE = "service_role"


class StoreClient:
    """Client for the relational data/RPC store."""

    def __init__(self,
                 base_url: str,
                 api_key: str,
                 authorization: str,
                 credential: StoreCredential,
                 timeout: float = 5.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.credential = credential
        self.timeout = timeout
        self._api_key = api_key
        self._authorization = authorization
        self._transport = transport
        self.logger = get_logger("store.client")

    @classmethod
    def admin(cls, config: BaseConfig,
              transport: Optional[httpx.AsyncBaseTransport] = None) -> "StoreClient":
        """Client with the elevated service role key.

        Only for trusted server-side operations; never hand it a caller's token.
        """
        key = config.store_service_role_key.get_secret_value()
        return cls(
            config.store_url,
            api_key=key,
            authorization=f"Bearer {key}",
            credential=StoreCredential.SERVICE_ROLE,
            timeout=config.store_timeout_seconds,
            transport=transport
        )

    @classmethod
    def for_user(cls, config: BaseConfig, authorization: str,
                 transport: Optional[httpx.AsyncBaseTransport] = None) -> "StoreClient":
        """Least-privilege client acting with the caller's own token."""
        return cls(
            config.store_url,
            api_key=config.store_anon_key.get_secret_value(),
            authorization=authorization,
            credential=StoreCredential.USER,
            timeout=config.store_timeout_seconds,
            transport=transport
        )

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": self._authorization,
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request(self, method: str, path: str, *,
                       params: Any = None,
                       json: Any = None,
                       headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport
            ) as client:
                return await client.request(
                    method,
                    path,
                    params=params,
                    json=json,
                    headers=self._headers(headers)
                )
        except httpx.TimeoutException as e:
            self.logger.warning("Store call timed out", method=method, path=path)
            raise TransientStoreError("Store call timed out", details={"path": path}) from e
        except httpx.TransportError as e:
            self.logger.warning("Store transport error", method=method, path=path, error=str(e))
            raise TransientStoreError("Store unreachable", details={"path": path, "error": str(e)}) from e

    def _raise_for_status(self, response: httpx.Response, path: str):
        if response.status_code < 400:
            return
        details = {"path": path, "status_code": response.status_code, "body": response.text[:500]}
        if response.status_code >= 500:
            raise TransientStoreError(f"Store error: {response.status_code}", details=details)
        raise StoreError(f"Store rejected request: {response.status_code}", details=details)

    async def rpc(self, operation: RpcOperation) -> Any:
        """Call a remote procedure and return its decoded result."""
        path = f"/rest/v1/rpc/{operation.procedure}"
        headers = {"Accept": SINGLE_OBJECT} if operation.returns_row else None
        response = await self._request("POST", path, json=operation.params(), headers=headers)
        self._raise_for_status(response, path)
        if not response.content:
            return None
        return response.json()

    async def select(self, table: str,
                     columns: str = "*",
                     filters: Optional[Dict[str, Any]] = None,
                     single: bool = False,
                     limit: Optional[int] = None,
                     where: Sequence[Condition] = (),
                     any_of: Sequence[Condition] = (),
                     order: Sequence[Tuple[str, bool]] = (),
                     offset: Optional[int] = None) -> Any:
        """Read rows matching equality filters and ``where`` conditions.

        ``any_of`` matches rows satisfying at least one of its conditions.
        ``order`` is a list of (column, ascending) pairs. With ``single`` the
        matching row is returned, or None when there is none.
        """
        path = f"/rest/v1/{table}"
        params: List[Tuple[str, str]] = list(_eq_filters(filters).items())
        params.extend((condition.column, condition.render()) for condition in where)
        if any_of:
            alternatives = ",".join(f"{c.column}.{c.render()}" for c in any_of)
            params.append(("or", f"({alternatives})"))
        if order:
            params.append(("order", ",".join(
                f"{column}.{'asc' if ascending else 'desc'}" for column, ascending in order
            )))
        params.append(("select", columns))
        if limit is not None:
            params.append(("limit", str(limit)))
        if offset is not None:
            params.append(("offset", str(offset)))

        response = await self._request(
            "GET", path, params=params,
            headers={"Accept": SINGLE_OBJECT} if single else None
        )
        if single and response.status_code == 406:
            # zero (or several) rows for a single-object read
            return None
        self._raise_for_status(response, path)
        return response.json()

    async def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        """Exact number of rows matching equality filters."""
        path = f"/rest/v1/{table}"
        params = _eq_filters(filters)
        params["select"] = "*"
        response = await self._request("HEAD", path, params=params, headers={"Prefer": "count=exact"})
        self._raise_for_status(response, path)
        content_range = response.headers.get("content-range", "")
        total = content_range.rsplit("/", 1)[-1]
        if not total.isdigit():
            raise StoreError("Store returned no row count", details={"path": path, "content_range": content_range})
        return int(total)

    async def insert(self, table: str, rows: Iterable[Dict[str, Any]]) -> None:
        """Insert new rows. Never merges with existing rows."""
        path = f"/rest/v1/{table}"
        payload: List[Dict[str, Any]] = list(rows)
        response = await self._request("POST", path, json=payload, headers={"Prefer": "return=minimal"})
        self._raise_for_status(response, path)

    async def upsert(self, table: str, row: Dict[str, Any], on_conflict: Iterable[str]) -> None:
        """Insert a row, or overwrite the row sharing its conflict key."""
        path = f"/rest/v1/{table}"
        response = await self._request(
            "POST", path,
            params={"on_conflict": ",".join(on_conflict)},
            json=[row],
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"}
        )
        self._raise_for_status(response, path)

    async def get_auth_user(self) -> Optional[Dict[str, Any]]:
        """Resolve this client's bearer token to a user, or None if rejected."""
        path = "/auth/v1/user"
        response = await self._request("GET", path)
        if response.status_code in (401, 403):
            return None
        self._raise_for_status(response, path)
        return response.json()


def _eq_filters(filters: Optional[Dict[str, Any]]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    for column, value in (filters or {}).items():
        if value is None:
            params[column] = "is.null"
        else:
            params[column] = f"eq.{value}"
    return params
