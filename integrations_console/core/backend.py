"""Client for the managed backend (REST tables, RPCs, auth and functions)."""

from typing import Any, Dict, List, Optional, Union
import logging

import httpx

from integrations_console.core.config import get_settings
from integrations_console.core.exceptions import BackendError

logger = logging.getLogger(__name__)
settings = get_settings()

Filters = Dict[str, Union[str, int, bool, List[Any], None]]


def _filter_params(filters: Optional[Filters]) -> Dict[str, str]:
    """Translate column filters into PostgREST query parameters."""
    params: Dict[str, str] = {}
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple)):
            params[column] = "in.(" + ",".join(str(v) for v in value) + ")"
        elif value is None:
            params[column] = "is.null"
        elif isinstance(value, bool):
            params[column] = f"eq.{str(value).lower()}"
        else:
            params[column] = f"eq.{value}"
    return params


def _error_message(response: httpx.Response) -> str:
    """Pull the most useful message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("error", "message", "msg", "error_description"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


def unwrap_envelope(payload: Any, failure_message: str) -> Any:
    """Return ``data`` from a ``{status, data, message}`` RPC envelope.

    Framework RPCs report failures in-band with HTTP 200, so anything other
    than ``status == "success"`` becomes a BackendError.
    """
    if isinstance(payload, dict) and payload.get("status") == "success":
        return payload.get("data")
    message = failure_message
    if isinstance(payload, dict) and payload.get("message"):
        message = str(payload["message"])
    raise BackendError(message, details={"response": payload})


class BackendClient:
    """Backend connection manager.

    One ``httpx.AsyncClient`` is shared by the process; ``with_token`` hands
    out views bound to a user's access token so row-level security applies.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, access_token: Optional[str] = None):
        self.client = client
        self.access_token = access_token

    async def connect(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Open the HTTP client."""
        headers = {}
        if settings.backend_api_key:
            headers["apikey"] = settings.backend_api_key
        self.client = httpx.AsyncClient(
            base_url=settings.backend_url,
            headers=headers,
            timeout=settings.backend_timeout,
            transport=transport,
        )
        logger.info("Backend client ready for %s", settings.backend_url)

    async def disconnect(self):
        """Close the HTTP client."""
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.info("Backend client closed")

    def with_token(self, access_token: str) -> "BackendClient":
        """Return a view of this client acting as the given user."""
        return BackendClient(client=self.client, access_token=access_token)

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {}
        token = self.access_token or settings.backend_api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        if self.client is None:
            raise RuntimeError("Backend client not connected")

        try:
            response = await self.client.request(
                method,
                path,
                params=params,
                json=json,
                headers=self._headers(headers),
            )
        except httpx.RequestError as e:
            logger.error(f"Backend request {method} {path} failed: {e}")
            raise BackendError(f"Backend unavailable: {e}")

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(
                "Backend %s %s answered %s: %s",
                method, path, response.status_code, message,
            )
            raise BackendError(message, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    # Serverless functions

    async def invoke(self, function: str, body: Optional[Dict[str, Any]] = None) -> Any:
        """Invoke a named serverless function with a JSON body."""
        logger.debug("Invoking function %s", function)
        return await self._request("POST", f"/functions/v1/{function}", json=body or {})

    async def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Call a database RPC."""
        return await self._request("POST", f"/rest/v1/rpc/{name}", json=params or {})

    # Tables

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order: Optional[str] = None,
        columns: str = "*",
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Select rows from a table."""
        params = _filter_params(filters)
        params["select"] = columns
        if order:
            params["order"] = order
        if limit:
            params["limit"] = str(limit)
        return await self._request("GET", f"/rest/v1/{table}", params=params) or []

    async def insert(self, table: str, rows: Union[Dict[str, Any], List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        """Insert one or many rows and return them."""
        return await self._request(
            "POST",
            f"/rest/v1/{table}",
            json=rows,
            headers={"Prefer": "return=representation"},
        ) or []

    async def update(self, table: str, values: Dict[str, Any], filters: Filters) -> List[Dict[str, Any]]:
        """Update matching rows and return them."""
        return await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=_filter_params(filters),
            json=values,
            headers={"Prefer": "return=representation"},
        ) or []

    async def delete(self, table: str, filters: Filters) -> None:
        """Delete matching rows."""
        await self._request("DELETE", f"/rest/v1/{table}", params=_filter_params(filters))

    # Auth

    async def get_user(self, access_token: str) -> Dict[str, Any]:
        """Resolve an access token to the backend's user record."""
        if self.client is None:
            raise RuntimeError("Backend client not connected")
        response = await self.client.get(
            "/auth/v1/user",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if response.status_code != 200:
            raise BackendError("Invalid authentication credentials", status_code=response.status_code)
        return response.json()

    async def ping(self) -> bool:
        """Check that the REST endpoint answers."""
        if self.client is None:
            return False
        try:
            response = await self.client.get("/rest/v1/", headers=self._headers())
        except httpx.RequestError:
            return False
        return response.status_code < 500


# Global backend instance
backend = BackendClient()


# Table names
TABLES = {
    "connections": "integration_connections",
    "api_keys": "zapier_api_keys",
    "deletion_requests": "deletion_requests",
    "audit_log": "gdpr_audit_log",
    "users": "users",
}
