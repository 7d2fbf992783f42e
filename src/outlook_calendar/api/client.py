"""
Microsoft Graph API client.

Handles:
- Bearer token injection per request
- GET/POST against the Graph REST endpoint
- Error translation (non-2xx and network errors -> GraphAPIError)
- @odata.nextLink pagination
"""

import logging
from typing import Any, Optional

import httpx

from outlook_calendar.api.auth import TokenProvider


logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT = 30.0


class GraphAPIError(Exception):
    """Graph request failed: non-2xx response or network error."""

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None):
        self.message = message
        self.status = status
        self.code = code
        super().__init__(message)


def _error_from_response(response: httpx.Response) -> GraphAPIError:
    """Build GraphAPIError from a Graph error body ({"error": {"code", "message"}})."""
    code = None
    message = response.reason_phrase or f"HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        code = body["error"].get("code")
        message = body["error"].get("message") or message
    elif response.text:
        message = response.text[:200]

    return GraphAPIError(
        f"Microsoft Graph API error ({response.status_code}): {message}",
        status=response.status_code,
        code=code,
    )


class GraphClient:
    """
    Thin async wrapper around the Graph REST API.

    Safe to share between concurrent tool invocations; holds no per-call state.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        base_url: str = "https://graph.microsoft.com/v1.0",
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._token_provider = token_provider
        self._base_url = base_url.rstrip("/") + "/"
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "GraphClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()
        await self._token_provider.close()

    async def _headers(self) -> dict:
        token = await self._token_provider.get_token()
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    async def request(
        self,
        method: str,
        path_or_url: str,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ) -> dict:
        """
        Execute one Graph request.

        path_or_url may be relative to the base URL ("users/x/events") or an
        absolute continuation link returned by Graph.

        Raises:
            GraphAPIError: Non-2xx response or transport failure.
            MissingConfigurationError: Credentials not configured.
        """
        headers = await self._headers()
        url = path_or_url if path_or_url.startswith("http") else path_or_url.lstrip("/")

        try:
            response = await self._http.request(method, url, params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Graph {method} {url} failed: {e}")
            raise GraphAPIError(f"Request to Microsoft Graph failed: {e}") from e

        if response.is_error:
            error = _error_from_response(response)
            logger.warning(f"Graph {method} {url} returned {response.status_code}: {error.message[:200]}")
            raise error

        if not response.content:
            return {}
        return response.json()

    async def get(self, path_or_url: str, params: Optional[dict] = None) -> dict:
        return await self.request("GET", path_or_url, params=params)

    async def post(self, path: str, body: dict) -> dict:
        return await self.request("POST", path, json=body)

    async def get_all(self, path: str, params: Optional[dict] = None) -> list[dict[str, Any]]:
        """GET a collection and follow @odata.nextLink until exhausted."""
        page = await self.get(path, params=params)
        items = list(page.get("value", []))
        next_link = page.get("@odata.nextLink")
        pages = 1

        while next_link:
            page = await self.get(next_link)
            items.extend(page.get("value", []))
            next_link = page.get("@odata.nextLink")
            pages += 1

        logger.debug(f"Fetched {len(items)} items from {path} in {pages} page(s)")
        return items
