"""
GitLab REST API client.

Thin async wrapper over httpx used by the operation handlers. Every failure
is raised to the caller; execute_tool turns it into an error-flagged result.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


class GitLabAPIError(RuntimeError):
    """Non-success response from the GitLab API."""

    def __init__(self, status_code: int, reason: str, body: str = ""):
        self.status_code = status_code
        self.reason = reason
        self.body = body
        message = f"GitLab API error: {status_code} {reason}"
        if body:
            message = f"{message}\n{body}"
        super().__init__(message)


class GitLabRateLimitError(GitLabAPIError):
    """GitLab rejected the request due to rate limiting."""

    def __init__(self, body: str):
        super().__init__(403, "Rate limit exceeded", body)


def encode_project_id(project_id: Any) -> str:
    """URL-encode a project id or namespaced path (``group/project``)."""
    return quote(str(project_id), safe="")


def build_query(params: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """
    Build query parameters for the GitLab API.

    None values are dropped, booleans become ``true``/``false`` and lists are
    expanded to repeated ``key[]`` entries.

    Example:
        >>> build_query({"labels": ["bug", "ui"], "page": 2, "search": None})
        [('labels[]', 'bug'), ('labels[]', 'ui'), ('page', '2')]
    """
    query: List[Tuple[str, str]] = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            query.extend((f"{key}[]", _query_value(item)) for item in value)
        else:
            query.append((key, _query_value(value)))
    return query


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class GitLabClient:
    """Async client for the GitLab REST API v4."""

    def __init__(
        self,
        api_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize GitLab client.

        Args:
            api_url: API root, e.g. https://gitlab.com/api/v4
            token: Personal access token sent as PRIVATE-TOKEN
            timeout: Request timeout in seconds
            transport: Optional httpx transport (for testing)
        """
        self.api_url = api_url.rstrip("/")
        headers = {"Content-Type": "application/json"}
        if token:
            headers["PRIVATE-TOKEN"] = token
        self.client = httpx.AsyncClient(
            base_url=self.api_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        json: Optional[Any] = None
    ) -> Any:
        """
        Send a request and decode the JSON response.

        Args:
            method: HTTP method
            endpoint: Path below the API root (e.g. "/projects/1/issues")
            params: Query parameters, passed through build_query
            json: JSON body

        Returns:
            Decoded JSON, or {} for empty responses

        Raises:
            GitLabRateLimitError: On a rate-limited 403
            GitLabAPIError: On any other non-success status
            httpx.HTTPError: On transport failures
        """
        response = await self._send(method, endpoint, params, json)
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    async def _send(
        self,
        method: str,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        json: Optional[Any] = None
    ) -> httpx.Response:
        response = await self.client.request(
            method,
            endpoint,
            params=build_query(params) if params else None,
            json=json,
        )

        if response.is_error:
            body = response.text
            if response.status_code == 403 and "Rate limit" in body:
                logger.error(f"GitLab API rate limit exceeded: {body}")
                raise GitLabRateLimitError(body)
            raise GitLabAPIError(response.status_code, response.reason_phrase, body)
        return response

    async def get(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.request("GET", endpoint, params=params)

    async def get_text(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """GET an endpoint that answers with plain text, such as a job trace."""
        response = await self._send("GET", endpoint, params)
        return response.text

    async def post(self, endpoint: str, body: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("POST", endpoint, json=body)

    async def put(self, endpoint: str, body: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("PUT", endpoint, json=body)

    async def delete(self, endpoint: str) -> Any:
        return await self.request("DELETE", endpoint)
