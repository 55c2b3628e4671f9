"""
Collaborator interfaces.

The agent tools and the proactive engine only talk to outside systems
through these protocols. Concrete httpx clients live next to this
module; tests pass in-memory fakes.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from src.lib.exceptions import ExternalServiceError, NotConnectedError


class SearchProvider(Protocol):
    async def search(self, query: str, limit: int = 5) -> list[dict[str, Any]]: ...

    async def scrape(self, url: str) -> dict[str, Any]: ...


class MailProvider(Protocol):
    async def send_email(self, to: str, subject: str, body: str) -> dict[str, Any]: ...

    async def list_emails(self, query: str = "", max_results: int = 10) -> list[dict[str, Any]]: ...


class SocialProvider(Protocol):
    async def create_post(
        self, content: str, visibility: str = "PUBLIC", image_url: str | None = None
    ) -> dict[str, Any]: ...


class SpreadsheetProvider(Protocol):
    async def read(self, spreadsheet_id: str, range_: str) -> list[list[Any]]: ...

    async def write(self, spreadsheet_id: str, range_: str, values: list[list[Any]]) -> dict[str, Any]: ...

    async def append(self, spreadsheet_id: str, range_: str, values: list[list[Any]]) -> dict[str, Any]: ...

    async def clear(self, spreadsheet_id: str, range_: str) -> dict[str, Any]: ...

    async def delete_rows(
        self, spreadsheet_id: str, sheet_id: int, start_index: int, end_index: int
    ) -> dict[str, Any]: ...


class Notifier(Protocol):
    """Primary (in-app) delivery channel."""

    async def push(self, user_id: int, payload: dict[str, Any]) -> None: ...


def check_response(response: httpx.Response, provider: str) -> None:
    """
    Map an HTTP error status to the exception hierarchy.

    Raises:
        NotConnectedError: 401/403, the stored credentials are missing or revoked
        ExternalServiceError: Any other non-2xx status
    """
    if response.is_success:
        return
    if response.status_code in (401, 403):
        raise NotConnectedError(
            f"{provider} rejected the credentials", provider=provider, status_code=response.status_code
        )
    raise ExternalServiceError(
        f"{provider} returned HTTP {response.status_code}", provider=provider, status_code=response.status_code
    )


class HTTPCollaborator:
    """
    Base for bearer-token httpx clients.

    Args:
        token: Access token; None means the account is not connected
        http: Optional shared AsyncClient (tests inject one with a MockTransport)
        timeout: Per-request timeout in seconds
    """

    provider = "http"
    base_url = ""

    def __init__(self, token: str | None, http: httpx.AsyncClient | None = None, timeout: float = 20.0) -> None:
        self._token = token
        self._http = http
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        if not self._token:
            raise NotConnectedError(f"{self.provider} account is not connected", provider=self.provider)
        return {"Authorization": f"Bearer {self._token}", "Content-Type": "application/json"}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        try:
            if self._http is not None:
                response = await self._http.request(method, url, headers=headers, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"{self.provider} request failed: {e}", provider=self.provider) from e
        check_response(response, self.provider)
        return response
