# backend/notifier/api_client.py
"""
HTTP client for the back office endpoints the bot polls.

GET   /api/v1/telegram          upcoming, not yet notified orders
PATCH /api/v1/telegram {"id"}   mark one order as notified

Both authenticate with the shared BOT_API_KEY as a bearer token.
"""

from __future__ import annotations

import httpx


class BackofficeApiError(Exception):
    """Raised when the back office API is unreachable or answers with an error."""


class BackofficeClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self._client = httpx.Client(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "BackofficeClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise BackofficeApiError(f"API error: {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise BackofficeApiError(f"API request failed: {exc}") from exc

    def fetch_upcoming_orders(self) -> list[dict]:
        return self._request("GET", "/api/v1/telegram").get("orders", [])

    def mark_notified(self, order_id: int) -> dict:
        return self._request("PATCH", "/api/v1/telegram", json={"id": order_id})
