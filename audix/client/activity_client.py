"""HTTP client for the Audix activity API."""

from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.request
from typing import Any

from audix import config

RETRIABLE_STATUS = {408, 425, 429}


class ActivityClientError(Exception):
    """Request to the activity API failed."""

    def __init__(self, message: str, status: int | None = None, retriable: bool = False) -> None:
        super().__init__(message)
        self.status = status
        self.retriable = retriable

    @property
    def is_auth_error(self) -> bool:
        return self.status in (401, 403)


class ActivityClient:
    """Client for the activity endpoints, authenticated with a bearer token."""

    def __init__(
        self,
        base_url: str = config.API_URL,
        token: str | None = None,
        timeout: float = config.API_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        data = None
        if body is not None:
            data = json.dumps(body).encode()
            headers["Content-Type"] = "application/json"

        request = urllib.request.Request(url, data=data, headers=headers, method=method)

        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                raw = response.read().decode()
        except urllib.error.HTTPError as e:
            message = _error_detail(e) or f"HTTP {e.code}"
            raise ActivityClientError(
                message,
                status=e.code,
                retriable=e.code >= 500 or e.code in RETRIABLE_STATUS,
            ) from e
        except (urllib.error.URLError, TimeoutError, ConnectionError) as e:
            raise ActivityClientError(f"Request to {url} failed: {e}", retriable=True) from e
        except http.client.HTTPException as e:
            raise ActivityClientError(
                f"Response from {url} was incomplete: {e!r}", retriable=True
            ) from e

        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ActivityClientError("Invalid response from server", retriable=True) from e

    def log_play(self, song_id: str, play_duration: int) -> dict[str, Any]:
        return self._request(
            "POST",
            "activity/log",
            {"songId": song_id, "playDuration": play_duration},
        )

    def get_recent(self) -> list[dict[str, Any]]:
        return self._request("GET", "activity/recent")

    def get_most_played(self) -> list[dict[str, Any]]:
        return self._request("GET", "activity/most-played")

    def get_top_artists(self) -> list[dict[str, Any]]:
        return self._request("GET", "activity/top-artists")

    def get_summary(self) -> dict[str, Any]:
        return self._request("GET", "activity/summary")

    def get_all(self) -> dict[str, Any]:
        return self._request("GET", "activity/all")


def _error_detail(error: urllib.error.HTTPError) -> str | None:
    try:
        payload = json.loads(error.read().decode())
    except (ValueError, OSError):
        return None
    if isinstance(payload, dict):
        detail = payload.get("detail") or payload.get("message")
        return str(detail) if detail else None
    return None
