# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Authenticated client for the contest platform REST API.

Requests carry ``Authorization: Bearer <token>`` from the session
environment and are resolved relative to its ``apiRoot``.  Presigned
upload and download URLs point at object storage and are fetched without
credentials.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import httpx

from vscs_farm.logging import SecretFilter
from vscs_farm.session_env import DEFAULT_SESSION_ENV_PATH, SessionEnvironment


logger = logging.getLogger(__name__)

ENV_FILE_VARIABLE = "AOI_ENV_FILE"
SESSION_EXPIRED_CODE = "FST_JWT_AUTHORIZATION_TOKEN_EXPIRED"

_DEFAULT_TIMEOUT = 30.0
_TRANSFER_TIMEOUT = httpx.Timeout(30.0, read=None, write=None)
_CHUNK_SIZE = 1024 * 1024


class AoiError(Exception):
    """Base exception for ``aoi`` command failures."""


class ApiError(AoiError):
    """Raised when the platform API answers with a non-2xx status.

    Attributes:
        method: HTTP method of the failed request.
        path: Request path relative to the API root.
        status_code: HTTP status code.
        code: Error code from the JSON body, if any.
    """

    def __init__(
        self,
        method: str,
        path: str,
        status_code: int,
        message: str = "",
        code: str | None = None,
    ) -> None:
        self.method = method
        self.path = path
        self.status_code = status_code
        self.code = code
        detail = f": {message}" if message else ""
        super().__init__(
            f"{method} {path} failed with HTTP {status_code}{detail}"
        )


class SessionExpiredError(ApiError):
    """Raised when the platform rejects the session token as expired."""

    def __str__(self) -> str:
        return "Session expired"


def _error_body(response: httpx.Response) -> tuple[str | None, str]:
    """Extract ``(code, message)`` from an error response body."""
    try:
        data = response.json()
    except ValueError:
        return None, response.text.strip()[:200]
    if not isinstance(data, dict):
        return None, ""
    code = data.get("code")
    message = data.get("message") or ""
    return (code if isinstance(code, str) else None), str(message)


def _iter_file(path: Path) -> Iterator[bytes]:
    with open(path, "rb") as f:
        while chunk := f.read(_CHUNK_SIZE):
            yield chunk


class PlatformApi:
    """Platform REST API client bound to one session.

    Use as a context manager, or call ``close()`` when done.
    """

    def __init__(
        self,
        env: SessionEnvironment,
        timeout: float = _DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize API client.

        Args:
            env: Session environment with token and API root.
            timeout: Request timeout in seconds for API calls.
            transport: Optional httpx transport, used by tests.
        """
        SecretFilter.register_secret(env.token)
        self.env = env
        self._client = httpx.Client(
            base_url=env.api_root.rstrip("/") + "/",
            headers={"Authorization": f"Bearer {env.token}"},
            timeout=timeout,
            transport=transport,
        )
        self._storage = httpx.Client(
            timeout=_TRANSFER_TIMEOUT,
            transport=transport,
            follow_redirects=True,
        )

    def __enter__(self) -> PlatformApi:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close underlying HTTP connections."""
        self._client.close()
        self._storage.close()

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send an API request and return its decoded JSON body.

        Args:
            method: HTTP method.
            path: Path relative to the API root (no leading slash).
            json: JSON request body.
            params: Query parameters.

        Returns:
            Decoded JSON, or None for an empty body.

        Raises:
            SessionExpiredError: On 401 with the expired-token code.
            ApiError: On any other non-2xx response.
        """
        logger.debug("%s %s", method, path)
        response = self._client.request(
            method, path.lstrip("/"), json=json, params=params
        )
        if response.is_error:
            code, message = _error_body(response)
            if response.status_code == 401 and code == SESSION_EXPIRED_CODE:
                raise SessionExpiredError(
                    method, path, response.status_code, message, code
                )
            raise ApiError(method, path, response.status_code, message, code)
        if not response.content:
            return None
        return response.json()

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> Any:
        return self.request("POST", path, json=json)

    def patch(self, path: str, json: Any = None) -> Any:
        return self.request("PATCH", path, json=json)

    def get_url(self, path: str) -> str:
        """GET an endpoint returning ``{"url": ...}`` and return the URL."""
        data = self.get(path)
        if not isinstance(data, dict) or not isinstance(data.get("url"), str):
            raise ApiError("GET", path, 200, "response has no url")
        return data["url"]

    def upload(self, url: str, path: Path) -> None:
        """PUT a file to a presigned storage URL.

        Raises:
            ApiError: If storage rejects the upload.
        """
        size = path.stat().st_size
        response = self._storage.put(
            url,
            content=_iter_file(path),
            headers={"Content-Length": str(size)},
        )
        if response.is_error:
            raise ApiError("PUT", "<presigned url>", response.status_code)
        logger.debug("Uploaded %s (%d bytes)", path, size)

    def download(self, url: str, dest: Path) -> None:
        """Stream a presigned storage URL into ``dest``.

        Raises:
            ApiError: If storage rejects the download.
        """
        with self._storage.stream("GET", url) as response:
            if response.is_error:
                raise ApiError("GET", "<presigned url>", response.status_code)
            with open(dest, "wb") as f:
                for chunk in response.iter_bytes(_CHUNK_SIZE):
                    f.write(chunk)

    def fetch_json(self, url: str) -> Any:
        """GET a presigned storage URL and decode it as JSON."""
        response = self._storage.get(url)
        if response.is_error:
            raise ApiError("GET", "<presigned url>", response.status_code)
        return response.json()


def get_session_env_path() -> Path:
    """Return the session environment path, honouring ``AOI_ENV_FILE``."""
    return Path(os.environ.get(ENV_FILE_VARIABLE) or DEFAULT_SESSION_ENV_PATH)


def open_api() -> PlatformApi:
    """Open an API client for the session this container belongs to.

    Raises:
        SessionEnvError: If the session environment is missing or invalid.
    """
    return PlatformApi(SessionEnvironment.load(get_session_env_path()))
