# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Display metadata lookups against the contest platform API.

The status page titles each container with the owner's profile name or
the contest title.  Both come from the platform's REST API, called with
the caller's own bearer token.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx


logger = logging.getLogger(__name__)


class PlatformAPIError(Exception):
    """Raised when a platform metadata lookup fails."""


class PlatformClient:
    """Resolves user and contest display metadata."""

    def __init__(
        self,
        api_root: str,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize client.

        Args:
            api_root: Root URL of the platform API.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (for testing).
        """
        self._api_root = api_root.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _get(self, token: str, path: str) -> dict[str, Any]:
        url = f"{self._api_root}/{path}"
        try:
            with httpx.Client(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = client.get(
                    url, headers={"Authorization": f"Bearer {token}"}
                )
                response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise PlatformAPIError(
                f"GET {path} failed with HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise PlatformAPIError(f"GET {path} failed: {e}") from e
        except ValueError as e:
            raise PlatformAPIError(f"GET {path} returned invalid JSON") from e

        if not isinstance(data, dict):
            raise PlatformAPIError(f"GET {path} returned {type(data).__name__}")
        return data

    def get_user_name(self, token: str, user_id: str) -> str:
        """Return the display name from ``user/<id>/profile``.

        Raises:
            PlatformAPIError: If the request fails or has no ``name``.
        """
        data = self._get(token, f"user/{user_id}/profile")
        name = data.get("name")
        if not isinstance(name, str):
            raise PlatformAPIError(f"Profile of user {user_id} has no name")
        return name

    def get_contest_title(self, token: str, contest_id: str) -> str:
        """Return the title from ``contest/<id>``.

        Raises:
            PlatformAPIError: If the request fails or has no ``title``.
        """
        data = self._get(token, f"contest/{contest_id}")
        title = data.get("title")
        if not isinstance(title, str):
            raise PlatformAPIError(f"Contest {contest_id} has no title")
        return title
