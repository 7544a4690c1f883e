# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for platform metadata lookups."""

import httpx
import pytest

from vscs_farm.session.platform import PlatformAPIError, PlatformClient


def _client(handler: object) -> PlatformClient:
    return PlatformClient(
        "https://api.example.com/api/",
        transport=httpx.MockTransport(handler),  # type: ignore[arg-type]
    )


class TestPlatformClient:
    """Tests for PlatformClient."""

    def test_user_name(self) -> None:
        """The profile name is returned, using the caller's token."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"name": "Alice"})

        assert _client(handler).get_user_name("tok", "u1") == "Alice"
        assert str(seen[0].url) == "https://api.example.com/api/user/u1/profile"
        assert seen[0].headers["Authorization"] == "Bearer tok"

    def test_contest_title(self) -> None:
        """The contest title is returned."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/contest/c1"
            return httpx.Response(200, json={"title": "HPC Game 2026"})

        assert _client(handler).get_contest_title("tok", "c1") == (
            "HPC Game 2026"
        )

    def test_http_error(self) -> None:
        """Error statuses raise PlatformAPIError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"code": "FORBIDDEN"})

        with pytest.raises(PlatformAPIError, match="HTTP 403"):
            _client(handler).get_user_name("tok", "u1")

    def test_connection_error(self) -> None:
        """Transport failures raise PlatformAPIError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(PlatformAPIError, match="refused"):
            _client(handler).get_contest_title("tok", "c1")

    def test_invalid_json(self) -> None:
        """Non-JSON bodies raise PlatformAPIError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>")

        with pytest.raises(PlatformAPIError, match="invalid JSON"):
            _client(handler).get_user_name("tok", "u1")

    def test_missing_field(self) -> None:
        """Responses without the expected field raise PlatformAPIError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "c1"})

        with pytest.raises(PlatformAPIError, match="no title"):
            _client(handler).get_contest_title("tok", "c1")

    def test_non_object(self) -> None:
        """Non-object JSON raises PlatformAPIError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=["a"])

        with pytest.raises(PlatformAPIError, match="list"):
            _client(handler).get_user_name("tok", "u1")
