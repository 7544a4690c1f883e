# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared pytest fixtures used across multiple test packages."""

import base64
import hashlib
import hmac
import json
import subprocess
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from vscs_farm.config import FarmConfig
from vscs_farm.dotenv_loader import reset_dotenv_state
from vscs_farm.logging import SecretFilter


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


@pytest.fixture(autouse=True)
def _isolate_global_state() -> Iterator[None]:
    """Reset class-level secrets and dotenv state around every test."""
    SecretFilter.clear_secrets()
    reset_dotenv_state()
    yield
    SecretFilter.clear_secrets()
    reset_dotenv_state()


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Return a factory for compact ``header.payload.signature`` tokens.

    The factory signs with HS256 when ``secret`` is given, otherwise the
    signature segment is a placeholder.
    """

    def _make(
        payload: dict[str, Any],
        secret: str | None = None,
        alg: str = "HS256",
    ) -> str:
        header = _b64(json.dumps({"alg": alg, "typ": "JWT"}).encode())
        body = _b64(json.dumps(payload).encode())
        if secret is None:
            return f"{header}.{body}.signature"
        signature = hmac.new(
            secret.encode(), f"{header}.{body}".encode(), hashlib.sha256
        ).digest()
        return f"{header}.{body}.{_b64(signature)}"

    return _make


@pytest.fixture
def farm_config() -> FarmConfig:
    """Farm configuration with a recognizable URL template."""
    return FarmConfig(
        image_name="editor-image",
        container_url="https://{port}.ide.example.com/?tkn={token}",
        api_root="https://api.example.com/api",
    )


@pytest.fixture
def completed() -> Callable[..., subprocess.CompletedProcess[str]]:
    """Return a factory for ``subprocess.run`` results."""

    def _completed(
        returncode: int = 0, stdout: str = "", stderr: str = ""
    ) -> subprocess.CompletedProcess[str]:
        return subprocess.CompletedProcess(
            args=[], returncode=returncode, stdout=stdout, stderr=stderr
        )

    return _completed
