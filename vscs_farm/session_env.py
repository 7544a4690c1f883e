# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Session environment shared between the farm server and the ``aoi`` CLI.

The farm writes this small credential bundle into every editor container
when it starts; the ``aoi`` CLI running inside the container reads it to
authenticate against the platform API.  The JSON keys are camelCase::

    {
      "token": "<access token>",
      "contestId": "<contest id>",
      "apiRoot": "https://hpcgame.pku.edu.cn/api"
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path


DEFAULT_SESSION_ENV_PATH = "/tmp/env.json"


class SessionEnvError(Exception):
    """Raised when the session environment cannot be read."""


@dataclass(frozen=True)
class SessionEnvironment:
    """Credentials for platform API calls made from inside a container.

    Attributes:
        token: Bearer token for the platform API.
        api_root: Root URL of the platform API.
        contest_id: Contest the container belongs to, if any.
    """

    token: str
    api_root: str
    contest_id: str | None = None

    def to_json(self) -> str:
        """Serialize as 2-space indented JSON, omitting an absent contest."""
        data: dict[str, str] = {"token": self.token}
        if self.contest_id:
            data["contestId"] = self.contest_id
        data["apiRoot"] = self.api_root
        return json.dumps(data, indent=2)

    @classmethod
    def from_json(cls, text: str) -> SessionEnvironment:
        """Parse the JSON written by ``to_json``.

        Raises:
            SessionEnvError: If the JSON is invalid or fields are missing.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SessionEnvError(f"Invalid session environment: {e}") from e
        if not isinstance(data, dict):
            raise SessionEnvError("Session environment must be a JSON object")

        token = data.get("token")
        api_root = data.get("apiRoot")
        contest_id = data.get("contestId")
        if not isinstance(token, str) or not token:
            raise SessionEnvError("Session environment has no token")
        if not isinstance(api_root, str) or not api_root:
            raise SessionEnvError("Session environment has no apiRoot")
        if contest_id is not None and not isinstance(contest_id, str):
            raise SessionEnvError("Session environment contestId is invalid")
        return cls(
            token=token, api_root=api_root, contest_id=contest_id or None
        )

    @classmethod
    def load(cls, path: Path) -> SessionEnvironment:
        """Read the session environment from ``path``.

        Raises:
            SessionEnvError: If the file is missing or invalid.
        """
        try:
            text = path.read_text()
        except FileNotFoundError as e:
            raise SessionEnvError(
                f"No session environment at {path}; "
                f"is this running inside a farm container?"
            ) from e
        return cls.from_json(text)
