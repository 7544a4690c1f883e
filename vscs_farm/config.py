# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Configuration for the farm server.

Configuration is loaded from a YAML file (``farm.yaml`` in the XDG config
directory by default) with support for ``!env`` tags that resolve values
from environment variables.  Deployments without a config file fall back
to the plain environment variables the farm has always honoured
(``LISTEN_PORT``, ``IMAGE_NAME``, ``CONTAINER_URL``, ``API_ROOT``).

Example ``farm.yaml``::

    server:
      host: 0.0.0.0
      port: 3030
    container:
      command: docker
      image: openvscode-server-base
      url: https://{port}.ide.example.com/?tkn={token}
      editor_port: 3000
      session_env_path: /tmp/env.json
      suppress_errors: false
    platform:
      api_root: https://hpcgame.pku.edu.cn/api
      timeout: 15
    auth:
      token_secret: !env FARM_TOKEN_SECRET
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from platformdirs import user_config_path

from vscs_farm.dotenv_loader import load_dotenv_once
from vscs_farm.logging import SecretFilter
from vscs_farm.session_env import DEFAULT_SESSION_ENV_PATH


logger = logging.getLogger(__name__)

_APP_NAME = "vscs-farm"

_BOOL_TRUTHY = frozenset({"true", "1", "yes", "on"})
_BOOL_FALSY = frozenset({"false", "0", "no", "off"})

DEFAULT_LISTEN_HOST = "0.0.0.0"
DEFAULT_LISTEN_PORT = 3030
DEFAULT_IMAGE_NAME = "openvscode-server-base"
DEFAULT_CONTAINER_URL = "http://localhost:{port}?tkn={token}"
DEFAULT_API_ROOT = "https://hpcgame.pku.edu.cn/api"
DEFAULT_CONTAINER_COMMAND = "docker"
DEFAULT_EDITOR_PORT = 3000
DEFAULT_PLATFORM_TIMEOUT = 15.0


class ConfigError(Exception):
    """Base exception for configuration errors."""


def get_config_path() -> Path:
    """Return the default config file path.

    Uses XDG: ``$XDG_CONFIG_HOME/vscs-farm/farm.yaml`` (typically
    ``~/.config/vscs-farm/farm.yaml``).
    """
    return user_config_path(_APP_NAME) / "farm.yaml"


def get_dotenv_path() -> Path:
    """Return the default ``.env`` path inside the XDG config directory."""
    return user_config_path(_APP_NAME) / ".env"


# ---------------------------------------------------------------------------
# YAML tag placeholders
# ---------------------------------------------------------------------------


class _EnvVar:
    """Placeholder for an unresolved ``!env VAR_NAME`` tag."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name


def _env_constructor(loader: yaml.SafeLoader, node: yaml.Node) -> _EnvVar:
    """Handle ``!env VAR_NAME`` in YAML."""
    value = loader.construct_scalar(node)  # type: ignore[arg-type]
    return _EnvVar(str(value))


def _make_loader() -> type[yaml.SafeLoader]:
    """Create a YAML loader that understands ``!env``."""

    class EnvLoader(yaml.SafeLoader):
        pass

    EnvLoader.add_constructor("!env", _env_constructor)
    return EnvLoader


# ---------------------------------------------------------------------------
# Value resolution
# ---------------------------------------------------------------------------


def _coerce_bool(value: object) -> bool:
    """Coerce a value to bool, handling string representations."""
    if isinstance(value, bool):
        return value
    s = str(value).lower().strip()
    if s in _BOOL_TRUTHY:
        return True
    if s in _BOOL_FALSY:
        return False
    raise ConfigError(f"Cannot convert {value!r} to bool")


def _raw_resolve(value: object) -> str | None:
    """Resolve an ``_EnvVar`` to its string value, or stringify literals.

    Returns None if the value is None or the env var is unset/empty.
    """
    if isinstance(value, _EnvVar):
        return os.environ.get(value.var_name) or None
    if value is None:
        return None
    return str(value)


_MISSING = object()


def _resolve(
    value: object,
    coerce: type[Any],
    *,
    default: object = _MISSING,
) -> Any:
    """Resolve a YAML value, handling ``!env`` tags and type coercion.

    Args:
        value: Raw value from YAML (may be ``_EnvVar``, None, or a
            literal already parsed by PyYAML).
        coerce: Target type (``str``, ``int``, ``float``, ``bool``).
        default: Default when value is absent.

    Returns:
        The resolved, coerced value, or None when absent without default.

    Raises:
        ConfigError: If the value cannot be coerced.
    """
    if not isinstance(value, _EnvVar) and value is not None:
        if coerce is bool:
            return _coerce_bool(value)
        if isinstance(value, coerce) and not isinstance(value, bool):
            return value

    resolved = _raw_resolve(value)
    if resolved is None:
        if default is not _MISSING:
            return default
        return None

    if coerce is bool:
        return _coerce_bool(resolved)
    try:
        return coerce(resolved)
    except ValueError as e:
        raise ConfigError(
            f"Cannot convert {resolved!r} to {coerce.__name__}"
        ) from e


def _section(raw: dict, name: str) -> dict:
    """Return a top-level mapping section, or an empty dict."""
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a YAML mapping")
    return section


# ---------------------------------------------------------------------------
# Farm configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FarmConfig:
    """Complete farm server configuration.

    Attributes:
        listen_host: Address the HTTP server binds to.
        listen_port: Port the HTTP server binds to.
        image_name: Base image for editor containers.
        container_url: External editor URL template.  Every ``{port}``
            and ``{token}`` is substituted.
        api_root: Root URL of the contest/problem REST API.
        container_command: Container runtime command (docker or podman).
        editor_port: Port the editor listens on inside the container.
        session_env_path: Path inside the container where the session
            environment is written.
        suppress_runtime_errors: Log and ignore failed runtime calls
            instead of reporting them to the caller.
        token_secret: HS256 secret for access token verification.  When
            unset the edge proxy is trusted to have verified the token.
        platform_timeout: Timeout in seconds for platform API calls.
        runtime_timeout: Timeout in seconds for container runtime calls,
            or None to wait indefinitely.
    """

    listen_host: str = DEFAULT_LISTEN_HOST
    listen_port: int = DEFAULT_LISTEN_PORT
    image_name: str = DEFAULT_IMAGE_NAME
    container_url: str = DEFAULT_CONTAINER_URL
    api_root: str = DEFAULT_API_ROOT
    container_command: str = DEFAULT_CONTAINER_COMMAND
    editor_port: int = DEFAULT_EDITOR_PORT
    session_env_path: str = DEFAULT_SESSION_ENV_PATH
    suppress_runtime_errors: bool = False
    token_secret: str | None = None
    platform_timeout: float = DEFAULT_PLATFORM_TIMEOUT
    runtime_timeout: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration and register secrets.

        Raises:
            ConfigError: If configuration is invalid.
        """
        SecretFilter.register_secret(self.token_secret)

        if not (1 <= self.listen_port <= 65535):
            raise ConfigError(f"Invalid listen port: {self.listen_port}")
        if not (1 <= self.editor_port <= 65535):
            raise ConfigError(f"Invalid editor port: {self.editor_port}")
        if not self.image_name:
            raise ConfigError("Image name cannot be empty")
        if not self.container_command:
            raise ConfigError("Container command cannot be empty")
        if "{port}" not in self.container_url:
            raise ConfigError(
                f"Container URL must contain '{{port}}': {self.container_url}"
            )
        if not self.api_root:
            raise ConfigError("API root cannot be empty")
        if not self.session_env_path.startswith("/"):
            raise ConfigError(
                f"Session env path must be absolute: {self.session_env_path}"
            )
        if self.platform_timeout <= 0:
            raise ConfigError(
                f"Platform timeout must be > 0: {self.platform_timeout}"
            )
        if self.runtime_timeout is not None and self.runtime_timeout <= 0:
            raise ConfigError(
                f"Runtime timeout must be > 0: {self.runtime_timeout}"
            )

    @classmethod
    def from_yaml(cls, config_path: Path) -> "FarmConfig":
        """Load configuration from a YAML file.

        Values tagged with ``!env VAR_NAME`` are resolved from the
        environment at load time.

        Args:
            config_path: Path to YAML config file.

        Returns:
            FarmConfig instance.

        Raises:
            ConfigError: If the file is missing or invalid.
        """
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            try:
                raw = yaml.load(f, Loader=_make_loader())
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError(
                f"Config file must be a YAML mapping: {config_path}"
            )

        return cls._from_raw(raw)

    @classmethod
    def _from_raw(cls, raw: dict) -> "FarmConfig":
        """Build config from parsed (but unresolved) YAML dict."""
        server = _section(raw, "server")
        container = _section(raw, "container")
        platform = _section(raw, "platform")
        auth = _section(raw, "auth")

        return cls(
            listen_host=_resolve(
                server.get("host"), str, default=DEFAULT_LISTEN_HOST
            ),
            listen_port=_resolve(
                server.get("port"), int, default=DEFAULT_LISTEN_PORT
            ),
            image_name=_resolve(
                container.get("image"), str, default=DEFAULT_IMAGE_NAME
            ),
            container_url=_resolve(
                container.get("url"), str, default=DEFAULT_CONTAINER_URL
            ),
            container_command=_resolve(
                container.get("command"),
                str,
                default=DEFAULT_CONTAINER_COMMAND,
            ),
            editor_port=_resolve(
                container.get("editor_port"), int, default=DEFAULT_EDITOR_PORT
            ),
            session_env_path=_resolve(
                container.get("session_env_path"),
                str,
                default=DEFAULT_SESSION_ENV_PATH,
            ),
            suppress_runtime_errors=_resolve(
                container.get("suppress_errors"), bool, default=False
            ),
            runtime_timeout=_resolve(container.get("timeout"), float),
            api_root=_resolve(
                platform.get("api_root"), str, default=DEFAULT_API_ROOT
            ),
            platform_timeout=_resolve(
                platform.get("timeout"), float, default=DEFAULT_PLATFORM_TIMEOUT
            ),
            token_secret=_resolve(auth.get("token_secret"), str),
        )

    @classmethod
    def from_env(cls) -> "FarmConfig":
        """Build configuration from plain environment variables.

        Recognized: ``LISTEN_HOST``, ``LISTEN_PORT``, ``IMAGE_NAME``,
        ``CONTAINER_URL``, ``API_ROOT``, ``CONTAINER_COMMAND``,
        ``TOKEN_SECRET``.
        """
        return cls(
            listen_host=_resolve(
                _EnvVar("LISTEN_HOST"), str, default=DEFAULT_LISTEN_HOST
            ),
            listen_port=_resolve(
                _EnvVar("LISTEN_PORT"), int, default=DEFAULT_LISTEN_PORT
            ),
            image_name=_resolve(
                _EnvVar("IMAGE_NAME"), str, default=DEFAULT_IMAGE_NAME
            ),
            container_url=_resolve(
                _EnvVar("CONTAINER_URL"), str, default=DEFAULT_CONTAINER_URL
            ),
            api_root=_resolve(
                _EnvVar("API_ROOT"), str, default=DEFAULT_API_ROOT
            ),
            container_command=_resolve(
                _EnvVar("CONTAINER_COMMAND"),
                str,
                default=DEFAULT_CONTAINER_COMMAND,
            ),
            token_secret=_resolve(_EnvVar("TOKEN_SECRET"), str),
        )

    def describe(self) -> str:
        """Return a human-readable summary for startup logging."""
        return (
            "VSCS Farm configuration:\n"
            f"  - Listen       : {self.listen_host}:{self.listen_port}\n"
            f"  - Runtime      : {self.container_command}\n"
            f"  - Image Name   : {self.image_name}\n"
            f"  - Container URL: {self.container_url}\n"
            f"  - API Root     : {self.api_root}\n"
            f"  - Token check  : "
            f"{'hs256' if self.token_secret else 'trusted proxy'}"
        )


def load_config(config_path: Path | None = None) -> FarmConfig:
    """Load the farm configuration.

    Loads ``.env`` first, then reads ``config_path`` (or the default XDG
    path).  If no explicit path was given and the default file does not
    exist, configuration comes from the environment.

    Args:
        config_path: Explicit config file path.  Must exist when given.

    Returns:
        FarmConfig instance.

    Raises:
        ConfigError: If the config is missing or invalid.
    """
    load_dotenv_once(get_dotenv_path())

    if config_path is not None:
        return FarmConfig.from_yaml(config_path)

    default_path = get_config_path()
    if default_path.exists():
        logger.debug("Loading config from %s", default_path)
        return FarmConfig.from_yaml(default_path)

    logger.debug("No config file at %s, using environment", default_path)
    return FarmConfig.from_env()
