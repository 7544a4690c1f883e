# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Session container controller.

Maps an authenticated user (and optional contest) to a uniquely named
editor container and drives its lifecycle::

    absent -> running -> stopped -> running -> ... -> absent

``start`` jumps from absent or stopped straight to running, ``stop`` only
affects running containers and ``remove`` always lands on absent.  There
is no in-process state and no locking: the container runtime is the sole
arbiter of consistency, and requests for distinct identities never touch
the same container.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass

from vscs_farm.config import FarmConfig
from vscs_farm.session.identity import (
    USER_LABEL,
    ContainerIdentity,
    ContestContainer,
    UserContainer,
    container_labels,
    container_name,
    parse_container_name,
)
from vscs_farm.session.platform import PlatformClient
from vscs_farm.session.runtime import (
    ContainerEndpoint,
    ContainerRuntime,
    CreateSpec,
    RuntimeOperationError,
)
from vscs_farm.session_env import SessionEnvironment


logger = logging.getLogger(__name__)


def generate_connection_token() -> str:
    """Return a fresh 32-character hex connection token."""
    return secrets.token_hex(16)


@dataclass(frozen=True)
class ContainerSummary:
    """One row of the status page.

    Attributes:
        title: Profile name for user containers, contest title for contest
            containers, the raw name for unrecognized containers.
        name: Container name.
        status: Runtime status string (e.g. ``Up 5 minutes``).
        identity: Parsed identity, or None for unrecognized names.
    """

    title: str
    name: str
    status: str
    identity: ContainerIdentity | None = None

    @property
    def contest_id(self) -> str | None:
        """Contest ID of a contest container, else None."""
        if isinstance(self.identity, ContestContainer):
            return self.identity.contest_id
        return None


class SessionContainerController:
    """Owns the identity to container mapping and its operations.

    Thread Safety:
        Holds no mutable state; safe to share between request threads.
    """

    def __init__(
        self,
        config: FarmConfig,
        runtime: ContainerRuntime | None = None,
        platform: PlatformClient | None = None,
        token_factory: Callable[[], str] = generate_connection_token,
    ) -> None:
        """Initialize controller.

        Args:
            config: Farm configuration.
            runtime: Container runtime; built from config if omitted.
            platform: Platform metadata client; built from config if
                omitted.
            token_factory: Produces connection tokens.
        """
        self._config = config
        self._runtime = runtime or ContainerRuntime(
            config.container_command, timeout=config.runtime_timeout
        )
        self._platform = platform or PlatformClient(
            config.api_root, timeout=config.platform_timeout
        )
        self._token_factory = token_factory

    def _tolerate(self, error: RuntimeOperationError) -> None:
        """Re-raise ``error`` unless runtime failures are suppressed."""
        if not self._config.suppress_runtime_errors:
            raise error
        logger.warning("Ignoring runtime failure: %s", error)

    def list_containers(
        self, user_id: str, access_token: str
    ) -> list[ContainerSummary]:
        """List every container owned by a user.

        Args:
            user_id: Owner user ID.
            access_token: Caller's bearer token for metadata lookups.

        Returns:
            Summaries in the runtime's listing order.

        Raises:
            RuntimeOperationError: If listing fails and failures are not
                suppressed.
            PlatformAPIError: If a title lookup fails.
        """
        try:
            listings = self._runtime.list_by_label(USER_LABEL, user_id)
        except RuntimeOperationError as e:
            self._tolerate(e)
            return []

        user_name: str | None = None
        summaries = []
        for listing in listings:
            identity = parse_container_name(listing.name)
            if isinstance(identity, UserContainer):
                if user_name is None:
                    user_name = self._platform.get_user_name(
                        access_token, user_id
                    )
                title = user_name
            elif isinstance(identity, ContestContainer):
                title = self._platform.get_contest_title(
                    access_token, identity.contest_id
                )
            else:
                title = listing.name
            summaries.append(
                ContainerSummary(
                    title=title,
                    name=listing.name,
                    status=listing.status,
                    identity=identity,
                )
            )
        return summaries

    def start(self, identity: ContainerIdentity, access_token: str) -> str:
        """Ensure the identity's container exists and is running.

        Creates the container if absent, starts it, writes the session
        environment and returns the external editor URL.

        Args:
            identity: Container identity.
            access_token: Caller's bearer token, handed to the container.

        Returns:
            The editor URL with ``{port}`` and ``{token}`` substituted.

        Raises:
            RuntimeOperationError: If a runtime step fails and failures
                are not suppressed.
            ContainerInspectError: If the endpoint cannot be recovered.
        """
        name = container_name(identity)
        token = self._token_factory()

        spec = CreateSpec(
            name=name,
            labels=container_labels(identity),
            image=self._config.image_name,
            editor_port=self._config.editor_port,
            connection_token=token,
        )
        try:
            if not self._runtime.create(spec):
                logger.debug("Container %s already exists", name)
        except RuntimeOperationError as e:
            self._tolerate(e)

        try:
            self._runtime.start(name)
        except RuntimeOperationError as e:
            self._tolerate(e)

        env = SessionEnvironment(
            token=access_token,
            api_root=self._config.api_root,
            contest_id=identity.contest_id,
        )
        try:
            self._runtime.write_file(
                name, self._config.session_env_path, env.to_json()
            )
        except RuntimeOperationError as e:
            self._tolerate(e)

        endpoint = self.inspect(identity)
        url = self._config.container_url.replace(
            "{port}", endpoint.host_port
        ).replace("{token}", endpoint.connection_token)
        logger.info("Container %s ready on port %s", name, endpoint.host_port)
        return url

    def stop(self, identity: ContainerIdentity) -> None:
        """Stop the identity's container; absent containers are fine."""
        try:
            self._runtime.stop(container_name(identity))
        except RuntimeOperationError as e:
            self._tolerate(e)

    def remove(self, identity: ContainerIdentity) -> None:
        """Force-remove the identity's container and its volumes."""
        try:
            self._runtime.remove(container_name(identity))
        except RuntimeOperationError as e:
            self._tolerate(e)

    def inspect(self, identity: ContainerIdentity) -> ContainerEndpoint:
        """Return the published port and connection token of a container.

        Raises:
            ContainerInspectError: If the container is not running or
                cannot be inspected.
        """
        return self._runtime.inspect_endpoint(
            container_name(identity), self._config.editor_port
        )
