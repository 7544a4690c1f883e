# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Container runtime wrapper.

Drives the ``docker`` (or ``podman``) CLI as a subprocess.  The runtime is
the single source of truth for container state: names, labels, status,
published ports and launch arguments all live in the runtime, the farm
keeps nothing in memory.

Operations that are idempotent at the identity level treat the matching
runtime complaint as success (creating a container whose name is taken,
stopping or removing a container that does not exist).  Every other
non-zero exit raises ``RuntimeOperationError``: the operation failed and
the container's state is unknown.
"""

from __future__ import annotations

import base64
import logging
import re
import shlex
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass


logger = logging.getLogger(__name__)

# Launch command of the editor: the connection token sits at Cmd[5].
_EDITOR_SHELL = 'exec ${OPENVSCODE_SERVER_ROOT}/bin/openvscode-server "${@}"'
CONNECTION_TOKEN_ARG_INDEX = 5

_NAME_IN_USE = re.compile(r"is already in use|already exists", re.IGNORECASE)
_NO_SUCH_CONTAINER = re.compile(
    r"no such container|no container with (name or )?id", re.IGNORECASE
)


class RuntimeOperationError(Exception):
    """A runtime call failed; the container's state is unknown.

    Attributes:
        operation: Runtime operation name (``create``, ``stop``, ...).
        target: Container name or label filter the call was about.
        returncode: Exit status of the runtime process, if it ran.
        stderr: Captured standard error of the runtime process.
    """

    def __init__(
        self,
        operation: str,
        target: str,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.operation = operation
        self.target = target
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr or f"exit status {returncode}"
        super().__init__(f"Container {operation} failed for {target}: {detail}")


class ContainerInspectError(RuntimeOperationError):
    """Raised when a container's endpoint cannot be recovered."""


@dataclass(frozen=True)
class ContainerEndpoint:
    """Where a running editor container can be reached.

    Attributes:
        host_port: Host port published for the editor port.
        connection_token: Token the editor was launched with.
    """

    host_port: str
    connection_token: str


@dataclass(frozen=True)
class ContainerListing:
    """One line of a label-filtered container listing."""

    name: str
    status: str


@dataclass(frozen=True)
class CreateSpec:
    """Everything needed to create an editor container.

    Attributes:
        name: Canonical container name.
        labels: Identity labels.
        image: Base image name.
        editor_port: Port the editor listens on inside the container.
        connection_token: Token passed to the editor at launch.
    """

    name: str
    labels: dict[str, str]
    image: str
    editor_port: int
    connection_token: str


class ContainerRuntime:
    """Runs container operations through the runtime CLI.

    Thread Safety:
        Stateless; safe to share between request threads.
    """

    def __init__(
        self,
        container_command: str = "docker",
        timeout: float | None = None,
    ) -> None:
        """Initialize runtime wrapper.

        Args:
            container_command: Container runtime command (docker or podman).
            timeout: Seconds to wait for each runtime call, or None.
        """
        self._container_command = container_command
        self._timeout = timeout

    @property
    def container_command(self) -> str:
        """Get container runtime command."""
        return self._container_command

    def _run(
        self,
        operation: str,
        target: str,
        args: Sequence[str],
        *,
        tolerate: re.Pattern[str] | None = None,
        error_cls: type[RuntimeOperationError] = RuntimeOperationError,
    ) -> subprocess.CompletedProcess[str]:
        """Run one runtime command.

        Args:
            operation: Operation name for logging and errors.
            target: Container name or filter for logging and errors.
            args: Arguments after the container command.
            tolerate: Stderr pattern that marks an idempotent no-op.
            error_cls: Exception type raised on failure.

        Returns:
            The completed process.

        Raises:
            RuntimeOperationError: If the command fails, times out or the
                runtime binary is missing.
        """
        cmd = [self._container_command, *args]
        logger.debug("Running %s %s", operation, shlex.join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise error_cls(operation, target, stderr="timed out") from e
        except FileNotFoundError as e:
            raise error_cls(
                operation,
                target,
                stderr=f"{self._container_command} not found",
            ) from e

        if result.returncode != 0:
            if tolerate is not None and tolerate.search(result.stderr or ""):
                logger.debug(
                    "Container %s for %s was a no-op: %s",
                    operation,
                    target,
                    result.stderr.strip(),
                )
                return result
            raise error_cls(operation, target, result.returncode, result.stderr)
        return result

    def create(self, spec: CreateSpec) -> bool:
        """Create and launch an editor container.

        Args:
            spec: Container specification.

        Returns:
            True if a new container was created, False if a container
            with the same name already existed.

        Raises:
            RuntimeOperationError: If creation fails for another reason.
        """
        label_args: list[str] = []
        for key, value in spec.labels.items():
            label_args.extend(["--label", f"{key}={value}"])

        args = [
            "run",
            "-d",
            "--name",
            spec.name,
            *label_args,
            "--init",
            "--entrypoint",
            "",
            "-p",
            str(spec.editor_port),
            spec.image,
            "sh",
            "-c",
            _EDITOR_SHELL,
            "--",
            "--connection-token",
            spec.connection_token,
            "--host",
            "0.0.0.0",
            "--enable-remote-auto-shutdown",
        ]
        result = self._run("create", spec.name, args, tolerate=_NAME_IN_USE)
        created = result.returncode == 0
        if created:
            logger.info("Created container %s from %s", spec.name, spec.image)
        return created

    def start(self, name: str) -> None:
        """Start a container by name; running containers are left as is."""
        self._run("start", name, ["start", name])

    def stop(self, name: str) -> None:
        """Stop a container by name; a missing container is a no-op."""
        self._run("stop", name, ["stop", name], tolerate=_NO_SUCH_CONTAINER)
        logger.info("Stopped container %s", name)

    def remove(self, name: str) -> None:
        """Force-remove a container and its volumes."""
        self._run(
            "remove",
            name,
            ["rm", "-f", "-v", name],
            tolerate=_NO_SUCH_CONTAINER,
        )
        logger.info("Removed container %s", name)

    def write_file(self, name: str, path: str, content: str) -> None:
        """Write ``content`` to ``path`` inside a running container.

        The content travels base64-encoded through ``sh -c`` so that no
        quoting of the payload is needed.
        """
        encoded = base64.b64encode(content.encode()).decode()
        script = f"echo {encoded} | base64 -d > {shlex.quote(path)}"
        self._run("exec", name, ["exec", name, "sh", "-c", script])

    def inspect_endpoint(
        self, name: str, editor_port: int
    ) -> ContainerEndpoint:
        """Recover the published port and connection token of a container.

        Raises:
            ContainerInspectError: If the container is not running, has no
                published editor port, or its output is unparseable.
        """
        template = (
            "{{(index (index .NetworkSettings.Ports "
            f'"{editor_port}/tcp") 0).HostPort}}}} '
            f"{{{{ index (index .Config.Cmd) {CONNECTION_TOKEN_ARG_INDEX} }}}}"
        )
        result = self._run(
            "inspect",
            name,
            ["inspect", "-f", template, name],
            error_cls=ContainerInspectError,
        )
        parts = result.stdout.strip().split(" ")
        if len(parts) != 2 or not parts[0].isdigit() or not parts[1]:
            raise ContainerInspectError(
                "inspect",
                name,
                result.returncode,
                f"unexpected inspect output: {result.stdout.strip()!r}",
            )
        return ContainerEndpoint(host_port=parts[0], connection_token=parts[1])

    def list_by_label(self, key: str, value: str) -> list[ContainerListing]:
        """List all containers (running or not) carrying a label."""
        label_filter = f"label={key}={value}"
        result = self._run(
            "list",
            label_filter,
            [
                "ps",
                "--all",
                "--filter",
                label_filter,
                "--format",
                "{{.Names}} {{.Status}}",
            ],
        )
        listings = []
        for line in result.stdout.strip().splitlines():
            line = line.strip()
            if not line:
                continue
            name, _, status = line.partition(" ")
            listings.append(ContainerListing(name=name, status=status))
        return listings
