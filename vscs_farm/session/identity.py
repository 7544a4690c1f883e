# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Container identities and their canonical container names.

Every editor container belongs to exactly one identity: a user's personal
container (``vscs_user_<userId>``) or a user's container for a contest
(``vscs_contest_<contestId>_<userId>``).  ``container_name`` and
``parse_container_name`` are inverse functions; identifiers are restricted
to characters that cannot contain the ``_`` separator so that the mapping
stays injective.
"""

from __future__ import annotations

import re
from dataclasses import dataclass


NAME_PREFIX = "vscs"

USER_LABEL = "userId"
CONTEST_LABEL = "contestId"

# Docker names allow [a-zA-Z0-9][a-zA-Z0-9_.-]*; "_" is the name separator.
_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9.-]*$")


class InvalidIdentityError(ValueError):
    """Raised when a user or contest ID cannot form a container name."""


def validate_id(value: str, kind: str) -> str:
    """Check that ``value`` is usable as part of a container name.

    Args:
        value: The identifier to check.
        kind: Human-readable identifier kind for the error message.

    Returns:
        The identifier, unchanged.

    Raises:
        InvalidIdentityError: If the identifier is empty or contains
            characters outside ``[A-Za-z0-9.-]``.
    """
    if not isinstance(value, str) or not _ID_PATTERN.match(value):
        raise InvalidIdentityError(f"Invalid {kind}: {value!r}")
    return value


@dataclass(frozen=True)
class UserContainer:
    """A user's personal editor container."""

    user_id: str

    def __post_init__(self) -> None:
        validate_id(self.user_id, "user ID")

    @property
    def contest_id(self) -> None:
        return None


@dataclass(frozen=True)
class ContestContainer:
    """A user's editor container scoped to one contest."""

    contest_id: str
    user_id: str

    def __post_init__(self) -> None:
        validate_id(self.contest_id, "contest ID")
        validate_id(self.user_id, "user ID")


ContainerIdentity = UserContainer | ContestContainer


def identity_for(
    user_id: str, contest_id: str | None = None
) -> ContainerIdentity:
    """Build the identity for a user and optional contest.

    An empty ``contest_id`` is treated as absent.

    Raises:
        InvalidIdentityError: If either identifier is invalid.
    """
    if contest_id:
        return ContestContainer(contest_id=contest_id, user_id=user_id)
    return UserContainer(user_id=user_id)


def container_name(identity: ContainerIdentity) -> str:
    """Return the canonical container name for an identity."""
    if isinstance(identity, ContestContainer):
        return (
            f"{NAME_PREFIX}_contest_{identity.contest_id}_{identity.user_id}"
        )
    if isinstance(identity, UserContainer):
        return f"{NAME_PREFIX}_user_{identity.user_id}"
    raise TypeError(f"Not a container identity: {identity!r}")


def container_labels(identity: ContainerIdentity) -> dict[str, str]:
    """Return the runtime labels that identify a container's owner."""
    labels = {USER_LABEL: identity.user_id}
    if identity.contest_id:
        labels[CONTEST_LABEL] = identity.contest_id
    return labels


def parse_container_name(name: str) -> ContainerIdentity | None:
    """Recover the identity from a canonical container name.

    Args:
        name: Container name as reported by the runtime.

    Returns:
        The identity, or None if ``name`` is not a canonical farm name.
    """
    parts = name.split("_")
    if len(parts) < 3 or parts[0] != NAME_PREFIX:
        return None
    try:
        if parts[1] == "user" and len(parts) == 3:
            return UserContainer(user_id=parts[2])
        if parts[1] == "contest" and len(parts) == 4:
            return ContestContainer(contest_id=parts[2], user_id=parts[3])
    except InvalidIdentityError:
        return None
    return None
