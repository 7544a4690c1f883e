# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Per-user editor container sessions.

Public API:
- SessionContainerController: lifecycle of per-identity containers
- ContainerRuntime: container CLI wrapper
- PlatformClient: user and contest display metadata
- identity helpers: container names, labels and their parsing
- access token decoding and verification
"""

from vscs_farm.session.access_token import (
    ACCESS_TOKEN_HEADER,
    AccessClaims,
    HmacSha256Verifier,
    InvalidAccessToken,
    TokenVerifier,
    TrustedProxyVerifier,
    decode_access_token,
    verifier_for_secret,
)
from vscs_farm.session.controller import (
    ContainerSummary,
    SessionContainerController,
    generate_connection_token,
)
from vscs_farm.session.identity import (
    ContainerIdentity,
    ContestContainer,
    InvalidIdentityError,
    UserContainer,
    container_labels,
    container_name,
    identity_for,
    parse_container_name,
)
from vscs_farm.session.platform import PlatformAPIError, PlatformClient
from vscs_farm.session.runtime import (
    ContainerEndpoint,
    ContainerInspectError,
    ContainerListing,
    ContainerRuntime,
    CreateSpec,
    RuntimeOperationError,
)


__all__ = [
    "ACCESS_TOKEN_HEADER",
    "AccessClaims",
    "ContainerEndpoint",
    "ContainerIdentity",
    "ContainerInspectError",
    "ContainerListing",
    "ContainerRuntime",
    "ContainerSummary",
    "ContestContainer",
    "CreateSpec",
    "HmacSha256Verifier",
    "InvalidAccessToken",
    "InvalidIdentityError",
    "PlatformAPIError",
    "PlatformClient",
    "RuntimeOperationError",
    "SessionContainerController",
    "TokenVerifier",
    "TrustedProxyVerifier",
    "UserContainer",
    "container_labels",
    "container_name",
    "decode_access_token",
    "generate_connection_token",
    "identity_for",
    "parse_container_name",
    "verifier_for_secret",
]
