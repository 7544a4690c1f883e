# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""HTTP request handlers for the farm server.

Every protected handler receives the caller's raw access token and its
decoded claims; authentication happens in the server before dispatch.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

from werkzeug.utils import redirect
from werkzeug.wrappers import Request, Response

from vscs_farm.server import views
from vscs_farm.session.access_token import (
    ACCESS_TOKEN_HEADER,
    AccessClaims,
    TokenVerifier,
    decode_access_token,
)
from vscs_farm.session.controller import SessionContainerController
from vscs_farm.session.identity import ContainerIdentity, identity_for


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Caller:
    """An authenticated request's identity.

    Attributes:
        token: Raw access token, forwarded to platform calls and written
            into the caller's containers.
        claims: Decoded token claims.
    """

    token: str
    claims: AccessClaims

    @property
    def user_id(self) -> str:
        return self.claims.user_id


def json_response(data: dict[str, Any], status: int = 200) -> Response:
    """Build a JSON response."""
    return Response(
        json.dumps(data),
        status=status,
        content_type="application/json",
    )


class RequestHandlers:
    """Container for HTTP request handlers."""

    def __init__(
        self,
        controller: SessionContainerController,
        verifier: TokenVerifier,
    ) -> None:
        """Initialize request handlers.

        Args:
            controller: Session container controller.
            verifier: Access token verification policy.
        """
        self._controller = controller
        self._verifier = verifier

    def authenticate(self, request: Request) -> Caller:
        """Decode the caller's access token.

        Args:
            request: Incoming request.

        Returns:
            The authenticated caller.

        Raises:
            InvalidAccessToken: If the header is missing or the token is
                malformed or rejected.
        """
        token = request.headers.get(ACCESS_TOKEN_HEADER, "")
        claims = decode_access_token(token, self._verifier)
        return Caller(token=token, claims=claims)

    def _identity(
        self, caller: Caller, contest_id: str | None
    ) -> ContainerIdentity:
        return identity_for(caller.user_id, contest_id or None)

    def handle_index(self, request: Request, caller: Caller) -> Response:
        """Handle the status page listing the caller's containers.

        Args:
            request: Incoming request.
            caller: Authenticated caller.

        Returns:
            HTML response.
        """
        containers = self._controller.list_containers(
            caller.user_id, caller.token
        )
        return Response(
            views.render_index(containers),
            content_type="text/html; charset=utf-8",
        )

    def handle_start(self, request: Request, caller: Caller) -> Response:
        """Ensure the container is running and redirect into the editor.

        Query parameter ``contestId`` selects a contest container.
        """
        identity = self._identity(caller, request.args.get("contestId"))
        url = self._controller.start(identity, caller.token)
        return redirect(url, code=302)

    def handle_stop(self, request: Request, caller: Caller) -> Response:
        """Stop the caller's container (form field ``contestId``)."""
        identity = self._identity(caller, request.form.get("contestId"))
        self._controller.stop(identity)
        return json_response({"success": True})

    def handle_remove(self, request: Request, caller: Caller) -> Response:
        """Remove the caller's container (form field ``contestId``)."""
        identity = self._identity(caller, request.form.get("contestId"))
        self._controller.remove(identity)
        return json_response({"success": True})

    def handle_health(self, request: Request) -> Response:
        """Handle liveness probe; requires no authentication."""
        return json_response({"status": "ok"})
