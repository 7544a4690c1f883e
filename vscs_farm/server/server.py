# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Farm HTTP server.

Provides the WSGI application that lists, starts, stops and removes the
caller's editor containers.  Every route except ``/health`` requires the
``X-Forwarded-Access-Token`` header set by the authenticating proxy.
"""

import logging
import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from werkzeug.wrappers.response import StartResponse

from werkzeug.exceptions import MethodNotAllowed, NotFound
from werkzeug.routing import Map, Rule
from werkzeug.serving import make_server
from werkzeug.wrappers import Request, Response

from vscs_farm.config import FarmConfig
from vscs_farm.server.handlers import RequestHandlers, json_response
from vscs_farm.session.access_token import (
    InvalidAccessToken,
    TokenVerifier,
    verifier_for_secret,
)
from vscs_farm.session.controller import SessionContainerController
from vscs_farm.session.identity import InvalidIdentityError
from vscs_farm.session.platform import PlatformAPIError
from vscs_farm.session.runtime import RuntimeOperationError


logger = logging.getLogger(__name__)

_PUBLIC_ENDPOINTS = frozenset({"health"})


class FarmServer:
    """WSGI server for the editor container farm."""

    def __init__(
        self,
        config: FarmConfig,
        controller: SessionContainerController | None = None,
        verifier: TokenVerifier | None = None,
    ) -> None:
        """Initialize farm server.

        Args:
            config: Farm configuration.
            controller: Container controller; built from config if omitted.
            verifier: Token verifier; chosen from ``config.token_secret``
                if omitted.
        """
        self.config = config
        self.host = config.listen_host
        self.port = config.listen_port
        self._server: Any = None
        self._thread: threading.Thread | None = None

        self._handlers = RequestHandlers(
            controller=controller or SessionContainerController(config),
            verifier=verifier or verifier_for_secret(config.token_secret),
        )

        self._url_map = Map(
            [
                Rule("/", endpoint="index", methods=["GET"]),
                Rule("/start", endpoint="start", methods=["GET"]),
                Rule("/stop", endpoint="stop", methods=["POST"]),
                Rule("/remove", endpoint="remove", methods=["POST"]),
                Rule("/health", endpoint="health", methods=["GET"]),
            ]
        )

        self._endpoint_handlers = {
            "index": self._handlers.handle_index,
            "start": self._handlers.handle_start,
            "stop": self._handlers.handle_stop,
            "remove": self._handlers.handle_remove,
            "health": self._handlers.handle_health,
        }

    def start(self) -> None:
        """Start the server in a background thread."""
        self._server = make_server(
            self.host,
            self.port,
            self._wsgi_app,
            threaded=True,
        )
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            daemon=True,
            name="FarmServer",
        )
        self._thread.start()
        logger.info(
            "Farm server started at http://%s:%d/", self.host, self.port
        )

    def stop(self) -> None:
        """Stop the server."""
        if self._server:
            self._server.shutdown()
            logger.info("Farm server stopped")
        if self._thread:
            self._thread.join(timeout=5)

    def _wsgi_app(
        self,
        environ: dict[str, Any],
        start_response: "StartResponse",
    ) -> Iterable[bytes]:
        """WSGI application entry point.

        Args:
            environ: WSGI environ dict.
            start_response: WSGI start_response callable.

        Returns:
            Response body iterable.
        """
        request = Request(environ)
        response = self._dispatch(request)
        return response(environ, start_response)

    def _dispatch(self, request: Request) -> Response:
        """Route, authenticate and handle a request.

        Args:
            request: Incoming request.

        Returns:
            Response to send.
        """
        adapter = self._url_map.bind_to_environ(request.environ)
        try:
            endpoint, values = adapter.match()
            handler = self._endpoint_handlers[endpoint]
            if endpoint in _PUBLIC_ENDPOINTS:
                return handler(request, **values)
            caller = self._handlers.authenticate(request)
            return handler(request, caller, **values)
        except NotFound:
            return Response("Not Found", status=404)
        except MethodNotAllowed as e:
            return e.get_response(request.environ)
        except InvalidAccessToken as e:
            logger.info("Rejected request to %s: %s", request.path, e)
            return Response("Unauthorized", status=401)
        except InvalidIdentityError as e:
            return json_response({"success": False, "error": str(e)}, 400)
        except RuntimeOperationError as e:
            logger.error("Runtime failure handling %s: %s", request.path, e)
            return json_response(
                {"success": False, "error": str(e), "state": "unknown"}, 502
            )
        except PlatformAPIError as e:
            logger.error("Platform failure handling %s: %s", request.path, e)
            return json_response({"success": False, "error": str(e)}, 502)
        except Exception:
            logger.exception("Error handling request %s", request.path)
            return Response("Internal Server Error", status=500)
