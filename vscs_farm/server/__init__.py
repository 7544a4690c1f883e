# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Farm HTTP server.

Provides a WSGI application exposing the container status page and the
start/stop/remove endpoints.
"""

from vscs_farm.server.server import FarmServer


__all__ = ["FarmServer"]
