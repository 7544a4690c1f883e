# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""VSCS Farm: disposable per-user OpenVSCode containers and the ``aoi`` CLI."""

__version__ = "0.3.0"
