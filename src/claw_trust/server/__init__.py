"""HTTP server mode for claw-trust.

Provides a lightweight stdlib-based JSON API over the trust service without
requiring any additional web framework dependencies.
"""
from __future__ import annotations

from claw_trust.server.app import ClawTrustHandler, create_server, run_server

__all__ = ["ClawTrustHandler", "create_server", "run_server"]
