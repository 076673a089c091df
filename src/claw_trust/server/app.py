"""HTTP server for claw-trust using stdlib http.server.

Routes (tenant given by the ``X-Api-Key`` header):
    GET    /health                  — health check
    POST   /events                  — record an event
    GET    /score/{agent_id}        — trust score (``?trace=1&trace_limit=N``)
    POST   /preflight               — allow/review/block decision
    GET    /policy                  — current tenant policy
    PUT    /policy                  — merge a policy patch
    DELETE /policy                  — reset the policy to defaults
    GET    /policy/presets          — list presets
    POST   /policy/presets/{name}   — apply a preset
    GET    /decisions               — decision audit log (``?limit=N``)

Usage:
    python -m claw_trust.server.app --port 8080
    python -m claw_trust.server.app --host 127.0.0.1 --port 9000 --state-file state.json
"""
from __future__ import annotations

import argparse
import json
import logging
import re
import urllib.parse
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path

from claw_trust.audit.decision_log import DecisionAuditLogger
from claw_trust.server import routes
from claw_trust.service import TrustService

logger = logging.getLogger(__name__)

_SCORE_PATTERN = re.compile(r"^/score/([^/]+)$")
_PRESET_PATTERN = re.compile(r"^/policy/presets/([^/]+)$")

_TRUE_VALUES = {"1", "true", "yes"}


class ClawTrustHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the claw-trust server.

    Implements routing for GET, POST, PUT and DELETE. All request bodies
    and responses use JSON.
    """

    def log_message(self, format: str, *args: object) -> None:
        """Override to route access logs through the Python logging system."""
        logger.debug(format, *args)

    @property
    def tenant(self) -> str:
        return (self.headers.get("X-Api-Key") or "").strip()

    # ── GET ───────────────────────────────────────────────────────────────────

    def do_GET(self) -> None:
        """Handle all GET requests by routing on the URL path."""
        parsed = urllib.parse.urlparse(self.path)
        path = parsed.path.rstrip("/")
        params = urllib.parse.parse_qs(parsed.query)

        if path == "/health":
            status, data = routes.handle_health()
        elif path == "/policy":
            status, data = routes.handle_get_policy(self.tenant)
        elif path == "/policy/presets":
            status, data = routes.handle_list_presets()
        elif path == "/decisions":
            status, data = routes.handle_decisions(self.tenant, self._first_param(params, "limit"))
        else:
            match = _SCORE_PATTERN.match(path)
            if not match:
                self._send_json(404, {"error": "Not found", "detail": f"No route for GET {path}"})
                return
            trace = (self._first_param(params, "trace") or "").lower() in _TRUE_VALUES
            raw_limit = self._first_param(params, "trace_limit")
            try:
                trace_limit = int(raw_limit) if raw_limit else None
            except ValueError:
                trace_limit = None
            status, data = routes.handle_get_score(
                self.tenant,
                urllib.parse.unquote(match.group(1)),
                include_trace=trace,
                trace_limit=trace_limit,
            )
        self._send_json(status, data)

    # ── POST ──────────────────────────────────────────────────────────────────

    def do_POST(self) -> None:
        """Handle all POST requests by routing on the URL path."""
        parsed = urllib.parse.urlparse(self.path)
        path = parsed.path.rstrip("/")

        body = self._read_json_body()
        if body is None:
            return

        if path == "/events":
            status, data = routes.handle_record_event(self.tenant, body)
        elif path == "/preflight":
            status, data = routes.handle_preflight(self.tenant, body)
        else:
            match = _PRESET_PATTERN.match(path)
            if not match:
                self._send_json(404, {"error": "Not found", "detail": f"No route for POST {path}"})
                return
            status, data = routes.handle_apply_preset(self.tenant, match.group(1))
        self._send_json(status, data)

    # ── PUT ───────────────────────────────────────────────────────────────────

    def do_PUT(self) -> None:
        """Handle PUT /policy."""
        parsed = urllib.parse.urlparse(self.path)
        path = parsed.path.rstrip("/")

        body = self._read_json_body()
        if body is None:
            return

        if path == "/policy":
            status, data = routes.handle_set_policy(self.tenant, body)
            self._send_json(status, data)
        else:
            self._send_json(404, {"error": "Not found", "detail": f"No route for PUT {path}"})

    # ── DELETE ────────────────────────────────────────────────────────────────

    def do_DELETE(self) -> None:
        """Handle DELETE /policy."""
        parsed = urllib.parse.urlparse(self.path)
        path = parsed.path.rstrip("/")
        if path == "/policy":
            status, data = routes.handle_reset_policy(self.tenant)
            self._send_json(status, data)
        else:
            self._send_json(
                405,
                {"error": "Method not allowed", "detail": f"DELETE not supported on {path}"},
            )

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _send_json(self, status: int, data: dict[str, object]) -> None:
        """Serialize *data* to JSON and send an HTTP response with *status*."""
        body = json.dumps(data, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _read_json_body(self) -> dict[str, object] | None:
        """Read and parse the JSON request body.

        Returns None (and sends a 400 error response) if parsing fails or the
        body is not a JSON object.
        """
        content_length = int(self.headers.get("Content-Length", 0))
        if content_length == 0:
            return {}

        raw = self.rfile.read(content_length)
        try:
            parsed = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            self._send_json(400, {"error": "Invalid JSON", "detail": str(exc)})
            return None
        if not isinstance(parsed, dict):
            self._send_json(400, {"error": "Invalid JSON", "detail": "Body must be a JSON object."})
            return None
        return parsed

    @staticmethod
    def _first_param(params: dict[str, list[str]], key: str) -> str | None:
        """Return the first value for *key* from query parameters, or None."""
        values = params.get(key)
        return values[0] if values else None


def create_server(
    host: str = "0.0.0.0",
    port: int = 8080,
    service: TrustService | None = None,
) -> HTTPServer:
    """Create (but do not start) the claw-trust HTTP server.

    Parameters
    ----------
    host:
        Bind address (default ``"0.0.0.0"`` — all interfaces).
    port:
        TCP port to listen on (default 8080).
    service:
        Service instance to serve. The shared route state is replaced with
        it when given.

    Returns
    -------
    HTTPServer
    """
    if service is not None:
        routes.reset_state(service)
    server = HTTPServer((host, port), ClawTrustHandler)
    logger.info("claw-trust server created at http://%s:%d", host, port)
    return server


def run_server(
    host: str = "0.0.0.0",
    port: int = 8080,
    state_file: Path | None = None,
    audit_file: Path | None = None,
) -> None:
    """Create and run the claw-trust HTTP server (blocking).

    When *state_file* is given, state is loaded from it on start and written
    back on shutdown.
    """
    service = TrustService(audit_logger=DecisionAuditLogger(log_path=audit_file))
    if state_file is not None:
        service.load_snapshot(state_file)
    server = create_server(host=host, port=port, service=service)
    logger.info("Serving claw-trust on http://%s:%d — press Ctrl-C to stop", host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down claw-trust server.")
    finally:
        server.server_close()
        if state_file is not None:
            service.save_snapshot(state_file)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="claw-trust HTTP server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8080, help="TCP port")
    parser.add_argument("--state-file", type=Path, default=None, help="JSON snapshot file")
    parser.add_argument("--audit-file", type=Path, default=None, help="JSONL decision log")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser


if __name__ == "__main__":
    args = _build_arg_parser().parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level))
    run_server(
        host=args.host,
        port=args.port,
        state_file=args.state_file,
        audit_file=args.audit_file,
    )
