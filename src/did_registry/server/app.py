"""HTTP server for did-registry using stdlib http.server.

Routes:
    POST   /did/register                  — register a DID with a document hash
    PATCH  /did/update-document           — anchor a new document hash
    PATCH  /did/change-controller         — hand control to another address
    PATCH  /did/deactivate                — deactivate a DID (terminal)
    POST   /did/create                    — derive, document and register a DID
    POST   /did/register-with-document    — store a document and register its hash
    GET    /did/{id}                      — ledger record for a DID
    GET    /did/{id}/active               — whether a DID is active
    GET    /did/{id}/document             — stored DID document
    POST   /credentials/issue             — issue a credential signed by the operator
    POST   /credentials/verify            — verify a stored credential
    GET    /credentials/{id}              — fetch a stored credential
    GET    /health                        — health check

Usage:
    python -m did_registry.server.app --port 8080
    python -m did_registry.server.app --host 127.0.0.1 --port 9000
"""
from __future__ import annotations

import argparse
import json
import logging
import re
import urllib.parse
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from did_registry.config import RegistryConfig
from did_registry.server.routes import RegistryRoutes, Response
from did_registry.services import RegistryServices

logger = logging.getLogger(__name__)

# DIDs contain ':' and may arrive percent-encoded; match before decoding.
_DID_PATTERN = re.compile(r"^/did/([^/]+)$")
_DID_ACTIVE_PATTERN = re.compile(r"^/did/([^/]+)/active$")
_DID_DOCUMENT_PATTERN = re.compile(r"^/did/([^/]+)/document$")
_CREDENTIAL_PATTERN = re.compile(r"^/credentials/([^/]+)$")


class RegistryHTTPServer(ThreadingHTTPServer):
    """Threaded HTTP server carrying the route handlers for its requests."""

    daemon_threads = True

    def __init__(self, address: tuple[str, int], routes: RegistryRoutes) -> None:
        super().__init__(address, DIDRegistryHandler)
        self.routes = routes


class DIDRegistryHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the did-registry server.

    Implements routing for GET, POST, PATCH, and DELETE methods across all
    supported endpoints. All request bodies and responses use JSON.
    """

    server: RegistryHTTPServer

    def log_message(self, format: str, *args: object) -> None:
        """Override to route access logs through the Python logging system."""
        logger.debug(format, *args)

    @property
    def routes(self) -> RegistryRoutes:
        return self.server.routes

    # ── GET ───────────────────────────────────────────────────────────────────

    def do_GET(self) -> None:
        """Handle all GET requests by routing on the URL path."""
        path = self._path()

        if path == "/health":
            self._send_json(*self.routes.handle_health())
            return

        for pattern, handler in (
            (_DID_ACTIVE_PATTERN, self.routes.handle_is_active),
            (_DID_DOCUMENT_PATTERN, self.routes.handle_get_document),
            (_DID_PATTERN, self.routes.handle_get_did),
            (_CREDENTIAL_PATTERN, self.routes.handle_get_credential),
        ):
            match = pattern.match(path)
            if match:
                self._send_json(*handler(urllib.parse.unquote(match.group(1))))
                return

        self._send_json(404, {"error": "Not found", "detail": f"No route for GET {path}"})

    # ── POST ──────────────────────────────────────────────────────────────────

    def do_POST(self) -> None:
        """Handle all POST requests by routing on the URL path."""
        path = self._path()
        handler = {
            "/did/register": self.routes.handle_register,
            "/did/create": self.routes.handle_create,
            "/did/register-with-document": self.routes.handle_register_with_document,
            "/credentials/issue": self.routes.handle_issue_credential,
            "/credentials/verify": self.routes.handle_verify_credential,
        }.get(path)
        self._dispatch_body("POST", path, handler)

    # ── PATCH ─────────────────────────────────────────────────────────────────

    def do_PATCH(self) -> None:
        """Handle all PATCH requests by routing on the URL path."""
        path = self._path()
        handler = {
            "/did/update-document": self.routes.handle_update_document,
            "/did/change-controller": self.routes.handle_change_controller,
            "/did/deactivate": self.routes.handle_deactivate,
        }.get(path)
        self._dispatch_body("PATCH", path, handler)

    # ── DELETE ────────────────────────────────────────────────────────────────

    def do_DELETE(self) -> None:
        """Handle all DELETE requests. DIDs are deactivated, never deleted."""
        path = self._path()
        self._send_json(
            405,
            {"error": "Method not allowed", "detail": f"DELETE not supported on {path}"},
        )

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _path(self) -> str:
        return urllib.parse.urlparse(self.path).path.rstrip("/")

    def _dispatch_body(
        self,
        method: str,
        path: str,
        handler: Callable[[dict[str, object]], Response] | None,
    ) -> None:
        if handler is None:
            self._send_json(
                404, {"error": "Not found", "detail": f"No route for {method} {path}"}
            )
            return
        body = self._read_json_body()
        if body is None:
            return
        self._send_json(*handler(body))

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

        Returns None (and sends a 400 error response) if parsing fails or
        the body is not a JSON object.
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
            self._send_json(400, {"error": "Invalid JSON", "detail": "Expected a JSON object."})
            return None
        return parsed


def create_server(
    host: str = "0.0.0.0",
    port: int = 8080,
    services: RegistryServices | None = None,
) -> RegistryHTTPServer:
    """Create (but do not start) the did-registry HTTP server.

    Parameters
    ----------
    host:
        Bind address (default ``"0.0.0.0"``, all interfaces).
    port:
        TCP port to listen on (default 8080). ``0`` picks a free port.
    services:
        Service graph to serve. Defaults to one built from the environment.

    Returns
    -------
    RegistryHTTPServer
        A configured server instance ready to call ``serve_forever()`` on.
    """
    if services is None:
        services = RegistryServices.create()
    server = RegistryHTTPServer((host, port), RegistryRoutes(services))
    logger.info("did-registry server created at http://%s:%d", host, server.server_port)
    return server


def run_server(
    host: str = "0.0.0.0",
    port: int = 8080,
    services: RegistryServices | None = None,
) -> None:
    """Create and run the did-registry HTTP server (blocking).

    The service graph is closed when the server stops.
    """
    server = create_server(host=host, port=port, services=services)
    logger.info("Serving did-registry on http://%s:%d; press Ctrl-C to stop", host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down did-registry server.")
    finally:
        server.server_close()
        server.routes.services.close()


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="did-registry HTTP server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8080, help="TCP port")
    parser.add_argument("--network", default=None, help="DID network segment")
    parser.add_argument("--operator-address", default=None, help="Default caller address")
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
    config = RegistryConfig.from_env(
        network=args.network, operator_address=args.operator_address
    )
    run_server(host=args.host, port=args.port, services=RegistryServices.create(config))
