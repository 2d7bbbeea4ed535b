# Copyright the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""HTTP front-end for a reverse proxy ``auth_request`` hook.

Endpoints:

* ``/auth``: decides on the path in the ``X-Original-URI`` header (or the
  request path when the header is absent). 200 allows, 403 denies and 500
  means no decision could be made.
* ``/health``: liveness check.
* ``/debug``: JSON dump of allowed paths and delegations.

Usage::

    $ tuf-client-verify --repo testdata/repository --port 8080 -v

Sending SIGHUP reloads metadata from the repository directory. A reload that
fails keeps the metadata that was trusted before.
"""

import argparse
import json
import logging
import os
import signal
import sys
import threading
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from types import FrameType
from typing import List, Mapping, Optional, Tuple

from tuf_verify import __version__
from tuf_verify.api.exceptions import RepositoryError
from tuf_verify.authz import AuthorizationConfig, AuthorizationService

logger = logging.getLogger(__name__)

BANNER = "TUF Client Verify Service"


@dataclass
class ServerConfig:
    """Used to store HTTP front-end configuration.

    Args:
        host: Address to listen on.
        port: TCP port to listen on. 0 picks a free port.
        repo_path: Directory holding ``root.json``, ``targets.json`` and
            delegated role metadata.
        max_delegation_depth: Deepest delegation level consulted.
    """

    host: str = "0.0.0.0"
    port: int = 8080
    repo_path: str = "testdata/repository"
    max_delegation_depth: int = 8

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> "ServerConfig":
        """Create ``ServerConfig`` from ``PORT`` and ``TUF_REPO_PATH``.

        Unset or empty variables keep their defaults.

        Raises:
            ValueError: ``PORT`` is not an integer.
        """
        env = os.environ if environ is None else environ
        config = cls()
        port = env.get("PORT")
        if port:
            try:
                config.port = int(port)
            except ValueError as e:
                raise ValueError(f"PORT must be an integer: {port!r}") from e
        repo_path = env.get("TUF_REPO_PATH")
        if repo_path:
            config.repo_path = repo_path
        return config

    def validate(self) -> None:
        """Raise ``ValueError`` if the configuration cannot be served."""
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port {self.port}")
        if not os.path.isdir(self.repo_path):
            raise ValueError(f"Repository {self.repo_path} is not a directory")
        if not os.path.isfile(os.path.join(self.repo_path, "root.json")):
            raise ValueError(f"No root.json in {self.repo_path}")


def _strip_query(uri: str) -> str:
    return uri.split("?", 1)[0].split("#", 1)[0]


class AuthRequestHandler(BaseHTTPRequestHandler):
    """Routes requests to the ``AuthorizationService`` of the server."""

    server: "AuthServer"
    server_version = f"tuf-client-verify/{__version__}"

    def _send(
        self, status: int, body: bytes, content_type: str = "text/plain"
    ) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    def _handle_auth(self) -> None:
        uri = self.headers.get("X-Original-URI") or self.path
        method = self.headers.get("X-Original-Method") or self.command
        result = self.server.service.verify_path(_strip_query(uri), method)
        if result.allowed:
            logger.info("ALLOWED: %s (%s)", result.path, method)
            self._send(200, b"OK")
        elif result.http_status == 403:
            logger.info("DENIED: %s (%s)", result.path, method)
            self._send(403, b"Forbidden")
        else:
            logger.error("No decision for %s: %s", result.path, result.reason)
            self._send(500, b"Internal Server Error")

    def _handle_debug(self) -> None:
        body = json.dumps(self.server.service.diagnostics(), indent=2)
        self._send(200, body.encode("utf-8"), "application/json")

    def _dispatch(self) -> None:
        route = _strip_query(self.path)
        try:
            if route == "/auth":
                self._handle_auth()
            elif route == "/health":
                self._send(200, b"healthy")
            elif route == "/debug":
                self._handle_debug()
            elif route == "/":
                self._send(200, BANNER.encode("utf-8"))
            else:
                self._send(404, b"Not Found")
        except Exception:
            logger.exception("Failed to handle %s %s", self.command, route)
            self._send(500, b"Internal Server Error")

    do_GET = _dispatch
    do_HEAD = _dispatch
    do_POST = _dispatch
    do_PUT = _dispatch
    do_PATCH = _dispatch
    do_DELETE = _dispatch

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        logger.debug("%s - %s", self.address_string(), format % args)


class AuthServer(ThreadingHTTPServer):
    """``ThreadingHTTPServer`` answering with ``service`` decisions."""

    daemon_threads = True

    def __init__(
        self, address: Tuple[str, int], service: AuthorizationService
    ):
        super().__init__(address, AuthRequestHandler)
        self.service = service


def create_server(
    config: ServerConfig, service: Optional[AuthorizationService] = None
) -> AuthServer:
    """Bind an ``AuthServer`` for ``config``.

    Args:
        config: Listen address and repository location.
        service: ``Optional``; service to answer with. Default loads one from
            ``config.repo_path``.

    Raises:
        OSError: Metadata cannot be read or the address cannot be bound.
        RepositoryError: Root or top-level targets is invalid.
    """
    if service is None:
        service = AuthorizationService.from_directory(
            config.repo_path,
            AuthorizationConfig(
                max_delegation_depth=config.max_delegation_depth
            ),
        )
    return AuthServer((config.host, config.port), service)


def _reload(service: AuthorizationService, repo_path: str) -> bool:
    """Reload ``service`` from ``repo_path``, keeping its metadata on failure.

    Returns True if the new metadata is in use.
    """
    try:
        service.reload_from_directory(repo_path)
    except (OSError, RepositoryError) as e:
        logger.error("Reload failed, keeping current metadata: %s", e)
        return False
    except Exception:
        logger.exception("Reload failed unexpectedly, keeping current metadata")
        return False
    return True


def _install_reload_handler(
    service: AuthorizationService, repo_path: str
) -> None:
    def _on_sighup(signum: int, frame: Optional[FrameType]) -> None:
        logger.info("Received SIGHUP, reloading %s", repo_path)
        threading.Thread(
            target=_reload, args=(service, repo_path), daemon=True
        ).start()

    signal.signal(signal.SIGHUP, _on_sighup)


def _loglevel(verbosity: int) -> int:
    if verbosity == 0:
        return logging.INFO
    return logging.DEBUG


def main(argv: Optional[List[str]] = None) -> int:
    """Run the authorization server until interrupted."""
    try:
        env_config = ServerConfig.from_env()
    except ValueError as e:
        print(f"Invalid environment: {e}", file=sys.stderr)
        return 1

    parser = argparse.ArgumentParser(
        description="Authorize reverse proxy requests with TUF metadata"
    )
    parser.add_argument("--host", default=env_config.host)
    parser.add_argument("--port", type=int, default=env_config.port)
    parser.add_argument(
        "--repo",
        default=env_config.repo_path,
        help="metadata directory (env TUF_REPO_PATH)",
    )
    parser.add_argument(
        "--max-delegation-depth",
        type=int,
        default=env_config.max_delegation_depth,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="log debug messages",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=_loglevel(args.verbose),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = ServerConfig(
        args.host, args.port, args.repo, args.max_delegation_depth
    )
    try:
        config.validate()
        server = create_server(config)
    except (OSError, ValueError, RepositoryError) as e:
        logger.error("Failed to start: %s", e)
        return 1

    if hasattr(signal, "SIGHUP"):
        _install_reload_handler(server.service, config.repo_path)

    host, port = server.server_address[:2]
    logger.info("Serving %s on %s:%d", config.repo_path, host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.server_close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
