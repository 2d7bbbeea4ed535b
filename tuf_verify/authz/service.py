# Copyright the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""Delegated path authorization.

The ``AuthorizationService`` class answers one question for a reverse proxy:
is a request path listed by the TUF targets role that governs it?

High-level description of ``AuthorizationService`` functionality:
  * Initializing an ``AuthorizationService`` verifies a metadata bundle (raw
    bytes per role) into a ``TrustedSnapshot``: the bundle root is the source
    of trust for all other metadata.
  * ``verify_path()`` resolves a path against the current snapshot. It never
    blocks on ``reload()`` and never does I/O.
  * ``reload()`` verifies a new bundle using the current snapshot as trust
    anchor and swaps it in only when root and top-level targets are admitted.
  * ``list_allowed_paths()`` and ``describe_delegations()`` dump the snapshot
    for debugging. They are not authoritative.

Example::

    service = AuthorizationService.from_directory("testdata/repository")
    result = service.verify_path("/v2/library/alpine/manifests/latest")
    if result.allowed:
        ...
"""

import datetime
import logging
import threading
from typing import Any, Dict, List, Mapping, Optional

from tuf_verify.api.pathmatch import normalize_path
from tuf_verify.authz._internal import resolver
from tuf_verify.authz._internal.trusted_snapshot import (
    TrustedSnapshot,
    build_snapshot,
)
from tuf_verify.authz.bundle import MetadataBundle
from tuf_verify.authz.config import AuthorizationConfig
from tuf_verify.authz.result import AuthorizationResult, Decision

logger = logging.getLogger(__name__)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class AuthorizationService:
    """Creates a new ``AuthorizationService`` from trusted metadata bytes.

    Args:
        bundle: Raw metadata bytes by role name. Must contain ``root`` and
            ``targets``.
        config: ``Optional``; ``AuthorizationConfig`` could be used to setup
            delegation traversal limits.

    Raises:
        RepositoryError: Root or top-level targets is invalid.
    """

    def __init__(
        self,
        bundle: Mapping[str, bytes],
        config: Optional[AuthorizationConfig] = None,
    ):
        self.config = config or AuthorizationConfig()
        self._reload_lock = threading.Lock()
        self._snapshot = build_snapshot(bundle, reference_time=_utcnow())

    @classmethod
    def from_directory(
        cls, path: str, config: Optional[AuthorizationConfig] = None
    ) -> "AuthorizationService":
        """Create an ``AuthorizationService`` from a metadata directory.

        Raises:
            OSError: Metadata cannot be read.
            RepositoryError: Root or top-level targets is invalid.
        """
        return cls(MetadataBundle.from_directory(path), config)

    @property
    def snapshot(self) -> TrustedSnapshot:
        """Currently trusted snapshot."""
        return self._snapshot

    def verify_path(
        self, path: str, method: Optional[str] = None
    ) -> AuthorizationResult:
        """Decide whether ``path`` may be served.

        Args:
            path: Request path, with or without leading ``/``.
            method: ``Optional``; HTTP method, only used for logging.

        Returns:
            ``AuthorizationResult`` with decision ``ALLOW``, ``DENY`` or
            ``ERROR``. Unexpected failures never produce ``ALLOW``.
        """
        path = normalize_path(path)
        # Single read: a concurrent reload cannot change the snapshot
        # under this query
        snapshot = self._snapshot
        now = _utcnow()

        try:
            for role in (snapshot.root, snapshot.targets):
                if role.is_expired(now):
                    logger.error(
                        "Trusted %s expired at %s", role.type, role.expires
                    )
                    result = AuthorizationResult(
                        path,
                        Decision.ERROR,
                        reason=f"Trusted {role.type} metadata has expired",
                    )
                    break
            else:
                result = resolver.resolve(
                    snapshot,
                    path,
                    self.config.max_delegation_depth,
                    self.config.max_delegations,
                    now,
                )
        except Exception as e:
            logger.exception("Failed to authorize %s", path)
            result = AuthorizationResult(
                path, Decision.ERROR, reason=f"Internal error: {e}"
            )

        logger.info(
            "%s %s: %s (role %s)",
            method or "-",
            path,
            result.decision.value,
            result.role,
        )
        return result

    def list_allowed_paths(self) -> List[str]:
        """Return all target paths listed by trusted targets metadata."""
        snapshot = self._snapshot
        paths = set()
        for targets in snapshot.values():
            paths.update(targets.targets)
        return sorted(paths)

    def describe_delegations(self) -> Dict[str, List[str]]:
        """Return path patterns by delegated role name.

        Roles delegated more than once are described by their first
        declaration in load order.
        """
        snapshot = self._snapshot
        delegations: Dict[str, List[str]] = {}
        for targets in snapshot.values():
            if targets.delegations is None:
                continue
            for name, role in targets.delegations.roles.items():
                delegations.setdefault(name, list(role.paths))
        return delegations

    def diagnostics(self) -> Dict[str, Any]:
        """Return a JSON-serializable debugging dump of the snapshot."""
        return {
            "allowed_paths": self.list_allowed_paths(),
            "delegations": self.describe_delegations(),
        }

    def reload(self, bundle: Mapping[str, bytes]) -> TrustedSnapshot:
        """Verify ``bundle`` and make it the trusted snapshot.

        The current snapshot is the trust anchor: a new root must be signed
        by it, and no role version may go back. If ``bundle`` has no root,
        the trusted root is reused.

        Raises:
            RepositoryError: Root or top-level targets is invalid. The
                current snapshot stays in place.
        """
        with self._reload_lock:
            new_snapshot = build_snapshot(
                bundle, previous=self._snapshot, reference_time=_utcnow()
            )
            self._snapshot = new_snapshot

        logger.info(
            "Reloaded: root v%d, targets v%d",
            new_snapshot.root.version,
            new_snapshot.targets.version,
        )
        return new_snapshot

    def reload_from_directory(self, path: str) -> TrustedSnapshot:
        """Read metadata from ``path`` and ``reload()`` it.

        Raises:
            OSError: Metadata cannot be read.
            RepositoryError: Root or top-level targets is invalid.
        """
        return self.reload(MetadataBundle.from_directory(path))
