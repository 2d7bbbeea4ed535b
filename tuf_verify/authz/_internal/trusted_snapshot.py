# Copyright the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""Immutable collection of verified root and targets metadata.

``TrustedSnapshot`` is built once per (re)load from raw metadata bytes and is
never modified afterwards. Loaded targets metadata can be accessed via index
access with rolename as key (``snapshot["registry-library"]``) and top-level
metadata via the helper properties (``snapshot.root``, ``snapshot.targets``).

Signatures are verified and discarded upon inclusion into the snapshot.

The rules ``build_snapshot`` follows:
 * Root and top-level targets must load and verify, otherwise the build fails
   and the caller keeps whatever it trusted before.
 * Delegated targets are loaded in preorder depth-first order of the
   delegation graph and verified against every delegator that reaches them.
   A document is only trusted along the delegations whose keys signed it
   (see ``is_admitted()``).
 * A delegated document that is missing, malformed or refused by all of its
   delegators is left out of the snapshot. The reason is logged
   and kept in ``rejected``.
 * Versions never go back: the last-seen version of every role is carried
   from one snapshot to the next, even for roles that failed to load.

Example of bootstrapping and reloading:

>>> snapshot = build_snapshot(bundle)
>>> try:
>>>     snapshot = build_snapshot(new_bundle, previous=snapshot)
>>> except RepositoryError:
>>>     pass # keep the old snapshot
"""

import datetime
import logging
from collections import abc
from types import MappingProxyType
from typing import (
    AbstractSet,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Set,
    Tuple,
)

from tuf_verify.api import exceptions
from tuf_verify.api.metadata import Root, Targets
from tuf_verify.authz._internal import trust_chain

logger = logging.getLogger(__name__)

MISSING = "Missing"


class TrustedSnapshot(abc.Mapping):
    """Verified root, top-level targets and delegated targets metadata.

    *All parameters named below are not just constructor arguments but also
    read-only attributes.*

    Args:
        root: Trusted root.
        targets: Trusted top-level targets.
        delegated: Trusted delegated targets by role name.
        admitted: Names of the delegators whose keys for a role signed its
            document, by role name.
        versions: Last-seen version per role name.
        rejected: Why a reachable delegated document was left out, by role
            name.
        reference_time: Instant the snapshot was verified at.
    """

    def __init__(
        self,
        root: Root,
        targets: Targets,
        delegated: Dict[str, Targets],
        admitted: Mapping[str, AbstractSet[str]],
        versions: Dict[str, int],
        rejected: Dict[str, str],
        reference_time: datetime.datetime,
    ):
        self._root = root
        self._trusted_set: Dict[str, Targets] = {Targets.type: targets}
        self._trusted_set.update(delegated)
        self._admitted = MappingProxyType(
            {role: frozenset(names) for role, names in admitted.items()}
        )
        self._versions = MappingProxyType(dict(versions))
        self._rejected = MappingProxyType(dict(rejected))
        self._reference_time = reference_time

    def __getitem__(self, role: str) -> Targets:
        """Return current ``Targets`` for ``role``."""
        return self._trusted_set[role]

    def __len__(self) -> int:
        """Return number of ``Targets`` objects in ``TrustedSnapshot``."""
        return len(self._trusted_set)

    def __iter__(self) -> Iterator[str]:
        """Return iterator over role names in load order."""
        return iter(self._trusted_set)

    def is_admitted(self, role: str, delegator: Optional[str]) -> bool:
        """Return True if ``role`` may be trusted when reached from
        ``delegator``.

        Top-level targets is always trusted. A delegated document is only
        trusted along delegations whose keys signed it: a document signed
        for one delegator must not gain the paths another delegator hands
        out to a role of the same name.
        """
        if role == Targets.type:
            return True
        return delegator in self._admitted.get(role, frozenset())

    @property
    def root(self) -> Root:
        """Get trusted root."""
        return self._root

    @property
    def targets(self) -> Targets:
        """Get trusted top-level targets."""
        return self._trusted_set[Targets.type]

    @property
    def admitted(self) -> Mapping[str, AbstractSet[str]]:
        return self._admitted

    @property
    def versions(self) -> Mapping[str, int]:
        return self._versions

    @property
    def rejected(self) -> Mapping[str, str]:
        return self._rejected

    @property
    def reference_time(self) -> datetime.datetime:
        return self._reference_time


def build_snapshot(
    bundle: Mapping[str, bytes],
    previous: Optional[TrustedSnapshot] = None,
    reference_time: Optional[datetime.datetime] = None,
) -> TrustedSnapshot:
    """Verify ``bundle`` and return it as a new ``TrustedSnapshot``.

    Args:
        bundle: Raw metadata bytes by role name.
        previous: Currently trusted snapshot, the trust anchor for the new
            one. None when bootstrapping.
        reference_time: Instant expiry is checked against. Default is the
            current UTC time.

    Raises:
        ParseError: Root or top-level targets is missing or malformed.
        TrustRejectedError: Root or top-level targets failed admission.
    """
    if reference_time is None:
        reference_time = datetime.datetime.now(datetime.timezone.utc)

    previous_root = previous.root if previous is not None else None
    versions: Dict[str, int] = dict(previous.versions) if previous else {}

    root_data = bundle.get(Root.type)
    if root_data is not None:
        root = trust_chain.admit_root(root_data, previous_root, reference_time)
    elif previous_root is not None:
        logger.debug("No new root, reusing trusted v%d", previous_root.version)
        root = previous_root
        if root.is_expired(reference_time):
            raise exceptions.ExpiredMetadataError(
                f"Trusted root v{root.version} expired at {root.expires}"
            )
    else:
        raise exceptions.ParseError("Root metadata is required")
    versions[Root.type] = root.version

    targets_data = bundle.get(Targets.type)
    if targets_data is None:
        raise exceptions.ParseError("Top-level targets metadata is required")
    targets = trust_chain.admit_targets(
        targets_data,
        Targets.type,
        root,
        versions.get(Targets.type),
        reference_time,
    )
    versions[Targets.type] = targets.version

    delegated, admitted, rejected = _load_delegated(
        bundle, targets, versions, reference_time
    )

    logger.info(
        "Verified root v%d, targets v%d and %d delegated roles",
        root.version,
        targets.version,
        len(delegated),
    )
    return TrustedSnapshot(
        root,
        targets,
        delegated,
        admitted,
        versions,
        rejected,
        reference_time,
    )


def _load_delegated(
    bundle: Mapping[str, bytes],
    top_level: Targets,
    versions: Dict[str, int],
    reference_time: datetime.datetime,
) -> Tuple[Dict[str, Targets], Dict[str, Set[str]], Dict[str, str]]:
    """Load every delegated document reachable from ``top_level``.

    Every delegation naming a role verifies the role's document with its own
    keys. The document is parsed and kept once, together with the names of
    the delegators that admitted it. ``versions`` is updated in place with
    the versions of loaded roles.
    """
    delegated: Dict[str, Targets] = {}
    admitted: Dict[str, Set[str]] = {}
    rejected: Dict[str, str] = {}
    # (role name, delegator name) of every delegation already checked
    seen: Set[Tuple[str, str]] = set()

    def _children(
        delegator_name: str, delegator: Targets
    ) -> List[Tuple[str, str, Targets]]:
        if delegator.delegations is None:
            return []
        # Reverse so that roles are popped in order of appearance
        return [
            (name, delegator_name, delegator)
            for name in reversed(list(delegator.delegations.roles))
        ]

    to_load = _children(Targets.type, top_level)
    while to_load:
        role_name, delegator_name, delegator = to_load.pop(-1)
        if (role_name, delegator_name) in seen:
            logger.debug(
                "Skipping checked delegation %s -> %s",
                delegator_name,
                role_name,
            )
            continue
        seen.add((role_name, delegator_name))

        data = bundle.get(role_name)
        if data is None:
            if role_name not in rejected:
                logger.warning("No metadata for delegated role %s", role_name)
                rejected[role_name] = MISSING
            continue

        try:
            new_delegate = trust_chain.admit_targets(
                data,
                role_name,
                delegator,
                versions.get(role_name),
                reference_time,
            )
        except exceptions.TrustRejectedError as e:
            logger.warning(
                "%s refused %s: %s (%s)",
                delegator_name,
                role_name,
                e,
                e.reason.value,
            )
            if role_name not in delegated:
                rejected.setdefault(role_name, e.reason.value)
            continue
        except exceptions.ParseError as e:
            logger.warning("Failed to parse %s: %s", role_name, e)
            rejected.setdefault(role_name, type(e).__name__)
            continue

        admitted.setdefault(role_name, set()).add(delegator_name)
        if role_name in delegated:
            logger.debug("%s also admitted by %s", role_name, delegator_name)
            continue

        rejected.pop(role_name, None)
        delegated[role_name] = new_delegate
        versions[role_name] = new_delegate.version
        logger.debug("Loaded %s v%d", role_name, new_delegate.version)
        to_load.extend(_children(role_name, new_delegate))

    return delegated, admitted, rejected
