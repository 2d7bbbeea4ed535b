# Copyright the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""Delegation graph resolution for a single request path."""

import datetime
import logging
from typing import List, Optional, Set, Tuple

from tuf_verify.api.metadata import Targets
from tuf_verify.authz._internal.trusted_snapshot import TrustedSnapshot
from tuf_verify.authz.result import AuthorizationResult, Decision

logger = logging.getLogger(__name__)


def _trusted_targets(
    snapshot: TrustedSnapshot,
    role_name: str,
    delegator: Optional[str],
    reference_time: datetime.datetime,
) -> Optional[Targets]:
    """Return the usable document for ``role_name`` reached from
    ``delegator`` or None.

    Absent, refused and since-expired documents are all unusable, as is a
    document that the keys of ``delegator`` did not sign.
    """
    targets = snapshot.get(role_name)
    if targets is None:
        logger.debug("No trusted metadata for %s", role_name)
        return None
    if not snapshot.is_admitted(role_name, delegator):
        logger.info(
            "%s is not signed by the keys %s delegates it to",
            role_name,
            delegator,
        )
        return None
    if targets.is_expired(reference_time):
        logger.info("%s has expired since loading", role_name)
        return None
    return targets


def resolve(
    snapshot: TrustedSnapshot,
    path: str,
    max_depth: int = 8,
    max_delegations: int = 32,
    reference_time: Optional[datetime.datetime] = None,
) -> AuthorizationResult:
    """Decide whether ``path`` is listed by the role that governs it.

    Interrogates the tree of target delegations in order of appearance
    (which implicitly orders trustworthiness): top-level targets first, then
    every role whose path patterns match, depth first. A matching
    terminating role is the last branch searched. A delegated document is
    only consulted through delegations whose keys signed it.

    Args:
        snapshot: Trusted metadata to resolve against.
        path: Normalized (absolute) request path.
        max_depth: Deepest delegation level consulted. Reaching a matching
            role below it denies the request.
        max_delegations: Maximum number of delegated roles visited. A wide
            graph can run out of visits before reaching a role that lists
            ``path``: the request is then denied.
        reference_time: Instant delegated documents must not have expired
            at. Default is the current UTC time.
    """
    if reference_time is None:
        reference_time = datetime.datetime.now(datetime.timezone.utc)

    # Stack of (role name, depth, terminating, delegator name). Top-level
    # targets is depth 0 and has no delegator.
    delegations_to_visit: List[Tuple[str, int, bool, Optional[str]]] = [
        (Targets.type, 0, False, None)
    ]
    visited_role_names: Set[str] = set()
    visited_order: List[str] = []
    terminated_by: Optional[str] = None

    def _result(
        decision: Decision,
        role: Optional[str] = None,
        depth_exceeded: bool = False,
        reason: Optional[str] = None,
    ) -> AuthorizationResult:
        return AuthorizationResult(
            path,
            decision,
            role=role,
            visited_roles=tuple(visited_order),
            terminated_by=terminated_by,
            depth_exceeded=depth_exceeded,
            reason=reason,
        )

    # Preorder depth-first traversal of the graph of target delegations.
    while (
        len(visited_role_names) <= max_delegations
        and len(delegations_to_visit) > 0
    ):
        entry = delegations_to_visit.pop(-1)
        role_name, depth, terminating, delegator = entry

        # Skip any visited current role to prevent cycles.
        if role_name in visited_role_names:
            logger.debug("Skipping visited current role %s", role_name)
            continue

        if depth > max_depth:
            logger.warning(
                "%s matches %s at depth %d, deeper than allowed %d",
                role_name,
                path,
                depth,
                max_depth,
            )
            return _result(
                Decision.DENY,
                depth_exceeded=True,
                reason=f"Delegation depth {max_depth} exceeded",
            )

        if terminating:
            terminated_by = role_name
        if role_name != Targets.type:
            visited_order.append(role_name)

        targets = _trusted_targets(
            snapshot, role_name, delegator, reference_time
        )

        if targets is not None and path in targets.targets:
            logger.debug("Found %s in role %s", path, role_name)
            return _result(Decision.ALLOW, role=role_name)

        # After preorder check, add current role to set of visited roles.
        # A document not signed for this delegation can still be reached
        # through a delegation that did sign it.
        if role_name not in snapshot or snapshot.is_admitted(
            role_name, delegator
        ):
            visited_role_names.add(role_name)

        if targets is not None and targets.delegations is not None:
            child_roles_to_visit = []
            for child in targets.delegations.get_roles_for_target(path):
                logger.debug("Adding child role %s", child.name)
                child_roles_to_visit.append(
                    (child.name, depth + 1, child.terminating, role_name)
                )
                if child.terminating:
                    logger.debug("Not backtracking to other roles")
                    delegations_to_visit = []
                    break
            # Push 'child_roles_to_visit' in reverse order of appearance
            # onto 'delegations_to_visit'. Roles are popped from the end of
            # the list.
            child_roles_to_visit.reverse()
            delegations_to_visit.extend(child_roles_to_visit)

    if len(delegations_to_visit) > 0:
        logger.warning(
            "%d roles left to visit for %s, but allowed at most %d "
            "delegations",
            len(delegations_to_visit),
            path,
            max_delegations,
        )
        return _result(
            Decision.DENY,
            depth_exceeded=True,
            reason=f"Delegation budget {max_delegations} exhausted",
        )

    return _result(Decision.DENY, reason="Path not listed by governing role")
