# Copyright the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""Authorization decision types."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class Decision(Enum):
    """Outcome of an authorization query.

    Args:
        ALLOW: A trusted targets role lists the path.
        DENY: No trusted role governing the path lists it.
        ERROR: No decision could be made, callers must not grant access.
    """

    ALLOW = "allow"
    DENY = "deny"
    ERROR = "error"


_HTTP_STATUS = {
    Decision.ALLOW: 200,
    Decision.DENY: 403,
    Decision.ERROR: 500,
}


@dataclass(frozen=True)
class AuthorizationResult:
    """Decision for a single path plus diagnostics about how it was reached.

    Attributes:
        path: Normalized request path.
        decision: ``Decision`` for ``path``.
        role: Role whose targets list ``path``, when allowed.
        visited_roles: Delegated roles visited in order.
        terminated_by: Terminating role that ended the search, if any.
        depth_exceeded: The search was cut short by the depth or delegation
            budget.
        reason: Human readable explanation for ``DENY`` and ``ERROR``.
    """

    path: str
    decision: Decision
    role: Optional[str] = None
    visited_roles: Tuple[str, ...] = field(default_factory=tuple)
    terminated_by: Optional[str] = None
    depth_exceeded: bool = False
    reason: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.decision is Decision.ALLOW

    @property
    def http_status(self) -> int:
        """HTTP status an auth_request hook expects for the decision."""
        return _HTTP_STATUS[self.decision]
