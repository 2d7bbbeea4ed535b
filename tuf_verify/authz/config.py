# Copyright 2021, New York University and the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""Configuration options for ``AuthorizationService`` class."""

from dataclasses import dataclass


@dataclass
class AuthorizationConfig:
    """Used to store ``AuthorizationService`` configuration.

    Args:
        max_delegation_depth: Deepest delegation level consulted. Roles
            delegated by top-level targets are at depth 1.
        max_delegations: Maximum number of delegated roles visited per query.
            Top-level targets counts as one visit. A wide delegation graph
            can use up the budget before a role listing the path is
            reached: the query is then denied with ``depth_exceeded`` set,
            even within ``max_delegation_depth``.
    """

    max_delegation_depth: int = 8
    max_delegations: int = 32

    def __post_init__(self) -> None:
        if self.max_delegation_depth < 1:
            raise ValueError(
                "max_delegation_depth must be >= 1, got "
                f"{self.max_delegation_depth}"
            )
        if self.max_delegations < 1:
            raise ValueError(
                f"max_delegations must be >= 1, got {self.max_delegations}"
            )
