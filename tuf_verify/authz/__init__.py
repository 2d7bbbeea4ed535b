# Copyright the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""TUF delegated path authorization

This package provides ``AuthorizationService``, which decides whether a
request path is listed by the targets role that governs it.
"""

from tuf_verify.authz.bundle import MetadataBundle
from tuf_verify.authz.config import AuthorizationConfig
from tuf_verify.authz.result import AuthorizationResult, Decision
from tuf_verify.authz.service import AuthorizationService

__all__ = [  # noqa: PLE0604
    AuthorizationConfig.__name__,
    AuthorizationResult.__name__,
    AuthorizationService.__name__,
    Decision.__name__,
    MetadataBundle.__name__,
]
