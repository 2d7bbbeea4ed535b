# Copyright New York University and the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""Public API for ``tuf_verify.api``."""

from .exceptions import (
    BadVersionNumberError,
    EqualVersionNumberError,
    ExpiredMetadataError,
    ParseError,
    RejectionReason,
    RepositoryError,
    SerializationError,
    TrustRejectedError,
    UnknownKeyError,
    UnsignedMetadataError,
)
from .metadata import (
    SPECIFICATION_VERSION,
    TOP_LEVEL_ROLE_NAMES,
    DelegatedRole,
    Delegations,
    Key,
    Metadata,
    Role,
    Root,
    Signed,
    TargetFile,
    Targets,
    parse_root,
    parse_targets,
)

__all__ = [
    "SPECIFICATION_VERSION",
    "TOP_LEVEL_ROLE_NAMES",
    BadVersionNumberError.__name__,
    DelegatedRole.__name__,
    Delegations.__name__,
    EqualVersionNumberError.__name__,
    ExpiredMetadataError.__name__,
    Key.__name__,
    Metadata.__name__,
    ParseError.__name__,
    RejectionReason.__name__,
    RepositoryError.__name__,
    Role.__name__,
    Root.__name__,
    SerializationError.__name__,
    Signed.__name__,
    TargetFile.__name__,
    Targets.__name__,
    TrustRejectedError.__name__,
    UnknownKeyError.__name__,
    UnsignedMetadataError.__name__,
    parse_root.__name__,
    parse_targets.__name__,
]
