# Copyright New York University and the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""
Define exceptions used by the metadata API and the authorization engine.
The names chosen for Exception classes should end in 'Error' except where
there is a good reason not to, and provide that reason in those cases.
"""

from enum import Enum
from typing import ClassVar


class RejectionReason(Enum):
    """Reason a document was refused by trust chain validation."""

    INSUFFICIENT_SIGNATURES = "InsufficientSignatures"
    VERSION_ROLLBACK = "VersionRollback"
    EXPIRED = "Expired"
    UNKNOWN_KEY = "UnknownKey"


#### Repository errors ####


class RepositoryError(Exception):
    """An error with a repository's state, such as a missing file.

    It covers all exceptions that come from the repository side when
    looking from the perspective of users of metadata API or the
    authorization service.
    """


class ParseError(RepositoryError):
    """Metadata is malformed or structurally invalid."""


class SerializationError(RepositoryError):
    """Error during serialization."""


class TrustRejectedError(RepositoryError):
    """Metadata parsed fine but failed cryptographic admission.

    ``reason`` tells which check refused the document.
    """

    reason: ClassVar[RejectionReason]


class UnsignedMetadataError(TrustRejectedError):
    """An error about metadata object with insufficient threshold of
    signatures.
    """

    reason = RejectionReason.INSUFFICIENT_SIGNATURES


class UnknownKeyError(TrustRejectedError):
    """Metadata is signed, but by none of the keys trusted for the role."""

    reason = RejectionReason.UNKNOWN_KEY


class BadVersionNumberError(TrustRejectedError):
    """An error for metadata that contains an invalid version number."""

    reason = RejectionReason.VERSION_ROLLBACK


class EqualVersionNumberError(BadVersionNumberError):
    """An error for metadata containing a previously verified version number
    with different content.
    """


class ExpiredMetadataError(TrustRejectedError):
    """Indicate that a TUF Metadata file has expired."""

    reason = RejectionReason.EXPIRED
