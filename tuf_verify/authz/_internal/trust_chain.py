# Copyright the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""Cryptographic admission of root and targets metadata.

A document is admitted when it is signed by a threshold of the keys its
delegator trusts for it, its version does not go back in time and it has
not expired at the reference time. Checks run in exactly that order, so
the first failing check decides which ``TrustRejectedError`` is raised.

The signed payload is canonicalized from the raw ``signed`` object rather
than from the parsed one: expiry dates written with fractional seconds or
offsets would otherwise not round trip and valid signatures would fail.
"""

import json
import logging
from datetime import datetime
from typing import Dict, Optional, Tuple, Union

from securesystemslib.formats import encode_canonical
from securesystemslib.signer import Signature

from tuf_verify.api import exceptions
from tuf_verify.api.metadata import Root, Targets, parse_root, parse_targets
from tuf_verify.api.serialization import DeserializationError

logger = logging.getLogger(__name__)

Delegator = Union[Root, Targets]


def _signed_payload(data: bytes) -> bytes:
    """Return the canonical bytes of the raw ``signed`` object in ``data``."""
    try:
        signed = json.loads(data.decode("utf-8"))["signed"]
        return encode_canonical(signed).encode("utf-8")
    except Exception as e:
        raise DeserializationError("Failed to canonicalize payload") from e


def _load_root(data: bytes) -> Tuple[Root, bytes, Dict[str, Signature]]:
    md = parse_root(data)
    return md.signed, _signed_payload(data), md.signatures


def _load_targets(data: bytes) -> Tuple[Targets, bytes, Dict[str, Signature]]:
    md = parse_targets(data)
    return md.signed, _signed_payload(data), md.signatures


def admit_root(
    data: bytes,
    previous_root: Optional[Root],
    reference_time: datetime,
) -> Root:
    """Verify and return ``data`` as trusted root metadata.

    A new root must have a higher version than ``previous_root``, with one
    exception: a root of the same version whose content equals
    ``previous_root`` is accepted as unchanged. Reloading a repository where
    only targets metadata changed then succeeds. The same version with
    different content is refused as a rollback.

    Args:
        data: Unverified root metadata as bytes.
        previous_root: Currently trusted root, or None when bootstrapping
            trust. A bootstrap root is only verified by itself: trust in
            it comes from the caller pinning the initial bytes.
        reference_time: Instant the expiry is checked against.

    Raises:
        ParseError: ``data`` is not valid root metadata.
        TrustRejectedError: ``data`` failed admission. The concrete type tells
            which check refused it.
    """
    new_root, payload, signatures = _load_root(data)

    if previous_root is not None:
        # Verify that new root is signed by trusted root
        previous_root.verify_delegate(Root.type, payload, signatures)

    # Verify that new root is signed by itself
    new_root.verify_delegate(Root.type, payload, signatures)

    if previous_root is not None:
        if new_root.version < previous_root.version:
            raise exceptions.BadVersionNumberError(
                f"New root v{new_root.version} is older than trusted "
                f"v{previous_root.version}"
            )
        if new_root.version == previous_root.version:
            if new_root != previous_root:
                raise exceptions.EqualVersionNumberError(
                    f"Root v{new_root.version} content differs from trusted "
                    "root of the same version"
                )
            logger.debug("Root v%d unchanged", new_root.version)

    if new_root.is_expired(reference_time):
        raise exceptions.ExpiredMetadataError(
            f"Root v{new_root.version} expired at {new_root.expires}"
        )

    logger.debug("Admitted root v%d", new_root.version)
    return new_root


def admit_targets(
    data: bytes,
    role_name: str,
    delegator: Delegator,
    trusted_version: Optional[int],
    reference_time: datetime,
) -> Targets:
    """Verify and return ``data`` as trusted metadata for ``role_name``.

    Args:
        data: Unverified targets metadata as bytes.
        role_name: Name of the top-level ``targets`` role or of a delegated
            role.
        delegator: Root for top-level targets, otherwise the trusted targets
            document declaring the delegation to ``role_name``.
        trusted_version: Last version of ``role_name`` seen in the snapshot
            lineage, or None if the role was never loaded.
        reference_time: Instant the expiry is checked against.

    Raises:
        ParseError: ``data`` is not valid targets metadata.
        TrustRejectedError: ``data`` failed admission.
        ValueError: ``delegator`` does not delegate to ``role_name``.
    """
    new_targets, payload, signatures = _load_targets(data)

    delegator.verify_delegate(role_name, payload, signatures)

    version = new_targets.version
    if trusted_version is not None and version < trusted_version:
        raise exceptions.BadVersionNumberError(
            f"{role_name} v{version} is older than trusted v{trusted_version}"
        )

    if new_targets.is_expired(reference_time):
        raise exceptions.ExpiredMetadataError(
            f"{role_name} v{version} expired at {new_targets.expires}"
        )

    logger.debug("Admitted %s v%d", role_name, version)
    return new_targets
