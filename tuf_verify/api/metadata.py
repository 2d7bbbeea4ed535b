# Copyright New York University and the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""The low-level Metadata API.

The ``tuf_verify.api.metadata`` module contains:

* Strict de/serialization of root and targets metadata from and to bytes.
* Access to and modification of signed metadata content.
* Signing metadata and verifying signatures.

A ``Metadata`` object represents a single metadata document and has a
``signed`` attribute that is either a ``Root`` or a ``Targets`` instance.
``Metadata`` can be type constrained: the signed attribute of
``Metadata[Root]`` is known to be ``Root``.

Parsing is strict: unknown fields, wrong JSON types and violated structural
invariants (threshold larger than the key set, key ids that do not resolve,
malformed path patterns) are all rejected with ``ParseError``.
"""

import logging
from typing import Any, Dict, Generic, Optional, Type, cast

from securesystemslib.signer import Signature, Signer

# Expose payload classes via ``tuf_verify.api.metadata``, even if they are
# unused in the local scope.
from tuf_verify.api._payload import (  # noqa: F401
    _ROOT,
    _TARGETS,
    REQUIRED_ROOT_ROLES,
    SPECIFICATION_VERSION,
    TOP_LEVEL_ROLE_NAMES,
    DelegatedRole,
    Delegations,
    Key,
    Role,
    Root,
    Signed,
    T,
    TargetFile,
    Targets,
    VerificationResult,
)
from tuf_verify.api.exceptions import UnsignedMetadataError
from tuf_verify.api.serialization import (
    DeserializationError,
    MetadataDeserializer,
    MetadataSerializer,
)

logger = logging.getLogger(__name__)


class Metadata(Generic[T]):
    """A container for signed TUF metadata.

    Provides methods to convert to and from dictionary and bytes, and to
    create metadata signatures::

        root_md = Metadata[Root].from_bytes(data)
        print(root_md.signed.roles["targets"].threshold)

    New Metadata instances can be created from scratch with::

        one_day = datetime.now(timezone.utc) + timedelta(days=1)
        targets = Metadata(Targets(expires=one_day))

    *All parameters named below are not just constructor arguments but also
    instance attributes.*

    Args:
        signed: Actual metadata payload, i.e. ``Root`` or ``Targets``.
        signatures: Ordered dictionary of keyids to ``Signature`` objects, each
            signing the canonical serialized representation of ``signed``.
            Default is an empty dictionary.
    """

    def __init__(
        self,
        signed: T,
        signatures: Optional[Dict[str, Signature]] = None,
    ):
        self.signed: T = signed
        self.signatures = signatures if signatures is not None else {}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Metadata):
            return False

        return (
            # Order of the signatures matters (see issue #1788).
            list(self.signatures.items()) == list(other.signatures.items())
            and self.signed == other.signed
        )

    @property
    def signed_bytes(self) -> bytes:
        """Default canonical json byte representation of ``self.signed``."""

        # Use local scope import to avoid circular import errors
        from tuf_verify.api.serialization.json import CanonicalJSONSerializer

        return CanonicalJSONSerializer().serialize(self.signed)

    @classmethod
    def from_dict(cls, metadata: Dict[str, Any]) -> "Metadata[T]":
        """Create ``Metadata`` object from its json/dict representation.

        A keyid that signed more than once contributes only its first
        signature.

        Args:
            metadata: TUF metadata in dict representation.

        Raises:
            ValueError, KeyError, TypeError: Invalid arguments.

        Side Effect:
            Destroys the metadata dict passed by reference.

        Returns:
            TUF ``Metadata`` object.
        """

        # Dispatch to contained metadata class on metadata _type field.
        signed_dict = metadata.pop("signed")
        if not isinstance(signed_dict, dict):
            raise TypeError("signed must be an object")
        _type = signed_dict["_type"]

        if _type == _TARGETS:
            inner_cls: Type[Signed] = Targets
        elif _type == _ROOT:
            inner_cls = Root
        else:
            raise ValueError(f'unrecognized metadata type "{_type}"')

        sig_list = metadata.pop("signatures")
        if not isinstance(sig_list, list):
            raise TypeError("signatures must be a list")

        signatures: Dict[str, Signature] = {}
        for sig_dict in sig_list:
            if not isinstance(sig_dict, dict):
                raise TypeError("signature must be an object")
            sig = Signature.from_dict(sig_dict)
            if sig.unrecognized_fields:
                raise ValueError(
                    f"Unrecognized fields in signature {sig.keyid}: "
                    f"{sorted(sig.unrecognized_fields)}"
                )
            if sig.keyid in signatures:
                logger.info("Ignoring repeated signature by %s", sig.keyid)
                continue
            signatures[sig.keyid] = sig

        if metadata:
            raise ValueError(
                f"Unrecognized fields in metadata: {sorted(metadata)}"
            )

        return cls(
            # Specific type T is not known at static type check time: use cast
            signed=cast(T, inner_cls.from_dict(signed_dict)),
            signatures=signatures,
        )

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        deserializer: Optional[MetadataDeserializer] = None,
    ) -> "Metadata[T]":
        """Load TUF metadata from raw data.

        Args:
            data: Metadata content.
            deserializer: ``MetadataDeserializer`` implementation to use.
                Default is ``JSONDeserializer``.

        Raises:
            tuf_verify.api.serialization.DeserializationError:
                The data cannot be deserialized.

        Returns:
            TUF ``Metadata`` object.
        """

        if deserializer is None:
            # Use local scope import to avoid circular import errors
            from tuf_verify.api.serialization.json import JSONDeserializer

            deserializer = JSONDeserializer()

        return deserializer.deserialize(data)

    def to_bytes(
        self, serializer: Optional[MetadataSerializer] = None
    ) -> bytes:
        """Return the serialized TUF file format as bytes.

        Args:
            serializer: ``MetadataSerializer`` instance that implements the
                desired serialization format. Default is ``JSONSerializer``.

        Raises:
            tuf_verify.api.serialization.SerializationError:
                The metadata object cannot be serialized.
        """

        if serializer is None:
            # Use local scope import to avoid circular import errors
            from tuf_verify.api.serialization.json import JSONSerializer

            serializer = JSONSerializer(compact=True)

        return serializer.serialize(self)

    def to_dict(self) -> Dict[str, Any]:
        """Return the dict representation of self."""

        signatures = [sig.to_dict() for sig in self.signatures.values()]

        return {
            "signatures": signatures,
            "signed": self.signed.to_dict(),
        }

    # Signatures.
    def sign(self, signer: Signer, append: bool = False) -> Signature:
        """Create signature over ``signed`` and assigns it to ``signatures``.

        Args:
            signer: A ``securesystemslib.signer.Signer`` object that provides a
                signing implementation to generate the signature.
            append: ``True`` if the signature should be appended to
                the list of signatures or replace any existing signatures. The
                default behavior is to replace signatures.

        Raises:
            tuf_verify.api.serialization.SerializationError:
                ``signed`` cannot be serialized.
            UnsignedMetadataError: Signing errors.

        Returns:
            ``securesystemslib.signer.Signature`` object that was added into
            signatures.
        """

        try:
            signature = signer.sign(self.signed_bytes)
        except Exception as e:
            raise UnsignedMetadataError(f"Failed to sign: {e}") from e

        if not append:
            self.signatures.clear()

        self.signatures[signature.keyid] = signature

        return signature


def _parse(data: bytes, expected: Type[Signed]) -> Metadata:
    md: Metadata = Metadata.from_bytes(data)
    if not isinstance(md.signed, expected):
        raise DeserializationError(
            f"Expected {expected.type} metadata, got {md.signed.type}"
        )
    return md


def parse_root(data: bytes) -> Metadata[Root]:
    """Parse root metadata bytes.

    Raises:
        tuf_verify.api.serialization.DeserializationError: ``data`` is not
            structurally valid root metadata.
    """
    return _parse(data, Root)


def parse_targets(data: bytes) -> Metadata[Targets]:
    """Parse top-level or delegated targets metadata bytes.

    Raises:
        tuf_verify.api.serialization.DeserializationError: ``data`` is not
            structurally valid targets metadata.
    """
    return _parse(data, Targets)
