# Copyright the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0


"""Helper classes for low-level Metadata API."""

import abc
import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import (
    Any,
    ClassVar,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    TypeVar,
)

import iso8601
from securesystemslib import exceptions as sslib_exceptions
from securesystemslib.signer import Key, Signature

from tuf_verify.api.exceptions import UnknownKeyError, UnsignedMetadataError
from tuf_verify.api.pathmatch import match_any, validate_pattern

_ROOT = "root"
_SNAPSHOT = "snapshot"
_TARGETS = "targets"
_TIMESTAMP = "timestamp"

# We aim to support SPECIFICATION_VERSION and require the input metadata
# files to have the same major version (the first number) as ours.
SPECIFICATION_VERSION = ["1", "0", "31"]
TOP_LEVEL_ROLE_NAMES = {_ROOT, _TIMESTAMP, _SNAPSHOT, _TARGETS}
# Roles every root must define: the authorization engine only consults these
REQUIRED_ROOT_ROLES = {_ROOT, _TARGETS}

# Legacy key field still written by some repository tools
_TOLERATED_KEY_FIELDS = {"keyid_hash_algorithms"}

logger = logging.getLogger(__name__)

# T is a Generic type constraint for container payloads
T = TypeVar("T", "Root", "Targets")


def _check_int(value: Any, name: str, minimum: int) -> int:  # noqa: ANN401
    # bool is an int subclass but never a valid count or version
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _check_dict(value: Any, name: str) -> Dict[str, Any]:  # noqa: ANN401
    if not isinstance(value, dict):
        raise TypeError(f"{name} must be an object, got {type(value).__name__}")
    return value


def _reject_unrecognized(fields: Mapping[str, Any], context: str) -> None:
    """Raise if any field was left unconsumed by a ``from_dict``."""
    if fields:
        raise ValueError(f"Unrecognized fields in {context}: {sorted(fields)}")


def _keys_from_dict(keys_dict: Any) -> Dict[str, Key]:  # noqa: ANN401
    """Deserialize a keyid to key dict, rejecting unknown key fields."""
    keys: Dict[str, Key] = {}
    for keyid, key_dict in _check_dict(keys_dict, "keys").items():
        key = Key.from_dict(keyid, _check_dict(key_dict, f"key {keyid}"))
        unknown = set(key.unrecognized_fields) - _TOLERATED_KEY_FIELDS
        if unknown:
            raise ValueError(f"Unrecognized fields in key {keyid}: {unknown}")
        keys[keyid] = key
    return keys


def _validate_role_keys(
    keys: Dict[str, Key], roles: Mapping[str, "Role"]
) -> None:
    """Check that thresholds are reachable and all keyids resolve."""
    for name, role in roles.items():
        if role.threshold > len(role.keyids):
            raise ValueError(
                f"Role {name} threshold {role.threshold} exceeds its "
                f"{len(role.keyids)} keys"
            )
        missing = [keyid for keyid in role.keyids if keyid not in keys]
        if missing:
            raise ValueError(f"Role {name} uses unknown keyids {missing}")


class Signed(metaclass=abc.ABCMeta):
    """A base class for the signed part of TUF metadata.

    Objects with base class Signed are usually included in a ``Metadata`` object
    on the signed attribute. This class provides attributes and methods that
    are common for all TUF metadata types (roles).

    *All parameters named below are not just constructor arguments but also
    instance attributes.*

    Args:
        version: Metadata version number. If None, then 1 is assigned.
        spec_version: Supported TUF specification version. If None, then the
            version currently supported by the library is assigned.
        expires: Metadata expiry date in UTC timezone. If None, then current
            date and time is assigned.

    Raises:
        ValueError, TypeError: Invalid arguments.
    """

    # type is required for static reference without changing the API
    type: ClassVar[str] = "signed"

    # _type and type are identical: 1st replicates file format, 2nd passes lint
    @property
    def _type(self) -> str:
        return self.type

    @property
    def expires(self) -> datetime:
        """Get the metadata expiry date."""
        return self._expires

    @expires.setter
    def expires(self, value: datetime) -> None:
        """Set the metadata expiry date.

        # Use 'datetime' module to e.g. expire in seven days from now
        obj.expires = now(timezone.utc) + timedelta(days=7)
        """
        self._expires = value.replace(microsecond=0)
        if self._expires.tzinfo is None:
            # Naive datetime: just make it UTC
            self._expires = self._expires.replace(tzinfo=timezone.utc)
        elif self._expires.utcoffset() != timezone.utc.utcoffset(None):
            raise ValueError(f"Expected tz UTC, not {self._expires.tzinfo}")

    def __init__(
        self,
        version: Optional[int],
        spec_version: Optional[str],
        expires: Optional[datetime],
    ):
        if spec_version is None:
            spec_version = ".".join(SPECIFICATION_VERSION)
        if not isinstance(spec_version, str):
            raise TypeError(f"spec_version must be a string: {spec_version!r}")
        # Accept semver (X.Y.Z) but also X.Y for legacy compatibility
        spec_list = spec_version.split(".")
        if len(spec_list) not in [2, 3] or not all(
            el.isdigit() for el in spec_list
        ):
            raise ValueError(f"Failed to parse spec_version {spec_version}")

        # major version must match
        if spec_list[0] != SPECIFICATION_VERSION[0]:
            raise ValueError(f"Unsupported spec_version {spec_version}")

        self.spec_version = spec_version

        self.expires = expires or datetime.now(timezone.utc)

        if version is None:
            version = 1
        self.version = _check_int(version, "version", 1)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Signed):
            return False

        return (
            self.type == other.type
            and self.version == other.version
            and self.spec_version == other.spec_version
            and self.expires == other.expires
        )

    @abc.abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Serialize and return a dict representation of self."""
        raise NotImplementedError

    @classmethod
    @abc.abstractmethod
    def from_dict(cls, signed_dict: Dict[str, Any]) -> "Signed":
        """Deserialization helper, creates object from json/dict
        representation.
        """
        raise NotImplementedError

    @classmethod
    def _common_fields_from_dict(
        cls, signed_dict: Dict[str, Any]
    ) -> Tuple[int, str, datetime]:
        """Return common fields of ``Signed`` instances from the passed dict
        representation, and returns an ordered list to be passed as leading
        positional arguments to a subclass constructor.

        See ``{Root, Targets}.from_dict`` methods for usage.

        """
        _type = signed_dict.pop("_type")
        if _type != cls.type:
            raise ValueError(f"Expected type {cls.type}, got {_type}")

        version = signed_dict.pop("version")
        spec_version = signed_dict.pop("spec_version")
        expires_str = signed_dict.pop("expires")
        if not isinstance(expires_str, str):
            raise TypeError(f"expires must be a string, got {expires_str!r}")
        # Other TUF implementations write RFC 3339 with fractional seconds
        # or offsets: normalize to UTC. The inverse operation is implemented
        # in '_common_fields_to_dict'.
        expires = iso8601.parse_date(expires_str).astimezone(timezone.utc)

        return version, spec_version, expires

    def _common_fields_to_dict(self) -> Dict[str, Any]:
        """Return a dict representation of common fields of
        ``Signed`` instances.

        See ``{Root, Targets}.to_dict`` methods for usage.

        """
        return {
            "_type": self._type,
            "version": self.version,
            "spec_version": self.spec_version,
            "expires": self.expires.strftime("%Y-%m-%dT%H:%M:%SZ"),
        }

    def is_expired(self, reference_time: Optional[datetime] = None) -> bool:
        """Check metadata expiration against a reference time.

        Args:
            reference_time: Time to check expiration date against. A naive
                datetime in UTC expected. Default is current UTC date and time.

        Returns:
            ``True`` if expiration time is less than or equal to the
            reference time.
        """
        if reference_time is None:
            reference_time = datetime.now(timezone.utc)

        return reference_time >= self.expires


class Role:
    """Container that defines which keys are required to sign roles metadata.

    Role defines how many keys are required to successfully sign the roles
    metadata, and which keys are accepted.

    *All parameters named below are not just constructor arguments but also
    instance attributes.*

    Args:
        keyids: Roles signing key identifiers.
        threshold: Number of keys required to sign this role's metadata.

    Raises:
        ValueError, TypeError: Invalid arguments.
    """

    def __init__(self, keyids: List[str], threshold: int):
        if not isinstance(keyids, list) or any(
            not isinstance(keyid, str) for keyid in keyids
        ):
            raise TypeError(f"keyids must be a list of strings: {keyids!r}")
        if len(set(keyids)) != len(keyids):
            raise ValueError(f"Nonunique keyids: {keyids}")
        self.keyids = keyids
        self.threshold = _check_int(threshold, "threshold", 1)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return False

        return self.keyids == other.keyids and self.threshold == other.threshold

    @classmethod
    def from_dict(cls, role_dict: Dict[str, Any]) -> "Role":
        """Create ``Role`` object from its json/dict representation.

        Raises:
            ValueError, KeyError, TypeError: Invalid arguments.
        """
        keyids = role_dict.pop("keyids")
        threshold = role_dict.pop("threshold")
        _reject_unrecognized(role_dict, "role")
        return cls(keyids, threshold)

    def to_dict(self) -> Dict[str, Any]:
        """Return the dictionary representation of self."""
        return {
            "keyids": self.keyids,
            "threshold": self.threshold,
        }


@dataclass
class VerificationResult:
    """Signature verification result for delegated role metadata.

    Attributes:
        threshold: Number of required signatures.
        signed: dict of keyid to Key, containing keys that have signed.
        unsigned: dict of keyid to Key, containing keys that have not signed.
        unknown: keyids of signatures made by keys the role does not trust.
    """

    threshold: int
    signed: Dict[str, Key]
    unsigned: Dict[str, Key]
    unknown: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.verified

    @property
    def verified(self) -> bool:
        """True if threshold of signatures is met."""
        return len(self.signed) >= self.threshold

    @property
    def missing(self) -> int:
        """Number of additional signatures required to reach threshold."""
        return max(0, self.threshold - len(self.signed))


class _DelegatorMixin(metaclass=abc.ABCMeta):
    """Class that implements verify_delegate() for Root and Targets"""

    @abc.abstractmethod
    def get_delegated_role(self, delegated_role: str) -> Role:
        """Return the role object for the given delegated role.

        Raises ValueError if delegated_role is not actually delegated.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def get_key(self, keyid: str) -> Key:
        """Return the key object for the given keyid.

        Raises ValueError if key is not found.
        """
        raise NotImplementedError

    def get_verification_result(
        self,
        delegated_role: str,
        payload: bytes,
        signatures: Dict[str, Signature],
    ) -> VerificationResult:
        """Return signature threshold verification result for delegated role.

        Every keyid counts at most once, however many signatures it made.

        NOTE: Unlike `verify_delegate()` this method does not raise, if the
        role metadata is not fully verified.

        Args:
            delegated_role: Name of the delegated role to verify
            payload: Signed payload bytes for the delegated role
            signatures: Signatures over payload bytes

        Raises:
            ValueError: no delegation was found for ``delegated_role``.
        """
        role = self.get_delegated_role(delegated_role)

        signed = {}
        unsigned = {}

        for keyid in role.keyids:
            try:
                key = self.get_key(keyid)
            except ValueError:
                logger.info("No key for keyid %s", keyid)
                continue

            if keyid not in signatures:
                unsigned[keyid] = key
                logger.debug("No signature for keyid %s", keyid)
                continue

            sig = signatures[keyid]
            try:
                key.verify_signature(sig, payload)
                signed[keyid] = key
            except sslib_exceptions.UnverifiedSignatureError:
                unsigned[keyid] = key
                logger.info("Key %s failed to verify %s", keyid, delegated_role)

        unknown = [keyid for keyid in signatures if keyid not in role.keyids]

        return VerificationResult(role.threshold, signed, unsigned, unknown)

    def verify_delegate(
        self,
        delegated_role: str,
        payload: bytes,
        signatures: Dict[str, Signature],
    ) -> VerificationResult:
        """Verify signature threshold for delegated role.

        Verify that there are enough valid ``signatures`` over ``payload``, to
        meet the threshold of keys for ``delegated_role``, as defined by the
        delegator (``self``).

        Args:
            delegated_role: Name of the delegated role to verify
            payload: Signed payload bytes for the delegated role
            signatures: Signatures over payload bytes

        Raises:
            UnknownKeyError: all signatures were made by keys that
                ``delegated_role`` does not trust.
            UnsignedMetadataError: ``delegated_role`` was not signed with
                required threshold of keys for ``role_name``.
            ValueError: no delegation was found for ``delegated_role``.
        """
        result = self.get_verification_result(
            delegated_role, payload, signatures
        )
        if not result:
            if signatures and len(result.unknown) == len(signatures):
                raise UnknownKeyError(
                    f"{delegated_role} is only signed by untrusted keys "
                    f"{result.unknown}"
                )
            raise UnsignedMetadataError(
                f"{delegated_role} was signed by {len(result.signed)}/"
                f"{result.threshold} keys"
            )

        return result


class Root(Signed, _DelegatorMixin):
    """A container for the signed part of root metadata.

    Parameters listed below are also instance attributes.

    Args:
        version: Metadata version number. Default is 1.
        spec_version: Supported TUF specification version. Default is the
            version currently supported by the library.
        expires: Metadata expiry date. Default is current date and time.
        keys: Dictionary of keyids to Keys. Defines the keys used in ``roles``.
            Default is empty dictionary.
        roles: Dictionary of role names to Roles. Defines which keys are
            required to sign the metadata for a specific role. Must contain
            the ``root`` and ``targets`` roles and no other names than the
            top-level roles. Default is ``root`` and ``targets`` roles without
            keys and threshold of 1.
        consistent_snapshot: Accepted for format compatibility only.

    Raises:
        ValueError: Invalid arguments.
    """

    type = _ROOT

    def __init__(
        self,
        version: Optional[int] = None,
        spec_version: Optional[str] = None,
        expires: Optional[datetime] = None,
        keys: Optional[Dict[str, Key]] = None,
        roles: Optional[Dict[str, Role]] = None,
        consistent_snapshot: Optional[bool] = None,
    ):
        super().__init__(version, spec_version, expires)
        if consistent_snapshot is not None and not isinstance(
            consistent_snapshot, bool
        ):
            raise TypeError("consistent_snapshot must be a boolean")
        self.consistent_snapshot = consistent_snapshot
        self.keys = keys if keys is not None else {}

        if roles is None:
            roles = {r: Role([], 1) for r in sorted(REQUIRED_ROOT_ROLES)}
        elif not REQUIRED_ROOT_ROLES <= set(roles) <= TOP_LEVEL_ROLE_NAMES:
            raise ValueError(
                "Roles must include root and targets and only use top-level "
                f"role names, got {sorted(roles)}"
            )
        self.roles = roles

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Root):
            return False

        return (
            super().__eq__(other)
            and self.keys == other.keys
            and self.roles == other.roles
            and self.consistent_snapshot == other.consistent_snapshot
        )

    @classmethod
    def from_dict(cls, signed_dict: Dict[str, Any]) -> "Root":
        """Create ``Root`` object from its json/dict representation.

        Raises:
            ValueError, KeyError, TypeError: Invalid arguments.
        """
        common_args = cls._common_fields_from_dict(signed_dict)
        consistent_snapshot = signed_dict.pop("consistent_snapshot", None)
        keys = _keys_from_dict(signed_dict.pop("keys"))
        roles = {}
        for role_name, role_dict in _check_dict(
            signed_dict.pop("roles"), "roles"
        ).items():
            roles[role_name] = Role.from_dict(_check_dict(role_dict, role_name))

        _reject_unrecognized(signed_dict, "root")
        _validate_role_keys(keys, roles)

        return cls(*common_args, keys, roles, consistent_snapshot)

    def to_dict(self) -> Dict[str, Any]:
        """Return the dict representation of self."""
        root_dict = self._common_fields_to_dict()
        keys = {keyid: key.to_dict() for (keyid, key) in self.keys.items()}
        roles = {}
        for role_name, role in self.roles.items():
            roles[role_name] = role.to_dict()
        if self.consistent_snapshot is not None:
            root_dict["consistent_snapshot"] = self.consistent_snapshot

        root_dict.update(
            {
                "keys": keys,
                "roles": roles,
            }
        )
        return root_dict

    def add_key(self, key: Key, role: str) -> None:
        """Add new signing key for delegated role ``role``.

        Args:
            key: Signing key to be added for ``role``.
            role: Name of the role, for which ``key`` is added.

        Raises:
            ValueError: If ``role`` doesn't exist.
        """
        if role not in self.roles:
            raise ValueError(f"Role {role} doesn't exist")
        if key.keyid not in self.roles[role].keyids:
            self.roles[role].keyids.append(key.keyid)
        self.keys[key.keyid] = key

    def get_delegated_role(self, delegated_role: str) -> Role:
        """Return the role object for the given delegated role.

        Raises ValueError if delegated_role is not actually delegated.
        """
        if delegated_role not in self.roles:
            raise ValueError(f"Delegated role {delegated_role} not found")

        return self.roles[delegated_role]

    def get_key(self, keyid: str) -> Key:
        if keyid not in self.keys:
            raise ValueError(f"Key {keyid} not found")

        return self.keys[keyid]


class DelegatedRole(Role):
    """A container with information about a delegated role.

    The role is trusted for targets matching any path pattern in ``paths``
    (see ``tuf_verify.api.pathmatch``). Roles are consulted in the order
    the delegator lists them.

    *All parameters named below are not just constructor arguments but also
    instance attributes.*

    Args:
        name: Delegated role name.
        keyids: Delegated role signing key identifiers.
        threshold: Number of keys required to sign this role's metadata.
        terminating: ``True`` if this delegation terminates a target lookup.
        paths: Path patterns.

    Raises:
        ValueError, TypeError: Invalid arguments.
    """

    def __init__(
        self,
        name: str,
        keyids: List[str],
        threshold: int,
        terminating: bool,
        paths: List[str],
    ):
        super().__init__(keyids, threshold)
        if not isinstance(name, str) or not name:
            raise ValueError(f"Role name must be a non-empty string: {name!r}")
        if not isinstance(terminating, bool):
            raise TypeError(f"terminating must be a boolean: {terminating!r}")
        if not isinstance(paths, list):
            raise TypeError(f"paths must be a list: {paths!r}")
        for pattern in paths:
            validate_pattern(pattern)

        self.name = name
        self.terminating = terminating
        self.paths = paths

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DelegatedRole):
            return False

        return (
            super().__eq__(other)
            and self.name == other.name
            and self.terminating == other.terminating
            and self.paths == other.paths
        )

    @classmethod
    def from_dict(cls, role_dict: Dict[str, Any]) -> "DelegatedRole":
        """Create ``DelegatedRole`` object from its json/dict representation.

        Raises:
            ValueError, KeyError, TypeError: Invalid arguments.
        """
        name = role_dict.pop("name")
        keyids = role_dict.pop("keyids")
        threshold = role_dict.pop("threshold")
        terminating = role_dict.pop("terminating")
        paths = role_dict.pop("paths")
        _reject_unrecognized(role_dict, f"delegated role {name}")
        return cls(name, keyids, threshold, terminating, paths)

    def to_dict(self) -> Dict[str, Any]:
        """Return the dict representation of self."""
        base_role_dict = super().to_dict()
        return {
            "name": self.name,
            "terminating": self.terminating,
            **base_role_dict,
            "paths": self.paths,
        }

    def is_delegated_path(self, target_filepath: str) -> bool:
        """Determine whether the given ``target_filepath`` is in one of
        the paths that ``DelegatedRole`` is trusted to provide.

        Args:
            target_filepath: Normalized (absolute) request path.
        """
        return match_any(target_filepath, self.paths)


class Delegations:
    """A container object storing information about all delegations.

    *All parameters named below are not just constructor arguments but also
    instance attributes.*

    Args:
        keys: Dictionary of keyids to Keys. Defines the keys used in ``roles``.
        roles: Ordered dictionary of role names to DelegatedRoles instances. It
            defines which keys are required to sign the metadata for a specific
            role. The roles order also defines the order that role delegations
            are considered during target searches.

    Raises:
        ValueError: Invalid arguments.
    """

    def __init__(
        self,
        keys: Dict[str, Key],
        roles: Dict[str, DelegatedRole],
    ):
        self.keys = keys
        for role in roles:
            if not role or role in TOP_LEVEL_ROLE_NAMES:
                raise ValueError(
                    "Delegated roles cannot be empty or use top-level "
                    "role names"
                )

        self.roles = roles

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Delegations):
            return False

        return (
            self.keys == other.keys
            # Order of the delegated roles matters (see issue #1788).
            and list(self.roles.items()) == list(other.roles.items())
        )

    @classmethod
    def from_dict(cls, delegations_dict: Dict[str, Any]) -> "Delegations":
        """Create ``Delegations`` object from its json/dict representation.

        Raises:
            ValueError, KeyError, TypeError: Invalid arguments.
        """
        keys = _keys_from_dict(delegations_dict.pop("keys"))
        roles = delegations_dict.pop("roles")
        if not isinstance(roles, list):
            raise TypeError(f"Delegated roles must be a list: {roles!r}")

        roles_res: Dict[str, DelegatedRole] = {}
        for role_dict in roles:
            new_role = DelegatedRole.from_dict(
                _check_dict(role_dict, "delegated role")
            )
            if new_role.name in roles_res:
                raise ValueError(f"Duplicate role {new_role.name}")
            roles_res[new_role.name] = new_role

        _reject_unrecognized(delegations_dict, "delegations")
        _validate_role_keys(keys, roles_res)

        return cls(keys, roles_res)

    def to_dict(self) -> Dict[str, Any]:
        """Return the dict representation of self."""
        keys = {keyid: key.to_dict() for keyid, key in self.keys.items()}
        roles = [role_obj.to_dict() for role_obj in self.roles.values()]
        return {"keys": keys, "roles": roles}

    def get_roles_for_target(
        self, target_filepath: str
    ) -> Iterator[DelegatedRole]:
        """Given ``target_filepath`` yield all delegated roles who are
        responsible for it, in order of appearance.

        Args:
            target_filepath: Normalized (absolute) request path.
        """
        for role in self.roles.values():
            if role.is_delegated_path(target_filepath):
                yield role


class TargetFile:
    """A container with information about a particular target file.

    Only presence of a target entry is used for authorization: ``length``
    and ``hashes`` are carried but never checked against content.

    *All parameters named below are not just constructor arguments but also
    instance attributes.*

    Args:
        length: Length of the target file in bytes.
        hashes: Dictionary of hash algorithm names to hashes of the target
            file content.
        path: Path of the target, as used in the request.
        custom: Opaque implementation specific data.

    Raises:
        ValueError, TypeError: Invalid arguments.
    """

    def __init__(
        self,
        length: int,
        hashes: Dict[str, str],
        path: str,
        custom: Optional[Any] = None,  # noqa: ANN401
    ):
        self._validate_length(length)
        self._validate_hashes(hashes)

        self.length = length
        self.hashes = hashes
        self.path = path
        self.custom = custom

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TargetFile):
            return False

        return (
            self.length == other.length
            and self.hashes == other.hashes
            and self.path == other.path
            and self.custom == other.custom
        )

    @staticmethod
    def _validate_hashes(hashes: Dict[str, str]) -> None:
        if not isinstance(hashes, dict) or not hashes:
            raise ValueError("Hashes must be a non empty dictionary")
        for key, value in hashes.items():
            if not (isinstance(key, str) and isinstance(value, str)):
                raise TypeError("Hashes items must be strings")

    @staticmethod
    def _validate_length(length: int) -> None:
        _check_int(length, "length", 0)

    @classmethod
    def from_dict(cls, target_dict: Dict[str, Any], path: str) -> "TargetFile":
        """Create ``TargetFile`` object from its json/dict representation.

        Raises:
            ValueError, KeyError, TypeError: Invalid arguments.
        """
        length = target_dict.pop("length")
        hashes = target_dict.pop("hashes")
        custom = target_dict.pop("custom", None)
        _reject_unrecognized(target_dict, f"target {path}")

        return cls(length, hashes, path, custom)

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON-serializable dictionary representation of self."""
        res_dict: Dict[str, Any] = {
            "length": self.length,
            "hashes": self.hashes,
        }
        if self.custom is not None:
            res_dict["custom"] = self.custom
        return res_dict

    @classmethod
    def from_data(
        cls,
        target_file_path: str,
        data: bytes,
        hash_algorithms: Optional[List[str]] = None,
    ) -> "TargetFile":
        """Create ``TargetFile`` object from bytes.

        Args:
            target_file_path: Path of the target.
            data: Target file content.
            hash_algorithms: Hash algorithms to create the hashes with. Default
                is sha256.

        Raises:
            ValueError: The hash algorithms list contains an unsupported
                algorithm.
        """
        if hash_algorithms is None:
            hash_algorithms = ["sha256"]

        hashes = {}
        for algorithm in hash_algorithms:
            digest_object = hashlib.new(algorithm)
            digest_object.update(data)
            hashes[algorithm] = digest_object.hexdigest()

        return cls(len(data), hashes, target_file_path)


class Targets(Signed, _DelegatorMixin):
    """A container for the signed part of targets metadata.

    Targets contains information about target paths and also
    delegates responsibility to other Targets roles.

    *All parameters named below are not just constructor arguments but also
    instance attributes.*

    Args:
        version: Metadata version number. Default is 1.
        spec_version: Supported TUF specification version. Default is the
            version currently supported by the library.
        expires: Metadata expiry date. Default is current date and time.
        targets: Dictionary of target paths to TargetFiles. Default is an
            empty dictionary.
        delegations: Defines how this Targets delegates responsibility to other
            Targets Metadata files. Default is None.

    Raises:
        ValueError: Invalid arguments.
    """

    type = _TARGETS

    def __init__(
        self,
        version: Optional[int] = None,
        spec_version: Optional[str] = None,
        expires: Optional[datetime] = None,
        targets: Optional[Dict[str, TargetFile]] = None,
        delegations: Optional[Delegations] = None,
    ) -> None:
        super().__init__(version, spec_version, expires)
        self.targets = targets if targets is not None else {}
        self.delegations = delegations

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Targets):
            return False

        return (
            super().__eq__(other)
            and self.targets == other.targets
            and self.delegations == other.delegations
        )

    @classmethod
    def from_dict(cls, signed_dict: Dict[str, Any]) -> "Targets":
        """Create ``Targets`` object from its json/dict representation.

        Raises:
            ValueError, KeyError, TypeError: Invalid arguments.
        """
        common_args = cls._common_fields_from_dict(signed_dict)
        targets = _check_dict(signed_dict.pop(_TARGETS), _TARGETS)
        try:
            delegations_dict = signed_dict.pop("delegations")
        except KeyError:
            delegations = None
        else:
            delegations = Delegations.from_dict(
                _check_dict(delegations_dict, "delegations")
            )
        res_targets = {}
        for target_path, target_info in targets.items():
            res_targets[target_path] = TargetFile.from_dict(
                _check_dict(target_info, target_path), target_path
            )
        _reject_unrecognized(signed_dict, "targets")
        return cls(*common_args, res_targets, delegations)

    def to_dict(self) -> Dict[str, Any]:
        """Return the dict representation of self."""
        targets_dict = self._common_fields_to_dict()
        targets = {}
        for target_path, target_file_obj in self.targets.items():
            targets[target_path] = target_file_obj.to_dict()
        targets_dict[_TARGETS] = targets
        if self.delegations is not None:
            targets_dict["delegations"] = self.delegations.to_dict()
        return targets_dict

    def add_key(self, key: Key, role: str) -> None:
        """Add new signing key for delegated role ``role``.

        Args:
            key: Signing key to be added for ``role``.
            role: Name of the role, for which ``key`` is added.

        Raises:
            ValueError: If there are no delegated roles or if ``role`` is not
                delegated by this Target.
        """
        if self.delegations is None or role not in self.delegations.roles:
            raise ValueError(f"Delegated role {role} doesn't exist")
        if key.keyid not in self.delegations.roles[role].keyids:
            self.delegations.roles[role].keyids.append(key.keyid)

        self.delegations.keys[key.keyid] = key

    def get_delegated_role(self, delegated_role: str) -> Role:
        """Return the role object for the given delegated role.

        Raises ValueError if delegated_role is not actually delegated.
        """
        if self.delegations is None:
            raise ValueError("No delegations found")

        role = self.delegations.roles.get(delegated_role)
        if role is None:
            raise ValueError(f"Delegated role {delegated_role} not found")

        return role

    def get_key(self, keyid: str) -> Key:
        if self.delegations is None:
            raise ValueError("No delegations found")
        if keyid not in self.delegations.keys:
            raise ValueError(f"Key {keyid} not found")

        return self.delegations.keys[keyid]
