# Copyright 2020, New York University and the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0
"""Unit tests for api/metadata.py"""

import copy
import json
import logging
import sys
import unittest
from datetime import datetime, timedelta, timezone
from typing import ClassVar, Dict

from securesystemslib.signer import CryptoSigner, Signer

from tests import utils
from tuf_verify.api import exceptions
from tuf_verify.api.metadata import (
    DelegatedRole,
    Delegations,
    Metadata,
    Role,
    Root,
    TargetFile,
    Targets,
    VerificationResult,
    parse_root,
    parse_targets,
)
from tuf_verify.api.serialization import DeserializationError
from tuf_verify.api.serialization.json import JSONSerializer

logger = logging.getLogger(__name__)


class TestMetadata(unittest.TestCase):
    """Tests for public API of all classes in 'tuf_verify/api/metadata.py'."""

    signers: ClassVar[Dict[str, Signer]]

    @classmethod
    def setUpClass(cls) -> None:
        cls.signers = {
            name: CryptoSigner.generate_ed25519()
            for name in ["root", "targets", "a", "b", "other"]
        }

    def setUp(self) -> None:
        self.expiry = datetime.now(timezone.utc).replace(
            microsecond=0
        ) + timedelta(days=1)
        root = Root(expires=self.expiry)
        root.add_key(self.signers["root"].public_key, Root.type)
        root.add_key(self.signers["targets"].public_key, Targets.type)
        self.root_md = Metadata(root)
        self.root_md.sign(self.signers["root"])

        delegations = Delegations(
            {},
            {
                "a": DelegatedRole("a", [], 1, False, ["/a/*"]),
                "b": DelegatedRole("b", [], 1, True, ["/*"]),
            },
        )
        targets = Targets(expires=self.expiry, delegations=delegations)
        targets.add_key(self.signers["a"].public_key, "a")
        targets.add_key(self.signers["b"].public_key, "b")
        self.targets_md = Metadata(targets)
        self.targets_md.sign(self.signers["targets"])

    def test_to_from_bytes(self) -> None:
        for md in [self.root_md, self.targets_md]:
            data = md.to_bytes()
            md_obj = Metadata.from_bytes(data)
            self.assertEqual(md_obj, md)
            self.assertEqual(data, md_obj.to_bytes())

            # Pretty and compact serialization produce the same object
            pretty = md.to_bytes(JSONSerializer())
            self.assertEqual(Metadata.from_bytes(pretty), md)

    def test_parse_by_type(self) -> None:
        root_bytes = self.root_md.to_bytes()
        targets_bytes = self.targets_md.to_bytes()

        self.assertIsInstance(parse_root(root_bytes).signed, Root)
        self.assertIsInstance(parse_targets(targets_bytes).signed, Targets)

        with self.assertRaises(DeserializationError):
            parse_root(targets_bytes)
        with self.assertRaises(DeserializationError):
            parse_targets(root_bytes)

        # DeserializationError is the parse failure of the error taxonomy
        with self.assertRaises(exceptions.ParseError):
            parse_root(b"not json")

    def test_sign_verify(self) -> None:
        root = self.root_md.signed
        payload = self.targets_md.signed_bytes

        # Verify signature by the key trusted for targets
        result = root.verify_delegate(
            Targets.type, payload, self.targets_md.signatures
        )
        self.assertTrue(result)
        self.assertEqual(
            set(result.signed), {self.signers["targets"].public_key.keyid}
        )

        # Append a second signature by an untrusted key: still verifies
        self.targets_md.sign(self.signers["other"], append=True)
        root.verify_delegate(Targets.type, payload, self.targets_md.signatures)

        # Replace signatures with one by an untrusted key
        self.targets_md.sign(self.signers["other"])
        with self.assertRaises(exceptions.UnknownKeyError):
            root.verify_delegate(
                Targets.type, payload, self.targets_md.signatures
            )

        # No signatures at all is insufficient, not unknown
        self.targets_md.signatures.clear()
        with self.assertRaises(exceptions.UnsignedMetadataError):
            root.verify_delegate(
                Targets.type, payload, self.targets_md.signatures
            )

    def test_verify_delegate_modified_payload(self) -> None:
        root = self.root_md.signed
        self.targets_md.signed.version += 1
        with self.assertRaises(exceptions.UnsignedMetadataError) as e:
            root.verify_delegate(
                Targets.type,
                self.targets_md.signed_bytes,
                self.targets_md.signatures,
            )
        self.assertEqual(
            e.exception.reason,
            exceptions.RejectionReason.INSUFFICIENT_SIGNATURES,
        )

    def test_verify_delegate_unknown_role(self) -> None:
        with self.assertRaises(ValueError):
            self.root_md.signed.verify_delegate(
                "snapshot", b"", self.root_md.signatures
            )
        with self.assertRaises(ValueError):
            self.targets_md.signed.verify_delegate(
                "c", b"", self.root_md.signatures
            )
        with self.assertRaises(ValueError):
            Targets().verify_delegate("a", b"", {})

    def test_repeated_signature_counts_once(self) -> None:
        root = self.root_md.signed
        root.roles[Targets.type].threshold = 2
        root.add_key(self.signers["other"].public_key, Targets.type)

        # targets is signed by one of two keys, its signature is repeated
        md_dict = self.targets_md.to_dict()
        md_dict["signatures"].append(dict(md_dict["signatures"][0]))
        data = json.dumps(md_dict).encode("utf-8")

        md = Metadata.from_bytes(data)
        self.assertEqual(len(md.signatures), 1)
        result = root.get_verification_result(
            Targets.type, md.signed_bytes, md.signatures
        )
        self.assertEqual(result.missing, 1)
        with self.assertRaises(exceptions.UnsignedMetadataError):
            root.verify_delegate(Targets.type, md.signed_bytes, md.signatures)

        # A second distinct key reaches the threshold
        md.sign(self.signers["other"], append=True)
        root.verify_delegate(Targets.type, md.signed_bytes, md.signatures)

    def test_verification_result(self) -> None:
        key = self.signers["a"].public_key
        vr = VerificationResult(1, {"a": key}, {})
        self.assertTrue(vr)
        self.assertEqual(vr.missing, 0)

        vr = VerificationResult(2, {"a": key}, {"b": key}, ["c"])
        self.assertFalse(vr)
        self.assertEqual(vr.missing, 1)
        self.assertEqual(vr.unknown, ["c"])

    def test_metadata_signed_is_expired(self) -> None:
        targets = self.targets_md.signed
        self.assertFalse(targets.is_expired(self.expiry - timedelta(seconds=1)))
        # Expiry instant itself counts as expired
        self.assertTrue(targets.is_expired(self.expiry))
        self.assertTrue(targets.is_expired(self.expiry + timedelta(days=1)))
        self.assertFalse(targets.is_expired())

    def test_expires_parsing(self) -> None:
        md_dict = self.targets_md.to_dict()
        for expires, expected in [
            ("2030-01-01T00:00:00Z", datetime(2030, 1, 1, tzinfo=timezone.utc)),
            (
                "2030-01-01T00:00:00.654321Z",
                datetime(2030, 1, 1, tzinfo=timezone.utc),
            ),
            (
                "2030-01-01T02:00:00+02:00",
                datetime(2030, 1, 1, tzinfo=timezone.utc),
            ),
        ]:
            signed_dict = copy.deepcopy(md_dict["signed"])
            signed_dict["expires"] = expires
            targets = Targets.from_dict(signed_dict)
            self.assertEqual(targets.expires, expected)
            self.assertEqual(
                targets.to_dict()["expires"], "2030-01-01T00:00:00Z"
            )

    def test_expires_setter(self) -> None:
        targets = self.targets_md.signed
        naive = datetime(2030, 1, 1)
        targets.expires = naive
        self.assertEqual(targets.expires.tzinfo, timezone.utc)

        with self.assertRaises(ValueError):
            targets.expires = datetime(
                2030, 1, 1, tzinfo=timezone(timedelta(hours=2))
            )

    def test_root_add_key(self) -> None:
        root = self.root_md.signed
        key = self.signers["other"].public_key

        root.add_key(key, Targets.type)
        self.assertIn(key.keyid, root.roles[Targets.type].keyids)
        self.assertIn(key.keyid, root.keys)

        # Adding the key again does not duplicate the keyid
        root.add_key(key, Targets.type)
        self.assertEqual(root.roles[Targets.type].keyids.count(key.keyid), 1)

        # One key may be used by several roles
        root.add_key(key, Root.type)
        self.assertIn(key.keyid, root.roles[Root.type].keyids)
        self.assertEqual(root.get_key(key.keyid), key)

        with self.assertRaises(ValueError):
            root.add_key(key, "nosuchrole")

    def test_root_roles_constraints(self) -> None:
        with self.assertRaises(ValueError):
            Root(roles={"root": Role([], 1)})
        with self.assertRaises(ValueError):
            Root(
                roles={
                    "root": Role([], 1),
                    "targets": Role([], 1),
                    "a": Role([], 1),
                }
            )
        self.assertEqual(set(Root().roles), {"root", "targets"})

    def test_targets_key_api(self) -> None:
        targets = self.targets_md.signed
        key = self.signers["other"].public_key

        targets.add_key(key, "a")
        self.assertIn(key.keyid, targets.get_delegated_role("a").keyids)
        self.assertEqual(targets.get_key(key.keyid), key)

        with self.assertRaises(ValueError):
            targets.add_key(key, "nosuchrole")
        with self.assertRaises(ValueError):
            Targets().add_key(key, "a")
        with self.assertRaises(ValueError):
            targets.get_key("nosuchkey")

    def test_get_roles_for_target(self) -> None:
        delegations = self.targets_md.signed.delegations
        assert delegations is not None

        roles = delegations.get_roles_for_target("/a/file")
        self.assertEqual([role.name for role in roles], ["a", "b"])

        roles = delegations.get_roles_for_target("/b/file")
        self.assertEqual([role.name for role in roles], ["b"])

    def test_delegations_reject_top_level_names(self) -> None:
        for name in ["root", "targets", "snapshot", "timestamp", ""]:
            with self.assertRaises(ValueError):
                Delegations({}, {name: DelegatedRole("x", [], 1, False, [])})

    def test_targetfile_from_data(self) -> None:
        data = b"Inline test content"
        path = "/v2/library/alpine/manifests/latest"

        target_file = TargetFile.from_data(path, data)
        self.assertEqual(target_file.length, len(data))
        self.assertEqual(list(target_file.hashes), ["sha256"])
        self.assertEqual(target_file.path, path)

        target_file = TargetFile.from_data(path, data, ["sha256", "sha512"])
        self.assertEqual(set(target_file.hashes), {"sha256", "sha512"})

        with self.assertRaises(ValueError):
            TargetFile.from_data(path, data, ["nosuchhash"])


# Run unit test.
if __name__ == "__main__":
    utils.configure_test_logging(sys.argv)
    unittest.main()
