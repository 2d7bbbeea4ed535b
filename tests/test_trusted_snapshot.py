# Copyright the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""Unit tests for 'tuf_verify/authz/_internal/trusted_snapshot.py'."""

import logging
import sys
import unittest
from datetime import datetime, timedelta, timezone

from tests import utils
from tuf_verify.api import exceptions
from tuf_verify.api.metadata import DelegatedRole, Root, Targets
from tuf_verify.authz._internal.trusted_snapshot import (
    MISSING,
    build_snapshot,
)
from tuf_verify.repository import RepositoryBuilder

logger = logging.getLogger(__name__)


class TestTrustedSnapshot(unittest.TestCase):
    """Tests for building and rebuilding trusted snapshots."""

    def setUp(self) -> None:
        self.repo = RepositoryBuilder()
        for name in ["A", "B"]:
            self.repo.add_delegation(
                Targets.type, DelegatedRole(name, [], 1, False, ["/*"])
            )
        self.repo.add_delegation(
            "A", DelegatedRole("C", [], 1, False, ["/*"])
        )

    def test_build(self) -> None:
        snapshot = build_snapshot(self.repo.bundle())

        self.assertEqual(snapshot.root, self.repo.root)
        self.assertEqual(snapshot.targets, self.repo.targets)
        # Preorder depth-first load order
        self.assertEqual(list(snapshot), ["targets", "A", "C", "B"])
        self.assertEqual(len(snapshot), 4)
        self.assertEqual(snapshot["C"], self.repo.md_delegates["C"].signed)
        self.assertEqual(dict(snapshot.rejected), {})
        self.assertEqual(
            dict(snapshot.versions),
            {"root": 1, "targets": 1, "A": 1, "B": 1, "C": 1},
        )

    def test_read_only(self) -> None:
        snapshot = build_snapshot(self.repo.bundle())
        with self.assertRaises(TypeError):
            snapshot["A"] = snapshot["B"]  # type: ignore[index]
        with self.assertRaises(TypeError):
            snapshot.versions["A"] = 5  # type: ignore[index]

    def test_missing_top_level(self) -> None:
        bundle = dict(self.repo.bundle())
        del bundle[Targets.type]
        with self.assertRaises(exceptions.ParseError):
            build_snapshot(bundle)

        del bundle[Root.type]
        with self.assertRaises(exceptions.ParseError):
            build_snapshot(bundle)

    def test_invalid_top_level_targets(self) -> None:
        self.repo.signers[Targets.type].clear()
        with self.assertRaises(exceptions.UnsignedMetadataError):
            build_snapshot(self.repo.bundle())

    def test_missing_delegate(self) -> None:
        bundle = dict(self.repo.bundle())
        del bundle["A"]
        snapshot = build_snapshot(bundle)

        self.assertEqual(list(snapshot), ["targets", "B"])
        # C is only reachable through A
        self.assertEqual(dict(snapshot.rejected), {"A": MISSING})

    def test_rejected_delegates(self) -> None:
        self.repo.signers["B"].clear()
        bundle = dict(self.repo.bundle())
        bundle["C"] = b"{"
        snapshot = build_snapshot(bundle)

        self.assertEqual(list(snapshot), ["targets", "A"])
        self.assertEqual(
            dict(snapshot.rejected),
            {"B": "InsufficientSignatures", "C": "DeserializationError"},
        )

    def test_expired_delegate(self) -> None:
        now = datetime.now(timezone.utc)
        self.repo.md_delegates["B"].signed.expires = now - timedelta(days=1)
        snapshot = build_snapshot(self.repo.bundle(), reference_time=now)
        self.assertNotIn("B", snapshot)
        self.assertEqual(snapshot.rejected["B"], "Expired")

    def test_delegate_signed_by_wrong_role(self) -> None:
        bundle = dict(self.repo.bundle())
        bundle["A"] = bundle["B"]
        snapshot = build_snapshot(bundle)
        self.assertEqual(snapshot.rejected["A"], "UnknownKey")

    def test_shared_role_admitted_per_delegation(self) -> None:
        # B is delegated by both top-level targets and C, each with its
        # own key. Both keys sign B.
        self.repo.add_delegation(
            "C", DelegatedRole("B", [], 1, False, ["/*"])
        )
        snapshot = build_snapshot(self.repo.bundle())
        self.assertEqual(list(snapshot), ["targets", "A", "C", "B"])
        self.assertEqual(snapshot.admitted["B"], {"targets", "C"})
        self.assertTrue(snapshot.is_admitted("B", "C"))

        # Only the key of top-level targets signs B: C refuses it first,
        # top-level targets admits it later
        c_delegations = self.repo.md_delegates["C"].signed.delegations
        assert c_delegations is not None
        del self.repo.signers["B"][c_delegations.roles["B"].keyids[0]]
        snapshot = build_snapshot(self.repo.bundle())

        self.assertIn("B", snapshot)
        self.assertEqual(dict(snapshot.rejected), {})
        self.assertEqual(snapshot.admitted["B"], {"targets"})
        self.assertTrue(snapshot.is_admitted("B", "targets"))
        self.assertFalse(snapshot.is_admitted("B", "C"))
        self.assertFalse(snapshot.is_admitted("B", None))
        self.assertTrue(snapshot.is_admitted("targets", None))

    def test_rebuild_keeps_version_lineage(self) -> None:
        self.repo.md_delegates["A"].signed.version = 3
        self.repo.targets.version = 2
        previous = build_snapshot(self.repo.bundle())

        # Rollback of a delegated role only rejects that role
        self.repo.md_delegates["A"].signed.version = 2
        snapshot = build_snapshot(self.repo.bundle(), previous=previous)
        self.assertNotIn("A", snapshot)
        self.assertEqual(snapshot.rejected["A"], "VersionRollback")
        self.assertEqual(snapshot.versions["A"], 3)

        # Version stays known even after a failed load
        snapshot = build_snapshot(self.repo.bundle(), previous=snapshot)
        self.assertEqual(snapshot.rejected["A"], "VersionRollback")

        # Rollback of top-level targets fails the build
        self.repo.targets.version = 1
        with self.assertRaises(exceptions.BadVersionNumberError):
            build_snapshot(self.repo.bundle(), previous=previous)

    def test_rebuild_without_root(self) -> None:
        previous = build_snapshot(self.repo.bundle())
        bundle = dict(self.repo.bundle())
        del bundle[Root.type]

        snapshot = build_snapshot(bundle, previous=previous)
        self.assertIs(snapshot.root, previous.root)

        # Reused root is still checked for expiry
        with self.assertRaises(exceptions.ExpiredMetadataError):
            build_snapshot(
                bundle,
                previous=previous,
                reference_time=previous.root.expires,
            )

    def test_rebuild_with_rotated_root(self) -> None:
        previous = build_snapshot(self.repo.bundle())

        old_signers = list(self.repo.signers[Root.type].values())
        self.repo.root.version = 2
        self.repo.rotate_keys(Root.type)
        self.repo.rotate_keys(Targets.type)
        with self.assertRaises(exceptions.UnknownKeyError):
            build_snapshot(self.repo.bundle(), previous=previous)

        for signer in old_signers:
            self.repo.add_signer(Root.type, signer)
        snapshot = build_snapshot(self.repo.bundle(), previous=previous)
        self.assertEqual(snapshot.root.version, 2)
        self.assertEqual(snapshot.versions[Root.type], 2)


# Run unit test.
if __name__ == "__main__":
    utils.configure_test_logging(sys.argv)
    unittest.main()
