# Copyright 2021, New York University and the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""Utility to build signed example repositories

RepositoryBuilder keeps root, top-level targets and delegated targets
metadata in memory together with freshly generated ed25519 signers for every
role. Metadata is signed on demand with all signers registered for the role,
so tests can modify metadata directly and then take a ``bundle()`` or
``write()`` it to a directory that ``AuthorizationService`` can load.

Example::

    # constructor creates root and top-level targets with one key each
    repo = RepositoryBuilder()

    repo.add_delegation(
        Targets.type,
        DelegatedRole("library", [], 1, True, ["/v2/library/*"]),
    )
    repo.add_target("library", b"content", "/v2/library/alpine/manifests/1")

    service = AuthorizationService(repo.bundle())
"""

import argparse
import datetime
import logging
import os
import sys
from typing import Dict, List, Optional
from urllib import parse

from securesystemslib.signer import CryptoSigner, Signer

from tuf_verify.api.metadata import (
    DelegatedRole,
    Delegations,
    Metadata,
    Root,
    TargetFile,
    Targets,
)
from tuf_verify.api.serialization.json import JSONSerializer
from tuf_verify.authz.bundle import MetadataBundle

logger = logging.getLogger(__name__)

EXAMPLE_ROLE = "registry-library"
EXAMPLE_PATTERNS = ["/v2/library/*"]
EXAMPLE_TARGETS = [
    "/v2/library/alpine/manifests/latest",
    "/v2/library/ubuntu/manifests/20.04",
    "/v2/library/nginx/manifests/latest",
]


class RepositoryBuilder:
    """Builds signed repository metadata in memory.

    Args:
        expiry: ``Optional``; expiry date of all created metadata. Default
            is one year from now.
    """

    def __init__(self, expiry: Optional[datetime.datetime] = None) -> None:
        self.md_delegates: Dict[str, Metadata[Targets]] = {}

        # signers are used on-demand at signing time
        # keys are roles, values are dicts of {keyid: signer}
        self.signers: Dict[str, Dict[str, Signer]] = {}

        if expiry is None:
            now = datetime.datetime.now(datetime.timezone.utc)
            expiry = now.replace(microsecond=0) + datetime.timedelta(days=365)
        self.safe_expiry = expiry

        self._initialize()

    @property
    def root(self) -> Root:
        return self.md_root.signed

    @property
    def targets(self) -> Targets:
        return self.md_targets.signed

    def all_targets(self) -> Dict[str, Targets]:
        """Return all targets metadata by role name."""
        all_targets = {Targets.type: self.targets}
        for role, md in self.md_delegates.items():
            all_targets[role] = md.signed
        return all_targets

    def add_signer(self, role: str, signer: Signer) -> None:
        if role not in self.signers:
            self.signers[role] = {}
        self.signers[role][signer.public_key.keyid] = signer

    def rotate_keys(self, role: str) -> None:
        """remove all keys for role, then add threshold of new keys"""
        self.root.roles[role].keyids.clear()
        self.signers[role].clear()
        for _ in range(self.root.roles[role].threshold):
            signer = CryptoSigner.generate_ed25519()
            self.root.add_key(signer.public_key, role)
            self.add_signer(role, signer)

    def _initialize(self) -> None:
        """Setup a minimal valid repository."""

        self.md_targets = Metadata(Targets(expires=self.safe_expiry))
        self.md_root = Metadata(Root(expires=self.safe_expiry))

        for role in [Root.type, Targets.type]:
            signer = CryptoSigner.generate_ed25519()
            self.md_root.signed.add_key(signer.public_key, role)
            self.add_signer(role, signer)

    def _get_delegator(self, role_name: str) -> Targets:
        """Given a delegator name return, its corresponding Targets object."""
        if role_name == Targets.type:
            return self.targets

        return self.md_delegates[role_name].signed

    def add_target(self, role: str, data: bytes, path: str) -> TargetFile:
        """Create a target from data and add it to ``role``."""
        targets = self._get_delegator(role)

        target = TargetFile.from_data(path, data, ["sha256"])
        targets.targets[path] = target
        return target

    def add_delegation(
        self,
        delegator_name: str,
        role: DelegatedRole,
        targets: Optional[Targets] = None,
    ) -> None:
        """Add delegated target role to the repository.

        A new signing key for the role is always added to the delegation.
        Metadata for the role is created unless it already exists.
        """
        delegator = self._get_delegator(delegator_name)

        # Create delegation
        if delegator.delegations is None:
            delegator.delegations = Delegations({}, roles={})

        # put delegation last by default
        delegator.delegations.roles[role.name] = role

        # By default add one new key for the role
        signer = CryptoSigner.generate_ed25519()
        delegator.add_key(signer.public_key, role.name)
        self.add_signer(role.name, signer)

        # Add metadata for the role
        if role.name not in self.md_delegates:
            if targets is None:
                targets = Targets(expires=self.safe_expiry)
            self.md_delegates[role.name] = Metadata(targets, {})

    def sign(self, role: str) -> Metadata:
        """Sign metadata of ``role`` with all of its signers."""
        if role == Root.type:
            md: Metadata = self.md_root
        elif role == Targets.type:
            md = self.md_targets
        else:
            md = self.md_delegates[role]

        md.signatures.clear()
        for signer in self.signers.get(role, {}).values():
            md.sign(signer, append=True)

        logger.debug("Signed %s v%d", role, md.signed.version)
        return md

    def fetch_metadata(self, role: str) -> bytes:
        """Return signed metadata of ``role`` as bytes."""
        return self.sign(role).to_bytes(JSONSerializer())

    def bundle(self) -> MetadataBundle:
        """Return signed metadata of all roles as a ``MetadataBundle``."""
        roles = [Root.type, Targets.type, *self.md_delegates]
        return MetadataBundle(
            {role: self.fetch_metadata(role) for role in roles}
        )

    def write(self, directory: str) -> None:
        """Write signed metadata of all roles into ``directory``."""
        os.makedirs(directory, exist_ok=True)
        for role, data in self.bundle().items():
            quoted_role = parse.quote(role, "")
            path = os.path.join(directory, f"{quoted_role}.json")
            with open(path, "wb") as f:
                f.write(data)

        logger.info("Wrote metadata to %s", directory)


def generate_example(directory: str) -> RepositoryBuilder:
    """Write a container registry example repository to ``directory``.

    Top-level targets lists nothing and delegates ``/v2/library/*`` to the
    terminating ``registry-library`` role, which lists a few manifests.
    """
    repo = RepositoryBuilder()
    repo.add_delegation(
        Targets.type,
        DelegatedRole(EXAMPLE_ROLE, [], 1, True, list(EXAMPLE_PATTERNS)),
    )
    for path in EXAMPLE_TARGETS:
        repo.add_target(EXAMPLE_ROLE, f"manifest {path}".encode(), path)

    repo.write(directory)
    return repo


def main(argv: Optional[List[str]] = None) -> int:
    """Generate the example repository."""
    parser = argparse.ArgumentParser(
        description="Generate an example TUF repository"
    )
    parser.add_argument(
        "directory",
        nargs="?",
        default="testdata/repository",
        help="output directory",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO
    )

    generate_example(args.directory)
    return 0


if __name__ == "__main__":
    sys.exit(main())
