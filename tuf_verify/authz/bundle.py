# Copyright the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""Raw metadata bytes handed to ``AuthorizationService``."""

import logging
import os
from collections import abc
from typing import Dict, Iterator, Mapping
from urllib import parse

logger = logging.getLogger(__name__)

_SUFFIX = ".json"


class MetadataBundle(abc.Mapping):
    """Read-only mapping of role name to raw metadata bytes.

    Args:
        files: Raw metadata bytes by role name.
    """

    def __init__(self, files: Mapping[str, bytes]):
        self._files: Dict[str, bytes] = dict(files)

    def __getitem__(self, role: str) -> bytes:
        return self._files[role]

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    @classmethod
    def from_directory(cls, path: str) -> "MetadataBundle":
        """Read every ``<role>.json`` file in ``path``.

        Role names are the URL-unquoted file names without suffix, so
        ``a%2Fb.json`` holds metadata for role ``a/b``.

        Raises:
            OSError: ``path`` or one of its metadata files cannot be read,
                or ``root.json`` does not exist.
        """
        files: Dict[str, bytes] = {}
        for filename in sorted(os.listdir(path)):
            if not filename.endswith(_SUFFIX):
                continue
            full_path = os.path.join(path, filename)
            if not os.path.isfile(full_path):
                continue
            role = parse.unquote(filename[: -len(_SUFFIX)])
            with open(full_path, "rb") as f:
                files[role] = f.read()

        if "root" not in files:
            raise FileNotFoundError(f"No root.json in {path}")

        logger.debug("Read %d metadata files from %s", len(files), path)
        return cls(files)
