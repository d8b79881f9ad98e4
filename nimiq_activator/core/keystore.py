# MIT License
# Copyright (c) 2025 Hashborn

import os
from dataclasses import dataclass, field
from typing import List

from ..protocol.config.params import DEFAULT_KEYS_DIR
from ..protocol.types.common import KeyFileError

SIGNING_KEY_FILE = "signing_key.txt"
VOTE_KEY_FILE = "vote_key.txt"
ADDRESS_KEY_FILE = "address.txt"

PRIVATE_KEY_LABEL = "Private Key:"
SECRET_KEY_LABEL = "Secret Key:"


@dataclass(frozen=True)
class KeyBundle:
    """Secrets needed to register a validator. Never printed or logged."""
    signing_key: str = field(repr=False)
    vote_key: str = field(repr=False)
    address_key: str = field(repr=False)


def _read_lines(path: str) -> List[str]:
    try:
        with open(path, "r") as f:
            return f.read().split("\n")
    except OSError as e:
        raise KeyFileError(f"Cannot read key file {path}: {e.strerror or e}") from e


def read_private_key(path: str) -> str:
    """Value of the first ``Private Key:`` line in the file."""
    for line in _read_lines(path):
        if line.startswith(PRIVATE_KEY_LABEL):
            key = line[len(PRIVATE_KEY_LABEL):].strip()
            if key:
                return key
    raise KeyFileError(f"Private key not found in {path}")


def read_vote_key(path: str) -> str:
    """
    Voting secret from a BLS key dump.

    The value sits two lines below the ``Secret Key:`` label (the line in
    between is blank in the node's output).
    """
    lines = _read_lines(path)
    for i, line in enumerate(lines):
        if SECRET_KEY_LABEL in line and i + 2 < len(lines):
            key = lines[i + 2].strip()
            if key:
                return key
    raise KeyFileError(f"Vote key not found in {path}")


class KeyStore:
    """Resolves validator secrets from a directory of key dumps."""

    def __init__(self, root_dir: str = DEFAULT_KEYS_DIR):
        self.root_dir = root_dir

    def _path(self, filename: str) -> str:
        return os.path.join(self.root_dir, filename)

    def signing_key(self) -> str:
        return read_private_key(self._path(SIGNING_KEY_FILE))

    def vote_key(self) -> str:
        return read_vote_key(self._path(VOTE_KEY_FILE))

    def address_key(self) -> str:
        return read_private_key(self._path(ADDRESS_KEY_FILE))

    def load_bundle(self) -> KeyBundle:
        """Loads all three secrets; raises KeyFileError on the first missing one."""
        return KeyBundle(
            signing_key=self.signing_key(),
            vote_key=self.vote_key(),
            address_key=self.address_key(),
        )
