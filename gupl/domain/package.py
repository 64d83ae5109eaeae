"""
Package domain objects for gupl.

A package is identified by its arity N (the RepositoryKey). The generated
source for a key is a fixed, ordered set of files; the commit identity used
to record it is a literal constant so that two independent materializations
of the same key produce the same commit id.
"""

from dataclasses import dataclass
from typing import Dict, Any, Tuple

from ..errors import ClientProtocolError


@dataclass(frozen=True)
class CommitIdentity:
    """Author/committer identity and timestamp for a generated commit."""
    name: str
    email: str
    date: str  # git raw date format: "<unix seconds> <tz offset>"

    def to_env(self) -> Dict[str, str]:
        """Environment variables that pin both author and committer."""
        return {
            'GIT_AUTHOR_NAME': self.name,
            'GIT_AUTHOR_EMAIL': self.email,
            'GIT_AUTHOR_DATE': self.date,
            'GIT_COMMITTER_NAME': self.name,
            'GIT_COMMITTER_EMAIL': self.email,
            'GIT_COMMITTER_DATE': self.date,
        }


# Never derive these from the wall clock or the host.
FIXED_IDENTITY = CommitIdentity(
    name="gupl",
    email="gupl@pkg.golang.fail",
    date="1000000000 +0000",
)
PRIMARY_BRANCH = "main"
COMMIT_MESSAGE = "Initial commit"


@dataclass(frozen=True)
class GeneratedSource:
    """
    Files generated for one RepositoryKey.

    Files are kept as an ordered tuple of (filename, content) pairs so that
    equality means byte-for-byte equality of every file.
    """
    key: int
    files: Tuple[Tuple[str, bytes], ...]

    @property
    def filenames(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.files)

    def as_dict(self) -> Dict[str, bytes]:
        return dict(self.files)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'key': self.key,
            'files': {name: content.decode('utf-8') for name, content in self.files},
        }


def parse_key(text: str) -> int:
    """
    Parse a RepositoryKey from a URL path segment.

    Only plain decimal digits are accepted, so "+3", "-1", " 3" and "03"
    style variants cannot alias the same repository under different URLs.

    Raises:
        ClientProtocolError: if text is not a canonical non-negative integer
    """
    if not text or not text.isascii() or not text.isdigit():
        raise ClientProtocolError(f"invalid arity: {text!r}")
    if len(text) > 1 and text.startswith('0'):
        raise ClientProtocolError(f"invalid arity: {text!r}")
    return int(text)
