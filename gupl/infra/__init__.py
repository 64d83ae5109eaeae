"""
Infrastructure layer for gupl.

Contains abstractions for external systems:
- GitClient: Git command execution
- VersionControlProvider: The capability the protocol gateway delegates to
- RepositoryStore: Keyed, append-only store of generated repositories

These provide clean interfaces that can be mocked for testing.
"""

from .git_client import GitClient
from .vcs_provider import VersionControlProvider
from .repo_store import RepositoryStore

__all__ = [
    'GitClient',
    'VersionControlProvider',
    'RepositoryStore',
]
