"""
Repository store infrastructure for gupl.

A key-addressed store of generated git repositories:
- One directory per arity under {root}/tuple/
- Created lazily on first access, never evicted, never deleted
- Atomic creation (stage in a sibling directory, then rename)
- Safe across threads and processes without locks

Growth is unbounded: every distinct arity ever requested stays on disk.
That is deliberate, since a published import path has to keep resolving
to the same commit.
"""

import errno
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional
import logging

from ..domain.package import FIXED_IDENTITY, PRIMARY_BRANCH, COMMIT_MESSAGE
from ..errors import ExternalToolFailure, FilesystemError
from ..services.generator_service import DEFAULT_MODULE_ROOT, generate
from .git_client import GitClient

logger = logging.getLogger(__name__)

PACKAGE_DIR = "tuple"
STAGING_PREFIX = "."

# A rename onto an existing non-empty directory fails with one of these
_DESTINATION_EXISTS = (errno.EEXIST, errno.ENOTEMPTY)


class RepositoryStore:
    """
    Materializes one git repository per RepositoryKey.

    Example:
        store = RepositoryStore(Path("/srv/gupl"))
        repo = store.get_or_create(3)   # /srv/gupl/tuple/3
    """

    def __init__(
        self,
        root: Path,
        git_client: Optional[GitClient] = None,
        module_root: str = DEFAULT_MODULE_ROOT,
    ):
        """
        Initialize RepositoryStore.

        Args:
            root: Directory holding the store
            git_client: GitClient instance (creates new if None)
            module_root: Host prefix used in generated go.mod files
        """
        self.root = Path(root).expanduser().resolve()
        self.git = git_client or GitClient()
        self.module_root = module_root

    @property
    def packages_dir(self) -> Path:
        return self.root / PACKAGE_DIR

    def path_for(self, n: int) -> Path:
        """Canonical RepositoryPath for key n."""
        if n < 0:
            raise ValueError(f"arity must be non-negative, got {n}")
        return self.packages_dir / str(n)

    def exists(self, n: int) -> bool:
        return self.path_for(n).is_dir()

    def __contains__(self, n: int) -> bool:
        return self.exists(n)

    def keys(self) -> List[int]:
        """Keys with a canonical repository, in ascending order."""
        if not self.packages_dir.is_dir():
            return []
        return sorted(
            int(entry.name) for entry in self.packages_dir.iterdir()
            if entry.is_dir() and entry.name.isdigit()
        )

    def __len__(self) -> int:
        return len(self.keys())

    def get_or_create(self, n: int) -> Path:
        """
        Return the repository for key n, materializing it if needed.

        Concurrent callers, in this process or any other sharing the root,
        may all build a staging copy; the first rename wins and the others
        discard theirs. Generation and commit metadata are deterministic,
        so every copy is identical to the winner.

        Raises:
            FilesystemError: on any unexpected I/O failure
            ExternalToolFailure: if git fails while building the repository
        """
        canonical = self.path_for(n)
        if canonical.is_dir():
            return canonical

        try:
            self.packages_dir.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(
                dir=self.packages_dir,
                prefix=f"{STAGING_PREFIX}{PACKAGE_DIR}-{n}.",
            ))
            # mkdtemp creates 0700; published repositories are world-readable
            staging.chmod(0o755)
        except OSError as e:
            raise FilesystemError(f"cannot create staging directory for {n}: {e}") from e

        try:
            self._build(n, staging)
            os.rename(staging, canonical)
        except OSError as e:
            self._discard(staging)
            if e.errno in _DESTINATION_EXISTS and canonical.is_dir():
                logger.debug(f"Repository {n} was created concurrently, using existing copy")
                return canonical
            raise FilesystemError(f"cannot materialize repository {n}: {e}") from e
        except ExternalToolFailure:
            self._discard(staging)
            raise

        logger.info(f"Materialized repository {n} at {canonical}")
        return canonical

    def _build(self, n: int, staging: Path) -> None:
        """Write generated files into staging and record them as one commit."""
        source = generate(n, self.module_root)
        for name, content in source.files:
            (staging / name).write_bytes(content)

        self.git.init(staging)
        self.git.set_head(staging, PRIMARY_BRANCH)
        self.git.add_all(staging)
        commit = self.git.commit(staging, COMMIT_MESSAGE, FIXED_IDENTITY)
        logger.debug(f"Committed {commit} for repository {n}")

    @staticmethod
    def _discard(staging: Path) -> None:
        try:
            shutil.rmtree(staging)
        except OSError as e:
            logger.warning(f"Could not remove staging directory {staging}: {e}")
