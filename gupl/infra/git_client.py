"""
Git client infrastructure for gupl.

Provides a clean abstraction over git command execution.
All git operations go through this client, making them:
- Easy to mock for testing
- Consistent in error handling
- Isolated from the host's git configuration
"""

import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Union
import logging

from ..domain.package import CommitIdentity
from ..errors import ExternalToolFailure

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class GitClient:
    """
    Abstraction over git commands.

    Satisfies VersionControlProvider by bridging to `git upload-pack`, and
    also provides the handful of plumbing commands needed to record a
    generated package as a commit.

    Commands are run without a timeout: a hung git process blocks only the
    thread serving that request.

    Example:
        client = GitClient()
        refs = client.advertise_refs("/srv/gupl/tuple/3")
    """

    def __init__(self, git_binary: str = "git"):
        """
        Initialize GitClient.

        Args:
            git_binary: Name or path of the git executable
        """
        self.git_binary = git_binary

    def _env(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Environment for git with user and system configuration masked."""
        env = {
            key: value for key, value in os.environ.items()
            if not key.startswith('GIT_')
        }
        env.update({
            'GIT_CONFIG_NOSYSTEM': '1',
            'GIT_CONFIG_GLOBAL': os.devnull,
            'GIT_TERMINAL_PROMPT': '0',
        })
        if extra:
            env.update(extra)
        return env

    def _run(
        self,
        args: List[str],
        cwd: Optional[PathLike] = None,
        input: Optional[bytes] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> bytes:
        """
        Run a git command and return its stdout.

        Args:
            args: Arguments after the git binary
            cwd: Working directory
            input: Bytes fed to stdin
            env: Extra environment variables

        Returns:
            Captured stdout

        Raises:
            ExternalToolFailure: if git cannot be started or exits non-zero
        """
        cmd = [self.git_binary] + args
        logger.debug(f"Running {' '.join(cmd)} (cwd={cwd})")
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                input=input,
                capture_output=True,
                env=self._env(env),
            )
        except OSError as e:
            raise ExternalToolFailure(f"could not run git: {e}", cmd=cmd) from e

        if result.returncode != 0:
            raise ExternalToolFailure(
                "git command failed",
                cmd=cmd,
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result.stdout

    def init(self, path: PathLike) -> None:
        """Create an empty repository without hooks or template files."""
        self._run(["init", "--quiet", "--template=", str(path)])

    def set_head(self, path: PathLike, branch: str) -> None:
        """Point HEAD at refs/heads/<branch>."""
        self._run(["symbolic-ref", "HEAD", f"refs/heads/{branch}"], cwd=path)

    def add_all(self, path: PathLike) -> None:
        """Stage every file in the working tree."""
        self._run(["add", "--all", "."], cwd=path)

    def commit(self, path: PathLike, message: str, identity: CommitIdentity) -> str:
        """
        Create a commit with a pinned identity and timestamp.

        Returns:
            The new commit id
        """
        self._run(
            ["-c", "commit.gpgsign=false", "commit", "--quiet", "--no-verify", "-m", message],
            cwd=path,
            env=identity.to_env(),
        )
        return self.head_commit(path)

    def head_commit(self, path: PathLike) -> str:
        """Commit id HEAD resolves to."""
        return self._run(["rev-parse", "HEAD"], cwd=path).decode("ascii").strip()

    def advertise_refs(self, repo_path: PathLike) -> bytes:
        """Raw `upload-pack --advertise-refs` output for the refs discovery phase."""
        return self._run([
            "upload-pack", "--stateless-rpc", "--advertise-refs", str(repo_path)
        ])

    def negotiate_pack(self, repo_path: PathLike, body: bytes) -> bytes:
        """Feed a buffered negotiation request to `upload-pack` and return its output."""
        return self._run(
            ["upload-pack", "--stateless-rpc", str(repo_path)],
            input=body,
        )
