"""
Version-control provider protocol for gupl.

The protocol gateway never talks to git directly; it depends on this
two-operation capability. GitClient satisfies it by spawning
`git upload-pack`, and a library binding could satisfy it just as well.
"""

from pathlib import Path
from typing import Protocol, Union, runtime_checkable


@runtime_checkable
class VersionControlProvider(Protocol):
    """Computes the server side of the smart-HTTP upload-pack exchange."""

    def advertise_refs(self, repo_path: Union[str, Path]) -> bytes:
        """Return the raw reference advertisement for repo_path."""
        ...

    def negotiate_pack(self, repo_path: Union[str, Path], body: bytes) -> bytes:
        """Answer a complete stateless-RPC negotiation request."""
        ...
