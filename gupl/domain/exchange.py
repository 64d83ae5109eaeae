"""
Protocol exchange domain objects for gupl.

A ProtocolExchange lives for exactly one HTTP request. It records which
phase of the smart-HTTP exchange is being served and carries the response
bytes and content type back to the HTTP layer.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class Phase(Enum):
    """The two phases of the smart-HTTP exchange."""
    REFS_DISCOVERY = "refs_discovery"
    PACK_NEGOTIATION = "pack_negotiation"


class ExchangeState(Enum):
    """Per-request state machine."""
    START = "start"
    REPO_RESOLVED = "repo_resolved"
    REFS_ADVERTISED = "refs_advertised"
    PACK_NEGOTIATED = "pack_negotiated"
    DONE = "done"


# Allowed transitions; anything else is a programming error.
_TRANSITIONS = {
    ExchangeState.START: {ExchangeState.REPO_RESOLVED},
    ExchangeState.REPO_RESOLVED: {ExchangeState.REFS_ADVERTISED, ExchangeState.PACK_NEGOTIATED},
    ExchangeState.REFS_ADVERTISED: {ExchangeState.DONE},
    ExchangeState.PACK_NEGOTIATED: {ExchangeState.DONE},
    ExchangeState.DONE: set(),
}


@dataclass
class ProtocolExchange:
    """State of one refs-discovery or pack-negotiation request."""
    phase: Phase
    repo: Optional[Path] = None
    request_body: Optional[bytes] = None
    response_body: bytes = b""
    content_type: str = ""
    state: ExchangeState = ExchangeState.START

    def advance(self, state: ExchangeState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"invalid exchange transition {self.state.value} -> {state.value}")
        self.state = state

    def resolve(self, repo: Path) -> None:
        self.repo = Path(repo)
        self.advance(ExchangeState.REPO_RESOLVED)

    def complete(self, body: bytes, content_type: str) -> None:
        """Record the response and finish the exchange."""
        self.response_body = body
        self.content_type = content_type
        if self.phase is Phase.REFS_DISCOVERY:
            self.advance(ExchangeState.REFS_ADVERTISED)
        else:
            self.advance(ExchangeState.PACK_NEGOTIATED)
        self.advance(ExchangeState.DONE)

    @property
    def done(self) -> bool:
        return self.state is ExchangeState.DONE
