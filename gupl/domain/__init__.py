"""
Domain layer for gupl.

Contains pure domain objects with no I/O or side effects:
- GeneratedSource: Files generated for one arity
- CommitIdentity: Fixed author/committer identity for generated commits
- ProtocolExchange: One smart-HTTP request in flight
"""

from .package import (
    CommitIdentity,
    GeneratedSource,
    FIXED_IDENTITY,
    PRIMARY_BRANCH,
    COMMIT_MESSAGE,
    parse_key,
)
from .exchange import Phase, ExchangeState, ProtocolExchange

__all__ = [
    'CommitIdentity',
    'GeneratedSource',
    'FIXED_IDENTITY',
    'PRIMARY_BRANCH',
    'COMMIT_MESSAGE',
    'parse_key',
    'Phase',
    'ExchangeState',
    'ProtocolExchange',
]
