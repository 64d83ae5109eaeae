"""
Tests for gupl domain objects.
"""

import pytest
from pathlib import Path

from gupl.domain import (
    FIXED_IDENTITY,
    ExchangeState,
    Phase,
    ProtocolExchange,
    parse_key,
)
from gupl.errors import ClientProtocolError


class TestParseKey:
    """URL segment to RepositoryKey."""

    @pytest.mark.parametrize("text,expected", [("0", 0), ("3", 3), ("42", 42)])
    def test_valid(self, text, expected):
        assert parse_key(text) == expected

    @pytest.mark.parametrize("text", ["", "-1", "+3", " 3", "03", "3a", "x", "٣"])
    def test_invalid(self, text):
        with pytest.raises(ClientProtocolError):
            parse_key(text)


class TestCommitIdentity:
    """The fixed identity pins author and committer."""

    def test_env_pins_both_roles(self):
        env = FIXED_IDENTITY.to_env()
        assert env['GIT_AUTHOR_NAME'] == env['GIT_COMMITTER_NAME'] == "gupl"
        assert env['GIT_AUTHOR_DATE'] == env['GIT_COMMITTER_DATE'] == "1000000000 +0000"
        assert env['GIT_AUTHOR_EMAIL'] == "gupl@pkg.golang.fail"


class TestProtocolExchange:
    """Per-request state machine."""

    def test_refs_discovery_lifecycle(self):
        exchange = ProtocolExchange(phase=Phase.REFS_DISCOVERY)
        assert exchange.state is ExchangeState.START

        exchange.resolve(Path("/tmp/repo"))
        assert exchange.state is ExchangeState.REPO_RESOLVED
        assert exchange.repo == Path("/tmp/repo")

        exchange.complete(b"body", "text/plain")
        assert exchange.done
        assert exchange.response_body == b"body"
        assert exchange.content_type == "text/plain"

    def test_pack_negotiation_passes_through_negotiated(self):
        exchange = ProtocolExchange(phase=Phase.PACK_NEGOTIATION, request_body=b"x")
        exchange.resolve(Path("/tmp/repo"))
        exchange.advance(ExchangeState.PACK_NEGOTIATED)
        exchange.advance(ExchangeState.DONE)
        assert exchange.done

    def test_cannot_complete_before_resolving(self):
        exchange = ProtocolExchange(phase=Phase.REFS_DISCOVERY)
        with pytest.raises(RuntimeError):
            exchange.complete(b"", "text/plain")

    def test_cannot_skip_phase(self):
        exchange = ProtocolExchange(phase=Phase.REFS_DISCOVERY)
        exchange.resolve(Path("/tmp/repo"))
        with pytest.raises(RuntimeError):
            exchange.advance(ExchangeState.DONE)
