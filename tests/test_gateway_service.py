"""
Tests for the smart-HTTP protocol gateway.
"""

import shutil
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from gupl.domain import Phase
from gupl.errors import ClientProtocolError, ExternalToolFailure
from gupl.infra import GitClient, RepositoryStore, VersionControlProvider
from gupl.services.gateway_service import (
    ProtocolGateway,
    SUPPORTED_SERVICE,
    ADVERTISEMENT_CONTENT_TYPE,
    RESULT_CONTENT_TYPE,
    FLUSH_PKT,
    pkt_line,
)

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")

PREFIX = b"001e# service=git-upload-pack\n0000"


class FakeProvider:
    """Records calls and returns canned protocol output."""

    def __init__(self, refs=b"REFS", pack=b"PACK"):
        self.refs = refs
        self.pack = pack
        self.calls = []

    def advertise_refs(self, repo_path):
        self.calls.append(("advertise_refs", repo_path))
        return self.refs

    def negotiate_pack(self, repo_path, body):
        self.calls.append(("negotiate_pack", repo_path, body))
        return self.pack


def read_pkt_lines(data: bytes):
    """Split pkt-lines until the first flush packet after the given offset."""
    lines = []
    pos = 0
    while pos < len(data):
        length = int(data[pos:pos + 4], 16)
        if length == 0:
            lines.append(None)
            pos += 4
            continue
        lines.append(data[pos + 4:pos + length])
        pos += length
    return lines


class TestPktLine:
    """pkt-line framing helpers."""

    def test_length_counts_header(self):
        assert pkt_line(b"# service=git-upload-pack\n") == b"001e# service=git-upload-pack\n"

    def test_empty_payload(self):
        assert pkt_line(b"") == b"0004"

    def test_flush(self):
        assert FLUSH_PKT == b"0000"

    def test_oversized_payload_rejected(self):
        with pytest.raises(ValueError):
            pkt_line(b"x" * 65517)


class TestAdvertise:
    """Refs discovery phase."""

    def test_fake_provider_satisfies_protocol(self):
        assert isinstance(FakeProvider(), VersionControlProvider)
        assert isinstance(GitClient(), VersionControlProvider)

    def test_wraps_provider_output(self):
        provider = FakeProvider(refs=b"raw advertisement")
        body = ProtocolGateway(provider).advertise(Path("/repo"), SUPPORTED_SERVICE)
        assert body == PREFIX + b"raw advertisement"
        assert provider.calls == [("advertise_refs", Path("/repo"))]

    @pytest.mark.parametrize("service", ["wrong-service", "git-receive-pack", "", None])
    def test_rejects_other_services(self, service):
        provider = FakeProvider()
        with pytest.raises(ClientProtocolError):
            ProtocolGateway(provider).advertise(Path("/repo"), service)
        assert provider.calls == []

    def test_exchange_records_phase_and_content_type(self):
        exchange = ProtocolGateway(FakeProvider()).exchange_for_refs(Path("/repo"), SUPPORTED_SERVICE)
        assert exchange.phase is Phase.REFS_DISCOVERY
        assert exchange.content_type == ADVERTISEMENT_CONTENT_TYPE
        assert exchange.content_type == "application/x-git-upload-pack-advertisement"
        assert exchange.done

    def test_provider_failure_propagates(self):
        provider = MagicMock()
        provider.advertise_refs.side_effect = ExternalToolFailure("boom", returncode=128)
        with pytest.raises(ExternalToolFailure):
            ProtocolGateway(provider).advertise(Path("/repo"), SUPPORTED_SERVICE)


class TestNegotiate:
    """Pack negotiation phase."""

    def test_returns_provider_output_verbatim(self):
        provider = FakeProvider(pack=b"\x00\x01pack bytes")
        body = ProtocolGateway(provider).negotiate(Path("/repo"), b"request")
        assert body == b"\x00\x01pack bytes"
        assert provider.calls == [("negotiate_pack", Path("/repo"), b"request")]

    def test_exchange_content_type(self):
        exchange = ProtocolGateway(FakeProvider()).exchange_for_pack(Path("/repo"), b"")
        assert exchange.phase is Phase.PACK_NEGOTIATION
        assert exchange.request_body == b""
        assert exchange.content_type == RESULT_CONTENT_TYPE
        assert exchange.content_type == "application/x-git-upload-pack-result"

    def test_provider_failure_propagates(self):
        provider = MagicMock()
        provider.negotiate_pack.side_effect = ExternalToolFailure("boom", returncode=128)
        with pytest.raises(ExternalToolFailure):
            ProtocolGateway(provider).negotiate(Path("/repo"), b"0000")


@requires_git
class TestEndToEnd:
    """Materialize, discover refs, then fetch the advertised commit."""

    def test_discovery_then_negotiation(self, tmp_path):
        git = GitClient()
        repo = RepositoryStore(tmp_path, git_client=git).get_or_create(2)
        gateway = ProtocolGateway(git)

        advertisement = gateway.advertise(repo, SUPPORTED_SERVICE)
        assert advertisement.startswith(PREFIX)

        lines = read_pkt_lines(advertisement[len(PREFIX):])
        assert lines[-1] is None
        first_ref = lines[0]
        oid, rest = first_ref.split(b" ", 1)
        assert rest.startswith(b"HEAD\x00")
        assert len(oid) == 40
        assert oid.decode() == git.head_commit(repo)
        ref_names = {line.split(b" ", 1)[1].split(b"\x00")[0].strip() for line in lines if line}
        assert b"refs/heads/main" in ref_names

        request = pkt_line(b"want " + oid + b"\n") + FLUSH_PKT + pkt_line(b"done\n")
        exchange = gateway.exchange_for_pack(repo, request)

        assert exchange.content_type == RESULT_CONTENT_TYPE
        assert exchange.response_body.startswith(b"0008NAK\n")
        assert b"PACK" in exchange.response_body

    def test_garbage_negotiation_is_tool_failure(self, tmp_path):
        git = GitClient()
        repo = RepositoryStore(tmp_path, git_client=git).get_or_create(1)
        with pytest.raises(ExternalToolFailure):
            ProtocolGateway(git).negotiate(repo, b"this is not a pkt-line stream")

    def test_missing_repository_is_tool_failure(self, tmp_path):
        with pytest.raises(ExternalToolFailure):
            ProtocolGateway(GitClient()).advertise(tmp_path / "nope", SUPPORTED_SERVICE)
