"""
Protocol gateway service for gupl.

Serves the two phases of git's smart-HTTP protocol (v0, stateless RPC)
for an already materialized repository:

1. Refs discovery   GET  .../info/refs?service=git-upload-pack
2. Pack negotiation POST .../git-upload-pack

The protocol computation itself is delegated to a VersionControlProvider.
This service only checks the request and adds the framing git expects
around the discovery response.
"""

import logging
from pathlib import Path
from typing import Optional

from ..domain.exchange import Phase, ProtocolExchange
from ..errors import ClientProtocolError
from ..infra.vcs_provider import VersionControlProvider

logger = logging.getLogger(__name__)

SUPPORTED_SERVICE = "git-upload-pack"
ADVERTISEMENT_CONTENT_TYPE = f"application/x-{SUPPORTED_SERVICE}-advertisement"
RESULT_CONTENT_TYPE = f"application/x-{SUPPORTED_SERVICE}-result"

FLUSH_PKT = b"0000"
MAX_PKT_PAYLOAD = 65516


def pkt_line(data: bytes) -> bytes:
    """
    Frame data as a pkt-line.

    The 4 hex digit length prefix counts itself, so "# service=git-upload-pack\\n"
    (26 bytes) becomes "001e# service=git-upload-pack\\n".
    """
    if len(data) > MAX_PKT_PAYLOAD:
        raise ValueError(f"pkt-line payload too long: {len(data)} bytes")
    return f"{len(data) + 4:04x}".encode("ascii") + data


SERVICE_ANNOUNCEMENT = pkt_line(f"# service={SUPPORTED_SERVICE}\n".encode("ascii")) + FLUSH_PKT


class ProtocolGateway:
    """
    Bridges HTTP requests to a VersionControlProvider.

    Example:
        gateway = ProtocolGateway(GitClient())
        body = gateway.advertise(repo, "git-upload-pack")
    """

    def __init__(self, provider: VersionControlProvider):
        self.provider = provider

    def check_service(self, requested_service: Optional[str]) -> None:
        """Raise ClientProtocolError unless requested_service is git-upload-pack."""
        if requested_service != SUPPORTED_SERVICE:
            raise ClientProtocolError(f"unsupported service: {requested_service!r}")

    def exchange_for_refs(self, repo: Path, requested_service: Optional[str]) -> ProtocolExchange:
        """
        Run the refs discovery phase.

        Raises:
            ClientProtocolError: if requested_service is not git-upload-pack
            ExternalToolFailure: if the provider fails
        """
        self.check_service(requested_service)

        exchange = ProtocolExchange(phase=Phase.REFS_DISCOVERY)
        exchange.resolve(repo)
        raw = self.provider.advertise_refs(exchange.repo)
        exchange.complete(SERVICE_ANNOUNCEMENT + raw, ADVERTISEMENT_CONTENT_TYPE)
        return exchange

    def exchange_for_pack(self, repo: Path, request_body: bytes) -> ProtocolExchange:
        """
        Run the pack negotiation phase on a fully buffered request body.

        Raises:
            ExternalToolFailure: if the provider fails
        """
        exchange = ProtocolExchange(phase=Phase.PACK_NEGOTIATION, request_body=request_body)
        exchange.resolve(repo)
        result = self.provider.negotiate_pack(exchange.repo, request_body)
        logger.debug(f"Negotiated {len(result)} bytes for {repo}")
        exchange.complete(result, RESULT_CONTENT_TYPE)
        return exchange

    def advertise(self, repo: Path, requested_service: Optional[str]) -> bytes:
        """Refs discovery response body for repo."""
        return self.exchange_for_refs(repo, requested_service).response_body

    def negotiate(self, repo: Path, request_body: bytes) -> bytes:
        """Pack negotiation response body for repo."""
        return self.exchange_for_pack(repo, request_body).response_body
