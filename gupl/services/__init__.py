"""
Service layer for gupl.

Contains the logic that sits between the HTTP/CLI surfaces and the
infrastructure:
- generate: Pure Go tuple package generator
- ProtocolGateway: Smart-HTTP refs discovery and pack negotiation
"""

from .generator_service import generate, module_path, DEFAULT_MODULE_ROOT
from .gateway_service import (
    ProtocolGateway,
    SUPPORTED_SERVICE,
    ADVERTISEMENT_CONTENT_TYPE,
    RESULT_CONTENT_TYPE,
)

__all__ = [
    'generate',
    'module_path',
    'DEFAULT_MODULE_ROOT',
    'ProtocolGateway',
    'SUPPORTED_SERVICE',
    'ADVERTISEMENT_CONTENT_TYPE',
    'RESULT_CONTENT_TYPE',
]
