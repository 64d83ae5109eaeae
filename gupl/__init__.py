"""
gupl - Generated Go packages served over git smart-HTTP.

Every arity N maps to a Go module `pkg.golang.fail/tuple/N/tuple` holding
an N-ary generic tuple. The module's git repository is generated and
committed on first request, then served to `go get` and `git clone`
through the smart-HTTP protocol.

Quick Start:
    from gupl import RepositoryStore, ProtocolGateway, GitClient, generate

    source = generate(3)
    print(source.as_dict()["tuple.go"].decode())

    git = GitClient()
    store = RepositoryStore("/srv/gupl", git_client=git)
    repo = store.get_or_create(3)

    gateway = ProtocolGateway(git)
    refs = gateway.advertise(repo, "git-upload-pack")

Running the server:
    $ gupl serve --port 8080 --root /srv/gupl
    $ go get localhost:8080/tuple/3/tuple   # with public.host set to match
"""

__version__ = "0.1.0"

from .domain import GeneratedSource, ProtocolExchange, Phase, parse_key
from .errors import (
    GuplError,
    ClientProtocolError,
    ExternalToolFailure,
    FilesystemError,
)
from .infra import GitClient, RepositoryStore, VersionControlProvider
from .services import generate, ProtocolGateway, SUPPORTED_SERVICE
from .config import load_config

__all__ = [
    "__version__",
    # Domain objects
    "GeneratedSource",
    "ProtocolExchange",
    "Phase",
    "parse_key",
    # Errors
    "GuplError",
    "ClientProtocolError",
    "ExternalToolFailure",
    "FilesystemError",
    # Infrastructure
    "GitClient",
    "RepositoryStore",
    "VersionControlProvider",
    # Services
    "generate",
    "ProtocolGateway",
    "SUPPORTED_SERVICE",
    # Configuration
    "load_config",
]
