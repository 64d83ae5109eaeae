"""
HTTP server for gupl.

Routes requests to the package pages and to the smart-HTTP protocol
gateway. Every request runs on its own thread (ThreadingHTTPServer), so a
slow git process only holds up the request that started it. The only state
shared between requests is the repository store on disk.
"""

import gzip
import html
import io
import logging
import re
import tarfile
import zlib
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs, urlsplit

from .domain.package import parse_key
from .errors import ClientProtocolError, ExternalToolFailure, FilesystemError
from .infra import GitClient, RepositoryStore
from .services.gateway_service import ProtocolGateway
from .services.generator_service import module_path

logger = logging.getLogger(__name__)

TUPLE_PAGE = re.compile(r"^/tuple/(?P<n>[^/]+)/tuple/?$")
GIT_PATH = re.compile(r"^/tuple/(?P<n>[^/]+)/tuple\.git/(?P<subpath>.*)$")

INFO_REFS = "info/refs"
UPLOAD_PACK = "git-upload-pack"

HTML_TYPE = "text/html; charset=utf-8"
TEXT_TYPE = "text/plain; charset=utf-8"
NO_CACHE = {"Cache-Control": "no-cache", "Pragma": "no-cache"}

SOURCE_ROOT = Path(__file__).resolve().parent


@dataclass
class Response:
    """What the handler writes back for one request."""
    status: int
    body: bytes = b""
    content_type: str = TEXT_TYPE
    headers: Dict[str, str] = field(default_factory=dict)


def _page(title: str, body: str) -> bytes:
    return (
        "<!DOCTYPE html>\n"
        f"<html><head><title>{html.escape(title)}</title></head>\n"
        f"<body>\n{body}\n</body></html>\n"
    ).encode("utf-8")


class GuplApp:
    """
    Request dispatcher.

    Example:
        app = GuplApp.from_config(load_config())
        response = app.handle("GET", "/tuple/3/tuple?go-get=1")
    """

    def __init__(
        self,
        store: RepositoryStore,
        gateway: ProtocolGateway,
        public_host: str = "pkg.golang.fail",
        scheme: str = "https",
    ):
        self.store = store
        self.gateway = gateway
        self.public_host = public_host
        self.scheme = scheme

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'GuplApp':
        """Create app with default services."""
        public = config.get("public", {})
        host = public.get("host", "pkg.golang.fail")
        git_client = GitClient(config.get("git", {}).get("binary", "git"))
        store = RepositoryStore(
            Path(config.get("storage", {}).get("root", ".")),
            git_client=git_client,
            module_root=host,
        )
        return cls(
            store=store,
            gateway=ProtocolGateway(git_client),
            public_host=host,
            scheme=public.get("scheme", "https"),
        )

    def handle(
        self,
        method: str,
        target: str,
        read_body: Optional[Callable[[], bytes]] = None,
    ) -> Response:
        """Dispatch one request, mapping errors to responses."""
        try:
            return self._dispatch(method, target, read_body or (lambda: b""))
        except ClientProtocolError as e:
            logger.debug(f"Rejected {method} {target}: {e}")
            return Response(400, f"{e}\n".encode("utf-8"))
        except ExternalToolFailure as e:
            logger.error(f"{method} {target}: {e.detail()}")
            return Response(500, b"internal server error\n")
        except FilesystemError as e:
            logger.error(f"{method} {target}: {e}")
            return Response(500, b"internal server error\n")
        except Exception:
            logger.exception(f"Unhandled error for {method} {target}")
            return Response(500, b"internal server error\n")

    def _dispatch(self, method: str, target: str, read_body: Callable[[], bytes]) -> Response:
        url = urlsplit(target)
        path = url.path
        query = parse_qs(url.query)

        if method not in ("GET", "POST", "HEAD"):
            return Response(405, b"method not allowed\n", headers={"Allow": "GET, POST"})

        match = GIT_PATH.match(path)
        if match:
            return self._git(method, parse_key(match.group("n")), match.group("subpath"), query, read_body)

        if method == "POST":
            return Response(405, b"method not allowed\n", headers={"Allow": "GET"})

        match = TUPLE_PAGE.match(path)
        if match:
            n = parse_key(match.group("n"))
            if query.get("go-get") == ["1"]:
                return self.go_get_page(n)
            return self.package_page(n)

        if path in ("/", ""):
            return self.index_page()
        if path in ("/tuple", "/tuple/"):
            return self.tuple_page()
        if path == "/source.tar.gz":
            return self.source_archive()
        return Response(404, b"not found\n")

    def _git(
        self,
        method: str,
        n: int,
        subpath: str,
        query: Dict[str, list],
        read_body: Callable[[], bytes],
    ) -> Response:
        if subpath == INFO_REFS and method != "POST":
            service = query.get("service", [""])[0]
            # Reject before touching the store
            self.gateway.check_service(service)
            repo = self.store.get_or_create(n)
            exchange = self.gateway.exchange_for_refs(repo, service)
        elif subpath == UPLOAD_PACK:
            repo = self.store.get_or_create(n)
            exchange = self.gateway.exchange_for_pack(repo, read_body())
        else:
            raise ClientProtocolError(f"unsupported path: {subpath!r}")

        return Response(200, exchange.response_body, exchange.content_type, dict(NO_CACHE))

    def _repo_url(self, n: int) -> str:
        return f"{self.scheme}://{self.public_host}/tuple/{n}/tuple.git"

    def go_get_page(self, n: int) -> Response:
        import_path = module_path(n, self.public_host)
        meta = f'<meta name="go-import" content="{html.escape(import_path)} git {html.escape(self._repo_url(n))}">'
        body = (
            "<!DOCTYPE html>\n"
            f"<html><head>{meta}</head>\n"
            f"<body>go get {html.escape(import_path)}</body></html>\n"
        )
        return Response(200, body.encode("utf-8"), HTML_TYPE)

    def package_page(self, n: int) -> Response:
        import_path = html.escape(module_path(n, self.public_host))
        args = ", ".join(f"v{i}" for i in range(1, n + 1))
        return Response(200, _page(f"tuple/{n}", f"""<h2>{import_path}</h2>
<p>A generic tuple with {n} elements.</p>
<pre>import tuple{n} "{import_path}"

t := tuple{n}.New({args})</pre>
<p>Clone it with <code>git clone {html.escape(self._repo_url(n))}</code></p>"""), HTML_TYPE)

    def tuple_page(self) -> Response:
        examples = "\n".join(
            f'<li><a href="/tuple/{n}/tuple">{html.escape(module_path(n, self.public_host))}</a></li>'
            for n in (1, 2, 3, 4)
        )
        return Response(200, _page("n-ary generic tuple", f"""<h2>n-ary generic tuple</h2>
<p>Every arity has its own package. Pick a number and import it:</p>
<ul>
{examples}
</ul>
<p>Each package provides <code>Tuple</code>, <code>New</code> and <code>Unpack</code>.</p>"""), HTML_TYPE)

    def index_page(self) -> Response:
        return Response(200, _page(f"{self.public_host} packages", f"""<h2>{html.escape(self.public_host)} packages</h2>
<p class="body">Hello!<br>
Welcome to this site with some golang packages! Check em out:</p>
<ul>
<li><a href="/tuple">n-ary generic tuple</a></li>
</ul>
<h4>FAQ</h4>
<div class="faq">
<h5>What language is this site in?</h5>
<p>Python</p>
<h5>Where's the source code?</h5>
<p>As an archive <a href="/source.tar.gz">here</a>.</p>
<h5>Should I use any of these packages?</h5>
<p>I just don't know</p>
</div>"""), HTML_TYPE)

    def source_archive(self) -> Response:
        """gzip'd tarball of the running gupl package."""
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
            tar.add(
                SOURCE_ROOT,
                arcname="gupl",
                filter=lambda info: None if "__pycache__" in info.name else info,
            )
        return Response(200, buffer.getvalue(), "application/gzip")


def read_request_body(rfile, headers) -> bytes:
    """
    Read a complete request body into memory.

    Handles Content-Length and chunked transfer encoding, then undoes gzip
    content encoding (git compresses larger negotiation requests). There is
    no size limit.

    Raises:
        ClientProtocolError: on a malformed body or framing
    """
    try:
        if "chunked" in headers.get("Transfer-Encoding", "").lower():
            body = _read_chunked(rfile)
        else:
            length = int(headers.get("Content-Length") or 0)
            if length < 0:
                raise ValueError(f"negative Content-Length {length}")
            body = rfile.read(length) if length else b""
    except ValueError as e:
        raise ClientProtocolError(f"malformed request body: {e}") from e

    if headers.get("Content-Encoding", "").lower() in ("gzip", "x-gzip"):
        try:
            body = gzip.decompress(body)
        except (OSError, EOFError, zlib.error) as e:
            raise ClientProtocolError(f"malformed gzip body: {e}") from e
    return body


def _read_chunked(rfile) -> bytes:
    chunks = []
    while True:
        line = rfile.readline()
        if not line:
            raise ValueError("unexpected end of chunked body")
        size = int(line.split(b";", 1)[0].strip(), 16)
        if size == 0:
            # Skip trailers
            while rfile.readline() not in (b"\r\n", b"\n", b""):
                pass
            return b"".join(chunks)
        chunks.append(rfile.read(size))
        rfile.readline()


def make_handler(app: GuplApp):
    """Build a request handler class bound to app."""

    class GuplHandler(BaseHTTPRequestHandler):
        server_version = "gupl"

        def _serve(self, method: str):
            def read_body() -> bytes:
                return read_request_body(self.rfile, self.headers)

            response = app.handle(method, self.path, read_body)
            self.send_response(response.status)
            self.send_header("Content-Type", response.content_type)
            self.send_header("Content-Length", str(len(response.body)))
            for name, value in response.headers.items():
                self.send_header(name, value)
            self.end_headers()
            if method != "HEAD":
                self.wfile.write(response.body)

        def do_GET(self):
            self._serve("GET")

        def do_POST(self):
            self._serve("POST")

        def do_HEAD(self):
            self._serve("HEAD")

        def log_message(self, format, *args):
            logger.info(f"{self.address_string()} {format % args}")

    return GuplHandler


def create_server(config: Dict[str, Any], app: Optional[GuplApp] = None) -> ThreadingHTTPServer:
    """Bind a threaded HTTP server for app (built from config if omitted)."""
    server_config = config.get("server", {})
    host = server_config.get("host", "0.0.0.0")
    port = int(server_config.get("port", 8080))
    app = app or GuplApp.from_config(config)
    httpd = ThreadingHTTPServer((host, port), make_handler(app))
    httpd.daemon_threads = True
    return httpd


def run_server(config: Dict[str, Any]) -> None:
    """Serve until interrupted."""
    app = GuplApp.from_config(config)
    httpd = create_server(config, app)
    host, port = httpd.server_address[:2]
    logger.info(f"Serving gupl on http://{host}:{port} (store: {app.store.root})")
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        httpd.server_close()
