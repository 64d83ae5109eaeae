#!/usr/bin/env python3

import json
from pathlib import Path
from typing import Any, Dict, Optional

import click

from gupl.cli_utils import standard_command
from gupl.config import load_config, configure_logging
from gupl.errors import FilesystemError, ExternalToolFailure
from gupl.infra import GitClient, RepositoryStore
from gupl.render import render_source, render_store_table
from gupl.services.generator_service import generate


def _store(config: Dict[str, Any], root: Optional[str]) -> RepositoryStore:
    """RepositoryStore from config, with an optional --root override."""
    return RepositoryStore(
        Path(root or config["storage"]["root"]),
        git_client=GitClient(config["git"]["binary"]),
        module_root=config["public"]["host"],
    )


def _record(store: RepositoryStore, n: int) -> Dict[str, Any]:
    path = store.path_for(n)
    try:
        commit = store.git.head_commit(path)
    except ExternalToolFailure:
        commit = None
    return {'key': n, 'path': str(path), 'commit': commit}


@click.group()
@click.version_option(package_name='gupl')
def cli():
    """gupl - Generated Go packages served over git smart-HTTP.

    Every arity N gets its own tuple package, generated and committed to a
    git repository the first time anyone asks for it.
    """
    pass


@cli.command('serve')
@click.option('--host', '-h', default=None, help='Address to bind (default: server.host)')
@click.option('--port', '-p', default=None, type=int, help='Port to bind (default: server.port)')
@click.option('--root', '-r', default=None, help='Repository store root (default: storage.root)')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def serve_handler(host, port, root, debug):
    """Run the HTTP server.

    \b
    Routes:
      /                                         Index page
      /tuple/{n}/tuple?go-get=1                 go-import meta tag
      /tuple/{n}/tuple.git/info/refs            Refs discovery
      /tuple/{n}/tuple.git/git-upload-pack      Pack negotiation
    """
    from gupl.server import run_server

    config = load_config()
    if host:
        config['server']['host'] = host
    if port is not None:
        config['server']['port'] = port
    if root:
        config['storage']['root'] = root
    configure_logging(config, debug=debug)

    click.echo(f"Starting gupl on http://{config['server']['host']}:{config['server']['port']}", err=True)
    run_server(config)


@cli.command('generate')
@click.argument('n', type=click.IntRange(min=0))
@click.option('--pretty', is_flag=True, help='Render files with syntax highlighting')
@click.option('--output', '-o', type=click.Path(file_okay=False), help='Write files into this directory')
@standard_command
def generate_handler(n, pretty, output):
    """Generate the tuple package for arity N."""
    config = load_config()
    source = generate(n, config['public']['host'])

    if output:
        target = Path(output)
        try:
            target.mkdir(parents=True, exist_ok=True)
            for name, content in source.files:
                (target / name).write_bytes(content)
        except OSError as e:
            raise FilesystemError(f"cannot write {target}: {e}") from e
        return {'key': n, 'output': str(target), 'files': list(source.filenames)}

    if pretty:
        render_source(source)
        return None
    return source.to_dict()


@cli.command('materialize')
@click.argument('n', type=click.IntRange(min=0))
@click.option('--root', '-r', default=None, help='Repository store root (default: storage.root)')
@standard_command
def materialize_handler(n, root):
    """Create the repository for arity N if it does not exist yet."""
    config = load_config()
    configure_logging(config)
    store = _store(config, root)
    existed = n in store
    store.get_or_create(n)
    record = _record(store, n)
    record['created'] = not existed
    return record


@cli.command('list')
@click.option('--root', '-r', default=None, help='Repository store root (default: storage.root)')
@click.option('--pretty', is_flag=True, help='Show a table instead of JSONL')
@standard_command
def list_handler(root, pretty):
    """List materialized repositories."""
    store = _store(load_config(), root)
    records = [_record(store, n) for n in store.keys()]
    if pretty:
        render_store_table(records)
        return None
    return (record for record in records)


@cli.group('config')
def config_cmd():
    """Configuration commands."""
    pass


@config_cmd.command('show')
def config_show_handler():
    """Print the effective configuration as JSON."""
    click.echo(json.dumps(load_config(), indent=2))


def main():
    cli()

if __name__ == "__main__":
    main()
