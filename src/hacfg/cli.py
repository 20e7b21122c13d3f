"""hacfg CLI — edit frontend binds of an HAProxy configuration file.

Commands:
    hacfg init                          create hacfg.toml, transaction dir, config file
    hacfg status                        file, version, frontends, staged transactions
    hacfg version [-t TXN]              committed (or transaction) version
    hacfg transaction start -v N        stage a transaction from version N
    hacfg transaction commit ID         commit a staged transaction
    hacfg transaction abort ID          discard a staged transaction
    hacfg transaction list              list staged transactions
    hacfg bind list FRONTEND            binds of a frontend (JSON)
    hacfg bind show NAME FRONTEND       one bind (JSON)
    hacfg bind add FRONTEND ...         create a bind (-t TXN or -v VERSION)
    hacfg bind edit NAME FRONTEND ...   replace a bind (-t TXN or -v VERSION)
    hacfg bind delete NAME FRONTEND     delete a bind (-t TXN or -v VERSION)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import click

from hacfg.cache import Cache
from hacfg.client import Client
from hacfg.config import HacfgConfig, init_config, load_config
from hacfg.errors import ConfError
from hacfg.models import Bind

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_cfg() -> HacfgConfig:
    try:
        return load_config()
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc


def _client(ctx: click.Context) -> Client:
    cfg = _load_cfg()
    client = Client.from_config(cfg)
    if ctx.obj.get("no_cache"):
        client.cache = Cache(enabled=False)
    return client


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


def _bind_from(fields: dict[str, Any]) -> Bind:
    """Build a Bind from command options, or from --json when given."""
    json_file = fields.pop("json_file", None)
    if json_file is None:
        return Bind(**fields)
    try:
        payload = json.load(json_file)
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        if not isinstance(payload, dict):
            msg = "expected a JSON object"
            raise ValueError(msg)
        return Bind.from_dict(payload)
    except (TypeError, ValueError) as exc:
        raise click.ClickException(f"invalid bind JSON: {exc}") from exc


def _run(fn: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a client method, reporting ConfError as a CLI error."""
    try:
        return fn(*args, **kwargs)
    except ConfError as exc:
        raise click.ClickException(f"{exc.kind.value}: {exc.message}") from exc


_scope_options = [
    click.option("--transaction", "-t", "transaction_id", default=None, help="Explicit transaction ID"),
    click.option("--version", "-v", "version", type=int, default=None, help="Expected committed version"),
]


def scope_options(fn: Any) -> Any:
    for option in reversed(_scope_options):
        fn = option(fn)
    return fn


def bind_options(fn: Any) -> Any:
    options = [
        click.option("--name", default="", help="Bind name (defaults to ADDRESS:PORT)"),
        click.option("--address", default="", help="IP address, or socket path starting with /"),
        click.option("--port", type=int, default=None),
        click.option("--process", default=""),
        click.option("--crt", "ssl_certificate", default="", help="Certificate path"),
        click.option("--ca-file", "ssl_cafile", default="", help="CA file path"),
        click.option("--tcp-ut", "tcp_user_timeout", type=int, default=None, help="TCP user timeout (ms)"),
        click.option("--ssl", is_flag=True),
        click.option("--transparent", is_flag=True),
        click.option(
            "--json", "json_file", type=click.File("r"), default=None,
            help="Read the bind from a JSON file (as printed by `bind show`); other bind options are ignored",
        ),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="hacfg")
@click.option("--verbose", is_flag=True, help="Log to stderr")
@click.option("--no-cache", is_flag=True, help="Bypass the bind cache")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, no_cache: bool) -> None:
    """hacfg — transactional editing of HAProxy frontend binds."""
    ctx.ensure_object(dict)
    ctx.obj["no_cache"] = no_cache
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s %(message)s")


# ---------------------------------------------------------------------------
# hacfg init / version
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--dir", "root", default=".", show_default=True, help="Project root")
@click.option("--config-file", default=None, help="Managed file, relative to the root")
def init(root: str, config_file: str | None) -> None:
    """Create hacfg.toml, the transaction dir and an empty config file."""
    root_path = Path(root).resolve()
    try:
        config_path = init_config(root_path, config_file=config_file)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("hacfg.toml already exists — skipping init")

    cfg = load_config(root_path)
    cfg.ensure_dirs()
    click.echo(f"Config file     : {cfg.config_file}")
    click.echo(f"Transaction dir : {cfg.transaction_dir}")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the managed file, its version, frontends and staged transactions."""
    from rich.console import Console
    from rich.table import Table

    cfg = _load_cfg()
    client = _client(ctx)
    console = Console()

    table = Table(title=f"hacfg — {cfg.config_file.name}", show_header=True, header_style="bold")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value", justify="right")

    table.add_row("Config file", str(cfg.config_file))
    table.add_row("Version", str(_run(client.get_version)))
    table.add_row("", "")

    frontends = _run(client.get_frontends)
    if not frontends:
        table.add_row("Frontends", "[yellow]none[/yellow]")
    for name in frontends:
        n_binds = len(_run(client.get_binds, name).data)
        table.add_row(f"frontend {name}", f"{n_binds} bind{'s' if n_binds != 1 else ''}")
    table.add_row("", "")

    staged = _run(client.get_transactions)
    table.add_row("Transactions", str(len(staged)))
    for t in staged:
        table.add_row(f"  {t.id}", f"[dim]from version {t.version}[/dim]")

    console.print(table)


@cli.command("version")
@click.option("--transaction", "-t", "transaction_id", default=None)
@click.pass_context
def version_cmd(ctx: click.Context, transaction_id: str | None) -> None:
    """Print the committed version (or a transaction's base version)."""
    client = _client(ctx)
    click.echo(_run(client.get_version, transaction_id))


# ---------------------------------------------------------------------------
# hacfg transaction
# ---------------------------------------------------------------------------


@cli.group()
def transaction() -> None:
    """Stage, commit and discard transactions."""


@transaction.command("start")
@click.option("--version", "-v", "version", type=int, required=True, help="Committed version to start from")
@click.pass_context
def transaction_start(ctx: click.Context, version: int) -> None:
    client = _client(ctx)
    t = _run(client.start_transaction, version)
    click.echo(t.id)


@transaction.command("commit")
@click.argument("transaction_id")
@click.pass_context
def transaction_commit(ctx: click.Context, transaction_id: str) -> None:
    client = _client(ctx)
    new_version = _run(client.commit_transaction, transaction_id)
    click.echo(f"Committed {transaction_id} (version {new_version})")


@transaction.command("abort")
@click.argument("transaction_id")
@click.pass_context
def transaction_abort(ctx: click.Context, transaction_id: str) -> None:
    client = _client(ctx)
    _run(client.delete_transaction, transaction_id)
    click.echo(f"Deleted {transaction_id}")


@transaction.command("list")
@click.pass_context
def transaction_list(ctx: click.Context) -> None:
    client = _client(ctx)
    _echo_json([t.to_dict() for t in _run(client.get_transactions)])


@transaction.command("show")
@click.argument("transaction_id")
@click.pass_context
def transaction_show(ctx: click.Context, transaction_id: str) -> None:
    client = _client(ctx)
    _echo_json(_run(client.get_transaction, transaction_id).to_dict())


# ---------------------------------------------------------------------------
# hacfg bind
# ---------------------------------------------------------------------------


@cli.group()
def bind() -> None:
    """List and edit binds of a frontend."""


@bind.command("list")
@click.argument("frontend")
@click.option("--transaction", "-t", "transaction_id", default=None)
@click.pass_context
def bind_list(ctx: click.Context, frontend: str, transaction_id: str | None) -> None:
    client = _client(ctx)
    result = _run(client.get_binds, frontend, transaction_id)
    _echo_json({"version": result.version, "data": [b.to_dict() for b in result.data]})


@bind.command("show")
@click.argument("name")
@click.argument("frontend")
@click.option("--transaction", "-t", "transaction_id", default=None)
@click.pass_context
def bind_show(ctx: click.Context, name: str, frontend: str, transaction_id: str | None) -> None:
    client = _client(ctx)
    result = _run(client.get_bind, name, frontend, transaction_id)
    _echo_json({"version": result.version, "data": result.data.to_dict()})


@bind.command("add")
@click.argument("frontend")
@bind_options
@scope_options
@click.pass_context
def bind_add(
    ctx: click.Context,
    frontend: str,
    transaction_id: str | None,
    version: int | None,
    **fields: Any,
) -> None:
    """Create a bind.

    \b
    hacfg bind add http --name web --address 0.0.0.0 --port 80 -v 1
    hacfg bind add https --address 0.0.0.0 --port 443 --ssl --crt /etc/ssl/site.pem -t <txn>
    hacfg bind add http --json web.json -v 2
    """
    client = _client(ctx)
    data = _bind_from(fields)
    new_version = _run(client.create_bind, frontend, data, transaction_id=transaction_id, version=version)
    click.echo(f"Created bind {data.name or '(unnamed)'} in {frontend} (version {new_version})")


@bind.command("edit")
@click.argument("name")
@click.argument("frontend")
@bind_options
@scope_options
@click.pass_context
def bind_edit(
    ctx: click.Context,
    name: str,
    frontend: str,
    transaction_id: str | None,
    version: int | None,
    **fields: Any,
) -> None:
    """Replace a bind; options not given are cleared."""
    client = _client(ctx)
    data = _bind_from(fields)
    if not data.name:
        data.name = name
    new_version = _run(
        client.edit_bind, name, frontend, data, transaction_id=transaction_id, version=version,
    )
    click.echo(f"Edited bind {name} in {frontend} (version {new_version})")


@bind.command("delete")
@click.argument("name")
@click.argument("frontend")
@scope_options
@click.pass_context
def bind_delete(
    ctx: click.Context,
    name: str,
    frontend: str,
    transaction_id: str | None,
    version: int | None,
) -> None:
    client = _client(ctx)
    new_version = _run(client.delete_bind, name, frontend, transaction_id=transaction_id, version=version)
    click.echo(f"Deleted bind {name} from {frontend} (version {new_version})")
