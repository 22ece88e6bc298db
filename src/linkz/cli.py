"""Command-line interface for Simple Linkz (linkz)."""

import asyncio
import logging
import sys

import click

from linkz import __version__
from linkz.storage.store import DATA_DIR_ENV, DocumentStore, resolve_data_dir


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )


def _store(ctx: click.Context) -> DocumentStore:
    return DocumentStore(ctx.obj["data_dir"])


def _load_document(store: DocumentStore) -> dict:
    from linkz.storage.loader import StorageError

    if not store.path.exists():
        click.echo(f"Data document not found: {store.path} (run 'linkz init')", err=True)
        sys.exit(1)
    try:
        return asyncio.run(store.read())
    except StorageError as exc:
        click.echo(f"Could not read data document: {exc}", err=True)
        sys.exit(1)


# ── Root group ────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=__version__, prog_name="linkz")
@click.option(
    "--data-dir",
    "-d",
    default=None,
    envvar=DATA_DIR_ENV,
    help="Directory holding data.json  [default: ./data]",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, data_dir: str, verbose: bool) -> None:
    """Simple Linkz — single-user link dashboard."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = resolve_data_dir(data_dir)


# ── init command ──────────────────────────────────────────────────────────────


@main.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Create the data document with a fresh signing secret (no-op if it exists)."""
    store = _store(ctx)
    if asyncio.run(store.initialize()):
        click.echo(f"Created {store.path}")
    else:
        click.echo(f"Data document already exists: {store.path}")


# ── status command ────────────────────────────────────────────────────────────


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show account, session and link counts, and any document problems."""
    from linkz.auth.session import Session, is_session_valid, now_ms
    from linkz.storage.loader import validate_document

    store = _store(ctx)
    document = _load_document(store)

    user = document.get("user")
    click.echo(f"Document:  {store.path}")
    click.echo(f"Account:   {user.get('username', '(malformed)') if isinstance(user, dict) else '(none, setup pending)'}")

    now = now_ms()
    active = expired = 0
    for entry in (document.get("sessions") or {}).values():
        try:
            live = is_session_valid(Session.from_dict(entry), now=now)
        except (KeyError, TypeError, ValueError):
            live = False
        if live:
            active += 1
        else:
            expired += 1
    click.echo(f"Sessions:  {active} active, {expired} expired")
    click.echo(f"Links:     {len(document.get('links') or [])}")

    errors = validate_document(document)
    if errors:
        click.echo("Document validation errors:", err=True)
        for e in errors:
            click.echo(f"  • {e}", err=True)
        sys.exit(1)


# ── reset-credentials command ─────────────────────────────────────────────────


@main.command("reset-credentials")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def reset_credentials(ctx: click.Context, yes: bool) -> None:
    """Remove the account and log out every session."""
    from linkz.auth.service import clear_credentials

    store = _store(ctx)
    _load_document(store)
    if not yes:
        click.confirm("Remove the account and all sessions?", abort=True)
    asyncio.run(clear_credentials(store))
    click.echo("Credentials cleared. Open the dashboard to create a new account.")


# ── sessions group ────────────────────────────────────────────────────────────


@main.group()
def sessions() -> None:
    """Inspect and maintain the session table."""


@sessions.command("prune")
@click.pass_context
def sessions_prune(ctx: click.Context) -> None:
    """Delete expired session entries."""
    from linkz.auth.service import AccountService

    store = _store(ctx)
    _load_document(store)
    removed = asyncio.run(AccountService(store).prune_expired_sessions())
    click.echo(f"Removed {removed} expired session(s)")


# ── serve command ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind host")
@click.option("--port", default=3000, envvar="PORT", show_default=True, help="Bind port")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Start the Simple Linkz API server."""
    import uvicorn

    from linkz.api.routes import create_app

    app = create_app(data_dir=ctx.obj["data_dir"])
    click.echo(f"Starting Simple Linkz at http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
