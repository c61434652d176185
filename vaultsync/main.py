"""
Command line entry point for the vaultsync client.
"""

import asyncio
import locale
import logging
import sys
from typing import Awaitable, Callable, Optional, TypeVar

import click

from . import config
from .errors import VaultSyncError
from .models import DisplayRecord, MutationResult
from .service import Session, VaultService, status_message
from .storage import CacheStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AppContext:
    """Options shared by every command."""

    def __init__(self, api_url: str, user: Optional[str], token: Optional[str], core_password: Optional[str]):
        self.api_url = api_url
        self.user = user
        self.token = token
        self.core_password = core_password

    def require_user(self) -> str:
        if not self.user:
            raise click.UsageError("--user (or VAULTSYNC_USER) is required")
        return self.user

    def session(self) -> Session:
        user = self.require_user()
        if not self.token:
            raise click.UsageError("--token (or VAULTSYNC_TOKEN) is required")
        if not self.core_password:
            self.core_password = click.prompt("Core password", hide_input=True)
        return Session(owner=user, token=self.token, core_password=self.core_password, api_base_url=self.api_url)


def _run(ctx: AppContext, action: Callable[[VaultService], Awaitable[T]]) -> T:
    async def runner() -> T:
        async with VaultService(ctx.session()) as service:
            return await action(service)

    try:
        return asyncio.run(runner())
    except VaultSyncError as e:
        click.echo(status_message(e), err=True)
        sys.exit(1)


def _print_records(records) -> None:
    for r in records:
        click.echo(f"{r.id:>6}  {r.website:<32}  {r.account:<24}  {r.password}")


def _report(result: MutationResult, records) -> None:
    click.echo(result.message, err=not result.ok)
    if result.refresh_error:
        click.echo(result.refresh_error, err=True)
    else:
        _print_records(records)
    if not result.ok:
        sys.exit(1)


def _find(records, record_id: int) -> Optional[DisplayRecord]:
    return next((r for r in records if r.id == record_id), None)


@click.group()
@click.version_option(version=config.APP_VERSION, prog_name=config.APP_NAME)
@click.option("--api-url", envvar="VAULTSYNC_API_URL", default=config.DEFAULT_API_BASE_URL, show_default=True)
@click.option("--user", envvar="VAULTSYNC_USER", help="Account owner name.")
@click.option("--token", envvar="VAULTSYNC_TOKEN", help="Bearer token from login.")
@click.option("--core-password", envvar="VAULTSYNC_CORE_PASSWORD", help="Prompted when omitted.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
@click.pass_context
def main(ctx, api_url, user, token, core_password, verbose):
    """vaultsync: synced, encrypted website credentials."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s'
    )
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logger.warning(f"Using default collation, locale not available: {e}")
    ctx.obj = AppContext(api_url, user, token, core_password)


@main.command("list")
@click.option("--refresh", is_flag=True, help="Ask the server for newer data.")
@click.pass_obj
def list_cmd(ctx: AppContext, refresh: bool):
    """Show all entries, sorted by website."""
    async def action(service: VaultService):
        await service.query(force_refresh=refresh)
        return service.filter(""), service.status

    records, status = _run(ctx, action)
    click.echo(status, err=True)
    _print_records(records)


@main.command()
@click.argument("keyword")
@click.pass_obj
def search(ctx: AppContext, keyword: str):
    """Find entries whose website matches KEYWORD (pinyin and initials work too)."""
    async def action(service: VaultService):
        await service.query(force_refresh=False)
        return service.filter(keyword)

    _print_records(_run(ctx, action))


@main.command()
@click.option("--website", prompt=True)
@click.option("--account", prompt=True, default="")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.pass_obj
def add(ctx: AppContext, website: str, account: str, password: str):
    """Add an entry."""
    async def action(service: VaultService):
        result = await service.insert(website, account, password)
        return result, service.filter("")

    _report(*_run(ctx, action))


@main.command()
@click.argument("record_id", type=int)
@click.option("--website")
@click.option("--account")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.pass_obj
def edit(ctx: AppContext, record_id: int, website, account, password):
    """Change an entry. Omitted website or account keep their current value."""
    async def action(service: VaultService):
        current = _find(await service.query(force_refresh=False), record_id)
        if current is None:
            raise click.BadParameter(f"no entry with id {record_id}", param_hint="RECORD_ID")
        result = await service.update(
            record_id,
            website if website is not None else current.website,
            account if account is not None else current.account,
            password,
        )
        return result, service.filter("")

    _report(*_run(ctx, action))


@main.command()
@click.argument("record_id", type=int)
@click.confirmation_option(prompt="Delete this entry?")
@click.pass_obj
def delete(ctx: AppContext, record_id: int):
    """Delete an entry."""
    async def action(service: VaultService):
        result = await service.delete(record_id)
        return result, service.filter("")

    _report(*_run(ctx, action))


@main.command()
@click.argument("keyword", required=False, default="")
@click.pass_obj
def export(ctx: AppContext, keyword: str):
    """Print entries as plain text for copying."""
    async def action(service: VaultService):
        await service.query(force_refresh=False)
        return service.export_text(service.filter(keyword))

    click.echo(_run(ctx, action))


@main.command("clear-cache")
@click.pass_obj
def clear_cache(ctx: AppContext):
    """Forget the locally cached entries of --user."""
    user = ctx.require_user()
    try:
        CacheStore(config.get_cache_db_path()).clear(user)
    except VaultSyncError as e:
        click.echo(status_message(e), err=True)
        sys.exit(1)
    click.echo(f"Cache cleared for {user}")


if __name__ == "__main__":
    main()
