"""
CLI commands for inspecting account links.
"""
import click
from flask import current_app
from flask.cli import with_appcontext

from ..extensions import db
from ..services.link_registry import LinkRegistry
from ..services.store import Store
from ..utils.exceptions import CardLinkError


def _registry() -> LinkRegistry:
    return LinkRegistry(Store(db.session, current_app.config.get('DB_STATEMENT_TIMEOUT_MS')))


@click.group('links')
def links_cli():
    """Account link commands."""
    pass


@links_cli.command('stats')
@with_appcontext
def show_stats():
    """Show link statistics."""
    try:
        stats = _registry().stats()
    except CardLinkError as e:
        raise click.ClickException(e.message)

    click.echo(f"Identities:        {stats['total_identities']}")
    click.echo(f"  Linked:          {stats['linked_identities']}")
    click.echo(f"  Unlinked:        {stats['unlinked_identities']}")
    click.echo(f"  New (24h):       {stats['new_identities_24h']}")
    click.echo(f"Active links:      {stats['active_links']}")


@links_cli.command('check')
@click.argument('external_identity_id', required=False)
@click.option('--username', help='Look up by loyalty username instead')
@with_appcontext
def check_link(external_identity_id, username):
    """Resolve the active link for an identity or loyalty account."""
    if not external_identity_id and not username:
        raise click.UsageError('Give an external identity id or --username')

    try:
        snapshot = _registry().resolve(external_identity_id, username)
    except CardLinkError as e:
        raise click.ClickException(e.message)

    if snapshot is None:
        click.echo(f"No account found for {external_identity_id or username}")
        return

    click.echo(f"Account:   {snapshot.account_id} ({snapshot.display_name or '-'})")
    click.echo(f"Linked:    {'yes' if snapshot.is_linked else 'no'}")
    if snapshot.is_linked:
        click.echo(f"Identity:  {snapshot.external_identity_id}")
        click.echo(f"Method:    {snapshot.link_method}")
        click.echo(f"Since:     {snapshot.linked_at.isoformat() if snapshot.linked_at else '-'}")
    click.echo(f"Tier:      {snapshot.tier}")
    click.echo(f"Balance:   {snapshot.balance:.2f}")
    click.echo(f"Points:    {snapshot.points}")


def init_app(app):
    """Register link commands with Flask app."""
    app.cli.add_command(links_cli)
