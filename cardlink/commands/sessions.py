"""
CLI commands for sync sessions.
"""
import click
from flask import current_app
from flask.cli import with_appcontext

from ..extensions import db
from ..services.event_logger import EventLogger
from ..services.link_registry import LinkRegistry
from ..services.profile_sync import ProfileSync
from ..services.store import Store
from ..services.sync_sessions import SyncSessionManager
from ..utils.exceptions import CardLinkError


@click.group('sessions')
def sessions_cli():
    """Sync session commands."""
    pass


@sessions_cli.command('show')
@click.argument('sync_id')
@with_appcontext
def show_session(sync_id):
    """Show a sync session as callers see it (expiry applied)."""
    store = Store(db.session, current_app.config.get('DB_STATEMENT_TIMEOUT_MS'))
    manager = SyncSessionManager(
        store, LinkRegistry(store), ProfileSync(store), EventLogger(store),
        ttl_minutes=current_app.config.get('SYNC_SESSION_TTL_MINUTES'),
    )
    try:
        view = manager.get_session(sync_id)
    except CardLinkError as e:
        raise click.ClickException(e.message)

    if view is None:
        click.echo(f"Sync session {sync_id} not found")
        return

    for key in ('syncId', 'externalIdentityId', 'status', 'usable', 'createdAt',
                'expiresAt', 'completedAt', 'timeRemainingSeconds'):
        click.echo(f"{key:<22} {view[key]}")


def init_app(app):
    """Register session commands with Flask app."""
    app.cli.add_command(sessions_cli)
