"""
CLI Commands for CardLink.

Usage:
    flask links stats                  # Link statistics
    flask links check U1234abcd        # Resolve an identity's active link
    flask links check --username m001  # Resolve a loyalty account
    flask sessions show sync_...       # Inspect a sync session with expiry applied
"""
from .links import init_app as init_link_commands
from .sessions import init_app as init_session_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_link_commands(app)
    init_session_commands(app)
