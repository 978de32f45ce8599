# SPDX-License-Identifier: MIT
"""
Textual front end for icepeek.

Usage:
    from icepeek.tui import run_app
    run_app(command)  # Launch TUI for a LoadCommand
"""

from .app_state import AppState, Focus, Tab
from .messages import MessageHandler
from .synchronizer import ViewStateSynchronizer


# Defer app import so the state machine can be used without building widgets
def _get_app():
    """Lazy import of the app module."""
    from .app import IcepeekApp, run_app
    return IcepeekApp, run_app


def run_app(*args, **kwargs):
    """Run the TUI application. See app.run_app for details."""
    _, _run_app = _get_app()
    return _run_app(*args, **kwargs)


__all__ = [
    "AppState",
    "Focus",
    "Tab",
    "MessageHandler",
    "ViewStateSynchronizer",
    "run_app",
]
