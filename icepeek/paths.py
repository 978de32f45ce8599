# SPDX-License-Identifier: MIT
"""Centralized path resolution for icepeek.

All path resolution should go through this module to ensure consistency.
"""
import os
from pathlib import Path


class PathResolver:
    """Resolves paths for icepeek components."""

    @staticmethod
    def config_dir() -> Path:
        """Get the directory holding user settings.

        Resolution order:
        1. ICEPEEK_CONFIG_DIR env var
        2. XDG_CONFIG_HOME/icepeek
        3. ~/.config/icepeek
        """
        custom = os.environ.get("ICEPEEK_CONFIG_DIR")
        if custom:
            return Path(custom)
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config) / "icepeek"
        return Path.home() / ".config" / "icepeek"

    @staticmethod
    def state_dir() -> Path:
        """Get the state directory for mutable data (debug log).

        Resolution order:
        1. ICEPEEK_STATE env var
        2. XDG_STATE_HOME/icepeek
        3. ~/.local/state/icepeek
        """
        state = os.environ.get("ICEPEEK_STATE")
        if state:
            return Path(state)
        xdg_state = os.environ.get("XDG_STATE_HOME")
        if xdg_state:
            return Path(xdg_state) / "icepeek"
        return Path.home() / ".local" / "state" / "icepeek"

    @staticmethod
    def debug_log() -> Path:
        """Path of the JSON-lines debug log."""
        return PathResolver.state_dir() / "debug.log"
