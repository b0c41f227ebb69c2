"""
Tmux integration for devplexer.

This package provides the driver the orchestrator uses to:
- Check for and create sessions
- List and create windows
- Inspect pane processes
- Tear sessions down on request
"""

from .service import (
    BOOTSTRAP_WINDOW_NAME,
    SessionRef,
    TmuxDriver,
    WindowRef,
    WindowStatus,
    attach_command,
)

__all__ = [
    "BOOTSTRAP_WINDOW_NAME",
    "SessionRef",
    "TmuxDriver",
    "WindowRef",
    "WindowStatus",
    "attach_command",
]
