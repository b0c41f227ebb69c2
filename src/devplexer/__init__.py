"""devplexer: run a project's dev processes side by side in one tmux session."""

__version__ = "0.1.0"

from .core.orchestrator import SessionOrchestrator

__all__ = ["SessionOrchestrator", "__version__"]
