"""Session name derivation."""

import hashlib
import re

from ..utils.logging import ConfigError

DEFAULT_SESSION_PREFIX = "devplexer"

_UNSAFE_CHARACTERS = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_name(value: str) -> str:
    """Replace characters tmux rejects or mangles in session names."""
    return _UNSAFE_CHARACTERS.sub("_", value)


def derive_session_id(namespace: str, prefix: str = DEFAULT_SESSION_PREFIX) -> str:
    """Derive the tmux session name for a namespace.

    The result is stable for a given namespace. When sanitizing changed the
    namespace, a short hash of the original is appended so that e.g.
    ``web.app`` and ``web_app`` map to different sessions.

    Raises:
        ConfigError: If the namespace is empty.
    """
    if not namespace or not namespace.strip():
        raise ConfigError("Namespace must not be empty")

    base = sanitize_name(namespace)
    if base != namespace:
        digest = hashlib.sha1(namespace.encode("utf-8")).hexdigest()[:8]
        base = f"{base}-{digest}"

    if prefix:
        return f"{sanitize_name(prefix)}-{base}"
    return base
