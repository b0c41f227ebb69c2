"""Topology loading and validation."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..utils.logging import ConfigError, LogContext, get_logger

logger = get_logger(__name__, LogContext.CONFIG)

DEFAULT_NAMESPACE = "devplexer"
DEFAULT_TOPOLOGY_FILES = ("devplexer.yaml", "devplexer.yml")

# tmux uses these as target separators (session:window.pane)
RESERVED_NAME_CHARACTERS = (":", ".")


class AppSpec(BaseModel):
    """One app: a shell command and the directory it starts in."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    command: str = Field(description="Shell command, passed through verbatim")
    working_directory: Path | None = Field(
        default=None,
        description="Start directory; relative paths resolve against the invocation directory",
    )

    @field_validator("command")
    @classmethod
    def command_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("command must not be empty")
        return value


class Topology(BaseModel):
    """The declared set of apps for one namespace."""

    model_config = ConfigDict(frozen=True)

    namespace: str = DEFAULT_NAMESPACE
    apps: dict[str, AppSpec]

    @field_validator("namespace")
    @classmethod
    def namespace_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("namespace must not be empty")
        return value

    @field_validator("apps")
    @classmethod
    def app_names_valid(cls, value: dict[str, AppSpec]) -> dict[str, AppSpec]:
        if not value:
            raise ValueError("at least one app must be declared")
        for name in value:
            if not name.strip():
                raise ValueError("app names must not be empty")
            bad = [c for c in RESERVED_NAME_CHARACTERS if c in name]
            if bad:
                raise ValueError(
                    f"app name {name!r} contains reserved character(s) {' '.join(bad)}"
                )
        return value

    @property
    def app_names(self) -> list[str]:
        return list(self.apps)


def find_topology_file(
    custom_path: str | Path | None = None, base_dir: Path | None = None
) -> Path:
    """Locate the topology file.

    An explicit path is taken relative to ``base_dir`` (the invocation
    directory); otherwise ``devplexer.yaml`` / ``devplexer.yml`` are searched
    for in ``base_dir``.
    """
    base_dir = base_dir or Path.cwd()

    if custom_path:
        path = Path(custom_path).expanduser()
        if not path.is_absolute():
            path = base_dir / path
        if path.is_file():
            return path
        raise ConfigError(
            f"Topology file not found: {path}", context={"path": str(path)}
        )

    for name in DEFAULT_TOPOLOGY_FILES:
        path = base_dir / name
        if path.is_file():
            return path

    raise ConfigError(
        f"No topology file found in {base_dir} (looked for {', '.join(DEFAULT_TOPOLOGY_FILES)})",
        context={"base_dir": str(base_dir)},
    )


def _merge_documents(documents: list[Any]) -> dict[str, Any]:
    """Merge YAML documents in order; later namespaces win, apps accumulate."""
    merged: dict[str, Any] = {"apps": {}}
    for index, document in enumerate(documents):
        if document is None:
            continue
        if not isinstance(document, dict):
            raise ConfigError(
                f"YAML document {index} must be a mapping, got {type(document).__name__}"
            )
        if "namespace" in document:
            merged["namespace"] = document["namespace"]
        apps = document.get("apps")
        if not isinstance(apps, dict):
            raise ConfigError(
                f"YAML document {index} needs an 'apps' mapping",
                context={"document": index},
            )
        for key, spec in apps.items():
            # YAML allows non-string keys; app names are always strings
            name = str(key)
            if name in merged["apps"]:
                raise ConfigError(
                    f"App {name!r} is declared more than once",
                    context={"app": name},
                )
            merged["apps"][name] = spec
        unknown = set(document) - {"namespace", "apps"}
        if unknown:
            logger.warning(
                "Ignoring unknown topology keys", keys=sorted(str(k) for k in unknown)
            )
    return merged


def _format_validation_error(error: ValidationError) -> list[str]:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        problems.append(f"{location}: {item['msg']}")
    return problems


def parse_topology(content: str) -> Topology:
    """Parse topology YAML text into a validated Topology."""
    try:
        documents = list(yaml.safe_load_all(content))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}") from e

    if not any(document is not None for document in documents):
        raise ConfigError("Topology is empty")

    data = _merge_documents(documents)

    try:
        return Topology(**data)
    except ValidationError as e:
        problems = _format_validation_error(e)
        raise ConfigError(
            "Invalid topology: " + "; ".join(problems),
            context={"problems": problems},
        ) from e


def load_topology(
    config_path: str | Path | None = None, base_dir: Path | None = None
) -> Topology:
    """Find, read and validate the topology file."""
    path = find_topology_file(config_path, base_dir)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to read topology file {path}: {e}") from e

    try:
        topology = parse_topology(content)
    except ConfigError as e:
        e.context.setdefault("path", str(path))
        raise

    logger.debug(
        "Topology loaded",
        path=str(path),
        namespace=topology.namespace,
        apps=topology.app_names,
    )
    return topology
