"""Unit tests for topology loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from devplexer.config.loader import (
    AppSpec,
    Topology,
    find_topology_file,
    load_topology,
    parse_topology,
)
from devplexer.utils.logging import ConfigError

DEMO_TOPOLOGY = """
namespace: demo
apps:
  a:
    command: sleep 100
  b:
    working_directory: sub
    command: echo hi
"""


class TestAppSpec:
    """Test AppSpec model."""

    def test_defaults(self):
        spec = AppSpec(command="make run")
        assert spec.command == "make run"
        assert spec.working_directory is None

    def test_working_directory_coerced_to_path(self):
        spec = AppSpec(command="ls", working_directory="ui")
        assert spec.working_directory == Path("ui")

    def test_blank_command_rejected(self):
        with pytest.raises(ValidationError):
            AppSpec(command="   ")

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            AppSpec(command="ls", cwd="ui")

    def test_frozen(self):
        spec = AppSpec(command="ls")
        with pytest.raises(ValidationError):
            spec.command = "pwd"


class TestTopology:
    """Test Topology model."""

    def test_default_namespace(self):
        topology = Topology(apps={"a": AppSpec(command="ls")})
        assert topology.namespace == "devplexer"

    def test_app_names_keep_declaration_order(self):
        topology = Topology(
            apps={name: AppSpec(command="ls") for name in ["zeta", "alpha", "mid"]}
        )
        assert topology.app_names == ["zeta", "alpha", "mid"]

    def test_no_apps_rejected(self):
        with pytest.raises(ValidationError):
            Topology(namespace="demo", apps={})

    @pytest.mark.parametrize("name", ["web.app", "api:v2", " "])
    def test_bad_app_names_rejected(self, name):
        with pytest.raises(ValidationError):
            Topology(apps={name: AppSpec(command="ls")})

    def test_blank_namespace_rejected(self):
        with pytest.raises(ValidationError):
            Topology(namespace="  ", apps={"a": AppSpec(command="ls")})


class TestParseTopology:
    """Test parse_topology."""

    def test_demo_topology(self):
        topology = parse_topology(DEMO_TOPOLOGY)

        assert topology.namespace == "demo"
        assert topology.app_names == ["a", "b"]
        assert topology.apps["a"].working_directory is None
        assert topology.apps["b"].working_directory == Path("sub")
        assert topology.apps["b"].command == "echo hi"

    def test_namespace_optional(self):
        topology = parse_topology("apps:\n  a:\n    command: ls\n")
        assert topology.namespace == "devplexer"

    def test_command_passed_through_verbatim(self):
        content = (
            "apps:\n"
            "  a:\n"
            "    command: \"source ~/.bashrc; nvm use system && npx tailwind --watch\"\n"
        )
        topology = parse_topology(content)
        assert topology.apps["a"].command == "source ~/.bashrc; nvm use system && npx tailwind --watch"

    def test_multiple_documents_merged(self):
        content = (
            "namespace: first\n"
            "apps:\n  a:\n    command: ls\n"
            "---\n"
            "namespace: second\n"
            "apps:\n  b:\n    command: pwd\n"
        )
        topology = parse_topology(content)

        assert topology.namespace == "second"
        assert topology.app_names == ["a", "b"]

    def test_duplicate_app_across_documents_rejected(self):
        content = "apps:\n  a:\n    command: ls\n---\napps:\n  a:\n    command: pwd\n"
        with pytest.raises(ConfigError, match="more than once"):
            parse_topology(content)

    def test_invalid_yaml(self):
        with pytest.raises(ConfigError, match="Invalid YAML"):
            parse_topology("apps: [unclosed")

    def test_empty_document(self):
        with pytest.raises(ConfigError, match="empty"):
            parse_topology("")

    def test_missing_apps(self):
        with pytest.raises(ConfigError, match="apps"):
            parse_topology("namespace: demo\n")

    def test_non_mapping_document(self):
        with pytest.raises(ConfigError, match="mapping"):
            parse_topology("- a\n- b\n")

    def test_all_app_problems_reported_together(self):
        """Test every bad app is listed, not just the first."""
        content = (
            "apps:\n"
            "  a:\n    working_directory: x\n"
            "  b:\n    command: ''\n"
            "  c:\n    command: ls\n"
        )
        with pytest.raises(ConfigError) as exc_info:
            parse_topology(content)

        problems = exc_info.value.context["problems"]
        assert len(problems) == 2
        assert any(p.startswith("apps.a") for p in problems)
        assert any(p.startswith("apps.b") for p in problems)

    def test_numeric_app_name_becomes_string(self):
        topology = parse_topology("apps:\n  8080:\n    command: ls\n")
        assert topology.app_names == ["8080"]

    def test_numeric_and_string_name_collide(self):
        content = "apps:\n  1:\n    command: ls\n---\napps:\n  '1':\n    command: pwd\n"
        with pytest.raises(ConfigError, match="more than once"):
            parse_topology(content)


class TestFindTopologyFile:
    """Test find_topology_file."""

    def test_default_yaml(self, tmp_path):
        (tmp_path / "devplexer.yaml").write_text(DEMO_TOPOLOGY)
        assert find_topology_file(base_dir=tmp_path) == tmp_path / "devplexer.yaml"

    def test_yml_fallback(self, tmp_path):
        (tmp_path / "devplexer.yml").write_text(DEMO_TOPOLOGY)
        assert find_topology_file(base_dir=tmp_path) == tmp_path / "devplexer.yml"

    def test_yaml_preferred_over_yml(self, tmp_path):
        (tmp_path / "devplexer.yaml").write_text(DEMO_TOPOLOGY)
        (tmp_path / "devplexer.yml").write_text(DEMO_TOPOLOGY)
        assert find_topology_file(base_dir=tmp_path).name == "devplexer.yaml"

    def test_relative_custom_path(self, tmp_path):
        (tmp_path / "conf").mkdir()
        (tmp_path / "conf" / "stack.yaml").write_text(DEMO_TOPOLOGY)

        path = find_topology_file("conf/stack.yaml", base_dir=tmp_path)

        assert path == tmp_path / "conf" / "stack.yaml"

    def test_missing_custom_path(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            find_topology_file("nope.yaml", base_dir=tmp_path)

    def test_nothing_found(self, tmp_path):
        with pytest.raises(ConfigError, match="No topology file"):
            find_topology_file(base_dir=tmp_path)


class TestLoadTopology:
    """Test load_topology."""

    def test_load(self, tmp_path):
        (tmp_path / "devplexer.yaml").write_text(DEMO_TOPOLOGY)

        topology = load_topology(base_dir=tmp_path)

        assert topology.namespace == "demo"
        assert topology.app_names == ["a", "b"]

    def test_error_carries_path(self, tmp_path):
        path = tmp_path / "devplexer.yaml"
        path.write_text("apps:\n  a: {}\n")

        with pytest.raises(ConfigError) as exc_info:
            load_topology(base_dir=tmp_path)

        assert exc_info.value.context["path"] == str(path)

    def test_undecodable_file(self, tmp_path):
        (tmp_path / "devplexer.yaml").write_bytes(b"apps:\n  d\xff:\n    command: ls\n")

        with pytest.raises(ConfigError, match="Failed to read topology file"):
            load_topology(base_dir=tmp_path)
