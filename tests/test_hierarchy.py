"""
Tests for cfgsmith.hierarchy.yaml_backend and cfgsmith.hierarchy.source.

Tests the YAML hierarchical data source including:
- Layer selection from scope
- first-found and hash-merge lookups
- Explicit absence (ABSENT, null values)
- lookup_options merging
- Error handling for malformed layers
"""

from __future__ import annotations

import copy

import pytest

from cfgsmith.exceptions import ConfigError
from cfgsmith.hierarchy import ABSENT, LookupResult, MergePolicy, YamlHierarchy, is_absent

HIERARCHY = ["nodes/%{node}", "roles/%{role}", "env/%{env}", "modules/%{service}", "common"]


@pytest.fixture
def source(project):
    """Provide a YAML hierarchy with common, env and node layers."""
    project.data(
        "common",
        {
            "echo-server::port": 80,
            "echo-server::db": {"host": "localhost", "port": 5432},
            "echo-server::debug": None,
        },
    )
    project.data(
        "env/test",
        {
            "echo-server::port": 8080,
            "echo-server::db": {"host": "test-db"},
        },
    )
    project.data("nodes/web-01", {"echo-server::port": 9090})
    return YamlHierarchy(project.root / "hieradata", HIERARCHY)


class TestAbsent:
    """Tests for the ABSENT marker."""

    def test_absent_is_singleton(self):
        """Test that copies of ABSENT are ABSENT."""
        assert copy.copy(ABSENT) is ABSENT
        assert copy.deepcopy({"v": ABSENT})["v"] is ABSENT

    def test_absent_refuses_truthiness(self):
        """Test that ABSENT cannot be used as a boolean."""
        with pytest.raises(TypeError):
            bool(ABSENT)

    def test_default_result_is_absent(self):
        """Test that an empty LookupResult is absent."""
        result = LookupResult()

        assert result.is_absent
        assert is_absent(result.value)
        assert result.layers == ()


class TestLayers:
    """Tests for layer selection."""

    def test_missing_dimensions_skip_levels(self, source):
        """Test that levels with unset dimensions are not consulted."""
        assert source.layers({"env": "test"}) == ["env/test", "common"]

    def test_all_dimensions(self, source):
        """Test layer order with node, role and service set."""
        layers = source.layers({"node": "web-01", "role": "frontend", "service": "echo-server"})

        assert layers == ["nodes/web-01", "roles/frontend", "modules/echo-server", "common"]


class TestLookup:
    """Tests for key lookups."""

    def test_default_policy_priority(self, source):
        """Test that the default policy takes the highest layer on conflicts."""
        result = source.lookup("echo-server::port", {"env": "test"})

        assert result.value == 8080
        assert result.layers == ("env/test", "common")

    def test_default_policy_is_shallow(self, source):
        """Test that the default priority strategy replaces nested mappings."""
        result = source.lookup("echo-server::db", {"env": "test"})

        assert result.value == {"host": "test-db", "port": 5432}

    def test_deeper_policy(self, project):
        """Test that deeper merges nested sub-keys across layers."""
        project.data("common", {"k": {"a": {"x": 1}}})
        project.data("env/test", {"k": {"a": {"y": 2}}})
        source = YamlHierarchy(project.root / "hieradata", HIERARCHY)

        result = source.lookup("k", {"env": "test"}, MergePolicy(strategy="deeper"))

        assert result.value == {"a": {"x": 1, "y": 2}}

    def test_first_behavior_stops_at_first_layer(self, source):
        """Test that first-found only reports the winning layer."""
        result = source.lookup(
            "echo-server::port", {"node": "web-01", "env": "test"}, MergePolicy(behavior="first")
        )

        assert result.value == 9090
        assert result.layers == ("nodes/web-01",)

    def test_undefined_key_is_absent(self, source):
        """Test that a key no layer defines resolves to ABSENT."""
        result = source.lookup("echo-server::missing", {"env": "test"})

        assert result.value is ABSENT
        assert result.is_absent

    def test_null_value_is_absent(self, source):
        """Test that an explicit null is treated as undefined."""
        assert source.lookup("echo-server::debug", {}).is_absent

    def test_missing_layer_file_is_empty(self, source):
        """Test that scopes pointing at missing files still resolve."""
        result = source.lookup("echo-server::port", {"env": "localhost"})

        assert result.value == 80
        assert result.layers == ("common",)

    def test_results_are_copies(self, source):
        """Test that mutating a result does not affect later lookups."""
        first = source.lookup("echo-server::db", {})
        first.value["host"] = "changed"

        assert source.lookup("echo-server::db", {}).value["host"] == "localhost"


class TestLookupOptions:
    """Tests for lookup_options retrieval."""

    def test_options_merged_across_layers(self, project):
        """Test that lookup_options entries from all layers are combined."""
        project.data("common", {"lookup_options": {"a::x": {"merge": "first"}}})
        project.data("modules/a", {"lookup_options": {"a::y": {"merge": "deep"}}})
        source = YamlHierarchy(project.root / "hieradata", HIERARCHY)

        options = source.lookup_options({"service": "a"})

        assert options == {"a::x": {"merge": "first"}, "a::y": {"merge": "deep"}}

    def test_no_options(self, source):
        """Test that a hierarchy without lookup_options yields an empty mapping."""
        assert source.lookup_options({"env": "test"}) == {}

    def test_non_mapping_options_raise(self, project):
        """Test that a non-mapping lookup_options is rejected."""
        project.data("common", {"lookup_options": ["nope"]})
        source = YamlHierarchy(project.root / "hieradata", HIERARCHY)

        with pytest.raises(ConfigError, match="lookup_options must be a mapping"):
            source.lookup_options({})


class TestMalformedLayers:
    """Tests for error handling of layer files."""

    def test_invalid_yaml_raises(self, project):
        """Test that unparseable YAML raises ConfigError."""
        path = project.root / "hieradata" / "common.yaml"
        path.parent.mkdir(parents=True)
        path.write_text("key: [unclosed\n")
        source = YamlHierarchy(project.root / "hieradata", HIERARCHY)

        with pytest.raises(ConfigError, match="Error parsing YAML"):
            source.lookup("key", {})

    def test_non_mapping_layer_raises(self, project):
        """Test that a list at the top level raises ConfigError."""
        path = project.root / "hieradata" / "common.yaml"
        path.parent.mkdir(parents=True)
        path.write_text("- a\n- b\n")
        source = YamlHierarchy(project.root / "hieradata", HIERARCHY)

        with pytest.raises(ConfigError, match="must be a mapping"):
            source.lookup("key", {})
