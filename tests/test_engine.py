"""
Tests for cfgsmith.resolve.engine module.

Tests the merge engine including:
- Fully-qualified lookups for modules and components
- Policy selection from lookup_options
- Manifest defaults as the lowest layer
- Explicit absence
- Merge capability mismatch (degraded mode with a warning)
"""

from __future__ import annotations

import warnings

import pytest

from cfgsmith.entities import EntityDescriptor, EntityKind
from cfgsmith.exceptions import MergeCapabilityMismatch
from cfgsmith.hierarchy import ABSENT, DEFAULT_COMPONENT_POLICY, MERGE_CAPABILITY, YamlHierarchy
from cfgsmith.resolve import MANIFEST_LAYER, MergeEngine

HIERARCHY = ["env/%{env}", "components/%{component}", "modules/%{service}", "common"]

ECHO = EntityDescriptor("echo-server", EntityKind.SERVICE, ("port", "hosts"))
MEMCACHED = EntityDescriptor(
    "memcached",
    EntityKind.COMPONENT,
    ("memcached",),
    defaults={"memcached": {"nodes": "localhost:11211", "single_client_enabled": True}},
)


def _source(project, capability=MERGE_CAPABILITY):
    return YamlHierarchy(project.root / "hieradata", HIERARCHY, merge_capability=capability)


class TestModuleProperties:
    """Tests for resolving module properties."""

    def test_env_override(self, project):
        """Test that port resolves to 8080 only in the test environment."""
        project.data("env/test", {"echo-server::port": 8080})
        engine = MergeEngine(_source(project))

        test = engine.resolve_property(ECHO, "port", {"env": "test", "service": "echo-server"})
        local = engine.resolve_property(
            ECHO, "port", {"env": "localhost", "service": "echo-server"}
        )

        assert test.value == 8080
        assert test.lookup_key == "echo-server::port"
        assert test.layers == ("env/test",)
        assert local.value is ABSENT
        assert local.is_absent

    def test_module_default_policy_comes_from_source(self, project):
        """Test that modules without lookup_options use the source default."""
        engine = MergeEngine(_source(project))

        policy = engine.effective_policy(ECHO, "port", {"service": "echo-server"})

        assert policy.strategy == "priority"
        assert policy.merge_arrays is False

    def test_lookup_options_override(self, project):
        """Test that a lookup_options entry selects the key's policy."""
        project.data(
            "common",
            {
                "lookup_options": {
                    "echo-server::hosts": {"merge": {"strategy": "deeper", "merge_hash_arrays": True}}
                },
                "echo-server::hosts": ["a"],
            },
        )
        project.data("env/test", {"echo-server::hosts": ["b"]})
        engine = MergeEngine(_source(project))

        result = engine.resolve_property(ECHO, "hosts", {"env": "test", "service": "echo-server"})

        assert result.value == ["a", "b"]
        assert result.policy.merge_arrays is True

    def test_resolve_entity_in_declaration_order(self, project):
        """Test that resolve_entity returns every key in declaration order."""
        engine = MergeEngine(_source(project))

        resolved = engine.resolve_entity(ECHO, {"service": "echo-server"})

        assert list(resolved) == ["port", "hosts"]


class TestComponentProperties:
    """Tests for resolving component properties."""

    def test_memcached_default_merged_with_env(self, project):
        """Test deeper merge of an env override onto the manifest default."""
        project.data("env/prod", {"component::memcached": {"single_client_enabled": False}})
        engine = MergeEngine(_source(project))

        result = engine.resolve_property(
            MEMCACHED, "memcached", {"env": "prod", "component": "memcached"}
        )

        assert result.value == {"nodes": "localhost:11211", "single_client_enabled": False}
        assert result.layers == ("env/prod", MANIFEST_LAYER)
        assert result.policy == DEFAULT_COMPONENT_POLICY

    def test_default_only(self, project):
        """Test that the manifest default is used when no layer defines the key."""
        engine = MergeEngine(_source(project))

        result = engine.resolve_property(MEMCACHED, "memcached", {"component": "memcached"})

        assert result.value == {"nodes": "localhost:11211", "single_client_enabled": True}
        assert result.layers == (MANIFEST_LAYER,)

    def test_default_not_shared_between_results(self, project):
        """Test that mutating a resolved default does not change the manifest."""
        engine = MergeEngine(_source(project))

        result = engine.resolve_property(MEMCACHED, "memcached", {"component": "memcached"})
        result.value["nodes"] = "changed"

        assert MEMCACHED.defaults["memcached"]["nodes"] == "localhost:11211"

    def test_component_lookup_options_first(self, project):
        """Test that a component key can opt into first-found behavior."""
        project.data(
            "common",
            {"lookup_options": {"component::memcached": {"merge": "first"}}},
        )
        project.data("env/prod", {"component::memcached": {"single_client_enabled": False}})
        engine = MergeEngine(_source(project))

        result = engine.resolve_property(
            MEMCACHED, "memcached", {"env": "prod", "component": "memcached"}
        )

        assert result.value == {"single_client_enabled": False}


class TestMergeCapability:
    """Tests for the degraded path when capability levels differ."""

    def test_matching_capability_passes_options(self, project):
        """Test that options reach the source when capabilities match."""
        engine = MergeEngine(_source(project))

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            policy = engine.resolve_property(
                MEMCACHED, "memcached", {"component": "memcached"}
            ).policy

        assert engine.options_passthrough
        assert policy.merge_arrays is True

    def test_mismatch_warns_and_degrades(self, project, recording_logger):
        """Test that a mismatch disables options and warns, but still resolves."""
        project.data("env/prod", {"component::memcached": {"single_client_enabled": False}})
        engine = MergeEngine(_source(project, capability=1), logger=recording_logger)

        with pytest.warns(MergeCapabilityMismatch):
            result = engine.resolve_property(
                MEMCACHED, "memcached", {"env": "prod", "component": "memcached"}
            )

        assert not engine.options_passthrough
        assert result.value == {"nodes": "localhost:11211", "single_client_enabled": False}
        assert result.policy.merge_arrays is False
        assert result.policy.strategy == "deeper"
        assert len(recording_logger.warnings) == 1

    def test_mismatch_warns_once(self, project, recording_logger):
        """Test that the capability warning is emitted only once per engine."""
        engine = MergeEngine(_source(project, capability=3), logger=recording_logger)

        with pytest.warns(MergeCapabilityMismatch) as record:
            for _ in range(3):
                engine.resolve_property(MEMCACHED, "memcached", {"component": "memcached"})

        assert len(record) == 1
        assert len(recording_logger.warnings) == 1

    def test_plain_policies_do_not_warn(self, project, recording_logger):
        """Test that keys without deep-merge options never trigger the warning."""
        engine = MergeEngine(_source(project, capability=1), logger=recording_logger)

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            engine.resolve_property(ECHO, "port", {"service": "echo-server"})

        assert recording_logger.warnings == []
