"""
Tests for cfgsmith.core module.

Tests the end-to-end workflow including:
- Scope construction rules
- Service generation with sub-modules and components
- Component generation
- Dry run, multiple roots, cleaning and failure isolation
"""

from __future__ import annotations

import pytest

from cfgsmith.core import build_scope, generate_configs, render_configuration, resolve_entity
from cfgsmith.entities import EntityKind
from cfgsmith.exceptions import ConfigError, EntityNotFound, UndefinedReferenceError
from cfgsmith.hierarchy import ABSENT, YamlHierarchy

BANNER = "## THIS IS AN AUTO-GENERATED FILE\n"
MEMCACHED_TEST = (
    "memcached.nodes=localhost:11211\n"
    "memcached.single_client_enabled=True\n"
)


class TestBuildScope:
    """Tests for scope construction."""

    def test_env_scope(self):
        """Test an environment-only scope."""
        assert build_scope(env="test") == {"env": "test"}

    def test_node_role_scope(self):
        """Test a node and role scope."""
        assert build_scope(node="web-01", role="frontend") == {"node": "web-01", "role": "frontend"}

    def test_empty_scope(self):
        """Test that no dimensions yield an empty scope."""
        assert build_scope() == {}

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"env": "test", "node": "web-01", "role": "frontend"},
            {"env": "test", "node": "web-01"},
            {"node": "web-01"},
            {"role": "frontend"},
        ],
    )
    def test_invalid_combinations(self, kwargs):
        """Test that env excludes node/role and node requires role."""
        with pytest.raises(ConfigError):
            build_scope(**kwargs)


class TestResolveEntity:
    """Tests for resolve_entity."""

    def test_echo_server_test_env(self, echo_server_project):
        """Test that port resolves to 8080 in the test environment."""
        settings = echo_server_project.load()

        resolved = resolve_entity("echo-server", EntityKind.SERVICE, {"env": "test"}, settings=settings)

        assert resolved.values["port"] == 8080
        assert resolved.values["timeout"] == 30
        assert resolved.components["memcached"]["memcached"]["single_client_enabled"] is True

    def test_echo_server_localhost_env(self, echo_server_project):
        """Test that port is absent without an override."""
        settings = echo_server_project.load()

        resolved = resolve_entity(
            "echo-server", EntityKind.SERVICE, {"env": "localhost"}, settings=settings
        )

        assert resolved.get("port") is ABSENT

    def test_memcached_prod_override(self, echo_server_project):
        """Test the deeper merge of the prod override onto the default."""
        settings = echo_server_project.load()

        resolved = resolve_entity("memcached", EntityKind.COMPONENT, {"env": "prod"}, settings=settings)

        assert resolved.values["memcached"] == {
            "nodes": "localhost:11211",
            "single_client_enabled": False,
        }


class TestRenderConfiguration:
    """Tests for rendering without writing."""

    def test_rendered_components_in_service_context(self, echo_server_project):
        """Test that component artifacts are embedded in service output only."""
        settings = echo_server_project.load()
        resolved = resolve_entity(
            "echo-server", EntityKind.SERVICE, {"env": "test"}, settings=settings
        )

        files = render_configuration(
            resolved, settings=settings, source=YamlHierarchy.from_settings(settings)
        )

        assert [f.name for f in files] == ["app.properties"]
        assert files[0].content.endswith(MEMCACHED_TEST)


class TestGenerateConfigs:
    """Tests for the complete generation workflow."""

    def test_service_generation(self, echo_server_project):
        """Test generating echo-server for the test environment."""
        settings = echo_server_project.load()

        results = generate_configs(["echo-server"], EntityKind.SERVICE, {"env": "test"}, settings=settings)

        path = settings.root / "services" / "echo-server" / "configs" / "app.properties"
        assert path.read_text() == (
            BANNER + "name=echo\nserver.port=8080\ntimeout=30\n" + MEMCACHED_TEST
        )
        assert results[0].status == "success"
        assert results[0].components == ["memcached"]
        assert [f.path for f in results[0].files] == [path]

    def test_absent_port_line_omitted(self, echo_server_project):
        """Test that the guarded port line disappears without a value."""
        settings = echo_server_project.load()

        generate_configs(["echo-server"], EntityKind.SERVICE, {"env": "localhost"}, settings=settings)

        path = settings.root / "services" / "echo-server" / "configs" / "app.properties"
        assert "server.port" not in path.read_text()

    def test_component_generation(self, echo_server_project):
        """Test that component mode writes the component's own artifacts."""
        settings = echo_server_project.load()

        generate_configs(["memcached"], EntityKind.COMPONENT, {"env": "prod"}, settings=settings)

        path = settings.root / "components" / "memcached" / "configs" / "memcached.properties"
        assert path.read_text() == (
            BANNER
            + "memcached.nodes=localhost:11211\n"
            + "memcached.single_client_enabled=False\n"
        )

    def test_generation_is_idempotent(self, echo_server_project):
        """Test that generating twice produces byte-identical files."""
        settings = echo_server_project.load()
        path = settings.root / "services" / "echo-server" / "configs" / "app.properties"

        generate_configs(["echo-server"], EntityKind.SERVICE, {"env": "test"}, settings=settings)
        first = path.read_bytes()
        generate_configs(["echo-server"], EntityKind.SERVICE, {"env": "test"}, settings=settings)

        assert path.read_bytes() == first

    def test_dry_run(self, echo_server_project):
        """Test that dry run reports files without creating them."""
        settings = echo_server_project.load()

        results = generate_configs(
            ["echo-server"], EntityKind.SERVICE, {"env": "test"}, settings=settings, dry_run=True
        )

        assert not (settings.root / "services").exists()
        assert results[0].dry_run is True
        assert "server.port=8080" in results[0].files[0].content

    def test_target_dir_override(self, echo_server_project, tmp_test_dir):
        """Test that an explicit target directory receives every file."""
        settings = echo_server_project.load()
        out = tmp_test_dir / "explicit"

        generate_configs(
            ["echo-server"], EntityKind.SERVICE, {"env": "test"}, settings=settings, target_dir=out
        )

        assert (out / "app.properties").is_file()
        assert not (settings.root / "services").exists()

    def test_earlier_roots_kept_on_failure(self, echo_server_project):
        """Test that a failing root leaves earlier roots written."""
        settings = echo_server_project.load()

        with pytest.raises(EntityNotFound):
            generate_configs(
                ["echo-server", "ghost"], EntityKind.SERVICE, {"env": "test"}, settings=settings
            )

        assert (settings.root / "services" / "echo-server" / "configs" / "app.properties").is_file()

    def test_render_failure_writes_nothing(self, echo_server_project):
        """Test that an undefined reference aborts before any write."""
        echo_server_project.module(
            "broken",
            ["port"],
            templates={
                "a.properties.j2": "ok=1\n",
                "b.properties.j2": "port={{ port }}\n",
            },
        )
        settings = echo_server_project.load()

        with pytest.raises(UndefinedReferenceError):
            generate_configs(["broken"], EntityKind.SERVICE, {"env": "test"}, settings=settings)

        assert not (settings.root / "services" / "broken").exists()

    def test_submodule_root_rejected(self, echo_server_project):
        """Test that only services and components can be generated."""
        settings = echo_server_project.load()

        with pytest.raises(ConfigError, match="Cannot generate"):
            generate_configs(["base-http"], EntityKind.SUBMODULE, {}, settings=settings)

    def test_clean_keeps_earlier_roots(self, echo_server_project, tmp_test_dir):
        """Test that cleaning a shared target directory happens once per run."""
        for name in ("alpha", "beta"):
            echo_server_project.module(
                name, ["k"], templates={f"{name}.properties.j2": f"{name}=1\n"}
            )
        settings = echo_server_project.load()
        out = tmp_test_dir / "shared"
        out.mkdir()
        (out / "stale.properties").write_text("old\n")

        generate_configs(
            ["alpha", "beta"],
            EntityKind.SERVICE,
            {},
            settings=settings,
            target_dir=out,
            clean=True,
        )

        assert sorted(p.name for p in out.iterdir()) == ["alpha.properties", "beta.properties"]
