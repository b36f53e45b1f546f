"""
Pytest configuration and shared fixtures for cfgsmith tests.

This module provides reusable fixtures and test utilities used across
the test suite.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from cfgsmith.config import Settings, load_settings
from cfgsmith.logging import SilentLogger, set_global_logger


class RecordingLogger:
    """Logger that keeps every message for assertions."""

    def __init__(self) -> None:
        self.steps: list[str] = []
        self.warnings: list[str] = []
        self.messages: list[str] = []

    def step(self, step: int, total: int, message: str) -> None:
        self.steps.append(message)

    def warning(self, prefix: str, message: str) -> None:
        self.warnings.append(f"[{prefix}] {message}")

    def verbose(self, prefix: str, message: str) -> None:
        self.messages.append(f"[{prefix}] {message}")

    def debug(self, prefix: str, message: str) -> None:
        self.messages.append(f"[{prefix}] {message}")


class ProjectFactory:
    """Builds a cfgsmith project (settings, data, manifests) on disk."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def _dump(self, path: Path, data: Any) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False)
        return path

    def settings(self, **overrides: Any) -> Path:
        return self._dump(self.root / "cfgsmith.yaml", overrides or {"datadir": "hieradata"})

    def data(self, layer: str, values: dict[str, Any]) -> Path:
        return self._dump(self.root / "hieradata" / f"{layer}.yaml", values)

    def _entity(
        self,
        directory: str,
        name: str,
        manifest: dict[str, Any],
        templates: dict[str, str] | None,
    ) -> Path:
        entity_dir = self.root / "entities" / directory / name
        self._dump(entity_dir / "manifest.yaml", manifest)
        for template_name, body in (templates or {}).items():
            path = entity_dir / "templates" / template_name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(body, encoding="utf-8")
        return entity_dir

    def module(
        self,
        name: str,
        keys: list[str] | dict[str, Any],
        *,
        modules: list[Any] | None = None,
        components: list[Any] | None = None,
        templates: dict[str, str] | None = None,
    ) -> Path:
        manifest: dict[str, Any] = {"keys": keys}
        if modules:
            manifest["modules"] = modules
        if components:
            manifest["components"] = components
        return self._entity("modules", name, manifest, templates)

    def component(
        self,
        name: str,
        keys: list[str] | dict[str, Any],
        *,
        templates: dict[str, str] | None = None,
    ) -> Path:
        return self._entity("components", name, {"keys": keys}, templates)

    def load(self) -> Settings:
        if not (self.root / "cfgsmith.yaml").exists():
            self.settings()
        return load_settings(self.root)


@pytest.fixture(autouse=True)
def silent_global_logger():
    """Reset the global logger after tests that configure it (CLI tests)."""
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def recording_logger() -> RecordingLogger:
    """Provide a logger that records messages."""
    return RecordingLogger()


@pytest.fixture
def project(tmp_test_dir: Path) -> ProjectFactory:
    """
    Factory fixture for building a project tree in a temporary directory.

    Usage:
        project.data("common", {"echo-server::port": 80})
        project.module("echo-server", ["port"], templates={"app.properties.j2": "..."})
        settings = project.load()
    """
    return ProjectFactory(tmp_test_dir)


@pytest.fixture
def echo_server_project(project: ProjectFactory) -> ProjectFactory:
    """
    Provide the echo-server example project.

    echo-server declares ``port`` (only set for env test) and ``name``;
    it depends on the base-http sub-module and the memcached component.
    """
    project.settings(datadir="hieradata", entities_dir="entities")
    project.data(
        "common",
        {
            "echo-server::name": "echo",
            "base-http::timeout": 30,
            "base-http::headers": {"accept": "text/plain"},
        },
    )
    project.data("env/test", {"echo-server::port": 8080})
    project.data(
        "env/prod",
        {"component::memcached": {"single_client_enabled": False}},
    )
    project.module(
        "base-http",
        ["timeout", "headers"],
    )
    project.module(
        "echo-server",
        ["port", "name"],
        modules=["base-http"],
        components=["memcached"],
        templates={
            "app.properties.j2": (
                "name={{ name }}\n"
                "{% if port is defined %}\n"
                "server.port={{ port }}\n"
                "{% endif %}\n"
                "timeout={{ timeout }}\n"
                "{% for comp in rendered_components %}\n"
                "{{ comp.content }}"
                "{% endfor %}\n"
            ),
        },
    )
    project.component(
        "memcached",
        {"memcached": {"nodes": "localhost:11211", "single_client_enabled": True}},
        templates={
            "memcached.properties.j2": (
                "{% for key, value in memcached.items() %}\n"
                "memcached.{{ key }}={{ value }}\n"
                "{% endfor %}\n"
            ),
        },
    )
    return project


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture for creating temporary YAML files.

    Usage:
        yaml_path = create_yaml_file("test.yaml", {"key": "value"})
    """

    def _create(filename: str, data: dict[str, Any]) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return path

    return _create
