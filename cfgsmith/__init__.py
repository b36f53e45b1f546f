"""
cfgsmith - hierarchical configuration generator

A Python-based CLI tool and library that resolves per-deployment
configuration values for services, sub-modules and components from a
layered YAML data hierarchy, and renders them into configuration files
with Jinja2 templates.

cfgsmith provides:
  - Declarative YAML manifests for entities and their dependencies
  - Layered lookups (common, environment, node, role) with per-key merge
    policies
  - Dependency resolution with cycle detection and explicit diamond
    overrides
  - An explicit absent marker so templates can omit unset properties
  - Dry-run, validate-against-disk and clean modes for output

Quick Start
-----------
Generate configuration for a service in the test environment:

    $ cfgsmith generate --service echo-server --env test

Inspect the merged values:

    $ cfgsmith show --service echo-server --env test --verbose

For full CLI documentation:

    $ cfgsmith --help

Package Structure
-----------------
cli : module
    Command-line interface with argparse.
core : module
    High-level orchestration functions.
config : package
    Project settings loading and merging.
entities : package
    Entity descriptors, manifest files and the explicit registry.
hierarchy : package
    Merge policies, merge strategies and the YAML data source.
resolve : package
    Merge engine and dependency resolver.
render : package
    Target mapping and Jinja2 rendering.
output : package
    Banner stamping, validation and file writing.

Public API
----------
The primary interface is the CLI, but key functions are exported for
programmatic use:

    from cfgsmith.core import build_scope, generate_configs, resolve_entity
    from cfgsmith.config import load_settings
    from cfgsmith.entities import DescriptorRegistry, EntityDescriptor, EntityKind

For more details, see the individual module docstrings.
"""

__version__ = "0.1.0"
__license__ = "Apache-2.0"
__description__ = "Hierarchical configuration resolver and file generator"

# Re-export commonly used functions for convenience
from cfgsmith.config import load_settings
from cfgsmith.core import build_scope, generate_configs, resolve_entity
from cfgsmith.entities import EntityKind
from cfgsmith.hierarchy import ABSENT

__all__ = [
    "__version__",
    "__license__",
    "__description__",
    "ABSENT",
    "EntityKind",
    "build_scope",
    "generate_configs",
    "load_settings",
    "resolve_entity",
]
