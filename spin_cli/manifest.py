"""Application manifest (spin.toml) loading.

Only the subset of the manifest needed to dispatch triggers and builds is
modelled:

    spin_manifest_version = 2

    [application]
    name = "hello"

    [application.trigger.http]
    base = "/"

    [[trigger.http]]
    route = "/hello/..."
    component = "hello"

    [component.hello]
    source = "target/hello"
    environment = { GREETING = "hi" }

    [component.hello.build]
    command = "make"
    workdir = "hello"
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import aiofiles

from .constants import DEFAULT_APP_MANIFEST
from .logging_setup import get_logger
from .models import ManifestError
from .validation import ConfigField, ConfigItems, ConfigValidator

__all__ = [
    "APP_MANIFEST_SCHEMA",
    "AppManifest",
    "BuildConfig",
    "Component",
    "load_app_manifest",
    "parse_app_manifest",
    "resolve_manifest_path",
]

BUILD_SCHEMA = ConfigItems(
    ConfigField("command", str, required=True, description="Shell command building the component"),
    ConfigField("workdir", str, description="Directory the command runs in, relative to the manifest"),
    ConfigField("watch", list[str], default=[], description="Files watched by `spin watch`"),
)

COMPONENT_SCHEMA = ConfigItems(
    ConfigField("source", str, required=True, description="Path to the component executable"),
    ConfigField("description", str, default=""),
    ConfigField("environment", dict, default={}, description="Environment variables given to the component"),
    ConfigField("build", dict, description="Build configuration"),
    ConfigField("files", list, default=[]),
    ConfigField("allowed_outbound_hosts", list[str], default=[]),
    ConfigField("key_value_stores", list[str], default=[]),
    ConfigField("variables", dict, default={}),
)

APPLICATION_SCHEMA = ConfigItems(
    ConfigField("name", str, required=True, description="Application name"),
    ConfigField("version", str, default="0.0.0"),
    ConfigField("description", str, default=""),
    ConfigField("authors", list[str], default=[]),
    ConfigField("trigger", dict, default={}, description="Per trigger type application settings"),
)

APP_MANIFEST_SCHEMA = ConfigItems(
    ConfigField("spin_manifest_version", int, required=True, choices=[2]),
    ConfigField("application", dict, required=True),
    ConfigField("trigger", dict, default={}),
    ConfigField("component", dict, default={}, children=COMPONENT_SCHEMA, children_allow_extra=True),
    ConfigField("variables", dict, default={}),
)


@dataclass
class BuildConfig:
    """How to build a component."""

    command: str
    workdir: str | None = None
    watch: list[str] = field(default_factory=list)


@dataclass
class Component:
    """A component declared in the manifest."""

    id: str
    source: str
    description: str = ""
    environment: dict[str, str] = field(default_factory=dict)
    build: BuildConfig | None = None


@dataclass
class AppManifest:
    """A loaded application manifest."""

    path: Path
    name: str
    version: str = "0.0.0"
    description: str = ""
    triggers: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    trigger_config: dict[str, dict[str, Any]] = field(default_factory=dict)
    components: dict[str, Component] = field(default_factory=dict)

    @property
    def base_dir(self) -> Path:
        """Directory relative paths of the manifest are resolved against."""
        return self.path.parent

    @property
    def trigger_types(self) -> list[str]:
        """Trigger types used by the application, in declaration order."""
        return [name for name, entries in self.triggers.items() if entries]

    def resolve(self, relative: str) -> Path:
        """Resolve a manifest-relative path."""
        return (self.base_dir / relative).resolve()


def resolve_manifest_path(path: Path) -> Path:
    """Return the manifest file for `path`, which may be a directory."""
    if path.is_dir():
        return path / DEFAULT_APP_MANIFEST
    return path


def _section_errors(data: dict[str, Any], section: str, schema: ConfigItems) -> list[str]:
    validator = ConfigValidator(data, section, get_logger("manifest"))
    errors = validator.validate(schema)
    validator.warn_unknown_keys(schema)
    return errors


def _trigger_errors(triggers: dict[str, Any], components: dict[str, Any]) -> list[str]:
    errors = []
    for trigger_type, entries in triggers.items():
        if not isinstance(entries, list) or not all(isinstance(entry, dict) for entry in entries):
            errors.append(f"[trigger.{trigger_type}] Expected an array of tables ([[trigger.{trigger_type}]])")
            continue
        for index, entry in enumerate(entries):
            component = entry.get("component")
            if not isinstance(component, str):
                errors.append(f"[trigger.{trigger_type}][{index}] 'component' must name a [component.<id>] table")
            elif component not in components:
                errors.append(f"[trigger.{trigger_type}][{index}] Unknown component '{component}'")
    return errors


def _build_config(build: dict[str, Any] | None) -> BuildConfig | None:
    if build is None:
        return None
    return BuildConfig(command=build["command"], workdir=build.get("workdir"), watch=list(build.get("watch", [])))


def parse_app_manifest(text: str, path: Path) -> AppManifest:
    """Parse and validate the manifest `text` read from `path`.

    Raises:
        ManifestError: if the TOML is invalid or does not match the schema
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in application manifest {path}"
        raise ManifestError(msg) from e

    errors = _section_errors(data, path.name, APP_MANIFEST_SCHEMA)
    if errors:
        raise ManifestError(f"Invalid application manifest {path}:\n" + "\n".join(errors))

    application = data["application"]
    components = data.get("component", {})
    errors.extend(_section_errors(application, "application", APPLICATION_SCHEMA))
    for component_id, component in components.items():
        if isinstance(component.get("build"), dict):
            errors.extend(_section_errors(component["build"], f"component.{component_id}.build", BUILD_SCHEMA))
    errors.extend(_trigger_errors(data.get("trigger", {}), components))
    if errors:
        raise ManifestError(f"Invalid application manifest {path}:\n" + "\n".join(errors))

    return AppManifest(
        path=path.resolve(),
        name=application["name"],
        version=application.get("version", "0.0.0"),
        description=application.get("description", ""),
        triggers=data.get("trigger", {}),
        trigger_config=application.get("trigger", {}),
        components={
            component_id: Component(
                id=component_id,
                source=component["source"],
                description=component.get("description", ""),
                environment={key: str(value) for key, value in component.get("environment", {}).items()},
                build=_build_config(component.get("build")),
            )
            for component_id, component in components.items()
        },
    )


async def load_app_manifest(path: Path | str) -> AppManifest:
    """Read the application manifest at `path` (a file or a directory).

    Raises:
        ManifestError: if the file can't be read or is invalid
    """
    manifest_path = resolve_manifest_path(Path(path))
    try:
        async with aiofiles.open(manifest_path, encoding="utf-8") as f:
            text = await f.read()
    except FileNotFoundError as e:
        msg = f"Application manifest {manifest_path} not found"
        raise ManifestError(msg) from e
    except OSError as e:
        msg = f"Unable to read application manifest {manifest_path}"
        raise ManifestError(msg) from e
    get_logger("manifest").info("Loaded %s", manifest_path)
    return parse_app_manifest(text, manifest_path)
