"""Plugin manifest model.

A manifest is a JSON document written by the plugin manager when a plugin is
installed, eg:

    {
        "name": "cloud",
        "description": "Commands for publishing applications to the Fermyon Cloud.",
        "version": "0.7.0",
        "spinCompatibility": ">=2.0",
        "license": "Apache-2.0",
        "packages": [{"os": "linux", "arch": "amd64", "url": "...", "sha256": "..."}]
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..constants import TRIGGER_PLUGIN_PREFIX
from ..logging_setup import get_logger
from ..models import ManifestError
from ..validation import ConfigField, ConfigItems, ConfigValidator

if TYPE_CHECKING:
    from pathlib import Path

__all__ = ["PLUGIN_MANIFEST_SCHEMA", "PluginManifest", "read_manifest"]

PLUGIN_MANIFEST_SCHEMA = ConfigItems(
    ConfigField("name", str, required=True, description="Plugin name, also the subcommand name"),
    ConfigField("description", str, description="One line summary shown in help"),
    ConfigField("version", str, description="Plugin version"),
    ConfigField("spinCompatibility", str, description="Compatible spin versions (eg: >=2.0)"),
    ConfigField("license", str, description="SPDX license identifier"),
    ConfigField("homepage", str, description="Project URL"),
    ConfigField("packages", list, description="Downloadable packages per os/arch"),
)


@dataclass(frozen=True)
class PluginManifest:
    """An installed plugin, as described by its manifest."""

    name: str
    description: str | None = None
    version: str = ""
    spin_compatibility: str = ""
    license: str = ""
    homepage: str = ""
    packages: list[dict[str, Any]] = field(default_factory=list, compare=False)

    @property
    def is_trigger_provider(self) -> bool:
        """Return True for plugins providing a trigger type rather than a subcommand."""
        return self.name.startswith(TRIGGER_PLUGIN_PREFIX)

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: str = "manifest") -> PluginManifest:
        """Build a manifest from decoded JSON, validating its fields.

        Raises:
            ManifestError: if required fields are missing or have the wrong type
        """
        errors = ConfigValidator(data, source, get_logger("plugins")).validate(PLUGIN_MANIFEST_SCHEMA)
        if errors:
            raise ManifestError("\n".join(errors))
        return cls(
            name=data["name"],
            description=data.get("description"),
            version=data.get("version", ""),
            spin_compatibility=data.get("spinCompatibility", ""),
            license=data.get("license", ""),
            homepage=data.get("homepage", ""),
            packages=list(data.get("packages", [])),
        )


def read_manifest(path: Path) -> PluginManifest:
    """Read and validate the manifest stored at `path`.

    Raises:
        ManifestError: if the file can't be read or decoded
    """
    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        msg = f"Unable to read plugin manifest {path}"
        raise ManifestError(msg) from e
    except json.JSONDecodeError as e:
        msg = f"Invalid JSON in plugin manifest {path}"
        raise ManifestError(msg) from e
    if not isinstance(data, dict):
        msg = f"Plugin manifest {path} must be a JSON object"
        raise ManifestError(msg)
    return PluginManifest.from_dict(data, source=path.name)
