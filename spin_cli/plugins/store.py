"""Local plugin store."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from ..constants import plugins_dir
from ..logging_setup import get_logger
from ..models import ManifestError, PluginStoreError
from .manifest import PluginManifest, read_manifest

__all__ = ["PluginStore"]


class PluginStore:
    """The directory where the plugin manager installs plugins.

    Layout:
        <root>/manifests/<name>.json   one manifest per installed plugin
        <root>/<name>/<name>           the plugin executable
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self.log = get_logger("plugins")

    @classmethod
    def try_open(cls, root: Path | None = None) -> PluginStore:
        """Open the store at `root` (defaults to the user's plugin directory).

        Raises:
            PluginStoreError: if the directory does not exist
        """
        root = root or plugins_dir()
        if not root.is_dir():
            msg = f"Plugin directory {root} does not exist"
            raise PluginStoreError(msg)
        return cls(root)

    @property
    def manifests_dir(self) -> Path:
        """Directory holding the installed manifests."""
        return self.root / "manifests"

    def manifest_files(self) -> list[Path]:
        """Return the manifest files, sorted by name.

        Raises:
            PluginStoreError: if the manifest directory can't be listed
        """
        if not self.manifests_dir.exists():
            return []
        try:
            return sorted(p for p in self.manifests_dir.iterdir() if p.suffix == ".json")
        except OSError as e:
            msg = f"Unable to list plugin manifests in {self.manifests_dir}"
            raise PluginStoreError(msg) from e

    def installed_manifests(self) -> list[PluginManifest]:
        """Return the manifests of every installed plugin, in store order.

        Unreadable manifests are skipped with a warning; `spin doctor` reports them.

        Raises:
            PluginStoreError: if the manifest directory can't be listed
        """
        manifests = []
        for path in self.manifest_files():
            try:
                manifests.append(read_manifest(path))
            except ManifestError as e:
                self.log.warning("Ignoring plugin manifest %s: %s", path.name, e)
        return manifests

    def installed_binary_path(self, name: str) -> Path:
        """Return where the executable of plugin `name` is installed."""
        return self.root / name / name

    def find_executable(self, name: str) -> Path | None:
        """Return the executable of plugin `name` if it is installed."""
        path = self.installed_binary_path(name)
        if path.is_file() and os.access(path, os.X_OK):
            return path
        # Windows installs keep the extension
        exe = shutil.which(name, path=str(path.parent))
        return Path(exe) if exe else None
