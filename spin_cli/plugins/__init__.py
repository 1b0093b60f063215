"""Read-only access to locally installed plugins.

Installing, upgrading and removing plugins belongs to the plugin manager;
this package only lists what is installed and where the binaries live.
"""

from .manifest import PluginManifest, read_manifest
from .store import PluginStore

__all__ = ["PluginManifest", "PluginStore", "read_manifest"]
