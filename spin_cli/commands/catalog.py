"""Plugin catalog: the plugin-backed entries merged into the command tree."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from ..constants import TRIGGER_PLUGIN_PREFIX
from ..logging_setup import get_logger
from ..models import SpinError
from ..plugins import PluginManifest, PluginStore
from .models import PluginEntry

__all__ = ["PREDEFINED_EXTERNALS", "assemble", "entry_from_manifest", "installed_entries", "predefined_externals"]

# Plugins known to exist even when not installed locally: (name, about)
PREDEFINED_EXTERNALS: tuple[tuple[str, str], ...] = (
    ("cloud", "Package and upload an application to the Fermyon Cloud."),
    ("kube", "Deploy applications to a Kubernetes cluster running SpinKube."),
    ("js2wasm", "Build JavaScript and TypeScript applications to WebAssembly."),
    ("py2wasm", "Build Python applications to WebAssembly."),
)


def predefined_externals() -> list[tuple[str, str]]:
    """Return the predefined plugin table, in declaration order."""
    return list(PREDEFINED_EXTERNALS)


def entry_from_manifest(manifest: PluginManifest) -> PluginEntry | None:
    """Map an installed manifest to a catalog entry.

    Trigger provider plugins are not subcommands and give None.
    """
    if manifest.is_trigger_provider:
        return None
    return PluginEntry(name=manifest.name, about=manifest.description or "")


def installed_entries(store_opener: Callable[[], PluginStore] = PluginStore.try_open) -> list[PluginEntry]:
    """Return the entries of locally installed plugins, in store order.

    Any failure to open or list the store gives an empty list.
    """
    log = get_logger("catalog")
    try:
        manifests = store_opener().installed_manifests()
    except (SpinError, OSError) as e:
        log.debug("No local plugins: %s", e)
        return []
    return [entry for entry in map(entry_from_manifest, manifests) if entry is not None]


def assemble(
    store_opener: Callable[[], PluginStore] = PluginStore.try_open,
    predefined: Iterable[tuple[str, str]] | None = None,
) -> list[PluginEntry]:
    """Build the de-duplicated plugin catalog.

    Installed plugins come first and win over predefined entries of the same
    name; among predefined entries the first declared wins.

    Args:
        store_opener: Opens the local plugin store
        predefined: (name, about) pairs, defaults to PREDEFINED_EXTERNALS
    """
    if predefined is None:
        predefined = predefined_externals()
    candidates = installed_entries(store_opener) + [PluginEntry(name, about) for name, about in predefined]

    entries: list[PluginEntry] = []
    seen: set[str] = set()
    for entry in candidates:
        if entry.name in seen or entry.name.startswith(TRIGGER_PLUGIN_PREFIX):
            continue
        seen.add(entry.name)
        entries.append(entry)
    return entries
