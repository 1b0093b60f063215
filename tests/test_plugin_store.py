"""Tests for the local plugin store."""

import json

import pytest

from spin_cli.models import ManifestError, PluginStoreError
from spin_cli.plugins import PluginManifest, PluginStore, read_manifest


class TestManifest:
    """Plugin manifests."""

    def test_from_dict(self):
        """Test the JSON names are mapped."""
        manifest = PluginManifest.from_dict(
            {"name": "cloud", "description": "Cloud things", "version": "0.7.0", "spinCompatibility": ">=2.0"}
        )
        assert manifest == PluginManifest("cloud", "Cloud things", "0.7.0", ">=2.0")
        assert not manifest.is_trigger_provider

    def test_trigger_provider(self):
        """Test trigger plugins are recognized by name."""
        assert PluginManifest("trigger-sqs").is_trigger_provider

    def test_invalid(self):
        """Test schema errors are reported."""
        with pytest.raises(ManifestError, match="'name'"):
            PluginManifest.from_dict({"version": "1.0"})
        with pytest.raises(ManifestError, match="Expected str"):
            PluginManifest.from_dict({"name": "x", "description": 3})

    def test_read_errors(self, tmp_path):
        """Test unreadable files are reported with their cause."""
        with pytest.raises(ManifestError, match="Unable to read"):
            read_manifest(tmp_path / "missing.json")
        bad = tmp_path / "bad.json"
        bad.write_text("{")
        with pytest.raises(ManifestError, match="Invalid JSON"):
            read_manifest(bad)
        bad.write_text("[]")
        with pytest.raises(ManifestError, match="JSON object"):
            read_manifest(bad)


class TestStore:
    """Tests for PluginStore."""

    def test_missing_directory(self, tmp_path):
        """Test opening a store that does not exist."""
        with pytest.raises(PluginStoreError):
            PluginStore.try_open(tmp_path / "nowhere")

    def test_default_location(self, plugin_root):
        """Test the default store follows SPIN_DATA_DIR."""
        assert PluginStore.try_open().root == plugin_root

    def test_installed_manifests(self, install, plugin_root):
        """Test manifests are listed by name and broken ones skipped."""
        install("pluginify", description="Packages plugins")
        install("cloud", description="Cloud things")
        (plugin_root / "manifests" / "broken.json").write_text(json.dumps({"description": "no name"}))
        (plugin_root / "manifests" / "README.txt").write_text("not a manifest")

        store = PluginStore(plugin_root)
        assert [p.name for p in store.installed_manifests()] == ["cloud", "pluginify"]

    def test_no_manifest_directory(self, tmp_path):
        """Test an empty store lists nothing."""
        assert PluginStore(tmp_path).installed_manifests() == []

    def test_find_executable(self, install, plugin_root):
        """Test executables are only returned when installed."""
        binary = install("cloud")
        store = PluginStore(plugin_root)
        assert store.installed_binary_path("cloud") == binary
        assert store.find_executable("cloud") == binary
        assert store.find_executable("pluginify") is None
