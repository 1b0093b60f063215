"""Tests for the plugin catalog."""

from unittest.mock import Mock

from spin_cli.commands.catalog import PREDEFINED_EXTERNALS, assemble, entry_from_manifest, installed_entries
from spin_cli.commands.models import PluginEntry
from spin_cli.models import PluginStoreError
from spin_cli.plugins import PluginManifest, PluginStore

PREDEFINED_NAMES = [name for name, _ in PREDEFINED_EXTERNALS]


class TestEntries:
    """Mapping manifests to entries."""

    def test_display_text_has_marker(self):
        """Test plugin entries are listed with the plugin marker."""
        assert PluginEntry("cloud", "Cloud things").display_text == "cloud*"

    def test_missing_description_gives_empty_about(self):
        """Test a manifest without description gives an empty summary."""
        entry = entry_from_manifest(PluginManifest(name="kube"))
        assert entry == PluginEntry("kube", "")

    def test_trigger_providers_are_not_entries(self):
        """Test trigger plugins never become subcommands."""
        assert entry_from_manifest(PluginManifest(name="trigger-sqs", description="SQS")) is None


class TestAssemble:
    """Tests for assemble()."""

    def test_no_store_gives_predefined_only(self):
        """Test a missing plugin directory is not an error."""
        entries = assemble()
        assert [e.name for e in entries] == PREDEFINED_NAMES

    def test_store_failures_are_swallowed(self):
        """Test any store error gives zero installed plugins."""
        for error in (PluginStoreError("boom"), OSError("disk")):
            opener = Mock(side_effect=error)
            assert installed_entries(opener) == []
            assert [e.name for e in assemble(opener)] == PREDEFINED_NAMES

    def test_installed_first_in_store_order(self, install):
        """Test installed plugins come before predefined ones, sorted by manifest name."""
        install("zeta", description="Last letter")
        install("alpha", description="First letter")
        names = [e.name for e in assemble()]
        assert names == ["alpha", "zeta", *PREDEFINED_NAMES]

    def test_installed_wins_over_predefined(self, install):
        """Test an installed plugin shadows the predefined entry of the same name."""
        install("cloud", description="Installed cloud")
        entries = assemble()
        clouds = [e for e in entries if e.name == "cloud"]
        assert clouds == [PluginEntry("cloud", "Installed cloud")]
        assert entries[0].name == "cloud"

    def test_trigger_plugins_hidden(self, install):
        """Test trigger-* plugins are skipped."""
        install("trigger-sqs", description="SQS trigger")
        assert "trigger-sqs" not in [e.name for e in assemble()]

    def test_colliding_predefined_first_declared_wins(self):
        """Test two predefined entries with the same name keep the first one."""
        entries = assemble(Mock(side_effect=PluginStoreError("none")), predefined=[("x", "first"), ("x", "second")])
        assert entries == [PluginEntry("x", "first")]

    def test_names_are_unique(self, install):
        """Test every name appears once."""
        install("cloud")
        install("kube")
        names = [e.name for e in assemble()]
        assert len(names) == len(set(names))

    def test_rebuilt_on_each_call(self, install):
        """Test plugins installed after a first assembly show up in the next one."""
        assert "hello" not in [e.name for e in assemble()]
        install("hello", description="Hi")
        assert PluginEntry("hello", "Hi") in assemble(PluginStore.try_open)

    def test_bad_manifest_skipped(self, install, plugin_root):
        """Test an invalid manifest doesn't hide the other plugins."""
        install("good", description="Fine")
        (plugin_root / "manifests" / "bad.json").write_text("{not json")
        names = [e.name for e in assemble()]
        assert names[0] == "good"
        assert "bad" not in names
