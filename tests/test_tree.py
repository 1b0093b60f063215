"""Tests for the command tree."""

import pytest

from spin_cli.builtin_commands import RegistryCommand, TemplatesCommand, UpCommand
from spin_cli.commands.models import PluginEntry
from spin_cli.commands.tree import build_command_tree, render_command_list
from spin_cli.constants import HELP_ARGS_ONLY_TRIGGER_TYPE, PLUGIN_FOOTER
from spin_cli.models import UsageError
from spin_cli.triggers import HelpArgsOnlyTrigger, HttpTrigger, RedisTrigger

CATALOG = [PluginEntry("cloud", "Cloud things"), PluginEntry("deploy-helper", "Helps")]


@pytest.fixture
def tree(build_info):
    return build_command_tree(CATALOG, build_info)


class TestListing:
    """Help surface."""

    def test_builtins_then_plugins(self, tree):
        """Test the listing order: visible built-ins, then plugin entries."""
        names = [name for name, _ in tree.listing]
        assert names[:4] == ["templates", "new", "add", "up"]
        assert names[-2:] == ["cloud*", "deploy-helper*"]

    def test_hidden_commands_not_listed(self, tree):
        """Test the trigger command is parsed but not listed."""
        assert "trigger" not in [name for name, _ in tree.listing]
        assert tree.knows("trigger")

    def test_help_mentions_plugins_and_footer(self, tree):
        """Test the help lists plugins with their marker and explains it."""
        text = tree.format_help()
        assert "cloud*" in text
        assert "Cloud things" in text
        assert text.rstrip().endswith(PLUGIN_FOOTER)

    def test_no_footer_without_plugins(self, build_info):
        """Test the footer only appears when plugins exist."""
        text = build_command_tree([], build_info).format_help()
        assert PLUGIN_FOOTER not in text
        assert "up" in text

    def test_usage_line(self, tree):
        """Test the top-level usage."""
        assert tree.format_usage().strip() == "usage: spin [OPTIONS] <COMMAND>"

    def test_render_command_list_aligns(self):
        """Test summaries are aligned on the longest name."""
        text = render_command_list([("up", "Start"), ("cloud*", "Cloud")], footer=True)
        assert text.splitlines() == ["Commands:", "  up      Start", "  cloud*  Cloud", "", PLUGIN_FOOTER]


class TestNodes:
    """Parsing through the tree."""

    def test_version(self, tree, capsys):
        """Test --version prints the build info."""
        with pytest.raises(SystemExit) as exc:
            tree.parser.parse_args(["--version"])
        assert exc.value.code == 0
        assert capsys.readouterr().out.strip() == "spin 2.2.0 (abc1234 2024-01-31)"

    def test_plugin_node_accepts_anything(self, tree):
        """Test plugin nodes take hyphen values and --help as plain values."""
        args = tree.parser.parse_args(["cloud", "--weird-flag", "-x", "value", "--help"])
        assert args.command == "cloud"
        assert args.plugin == "cloud"
        assert args.plugin_args == ["--weird-flag", "-x", "value", "--help"]

    def test_aliases_share_the_command(self, tree):
        """Test aliases select the same built-in."""
        assert isinstance(tree.builtins["oci"], RegistryCommand)
        assert tree.builtins["oci"] is tree.builtins["registry"]
        assert isinstance(tree.builtins["template"], TemplatesCommand)

    def test_plugin_named_like_builtin(self, build_info):
        """Test a plugin named like a built-in gets no node and is remembered."""
        tree = build_command_tree([PluginEntry("up", "Impostor"), PluginEntry("oci", "Other")], build_info)
        assert "up" not in tree.plugins
        assert tree.shadowed["up"].about == "Impostor"
        assert "oci" in tree.shadowed
        assert isinstance(tree.builtins["up"], UpCommand)
        assert ("up*", "Impostor") not in tree.listing

    def test_trigger_executors(self, tree):
        """Test one executor per built-in trigger type."""
        assert tree.trigger_executor("http").capability is HttpTrigger
        assert tree.trigger_executor("redis").capability is RedisTrigger
        assert tree.trigger_executor(HELP_ARGS_ONLY_TRIGGER_TYPE).capability is HelpArgsOnlyTrigger
        assert tree.trigger_executor("sqs") is None

    def test_trigger_flags(self, tree):
        """Test trigger nodes expose common and capability options."""
        args = tree.parser.parse_args(["trigger", "http", "-f", "app.toml", "--listen", "0.0.0.0:8080", "--quiet"])
        assert args.trigger_type == "http"
        assert str(args.app) == "app.toml"
        assert args.listen == "0.0.0.0:8080"
        assert args.quiet is True

    def test_usage_error(self, tree):
        """Test parse errors raise UsageError with the usage."""
        with pytest.raises(UsageError) as exc:
            tree.parser.parse_args(["--bogus"])
        assert "--bogus" in str(exc.value)
        assert "spin [OPTIONS] <COMMAND>" in exc.value.usage

    def test_nested_usage_error(self, tree):
        """Test errors in sub-commands carry the sub-command usage."""
        with pytest.raises(UsageError) as exc:
            tree.parser.parse_args(["trigger", "sqs"])
        assert "sqs" in str(exc.value)
        assert exc.value.usage.startswith("usage: spin trigger")
