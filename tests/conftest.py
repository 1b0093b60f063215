" generic fixtures "
import pytest

from spin_cli.commands.catalog import assemble
from spin_cli.commands.models import CommandContext
from spin_cli.commands.tree import build_command_tree
from spin_cli.models import BuildInfo
from spin_cli.plugins import PluginStore

from .testtools import install_plugin, write_script

HELLO_APP = """
spin_manifest_version = 2

[application]
name = "hello"
version = "1.0.0"

[[trigger.http]]
route = "/hello/..."
component = "hello"

[component.hello]
source = "hello.sh"
description = "Says hello"

[component.hello.build]
command = "echo built > built.txt"
"""


def pytest_configure():
    "Runs once before all"
    from spin_cli.logging_setup import init_logger

    init_logger("/dev/null", force_debug=True)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    "No plugin store, no colors, no inherited manifest"
    monkeypatch.setenv("SPIN_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.delenv("FORCE_COLOR", raising=False)
    monkeypatch.delenv("SPIN_MANIFEST", raising=False)


@pytest.fixture
def build_info():
    return BuildInfo("2.2.0", "abc1234", "2024-01-31")


@pytest.fixture
def plugin_root(tmp_path):
    "An empty plugin store at the default location"
    root = tmp_path / "data" / "plugins"
    (root / "manifests").mkdir(parents=True)
    return root


@pytest.fixture
def install(plugin_root):
    "Installs a plugin in the default store"

    def _install(name, body="exit 0\n", **manifest):
        return install_plugin(plugin_root, name, body, **manifest)

    return _install


@pytest.fixture
def app_dir(tmp_path):
    "A directory holding the hello application"
    root = tmp_path / "app"
    root.mkdir()
    (root / "spin.toml").write_text(HELLO_APP)
    write_script(
        root / "hello.sh",
        'printf "Content-Type: text/plain\\n\\n"\nprintf "%s %s" "$REQUEST_METHOD" "$PATH_INFO"\n',
    )
    return root


@pytest.fixture
def make_context(build_info):
    "Builds the per-invocation context from the current plugin store"

    def _make(argv=()):
        catalog = assemble(PluginStore.try_open)
        tree = build_command_tree(catalog, build_info)
        return CommandContext(tree, build_info, catalog, list(argv))

    return _make


@pytest.fixture
def test_logger():
    from spin_cli.logging_setup import get_logger

    return get_logger("tests")
