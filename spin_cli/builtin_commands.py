"""Built-in subcommands.

Each built-in declares its name, aliases and summary once; the command tree
builder turns it into an argparse node and the resolver hands the parsed
arguments back to `run`.

Passthrough commands receive every token after their name verbatim and parse
them with their own parser, so that options they don't know (eg: trigger
options given to `spin up`) can be forwarded unchanged.
"""

from __future__ import annotations

import argparse
import os
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar

from .ansi import BannerStyles, styled_for
from .commands.catalog import predefined_externals
from .commands.external import execute_external_subcommand
from .commands.parser import SpinArgumentParser
from .constants import (
    APP_MANIFEST_ENV,
    DEFAULT_APP_MANIFEST,
    HELP_ARGS_ONLY_TRIGGER_TYPE,
    PASSTHROUGH_PREFIX,
    PROGRAM_NAME,
    TRIGGER_PLUGIN_PREFIX,
)
from .logging_setup import get_logger
from .manifest import AppManifest, load_app_manifest, resolve_manifest_path
from .models import CommandUnavailableError, ManifestError, PluginStoreError, SpinError, TriggerError, UsageError
from .plugins import read_manifest
from .process import ChildProcess
from .triggers import TRIGGER_CAPABILITIES, TriggerExecutorCommand

if TYPE_CHECKING:
    from .commands.models import CommandContext
    from .plugins import PluginStore

__all__ = [
    "AddCommand",
    "BuildCommand",
    "BuiltinCommand",
    "DeployCommand",
    "DoctorCommand",
    "HelpCommand",
    "LoginCommand",
    "NewCommand",
    "PluginsCommand",
    "RegistryCommand",
    "TemplatesCommand",
    "TriggerCommand",
    "UpCommand",
    "WatchCommand",
    "default_commands",
]


class BuiltinCommand(ABC):
    """A subcommand implemented in-process.

    Attributes:
        name: Subcommand name
        about: One line summary shown in the command listing
        aliases: Alternative names
        hidden: If True, the command is parsed but not listed
        passthrough: If True, every token after the name is collected, unparsed, in `args.args`
    """

    name: ClassVar[str]
    about: ClassVar[str] = ""
    aliases: ClassVar[tuple[str, ...]] = ()
    hidden: ClassVar[bool] = False
    passthrough: ClassVar[bool] = False

    def __init__(self) -> None:
        self.log = get_logger(f"cmd.{self.name}")
        self.parser: argparse.ArgumentParser | None = None

    def configure(self, parser: argparse.ArgumentParser) -> None:
        """Declare the command's arguments on its node of the command tree."""
        self.parser = parser
        if self.passthrough:
            parser.add_argument("args", nargs=argparse.REMAINDER)

    @abstractmethod
    async def run(self, args: argparse.Namespace, context: CommandContext) -> int:
        """Run the command.

        Returns:
            The process exit code
        """


def _options_parser(command: str, description: str, usage: str | None = None) -> SpinArgumentParser:
    parser = SpinArgumentParser(
        prog=f"{PROGRAM_NAME} {command}",
        usage=usage,
        description=description,
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument("-h", "--help", action="store_true", help="Print help information")
    return parser


def _add_app_source(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-f",
        "--from",
        dest="app_source",
        metavar="APP_MANIFEST_FILE",
        help=f"The application manifest, or a directory containing {DEFAULT_APP_MANIFEST} [env: {APP_MANIFEST_ENV}]",
    )


def app_manifest_path(app_source: str | None) -> Path:
    """Return the manifest selected by `--from`, `$SPIN_MANIFEST` or the current directory."""
    source = app_source or os.environ.get(APP_MANIFEST_ENV) or DEFAULT_APP_MANIFEST
    return resolve_manifest_path(Path(source))


class UnavailableCommand(BuiltinCommand):
    """A command declared for help and parsing, provided by a separate distribution."""

    passthrough = True

    async def run(self, args: argparse.Namespace, context: CommandContext) -> int:
        msg = f"'{PROGRAM_NAME} {self.name}' is not available in this distribution of {PROGRAM_NAME}"
        raise CommandUnavailableError(msg)


class TemplatesCommand(UnavailableCommand):
    """Manage the templates used by `spin new` and `spin add`."""

    name = "templates"
    about = "Commands for working with WebAssembly component templates."
    aliases = ("template",)


class NewCommand(UnavailableCommand):
    """Scaffold an application from a template."""

    name = "new"
    about = "Scaffold a new application based on a template."


class AddCommand(UnavailableCommand):
    """Scaffold a component into an application."""

    name = "add"
    about = "Scaffold a new component into an existing application."


class UpCommand(BuiltinCommand):
    """Run the application with the executor of its trigger type."""

    name = "up"
    about = "Start the Spin application."
    passthrough = True

    def configure(self, parser: argparse.ArgumentParser) -> None:
        super().configure(parser)
        self.options = _options_parser(self.name, self.about, usage="%(prog)s [OPTIONS] [TRIGGER_OPTIONS]...")
        _add_app_source(self.options)

    def format_help(self, context: CommandContext) -> str:
        """Return the help of `spin up`, trigger options included."""
        text = self.options.format_help()
        executor = context.tree.trigger_executor(HELP_ARGS_ONLY_TRIGGER_TYPE)
        if executor is not None:
            text += "\nTrigger " + executor.format_options()
        return text

    async def start(self, manifest_path: Path, trigger_args: list[str], context: CommandContext) -> int:
        """Run the application at `manifest_path`, passing `trigger_args` to its executor.

        Raises:
            TriggerError: if the application has no trigger or several trigger types
        """
        app = await load_app_manifest(manifest_path)
        trigger_types = app.trigger_types
        if not trigger_types:
            msg = f"Application {app.name} has no triggers"
            raise TriggerError(msg)
        if len(trigger_types) > 1:
            msg = f"Applications with multiple trigger types are not supported (found {', '.join(trigger_types)})"
            raise TriggerError(msg)

        trigger_type = trigger_types[0]
        trigger_argv = ["--app", str(app.path), *trigger_args]
        executor = context.tree.trigger_executor(trigger_type)
        if executor is None:
            self.log.info("No built-in %s trigger, looking for a plugin", trigger_type)
            return await execute_external_subcommand(
                [f"{TRIGGER_PLUGIN_PREFIX}{trigger_type}", *trigger_argv],
                context,
                extra_env={APP_MANIFEST_ENV: str(app.path)},
            )
        return await executor.run(executor.parse(trigger_argv))

    async def run(self, args: argparse.Namespace, context: CommandContext) -> int:
        options, trigger_args = self.options.parse_known_args(args.args)
        if options.help:
            print(self.format_help(context))
            return 0
        return await self.start(app_manifest_path(options.app_source), trigger_args, context)


class CloudShortcut(BuiltinCommand):
    """Shortcut for `spin cloud <subcommand>`."""

    passthrough = True
    subcommand: ClassVar[str]

    async def run(self, args: argparse.Namespace, context: CommandContext) -> int:
        return await execute_external_subcommand(["cloud", self.subcommand, *args.args], context)


class DeployCommand(CloudShortcut):
    name = "deploy"
    subcommand = "deploy"
    about = "Package and upload an application to the Fermyon Cloud."


class LoginCommand(CloudShortcut):
    name = "login"
    subcommand = "login"
    about = "Log into the Fermyon Cloud."


class RegistryCommand(UnavailableCommand):
    """Push and pull applications to OCI registries."""

    name = "registry"
    about = "Commands for working with OCI registries to distribute applications."
    aliases = ("oci",)


class BuildCommand(BuiltinCommand):
    """Run the build command of each component."""

    name = "build"
    about = "Build the Spin application."
    passthrough = True

    def configure(self, parser: argparse.ArgumentParser) -> None:
        super().configure(parser)
        self.options = _options_parser(self.name, self.about, usage="%(prog)s [OPTIONS] [UP_ARGS]...")
        _add_app_source(self.options)
        self.options.add_argument(
            "-c",
            "--component-id",
            action="append",
            default=[],
            metavar="ID",
            help="Component ID to build, can be repeated (default: all)",
        )
        self.options.add_argument("-u", "--up", action="store_true", help="Run the application after building")

    async def build_components(self, app: AppManifest, selected: list[str]) -> None:
        """Build the `selected` components of `app` (all if empty), stopping at the first failure.

        Raises:
            SpinError: if a component is unknown or its build command fails
        """
        unknown = [component_id for component_id in selected if component_id not in app.components]
        if unknown:
            msg = f"Unknown component(s): {', '.join(unknown)}"
            raise SpinError(msg)

        components = [app.components[component_id] for component_id in selected or app.components]
        buildable = [(component, component.build) for component in components if component.build is not None]
        if not buildable:
            print("None of the components have a build command.")
            return

        for component, build in buildable:
            workdir = app.resolve(build.workdir) if build.workdir else app.base_dir
            print(f"Building component {component.id} with `{build.command}`")
            if build.workdir:
                print(f"Working directory: {workdir}")
            proc = ChildProcess()
            try:
                await proc.start_shell(build.command, cwd=workdir)
            except OSError as e:
                msg = f"Unable to run the build command of component {component.id}"
                raise SpinError(msg) from e
            status = await proc.wait()
            if status != 0:
                msg = f"Build command for component {component.id} failed with status code {status}"
                raise SpinError(msg)

    async def run(self, args: argparse.Namespace, context: CommandContext) -> int:
        options, up_args = self.options.parse_known_args(args.args)
        if options.help:
            print(self.options.format_help())
            return 0
        if up_args and not options.up:
            msg = f"unexpected argument '{up_args[0]}' (trigger options require --up)"
            raise UsageError(msg, usage=self.options.format_usage())

        manifest_path = app_manifest_path(options.app_source)
        app = await load_app_manifest(manifest_path)
        await self.build_components(app, options.component_id)
        print("Finished building all Spin components")

        if not options.up:
            return 0
        up = context.tree.builtins.get(UpCommand.name)
        if not isinstance(up, UpCommand):
            msg = "The up command is not available"
            raise CommandUnavailableError(msg)
        return await up.start(app.path, up_args, context)


class PluginsCommand(BuiltinCommand):
    """Inspect installed plugins."""

    name = "plugins"
    about = "Install or upgrade Spin plugins."
    aliases = ("plugin",)

    # Plugin manager operations, not shipped with this front-end
    MANAGER_COMMANDS: ClassVar[tuple[tuple[str, str], ...]] = (
        ("install", "Install plugin from a manifest."),
        ("uninstall", "Remove a plugin from your installation."),
        ("upgrade", "Upgrade one or all plugins."),
        ("update", "Fetch the latest Spin plugins from the spin-plugins repository."),
        ("search", "Search for plugins by name."),
    )

    def configure(self, parser: argparse.ArgumentParser) -> None:
        super().configure(parser)
        subparsers = parser.add_subparsers(dest="plugins_command", metavar="<COMMAND>", required=True)
        list_parser = subparsers.add_parser("list", help="List available or installed plugins.")
        list_parser.add_argument("--all", action="store_true", help="List all known plugins, not only the installed ones")
        for name, about in self.MANAGER_COMMANDS:
            node = subparsers.add_parser(name, help=about, prefix_chars=PASSTHROUGH_PREFIX, add_help=False)
            node.add_argument("args", nargs=argparse.REMAINDER)

    def list_plugins(self, store: PluginStore | None, show_all: bool) -> list[str]:
        """Return the lines of `spin plugins list`."""
        lines = []
        installed = store.installed_manifests() if store is not None else []
        for manifest in sorted(installed, key=lambda m: m.name):
            version = f" {manifest.version}" if manifest.version else ""
            kind = " [trigger]" if manifest.is_trigger_provider else ""
            lines.append(f"{manifest.name}{version} [installed]{kind}")
        if show_all:
            names = {manifest.name for manifest in installed}
            lines.extend(f"{name} [not installed]" for name, _ in predefined_externals() if name not in names)
        return lines

    async def run(self, args: argparse.Namespace, context: CommandContext) -> int:
        if args.plugins_command != "list":
            msg = f"'{PROGRAM_NAME} plugins {args.plugins_command}' is not available in this distribution of {PROGRAM_NAME}"
            raise CommandUnavailableError(msg)
        try:
            store = context.store_opener()
        except PluginStoreError as e:
            self.log.debug("No plugin store: %s", e)
            store = None
        lines = self.list_plugins(store, args.all)
        if not lines:
            print("You have no plugins installed.")
        for line in lines:
            print(line)
        return 0


class TriggerCommand(BuiltinCommand):
    """Run a trigger executor directly (used by `spin up`)."""

    name = "trigger"
    about = "Run a trigger executor."
    hidden = True

    def __init__(self) -> None:
        super().__init__()
        self.executors: dict[str, TriggerExecutorCommand] = {
            capability.trigger_type: TriggerExecutorCommand(capability) for capability in TRIGGER_CAPABILITIES
        }

    def configure(self, parser: argparse.ArgumentParser) -> None:
        super().configure(parser)
        subparsers = parser.add_subparsers(dest="trigger_type", metavar="<TRIGGER>", required=True)
        for trigger_type, executor in self.executors.items():
            kwargs = {} if executor.hidden else {"help": executor.about}
            executor.configure(subparsers.add_parser(trigger_type, description=executor.about, **kwargs))

    async def run(self, args: argparse.Namespace, context: CommandContext) -> int:
        return await self.executors[args.trigger_type].run(args)


class WatchCommand(UnavailableCommand):
    """Rebuild and restart the application on changes."""

    name = "watch"
    about = "Build and run the Spin application, rebuilding and restarting it when files change."


class DoctorCommand(BuiltinCommand):
    """Report problems with the plugin store and the application."""

    name = "doctor"
    about = "Detect and fix problems with Spin applications."

    def configure(self, parser: argparse.ArgumentParser) -> None:
        super().configure(parser)
        _add_app_source(parser)

    def store_problems(self, store: PluginStore) -> list[str]:
        """Return the unreadable plugin manifests."""
        problems = []
        for path in store.manifest_files():
            try:
                read_manifest(path)
            except ManifestError as e:
                problems.append(f"Plugin manifest {path.name} is invalid: {e}")
        return problems

    def trigger_problems(self, app: AppManifest, store: PluginStore | None, context: CommandContext) -> list[str]:
        """Return the trigger types of `app` nobody can run."""
        problems = []
        for trigger_type in app.trigger_types:
            if context.tree.trigger_executor(trigger_type) is not None:
                continue
            plugin = f"{TRIGGER_PLUGIN_PREFIX}{trigger_type}"
            if store is None or store.find_executable(plugin) is None:
                problems.append(f"No executor for trigger type '{trigger_type}': the {plugin} plugin is not installed")
        return problems

    async def run(self, args: argparse.Namespace, context: CommandContext) -> int:
        problems: list[str] = []
        store: PluginStore | None = None
        try:
            store = context.store_opener()
            problems.extend(self.store_problems(store))
        except PluginStoreError as e:
            self.log.info("No plugin store: %s", e)

        manifest_path = app_manifest_path(args.app_source)
        print(f"Checking {manifest_path}...")
        try:
            app = await load_app_manifest(manifest_path)
        except ManifestError as e:
            problems.append(str(e))
        else:
            problems.extend(self.trigger_problems(app, store, context))

        if not problems:
            print(styled_for(sys.stdout, "No problems found", *BannerStyles.SUCCESS))
            return 0
        for problem in problems:
            print(styled_for(sys.stdout, "Problem:", *BannerStyles.WARNING), problem)
        return 1


class HelpCommand(BuiltinCommand):
    """`spin help [COMMAND]`."""

    name = "help"
    about = "Print this message or the help of the given subcommand(s)."

    def configure(self, parser: argparse.ArgumentParser) -> None:
        super().configure(parser)
        parser.add_argument("topic", nargs="*", metavar="COMMAND")

    async def run(self, args: argparse.Namespace, context: CommandContext) -> int:
        if not args.topic:
            print(context.tree.format_help())
            return 0
        node = context.tree.nodes.get(args.topic[0])
        if node is None:
            msg = f"unrecognized subcommand '{args.topic[0]}'"
            raise UsageError(msg, usage=context.tree.format_usage())
        print(node.format_help())
        return 0


def default_commands() -> list[BuiltinCommand]:
    """Return fresh instances of the built-in commands, in help order."""
    return [
        TemplatesCommand(),
        NewCommand(),
        AddCommand(),
        UpCommand(),
        DeployCommand(),
        LoginCommand(),
        RegistryCommand(),
        BuildCommand(),
        PluginsCommand(),
        TriggerCommand(),
        WatchCommand(),
        DoctorCommand(),
        HelpCommand(),
    ]
