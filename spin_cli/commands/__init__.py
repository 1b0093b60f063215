"""Command resolution and dispatch.

This package provides:
- models: Value types flowing between the stages (PluginEntry, Invocation, Resolution)
- catalog: Plugin catalog assembly (installed + predefined plugins)
- tree: The merged argument parser and its help listing
- resolver: Invocation parsing and built-in / forward resolution
- external: Forwarding to plugin executables
"""
