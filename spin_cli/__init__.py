"""spin-cli - the command front-end of the Spin toolchain.

Merges built-in subcommands, the generic trigger executors and externally
installed plugins into a single command tree, then dispatches each invocation
to exactly one of them. Handlers run as a single asyncio task.
"""
