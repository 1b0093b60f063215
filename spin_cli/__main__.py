"""Allow running as `python -m spin_cli`."""

from .command import main

main()
