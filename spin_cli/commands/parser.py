"""Argument parser reporting usage errors as exceptions."""

import argparse
from typing import NoReturn

from ..models import UsageError

__all__ = ["SpinArgumentParser"]


class SpinArgumentParser(argparse.ArgumentParser):
    """ArgumentParser raising UsageError instead of exiting the process.

    Sub-parsers inherit the class, so errors deep in the command tree carry
    the usage line of the command that failed.
    """

    def error(self, message: str) -> NoReturn:
        raise UsageError(message, usage=self.format_usage())
