"""Help-only trigger: exists so that `spin up --help` can describe the trigger options."""

from __future__ import annotations

import asyncio

from ..constants import HELP_ARGS_ONLY_TRIGGER_TYPE
from ..models import HelpArgsOnlyError
from .base import TriggerCapability

__all__ = ["HelpArgsOnlyTrigger"]


class HelpArgsOnlyTrigger(TriggerCapability):
    """Declares only the common executor options. Never runs."""

    trigger_type = HELP_ARGS_ONLY_TRIGGER_TYPE
    about = "Describe the options common to all triggers."
    hidden = True
    help_only = True

    async def run(self, stop: asyncio.Event) -> None:
        msg = "The help-only trigger cannot be run"
        raise HelpArgsOnlyError(msg)
