"""Trigger executors.

Each trigger type is a TriggerCapability subclass; TriggerExecutorCommand
turns any of them into a `spin trigger <type>` command.
"""

from .base import COMMON_OPTIONS, TriggerCapability
from .components import ComponentOutput, ComponentRunner
from .executor import TriggerExecutorCommand, TriggerState
from .help import HelpArgsOnlyTrigger
from .http import HttpTrigger
from .redis import RedisTrigger

__all__ = [
    "COMMON_OPTIONS",
    "TRIGGER_CAPABILITIES",
    "ComponentOutput",
    "ComponentRunner",
    "HelpArgsOnlyTrigger",
    "HttpTrigger",
    "RedisTrigger",
    "TriggerCapability",
    "TriggerExecutorCommand",
    "TriggerState",
]

# Trigger types built into the executable, in help order
TRIGGER_CAPABILITIES: tuple[type[TriggerCapability], ...] = (HttpTrigger, RedisTrigger, HelpArgsOnlyTrigger)
