"""Declarative schemas for TOML sections and trigger options.

A schema (ConfigItems) is a list of ConfigField. The same schema is used to:
- check a section of the application manifest (spin.toml) or of a plugin manifest
- derive the command-line flags of `spin trigger <type>`, see `triggers.base`
"""

import difflib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, get_args, get_origin

__all__ = [
    "BOOL_TRUE_STRINGS",
    "ConfigField",
    "ConfigItems",
    "ConfigValidator",
    "format_config_error",
]

# values of a boolean environment variable read as true
BOOL_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})

# TOML example used in "missing field" and "wrong type" hints
_EXAMPLES: dict[type, str] = {
    str: '"value"',
    Path: '"path/to/file"',
    int: "1",
    bool: "true",
    list: '["item"]',
}


@dataclass
class ConfigField:  # pylint: disable=too-many-instance-attributes
    """Describes an expected key of a section, or a trigger option.

    Attributes:
        name: The key, also gives the flag name (underscores become hyphens)
        field_type: str, int, bool, Path, list, list[str] or dict
        required: Whether the key must be present
        default: Value used when the key (or the flag and its variable) is absent
        description: Human-readable description, also used as flag help
        choices: Accepted values, if restricted
        children: Schema of each table held by a dict field (eg: `[component.<id>]`)
        children_allow_extra: Don't warn about unknown keys in children
        env: Environment variable providing the value when the flag is not given
        short: Optional single-letter flag (eg: "L" for -L)
    """

    name: str
    field_type: type = str
    required: bool = False
    default: Any = None
    description: str = ""
    choices: list | None = None
    children: "ConfigItems | None" = None
    children_allow_extra: bool = False
    env: str = ""
    short: str = ""

    @property
    def base_type(self) -> type:
        """Return the unparametrized type (list for list[str])."""
        return get_origin(self.field_type) or self.field_type

    @property
    def type_name(self) -> str:
        """Return the type as written in the schema (eg: 'list[str]')."""
        args = get_args(self.field_type)
        if args:
            return f"{self.base_type.__name__}[{', '.join(a.__name__ for a in args)}]"
        return self.base_type.__name__

    @property
    def flag(self) -> str:
        """Return the long command-line flag for this field (eg: --tls-cert)."""
        return "--" + self.name.replace("_", "-")


class ConfigItems(list):
    """The fields of one section, in declaration order."""

    def __init__(self, *args: ConfigField) -> None:
        super().__init__(args)

    @property
    def names(self) -> list[str]:
        """Return the declared keys."""
        return [f.name for f in self]


def format_config_error(section: str, field: str, message: str, suggestion: str = "") -> str:
    """Format a configuration error message.

    Args:
        section: Manifest section (eg: "component.hello") or trigger type
        field: Field name that has the error
        message: Error description
        suggestion: Optional suggestion for fixing the error
    """
    msg = f"[{section}] Config error for '{field}': {message}"
    if suggestion:
        msg += f" -> {suggestion}"
    return msg


def _matches(expected: type, value: Any) -> bool:  # noqa: ANN401
    # bool is an int subclass: `port = true` is not a number
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if expected is Path:
        return isinstance(value, str)
    return isinstance(value, expected)


class ConfigValidator:
    """Checks one section of a TOML document against a schema."""

    def __init__(self, config: dict, section: str, logger: logging.Logger) -> None:
        """Initialize the validator.

        Args:
            config: The section, as parsed by tomllib (or json)
            section: Name of the section, used in error messages
            logger: Logger instance for warnings
        """
        self.config = config
        self.section = section
        self.log = logger

    def _error(self, field: str, message: str, suggestion: str = "") -> str:
        return format_config_error(self.section, field, message, suggestion)

    def validate(self, schema: ConfigItems) -> list[str]:
        """Validate the section against `schema`.

        Returns:
            List of error messages (empty if validation passed)
        """
        errors = []
        for field_def in schema:
            value = self.config.get(field_def.name)
            if value is None:
                if field_def.required:
                    example = _EXAMPLES.get(field_def.base_type)
                    hint = f"Add {field_def.name} = {example}" if example else f"Add '{field_def.name}'"
                    errors.append(self._error(field_def.name, "Missing required field", f"{hint} to [{self.section}]"))
                continue

            type_errors = self._check_type(field_def, value)
            if type_errors:
                errors.extend(type_errors)
            elif field_def.choices is not None and value not in field_def.choices:
                choices_str = ", ".join(repr(c) for c in field_def.choices)
                errors.append(self._error(field_def.name, f"Invalid value {value!r}", f"Valid options: {choices_str}"))
        return errors

    def _check_type(self, field_def: ConfigField, value: Any) -> list[str]:  # noqa: ANN401
        expected = field_def.base_type
        if not _matches(expected, value):
            got = type(value).__name__
            example = _EXAMPLES.get(expected)
            suggestion = f"Use {field_def.name} = {example}" if example else ""
            wanted = "table" if expected is dict else field_def.type_name
            return [self._error(field_def.name, f"Expected {wanted}, got {got}", suggestion)]

        if expected is list:
            (item_type,) = get_args(field_def.field_type) or (object,)
            for index, item in enumerate(value):
                if not _matches(item_type, item):
                    name = f"{field_def.name}[{index}]"
                    return [self._error(name, f"Expected {item_type.__name__}, got {type(item).__name__}")]
        elif expected is dict and field_def.children is not None:
            return self._validate_children(field_def, value)
        return []

    def _validate_children(self, field_def: ConfigField, tables: dict) -> list[str]:
        """Validate each table of `tables` against the children schema."""
        errors: list[str] = []
        for key, table in tables.items():
            if not isinstance(table, dict):
                errors.append(
                    format_config_error(f"{self.section}.{field_def.name}", key, f"Expected table, got {type(table).__name__}")
                )
                continue
            child = ConfigValidator(table, f"{field_def.name}.{key}", self.log)
            errors.extend(child.validate(field_def.children))
            if not field_def.children_allow_extra:
                child.warn_unknown_keys(field_def.children)
        return errors

    def warn_unknown_keys(self, schema: ConfigItems) -> list[str]:
        """Log a warning for each key the schema doesn't declare.

        Returns:
            List of warning messages
        """
        warnings = []
        known = schema.names
        for key in self.config:
            if key in known:
                continue
            similar = difflib.get_close_matches(key, known, n=1)
            if similar:
                msg = f"[{self.section}] Unknown option '{key}' (did you mean '{similar[0]}'?)"
            else:
                msg = f"[{self.section}] Unknown option '{key}' - will be ignored"
            self.log.warning(msg)
            warnings.append(msg)
        return warnings
