"""Tests for the ansi module."""

import os
from io import StringIO
from unittest.mock import patch

from spin_cli.ansi import (
    BOLD,
    DIM,
    GREEN,
    RED,
    RESET,
    YELLOW,
    BannerStyles,
    LogStyles,
    colorize,
    make_style,
    should_colorize,
    styled_for,
)


def test_colorize_single_code():
    """Test colorize with a single ANSI code."""
    assert colorize("hello", RED) == "\x1b[31mhello\x1b[0m"


def test_colorize_multiple_codes():
    """Test colorize with multiple ANSI codes."""
    assert colorize("hello", RED, BOLD) == "\x1b[31;1mhello\x1b[0m"


def test_colorize_no_codes():
    """Test colorize with no codes returns text unchanged."""
    assert colorize("hello") == "hello"


def test_make_style():
    """Test make_style returns correct prefix and suffix."""
    prefix, suffix = make_style(YELLOW, DIM)
    assert prefix == "\x1b[33;2m"
    assert suffix == RESET


def test_make_style_no_codes():
    """Test make_style with no codes returns empty prefix."""
    assert make_style() == ("", RESET)


def test_should_colorize_respects_no_color():
    """Test that NO_COLOR environment variable disables colors."""
    with patch.dict(os.environ, {"NO_COLOR": "1", "FORCE_COLOR": "1"}, clear=False):
        assert should_colorize() is False


def test_should_colorize_respects_force_color():
    """Test that FORCE_COLOR environment variable forces colors."""
    stream = StringIO()
    with patch.dict(os.environ, {"FORCE_COLOR": "1", "NO_COLOR": ""}, clear=False):
        assert should_colorize(stream) is True
        assert styled_for(stream, "ok", *BannerStyles.SUCCESS) == "\x1b[32;1mok\x1b[0m"


def test_should_colorize_non_tty():
    """Test that non-TTY streams don't get colors by default."""
    stream = StringIO()
    with patch.dict(os.environ, {"NO_COLOR": "", "FORCE_COLOR": ""}, clear=False):
        assert should_colorize(stream) is False
        assert styled_for(stream, "ok", *BannerStyles.SUCCESS) == "ok"


def test_styles():
    """Test the style tuples."""
    assert LogStyles.WARNING == (YELLOW, DIM)
    assert LogStyles.ERROR == (RED, DIM)
    assert LogStyles.CRITICAL == (RED, BOLD)
    assert BannerStyles.ERROR == (RED, BOLD)
    assert BannerStyles.SUCCESS == (GREEN, BOLD)
