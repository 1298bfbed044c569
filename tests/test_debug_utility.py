"""Tests for the debug utility module.

The debug utility provides a single entrypoint for low-level tracing that can
be toggled via the TIDYFS_DEBUG environment variable.
"""

from io import StringIO
from unittest.mock import patch

import pytest

from tidyfs.utils.debug import debug, debug_enabled


def test_debug_disabled_by_default() -> None:
    """Test that debug output is disabled when TIDYFS_DEBUG is not set."""
    with patch("sys.stderr", new=StringIO()) as fake_stderr:
        debug("This should not print")

    assert fake_stderr.getvalue() == ""
    assert not debug_enabled()


@pytest.mark.parametrize("value", ["1", "true", "True", "YES"])
def test_debug_enabled_with_truthy_values(
    monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    monkeypatch.setenv("TIDYFS_DEBUG", value)

    with patch("sys.stderr", new=StringIO()) as fake_stderr:
        debug("Test message")

    assert fake_stderr.getvalue() == "[tidyfs] Test message\n"


@pytest.mark.parametrize("value", ["0", "false", "no", ""])
def test_debug_disabled_with_falsy_values(
    monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    monkeypatch.setenv("TIDYFS_DEBUG", value)

    assert not debug_enabled()


def test_debug_never_writes_stdout(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that traces stay off stdout so --json output is not polluted."""
    monkeypatch.setenv("TIDYFS_DEBUG", "1")

    with patch("sys.stdout", new=StringIO()) as fake_stdout:
        with patch("sys.stderr", new=StringIO()):
            debug({"key": "value"})

    assert fake_stdout.getvalue() == ""
