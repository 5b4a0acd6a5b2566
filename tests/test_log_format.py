import logging

from log_format import BOLD, CYAN, ColoredFormatter


def record(msg: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("domain.controller", level, __file__, 1, msg, None, None)


def test_state_transitions_highlighted():
    formatted = ColoredFormatter().format(record("State: IDLE -> CONNECTING"))
    assert f"{BOLD}{CYAN}State: IDLE -> CONNECTING" in formatted
    assert "controller" in formatted


def test_exception_text_appended():
    try:
        raise RuntimeError("socket gone")
    except RuntimeError:
        import sys

        entry = logging.LogRecord(
            "adapters.unix_control", logging.ERROR, __file__, 1, "Failed", None, sys.exc_info()
        )
    assert "RuntimeError: socket gone" in ColoredFormatter().format(entry)
