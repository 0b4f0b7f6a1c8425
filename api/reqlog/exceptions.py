"""
Exception detail collection for the error logger.

Gathers the exception message, stack, process and host information
into a plain mapping that can be merged into log metadata.
"""

import os
import platform
import sys
import traceback
from datetime import datetime, timezone
from typing import Any


def process_info() -> dict[str, Any]:
    return {
        "pid": os.getpid(),
        "uid": os.getuid() if hasattr(os, "getuid") else None,
        "gid": os.getgid() if hasattr(os, "getgid") else None,
        "cwd": os.getcwd(),
        "executable": sys.executable,
        "version": platform.python_version(),
        "argv": list(sys.argv),
    }


def os_info() -> dict[str, Any]:
    return {
        "loadavg": list(os.getloadavg()) if hasattr(os, "getloadavg") else None,
        "platform": platform.platform(),
    }


def trace_info(exc: BaseException) -> list[dict[str, Any]]:
    """One entry per traceback frame, innermost last."""
    frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
    return [
        {
            "file": frame.filename,
            "line": frame.lineno,
            "column": getattr(frame, "colno", None),
            "function": frame.name,
        }
        for frame in frames
    ]


def exception_info(exc: BaseException) -> dict[str, Any]:
    """
    Collect everything worth logging about an exception.

    Returns:
        Mapping with error, level, message, stack, exception, date,
        process, os and trace keys
    """
    error_message = str(exc) or "(no error message)"
    stack = traceback.format_exception(type(exc), exc, exc.__traceback__)
    stack_lines = [line for chunk in stack for line in chunk.rstrip("\n").split("\n")]

    return {
        "error": repr(exc),
        "level": "error",
        "message": "\n".join([f"uncaughtException: {error_message}", *stack_lines]),
        "stack": stack_lines,
        "exception": True,
        "date": datetime.now(timezone.utc).isoformat(),
        "process": process_info(),
        "os": os_info(),
        "trace": trace_info(exc),
    }
