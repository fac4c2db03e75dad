"""
This module runs external command-line tools for the pipeline.

It wraps `subprocess.run` with the behaviour every engine call needs: the
command is logged (and optionally appended to a per-run command file), a
timeout is enforced, and the ways a tool can fail to run at all are turned
into `EngineException` subclasses. A command that runs but exits non-zero is
returned to the caller, which decides what that means.
"""
import os
import shlex
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from ..domain.exceptions import EngineException, EngineTimeoutException


def format_cmd(cmd_list: Sequence[str]) -> str:
    """Quotes a command list the way the current platform's shell would."""
    if os.name == "nt":
        return subprocess.list2cmdline(list(cmd_list))
    return shlex.join(cmd_list)


def run_cmd(
    cmd_list: List[str],
    timeout: Optional[float] = None,
    show_cmd: bool = True,
    cmd_log_file_path: Optional[Path] = None,
) -> subprocess.CompletedProcess:
    """
    Executes an external command and captures its output.

    Args:
        cmd_list: The command and its arguments. Never run through a shell.
        timeout: Seconds before the process is killed. None waits forever.
        show_cmd: If True, the command line is logged at DEBUG level.
        cmd_log_file_path: If provided, the command line is appended to this file.

    Returns:
        The `subprocess.CompletedProcess`, whatever its return code.

    Raises:
        EngineException: If the executable cannot be found or started.
        EngineTimeoutException: If the command runs longer than `timeout`.
    """
    if not cmd_list:
        raise EngineException("run_cmd received an empty command list.")

    display_cmd_str = format_cmd(cmd_list)
    if show_cmd:
        logger.debug(f"Executing: {display_cmd_str}")

    if cmd_log_file_path:
        try:
            cmd_log_file_path.parent.mkdir(parents=True, exist_ok=True)
            with cmd_log_file_path.open("a", encoding="utf-8") as cmd_f:
                cmd_f.write(display_cmd_str + "\n")
        except OSError as e:
            logger.error(f"Failed to write command to log file {cmd_log_file_path}: {e}")

    try:
        result = subprocess.run(
            cmd_list,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            shell=False,
        )
    except FileNotFoundError as e:
        logger.error(
            f"Command not found: '{cmd_list[0]}'. Ensure it's in your system's PATH or configured in config.user.yaml."
        )
        raise EngineException(f"Command not found: {cmd_list[0]}") from e
    except subprocess.TimeoutExpired as e:
        shown = display_cmd_str if show_cmd else cmd_list[0]
        logger.error(f"Command timed out after {timeout}s: {shown}")
        raise EngineTimeoutException(f"'{cmd_list[0]}' exceeded timeout of {timeout} seconds") from e
    except OSError as e:
        logger.error(f"Could not start '{cmd_list[0]}': {e}")
        raise EngineException(f"Could not start {cmd_list[0]}: {e}") from e

    if result.stdout:
        logger.trace(f"Command stdout: {result.stdout[:500]}")
    if result.stderr and result.returncode != 0:
        logger.debug(f"Command stderr (rc={result.returncode}): {result.stderr}")
    elif result.stderr:
        logger.trace(f"Command stderr (rc={result.returncode}): {result.stderr}")

    return result


def tail(text: str, limit: int = 2000) -> str:
    """Last `limit` characters of a tool's output, for error messages."""
    if not text:
        return ""
    return text[-limit:]
