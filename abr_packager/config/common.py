"""
Common configuration settings used throughout the application.

This module holds the logging format, the location of the optional user
configuration file, and the names of the diagnostic files written next to each
output tree. The user configuration is read once at import time; the parsed
dictionary is exposed as `USER_CONFIG` and turned into a `PipelineSettings`
object by `config.settings`.
"""
from pathlib import Path
from typing import Any, Dict

import yaml
from loguru import logger

# --- User-Defined Configuration ---
# `config.user.yaml` at the project root may override binaries, timeouts,
# worker count and packaging labels. Missing file means "use defaults".

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
USER_CONFIG_PATH = PROJECT_ROOT / "config.user.yaml"


def load_user_config(path: Path = USER_CONFIG_PATH) -> Dict[str, Any]:
    """
    Reads a YAML configuration file and returns its top-level mapping.

    A missing file, an empty file, or a file that does not contain a mapping
    all yield an empty dictionary. Parse errors are logged and also yield an
    empty dictionary so a broken user file never prevents start-up.
    """
    if not path.is_file():
        logger.debug(f"User config '{path}' not found. Using built-in defaults.")
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load or parse '{path}': {e}")
        return {}
    if not isinstance(loaded, dict):
        logger.warning(f"User config '{path}' does not contain a mapping. Ignoring it.")
        return {}
    return loaded


USER_CONFIG: Dict[str, Any] = load_user_config()


# --- Logging Configuration ---

# The format string for the Loguru logger.
LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{thread.name} - <level>{message}</level>"
)


# --- Diagnostic Files ---
# Written into the output root, beside `resolutions/` and `output/`.

# YAML summary of a successful run.
EXPORT_LOG_FILE_NAME = "export_log.yaml"

# Plain-text record of a failed run.
ERROR_LOG_FILE_NAME = "error.txt"

# Every external command executed for a run is appended here.
COMMAND_TEXT = "cmd.txt"


# --- External Tool Defaults ---

DEFAULT_FFMPEG_BINARY = "ffmpeg"
DEFAULT_PACKAGER_BINARY = "packager"

# Seconds. Applied per engine call, not per run.
DEFAULT_FFMPEG_TIMEOUT = 3600
DEFAULT_PACKAGER_TIMEOUT = 3600

# 0 lets ffmpeg decide.
DEFAULT_FFMPEG_THREADS = 0

# Number of renditions transcoded at the same time.
DEFAULT_MAX_WORKERS = 1
