"""
Output layout: one isolated directory tree per pipeline run.

Every run gets its own root `{base}/{random_id}_{input_name}/`. The random id
carries 128 bits from `secrets`, so two runs on the same input and base path,
concurrent or not, never share a root. Subdirectories are created lazily and
idempotently by the stage that needs them.
"""
import re
import secrets
import tempfile
from pathlib import Path
from typing import Optional, Union

from loguru import logger

from ..config.ladder import MAX_INPUT_NAME_LENGTH, RANDOM_ID_BYTES
from ..domain.artifacts import OutputTree
from ..domain.exceptions import DirectoryCreationError, InputNotFoundError

PathLike = Union[str, Path]

# Replaced by `_` in the input name.
_UNSAFE_CHARS = re.compile(r"[\s,]")


def generate_random_id() -> str:
    """128 random bits as a UUID-style 8-4-4-4-12 lowercase hex string."""
    raw = secrets.token_hex(RANDOM_ID_BYTES)
    return f"{raw[:8]}-{raw[8:12]}-{raw[12:16]}-{raw[16:20]}-{raw[20:]}"


def sanitize_input_name(input_file: PathLike) -> str:
    """
    Folder-safe form of the input basename.

    The name is cut at the first dot that is not its first character, every
    whitespace character and every comma (the packager's descriptor field
    separator) becomes `_`, and the result is truncated to
    `MAX_INPUT_NAME_LENGTH` characters.

    >>> sanitize_input_name("/videos/My Holiday.final.mp4")
    'My_Holiday'
    """
    name = Path(input_file).name
    dot = name.find(".", 1)
    if dot != -1:
        name = name[:dot]
    name = _UNSAFE_CHARS.sub("_", name)
    return name[:MAX_INPUT_NAME_LENGTH]


def ensure_directory_exists(path: Path) -> Path:
    """
    Creates `path` (with parents) if it is missing.

    Calling it again on an existing directory does nothing. If creation fails
    but the directory exists afterwards, another process won the race and that
    is fine.

    Raises:
        DirectoryCreationError: If the directory cannot be created.
    """
    if path.is_dir():
        return path
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        if not path.is_dir():
            raise DirectoryCreationError(f"Failed to create directory: {path}: {e}") from e
    if not path.is_dir():
        raise DirectoryCreationError(f"Failed to create directory: {path}")
    return path


def prepare_output_tree(input_file: PathLike, base_path: Optional[PathLike] = None) -> OutputTree:
    """
    Creates the root of a new output tree for `input_file`.

    Args:
        input_file: The source video. Must exist.
        base_path: Directory under which the root is created. Defaults to the
                   system temporary directory.

    Returns:
        The new `OutputTree`. Only its root exists on disk.

    Raises:
        InputNotFoundError: If `input_file` does not exist. Nothing is created.
        DirectoryCreationError: If the root cannot be created.
    """
    input_path = Path(input_file)
    if not input_path.exists():
        raise InputNotFoundError(f"{input_path} does not exist")

    base = Path(base_path) if base_path else Path(tempfile.gettempdir())
    root = base / f"{generate_random_id()}_{sanitize_input_name(input_path)}"

    ensure_directory_exists(root)
    logger.debug(f"Prepared output tree at {root}")
    return OutputTree(root)
