"""
This module writes the diagnostic files that sit in each output root.

Console output goes through loguru; these files stay with the output tree so a
run can be inspected later without the console:

- `ExportLog` writes `export_log.yaml`, a structured summary of a successful
  run (input, ladder, manifests, sizes, timings).
- `ErrorLog` appends a human-readable record of a failed run to `error.txt`.

Writing a diagnostic file must never turn a successful run into a failed one,
so write errors are logged and otherwise ignored.
"""
from pathlib import Path
from typing import Any, Dict

import yaml
from loguru import logger

from ..config.common import ERROR_LOG_FILE_NAME, EXPORT_LOG_FILE_NAME


class Log:
    """Base class: resolves the log directory and holds the file path."""

    # Separator between entries in text logs.
    linesep_marker: str = "=" * 50

    def __init__(self, log_dir: Path, filename: str):
        self.log_dir: Path = Path(log_dir).resolve()
        self.log_file_path: Path = self.log_dir / filename

    def write(self, *args: Any):
        raise NotImplementedError("Subclasses must implement the write() method.")


class ErrorLog(Log):
    """Appends error records to a plain text file."""

    def __init__(self, error_log_dir: Path, filename: str = ERROR_LOG_FILE_NAME):
        super().__init__(error_log_dir, filename)

    def write(self, *error_messages: str):
        """
        Appends the messages, one per line, followed by a separator line.
        """
        if not error_messages:
            return

        content_to_write = "\n".join(error_messages) + "\n" + self.linesep_marker + "\n"
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with self.log_file_path.open("a", encoding="utf-8") as f:
                f.write(content_to_write)
        except OSError as e:
            logger.error(f"Failed to write to error log {self.log_file_path}: {e}")
            for msg in error_messages:
                logger.error(f"  - {msg}")


class ExportLog(Log):
    """Writes the YAML summary of one successful run."""

    def __init__(self, log_dir: Path, filename: str = EXPORT_LOG_FILE_NAME):
        super().__init__(log_dir, filename)

    def write(self, entry: Dict[str, Any]):
        if not isinstance(entry, dict):
            logger.error("ExportLog.write expects a dictionary.")
            return
        try:
            with self.log_file_path.open("w", encoding="utf-8") as f:
                yaml.safe_dump(
                    entry,
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    allow_unicode=True,
                    indent=4,
                    width=220,
                )
            logger.debug(f"Run report written to {self.log_file_path}")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to write run report {self.log_file_path}: {e}")

    def load(self) -> Dict[str, Any]:
        """Reads the report back; an empty dict if it is missing or unreadable."""
        if not self.log_file_path.is_file():
            return {}
        try:
            with self.log_file_path.open("r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error reading run report {self.log_file_path}: {e}")
            return {}
        return loaded if isinstance(loaded, dict) else {}
