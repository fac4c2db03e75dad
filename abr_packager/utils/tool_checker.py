"""
This module verifies that the external tools the pipeline drives are
installed and executable.
"""
import subprocess
from typing import List

from loguru import logger

from ..config.settings import PipelineSettings


class Tools:
    """
    Start-up checks for the ffmpeg and Shaka packager binaries configured in
    `PipelineSettings`.
    """

    @staticmethod
    def _verify(cmd: List[str], tool_label: str) -> bool:
        """
        Runs a version command and logs the first line of its output.

        Returns:
            True if the tool ran and exited with status 0.
        """
        try:
            result = subprocess.run(
                cmd,
                check=True,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=30,
            )
        except subprocess.CalledProcessError as e:
            logger.error(f"{tool_label} version command failed (return code {e.returncode}):\n{e.stderr}")
            return False
        except FileNotFoundError:
            logger.error(
                f"{tool_label} command not found ('{cmd[0]}'). Please ensure it is installed and accessible.\n"
                "You can either add it to your system's PATH or specify its location in the 'config.user.yaml' file."
            )
            return False
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error(f"An unexpected error occurred while checking {tool_label} version: {e}")
            return False

        output_lines = (result.stdout or result.stderr).splitlines()
        first_line = output_lines[0] if output_lines else "<no output>"
        logger.info(f"{tool_label} version check successful: {first_line}")
        return True

    @staticmethod
    def verify_ffmpeg(settings: PipelineSettings) -> bool:
        return Tools._verify([settings.ffmpeg_binary, "-version"], "FFmpeg")

    @staticmethod
    def verify_packager(settings: PipelineSettings) -> bool:
        return Tools._verify([settings.packager_binary, "--version"], "Shaka packager")

    @staticmethod
    def run_all(settings: PipelineSettings) -> bool:
        """Runs every start-up check. Returns True only if all tools are usable."""
        ffmpeg_ok = Tools.verify_ffmpeg(settings)
        packager_ok = Tools.verify_packager(settings)
        return ffmpeg_ok and packager_ok
