"""
Utilities package for the ABR packager.

Modules:
    - process_utils.py: Runs external commands (the packager) with timeouts,
      command logging and typed failures.
    - format_utils.py: Human-readable durations and sizes for log messages and
      run reports.
    - tool_checker.py: Start-up verification that ffmpeg and the packager can
      be executed.
"""
