"""
Command-line interface for the ABR packager.

This module uses Python's `argparse` to define and parse the arguments of
`main.py`.
"""
import argparse
from pathlib import Path
from typing import List, Optional


def get_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments.

    Args:
        argv: Arguments to parse instead of `sys.argv[1:]`.

    Returns:
        argparse.Namespace: The parsed arguments. `input`, `output_dir`,
        `ladder` and `config` are `Path` objects (or None).
    """
    parser = argparse.ArgumentParser(
        description="Transcode a video into an ABR ladder and package it as HLS and DASH."
    )
    parser.add_argument("input", type=Path, help="Source video file.")
    parser.add_argument(
        "--output-dir", type=Path, default=None,
        help="Base directory for the output tree (default: system temp directory).",
    )
    parser.add_argument(
        "--keys", type=str, default=None,
        help="Raw encryption keys in packager format, e.g. 'label=:key_id=<hex>:key=<hex>'. Enables encryption.",
    )
    parser.add_argument(
        "--pssh", type=str, default=None,
        help="Hex PSSH box(es) to embed when encrypting (default: value from config).",
    )
    parser.add_argument(
        "--ladder", type=Path, default=None,
        help="YAML file describing the resolution ladder (default: built-in 144p..4k ladder).",
    )
    parser.add_argument(
        "--workers", type=int, default=None,
        help="Number of renditions transcoded in parallel (default: from config, 1).",
    )
    parser.add_argument(
        "--config", type=Path, default=None,
        help="YAML settings file (default: config.user.yaml at the project root).",
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO", choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging level.",
    )
    parser.add_argument(
        "--skip-tool-check", action="store_true",
        help="Do not verify the ffmpeg and packager binaries before starting.",
    )

    args = parser.parse_args(argv)

    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be at least 1")
    if args.ladder is not None and not args.ladder.is_file():
        parser.error(f"Ladder file '{args.ladder}' does not exist.")
    if args.config is not None and not args.config.is_file():
        parser.error(f"Config file '{args.config}' does not exist.")

    return args
