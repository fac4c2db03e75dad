"""
Main entry point for the ABR packager.

Parses the command line, configures logging, builds the pipeline from the
user settings and exports one video. Prints the output directory and the
manifest paths on success; exits with status 1 on any pipeline error.
"""

import sys

from loguru import logger

from abr_packager.cli import get_args
from abr_packager.config.common import LOGGER_FORMAT
from abr_packager.config.settings import PipelineSettings
from abr_packager.domain.exceptions import AbrPackagerException
from abr_packager.domain.ladder import Ladder
from abr_packager.pipeline.abr_pipeline import AbrPackagingPipeline
from abr_packager.utils.tool_checker import Tools


def main(argv=None) -> int:
    args = get_args(argv)

    logger.remove()
    logger.add(sys.stderr, level=args.log_level, format=LOGGER_FORMAT)
    logger.debug(f"Parsed arguments: {args}")

    try:
        settings = PipelineSettings.load(args.config)
    except (TypeError, ValueError) as e:
        logger.error(f"Invalid settings in {args.config or 'config.user.yaml'}: {e}")
        return 1
    if args.workers is not None:
        settings.max_workers = args.workers

    if not args.skip_tool_check and not Tools.run_all(settings):
        logger.error("Required tools are missing. Fix config.user.yaml or use --skip-tool-check.")
        return 1

    try:
        pipeline = AbrPackagingPipeline(settings)
        if args.ladder is not None:
            pipeline.set_ladder(Ladder.from_yaml(args.ladder))
        result = pipeline.export(args.input, args.output_dir, args.keys, args.pssh)
    except (AbrPackagerException, ValueError) as e:
        logger.error(f"Export failed: {e}")
        return 1

    for key, value in result.to_dict().items():
        print(f"{key}: {value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
