"""
ABR Packager: turns one source video into an adaptive-bitrate stream set.

The package is split the same way the pipeline runs:

- `config`: static defaults (ladder table, naming, logging format) and the
  user-overridable `PipelineSettings`.
- `domain`: value objects (`Ladder`, `OutputTree`, stream descriptors) and the
  exception taxonomy.
- `services`: one service per pipeline stage (layout, transcode, descriptors,
  packaging) plus YAML run reports.
- `pipeline`: `AbrPackagingPipeline`, the single `export()` entry point.
- `utils`: subprocess and formatting helpers.

Typical use:

    from abr_packager import AbrPackagingPipeline

    result = AbrPackagingPipeline().export("movie.mp4", "/srv/media")
    print(result.hls_manifest_path)
"""
from .pipeline.abr_pipeline import AbrPackagingPipeline

__all__ = ["AbrPackagingPipeline"]
