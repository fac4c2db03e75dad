"""
This package contains the pipeline that orchestrates a full export.

`AbrPackagingPipeline.export()` runs the stages as strict barriers:
output tree, transcode (fan-out, then join), stream descriptors, packaging.
"""
