"""
Configuration package for the ABR packager.

Static defaults live in plain modules so they can be imported anywhere without
side effects beyond reading `config.user.yaml`:

- common.py: logging format, project paths, user config loading, file names of
  the run reports.
- ladder.py: the built-in resolution ladder and the naming conventions shared
  with the packaging engine.
- settings.py: `PipelineSettings`, the object handed to the pipeline at
  construction time.
"""
