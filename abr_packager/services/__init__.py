"""
Services package for the ABR packager.

Each module implements one stage of a pipeline run:

- **layout_service**: creates the isolated per-run output tree.
- **transcode_service**: produces one encoded file per ladder rendition,
  concurrently, through a `TranscodingEngine` (ffmpeg by default).
- **descriptor_service**: orders the renditions into the audio and video
  stream descriptors the packager expects.
- **packaging_service**: makes the single packager call that writes the HLS
  and DASH manifests, optionally with raw-key encryption.
- **logging_service**: writes the YAML run report and the error record that
  stay beside the output.
"""
