"""
Core domain models of the ABR packager.

Modules:
    exceptions.py: The error taxonomy. Every failure of a pipeline run is one
                   of these, wrapping the original cause.
    ladder.py: `RenditionSpec` and `Ladder`, the validated list of renditions
               to produce, including which one the audio track is taken from.
    artifacts.py: The values that flow between stages: `OutputTree`,
                  `RenditionArtifact`, the stream descriptors, `EncryptionSpec`
                  and `PackagingResult`.
"""
