"""
Turns the transcoded renditions into the stream list the packager consumes.

The list is always: one `AudioStream` taken from the audio source rendition,
then one `VideoStream` per rendition in ladder order. The packager reads the
order as a hint for default track selection, and the `h264_{name}` file names
are what the manifests reference, so both are fixed.
"""
from typing import List, Mapping, Sequence, Union

from loguru import logger

from ..config.ladder import DEFAULT_AUDIO_GROUP_ID, DEFAULT_AUDIO_LABEL, DEFAULT_AUDIO_SOURCE_INDEX
from ..domain.artifacts import AudioStream, OutputTree, RenditionArtifact, StreamDescriptor, VideoStream
from .layout_service import ensure_directory_exists


def build_descriptors(
    artifacts: Union[Sequence[RenditionArtifact], Mapping[str, RenditionArtifact]],
    tree: OutputTree,
    audio_source_index: int = DEFAULT_AUDIO_SOURCE_INDEX,
    audio_group_id: str = DEFAULT_AUDIO_GROUP_ID,
    audio_label: str = DEFAULT_AUDIO_LABEL,
) -> List[StreamDescriptor]:
    """
    Builds the ordered stream descriptor list for `artifacts`.

    Args:
        artifacts: Renditions in ladder order, as a list or as the ordered
                   mapping returned by the transcoder.
        tree: The run's output tree. `output/` is created if missing.
        audio_source_index: Position of the artifact the audio track comes from.
        audio_group_id: HLS group id of the audio rendition.
        audio_label: HLS name of the audio rendition.

    Returns:
        `[AudioStream, VideoStream, VideoStream, ...]`.
    """
    if isinstance(artifacts, Mapping):
        artifacts = list(artifacts.values())
    else:
        artifacts = list(artifacts)
    if not artifacts:
        raise ValueError("Cannot build stream descriptors without any rendition.")
    if not 0 <= audio_source_index < len(artifacts):
        raise ValueError(f"audio_source_index {audio_source_index} is outside {len(artifacts)} renditions.")

    ensure_directory_exists(tree.output_dir)

    audio_source = artifacts[audio_source_index]
    descriptors: List[StreamDescriptor] = [
        AudioStream.for_artifact(audio_source, tree, audio_group_id, audio_label)
    ]
    descriptors.extend(VideoStream.for_artifact(artifact, tree) for artifact in artifacts)

    logger.debug(
        f"Built {len(descriptors)} stream descriptor(s); audio from {audio_source.rendition_name}"
    )
    return descriptors
