"""
The resolution ladder: which renditions to produce from one source video.

A `Ladder` is an immutable, validated, ordered tuple of `RenditionSpec`. Order
matters twice: renditions are packaged in ladder order, and the rendition at
`audio_source_index` (the first one unless told otherwise) is the one the
audio-only stream is extracted from. Keep the cheapest rendition there.
"""
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Tuple, Union

import yaml
from loguru import logger

from ..config.ladder import DEFAULT_AUDIO_SOURCE_INDEX, DEFAULT_RESOLUTIONS
from .exceptions import InvalidLadderError


def _is_positive_int(value: Any) -> bool:
    # bool is an int subclass; True must not pass as a width of 1.
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@dataclass(frozen=True)
class RenditionSpec:
    """One target rendition: a name plus width, height and video bitrate (kbps)."""

    name: str
    width: int
    height: int
    bitrate_kbps: int

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidLadderError(f"Rendition name must be a non-empty string, got {self.name!r}")
        for field_name in ("width", "height", "bitrate_kbps"):
            value = getattr(self, field_name)
            if not _is_positive_int(value):
                raise InvalidLadderError(
                    f"Rendition '{self.name}': {field_name} should be an integer greater than 0, got {value!r}"
                )

    @classmethod
    def from_entry(cls, name: str, params: Any) -> "RenditionSpec":
        """Builds a rendition from the table form `name -> [width, height, bitrate]`."""
        if isinstance(params, (str, bytes)) or not isinstance(params, Sequence) or len(params) != 3:
            raise InvalidLadderError(
                f"Rendition '{name}' should have three parameters [width, height, bitrate], got {params!r}"
            )
        width, height, bitrate = params
        return cls(name, width, height, bitrate)


class Ladder:
    """
    Ordered, validated set of renditions.

    Validation covers the ladder as a whole: at least one entry, unique names,
    and an `audio_source_index` that points at an entry. Entry-level checks
    happen when each `RenditionSpec` is built, so a ladder can never hold an
    invalid entry.

    Attributes:
        entries: The renditions, in packaging order.
        audio_source_index: Position of the rendition the audio stream is
                            extracted from.
    """

    def __init__(self, entries: Sequence[RenditionSpec], audio_source_index: int = DEFAULT_AUDIO_SOURCE_INDEX):
        entries = tuple(entries)
        if not entries:
            raise InvalidLadderError("A ladder needs at least one rendition.")

        seen = set()
        for entry in entries:
            if not isinstance(entry, RenditionSpec):
                raise InvalidLadderError(f"Ladder entries must be RenditionSpec, got {type(entry).__name__}")
            if entry.name in seen:
                raise InvalidLadderError(f"Duplicate rendition name '{entry.name}' in ladder.")
            seen.add(entry.name)

        if not isinstance(audio_source_index, int) or isinstance(audio_source_index, bool) \
                or not 0 <= audio_source_index < len(entries):
            raise InvalidLadderError(
                f"audio_source_index {audio_source_index!r} is outside the ladder (size {len(entries)})."
            )

        self._entries: Tuple[RenditionSpec, ...] = entries
        self._audio_source_index = audio_source_index

    @property
    def entries(self) -> Tuple[RenditionSpec, ...]:
        return self._entries

    @property
    def audio_source_index(self) -> int:
        return self._audio_source_index

    @property
    def audio_source(self) -> RenditionSpec:
        return self._entries[self._audio_source_index]

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(entry.name for entry in self._entries)

    def __iter__(self) -> Iterator[RenditionSpec]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> RenditionSpec:
        return self._entries[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Ladder):
            return NotImplemented
        return self._entries == other._entries and self._audio_source_index == other._audio_source_index

    def __hash__(self) -> int:
        return hash((self._entries, self._audio_source_index))

    def __repr__(self) -> str:
        return f"Ladder({list(self.names)!r}, audio_source_index={self._audio_source_index})"

    def to_mapping(self) -> dict:
        """Returns the table form `name -> [width, height, bitrate]`."""
        return {e.name: [e.width, e.height, e.bitrate_kbps] for e in self._entries}

    @classmethod
    def from_mapping(cls, resolutions: Mapping, audio_source_index: int = DEFAULT_AUDIO_SOURCE_INDEX) -> "Ladder":
        """
        Builds a ladder from `{"720p": [1280, 720, 4800], ...}`.

        Mapping order is ladder order. The first invalid entry aborts the
        whole ladder with `InvalidLadderError`.
        """
        if not isinstance(resolutions, Mapping):
            raise InvalidLadderError(f"Expected a mapping of renditions, got {type(resolutions).__name__}")
        entries = [RenditionSpec.from_entry(name, params) for name, params in resolutions.items()]
        return cls(entries, audio_source_index)

    @classmethod
    def from_yaml(cls, path: Path) -> "Ladder":
        """
        Loads a ladder from a YAML file.

        Two layouts are accepted. The table form:

            144p: [256, 144, 250]
            720p: [1280, 720, 4800]

        or a list of records with an optional audio source position:

            audio_source_index: 0
            renditions:
              - {name: 144p, width: 256, height: 144, bitrate: 250}
        """
        path = Path(path)
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise InvalidLadderError(f"Could not read ladder file '{path}': {e}") from e

        if not isinstance(data, dict):
            raise InvalidLadderError(f"Ladder file '{path}' must contain a mapping.")

        if "renditions" not in data:
            return cls.from_mapping(data)

        records = data["renditions"]
        if not isinstance(records, list):
            raise InvalidLadderError(f"'renditions' in '{path}' must be a list.")
        entries = []
        for record in records:
            if not isinstance(record, dict):
                raise InvalidLadderError(f"Rendition record must be a mapping, got {record!r}")
            try:
                entries.append(
                    RenditionSpec(record["name"], record["width"], record["height"], record["bitrate"])
                )
            except KeyError as e:
                raise InvalidLadderError(f"Rendition record {record!r} is missing {e}") from e
        ladder = cls(entries, data.get("audio_source_index", DEFAULT_AUDIO_SOURCE_INDEX))
        logger.debug(f"Loaded {ladder!r} from {path}")
        return ladder


LadderLike = Union[Ladder, Mapping, Sequence[RenditionSpec]]


def coerce_ladder(value: LadderLike) -> Ladder:
    """Turns any accepted ladder representation into a validated `Ladder`."""
    if isinstance(value, Ladder):
        return value
    if isinstance(value, Mapping):
        return Ladder.from_mapping(value)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return Ladder(value)
    raise InvalidLadderError(f"Cannot build a ladder from {type(value).__name__}")


def default_ladder() -> Ladder:
    """The built-in eight-step ladder, 144p through 4k."""
    return Ladder.from_mapping(DEFAULT_RESOLUTIONS)
