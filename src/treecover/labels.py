"""Land cover label vocabularies and the configurable vegetated label set."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ReferenceLandCover(IntEnum):
    """
    The reference land cover vocabulary.

    The default vegetated set {0, 1, 2, 6, 9} is expressed in these codes.
    """

    TREES = 0
    SHRUBLAND = 1
    GRASSLAND = 2
    WATER = 3
    FLOODED_VEGETATION = 4
    BUILT = 5
    CROPLAND = 6
    BARE = 7
    SNOW_AND_ICE = 8
    WETLANDS = 9
    CLOUDS = 10


class DynamicWorldLabel(IntEnum):
    """
    Codes of the `label` band of GOOGLE/DYNAMICWORLD/V1.

    Reference: https://developers.google.com/earth-engine/datasets/catalog/GOOGLE_DYNAMICWORLD_V1
    """

    WATER = 0
    TREES = 1
    GRASS = 2
    FLOODED_VEGETATION = 3
    CROPS = 4
    SHRUB_AND_SCRUB = 5
    BUILT = 6
    BARE = 7
    SNOW_AND_ICE = 8


VOCABULARIES: dict[str, type[IntEnum]] = {
    "reference": ReferenceLandCover,
    "dynamic_world": DynamicWorldLabel,
}


@dataclass(frozen=True)
class VegetatedLabelSet:
    """The label codes that count as vegetated."""

    codes: frozenset[int]

    def __post_init__(self) -> None:
        """Validate the label set."""
        if not self.codes:
            msg = "The vegetated label set must contain at least one label code."
            raise ValueError(msg)

    @staticmethod
    def from_codes(codes: Iterable[int]) -> VegetatedLabelSet:
        """Create a label set from integer codes."""
        return VegetatedLabelSet(codes=frozenset(int(code) for code in codes))

    @staticmethod
    def from_names(vocabulary: type[IntEnum], names: Iterable[str]) -> VegetatedLabelSet:
        """
        Create a label set from class names within a vocabulary.

        :param vocabulary: The vocabulary enum, e.g. ReferenceLandCover.
        :param names: Class names, case-insensitive.
        :return: The label set of the matching codes.
        """
        codes = []
        for name in names:
            try:
                codes.append(int(vocabulary[name.strip().upper()]))
            except KeyError:
                valid = ", ".join(member.name.lower() for member in vocabulary)
                msg = f"Unknown label '{name}' for {vocabulary.__name__}. Valid labels: {valid}"
                raise ValueError(msg) from None
        return VegetatedLabelSet.from_codes(codes)

    @staticmethod
    def parse(value: str) -> VegetatedLabelSet:
        """
        Parse a comma separated list of codes, e.g. "0,1,2,6,9".

        Used for configuration coming from environment variables.
        """
        parts = [part.strip() for part in value.split(",") if part.strip()]
        try:
            return VegetatedLabelSet.from_codes(int(part) for part in parts)
        except ValueError as error:
            msg = f"Invalid vegetated label list '{value}': {error}"
            raise ValueError(msg) from error

    @property
    def sorted_codes(self) -> list[int]:
        """Return the codes in ascending order."""
        return sorted(self.codes)

    def __contains__(self, code: object) -> bool:
        """Check whether a label code is vegetated."""
        return code in self.codes


DEFAULT_VEGETATED_LABELS = VegetatedLabelSet.from_codes(
    [
        ReferenceLandCover.TREES,
        ReferenceLandCover.SHRUBLAND,
        ReferenceLandCover.GRASSLAND,
        ReferenceLandCover.CROPLAND,
        ReferenceLandCover.WETLANDS,
    ],
)
