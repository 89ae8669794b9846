from enum import Enum
from typing import List, Sequence, Tuple, Union


class MatchMode(Enum):
    """
    How destinations may be paired with sources within one round
    GROUPED: any destination may take from any source, as with single channel or sequential pipetting
    POSITIONALLY_LOCKED: destination i may only take from source i, as with a multichannel head
    where every channel moves in lock-step above the well directly below it
    """

    GROUPED = "grouped"
    POSITIONALLY_LOCKED = "positionally_locked"

    @classmethod
    def coerce(cls, mode: Union["MatchMode", bool]) -> "MatchMode":
        """Accept a MatchMode or an `independent` flag, where True means positionally locked"""
        if isinstance(mode, cls):
            return mode
        if isinstance(mode, bool):
            return cls.POSITIONALLY_LOCKED if mode else cls.GROUPED
        return cls(mode)


class Match:
    """
    The assignment computed by one matching round, indexed by destination.
    For destination i, source_index[i] is the index into the source list it takes from (-1 if unmatched),
    source_group_ids[i] and source_slots[i] the location of that source ("" if unmatched)
    and volumes[i] the volume it takes (0 if unmatched). score is the total volume assigned.
    not_found lists the requested liquids for which no source exists at all
    """

    def __init__(
        self,
        source_group_ids: List[str],
        source_slots: List[str],
        volumes: List[float],
        source_index: List[int],
        *,
        not_found: Sequence[str] = (),
    ):
        lengths = (len(source_group_ids), len(source_slots), len(volumes), len(source_index))
        assert len(set(lengths)) == 1, f"Match fields must all be the same length. They were {lengths}"

        self.source_group_ids = source_group_ids
        self.source_slots = source_slots
        self.volumes = volumes
        self.source_index = source_index
        self.not_found: Tuple[str, ...] = tuple(not_found)

    @classmethod
    def unmatched(cls, n: int) -> "Match":
        """A match of n destinations with nothing assigned"""
        return cls([""] * n, [""] * n, [0.0] * n, [-1] * n)

    @property
    def score(self) -> float:
        return float(sum(self.volumes))

    @property
    def is_empty(self):
        return all(index == -1 for index in self.source_index)

    def assign(self, destination_index: int, source_index: int, source, volume: float):
        """Record that destination_index takes volume from source (found at source_index)"""
        self.source_group_ids[destination_index] = source.location.group_id
        self.source_slots[destination_index] = source.location.slot
        self.volumes[destination_index] = volume
        self.source_index[destination_index] = source_index

    def matched_indices(self) -> List[int]:
        """Indices of the destinations which were given a source"""
        return [i for i, index in enumerate(self.source_index) if index != -1]

    def __len__(self):
        return len(self.source_index)

    def __str__(self):
        pairs = ", ".join(
            f"{i}<-{self.source_group_ids[i]}:{self.source_slots[i]} {self.volumes[i]:.1f}ul"
            for i in self.matched_indices()
        )
        missing = f" not found: {', '.join(self.not_found)}" if self.not_found else ""
        return f"Match(score={self.score:.1f} [{pairs}]{missing})"

    def __repr__(self):
        return (
            f"Match({self.source_group_ids!r}, {self.source_slots!r}, {self.volumes!r}, "
            f"{self.source_index!r}, not_found={self.not_found!r})"
        )
