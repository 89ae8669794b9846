from typing import Iterator, List, Literal, NamedTuple, Optional, Sequence

from ..matching import Match
from .utils import group_channels


class TransferChannel(NamedTuple):
    """One channel of a ParallelTransfer: where it aspirates, where it dispenses and how much"""

    channel: int
    source_name: str
    source_well: str
    destination: object
    destination_well: str
    volume: float


class ParallelTransfer:
    """
    Internal class that stores all the information needed
    for one allocation round: the source picked for each destination well, and the volume moved
    """

    transfer_id_counter = 0

    def __init__(
        self,
        destination,
        destination_wells: Sequence[str],
        match: Match,
        *,
        round_number: int = 1,
        label: Optional[str] = None,
        liquid_class: Optional[str] = None,
        wash_scheme: Literal[1, 2, 3, 4] = 1,
    ):
        assert len(destination_wells) == len(
            match
        ), f"Match covers {len(match)} destinations but {len(destination_wells)} wells were given"

        self.id = ParallelTransfer.transfer_id_counter
        ParallelTransfer.transfer_id_counter += 1

        self.destination = destination
        self.destination_wells = list(destination_wells)

        self.source_names: List[str] = list(match.source_group_ids)
        self.source_wells: List[str] = list(match.source_slots)
        self.volumes: List[float] = list(match.volumes)

        self.round_number = round_number
        self.label = label
        self.liquid_class = liquid_class
        self.wash_scheme = wash_scheme

    @property
    def volume(self) -> float:
        return float(sum(self.volumes))

    def channels(self) -> Iterator[TransferChannel]:
        """The channels which actually move liquid"""
        for i, source_name in enumerate(self.source_names):
            if not source_name:
                continue
            yield TransferChannel(
                i,
                source_name,
                self.source_wells[i],
                self.destination,
                self.destination_wells[i],
                self.volumes[i],
            )

    def by_source(self):
        """{source labware name: [TransferChannel]}"""
        return group_channels(self.channels(), "source")

    def __str__(self):
        lines = [
            "{0:>3}: round {1:<3} {2:3.1f}ul\t{3}".format(
                self.id, self.round_number, self.volume, self.label or ""
            )
        ]
        for channel in self.channels():
            source_label = f"{channel.source_name}-{channel.source_well}"
            dest_label = f"{self.destination.name}-{channel.destination_well}"
            lines.append(
                "     {0:>20} to {1:<20} {2:3.1f}ul".format(
                    source_label, dest_label, channel.volume
                )
            )
        return "\n".join(lines)

    def __repr__(self):
        return str(self.id)

    def __lt__(self, other):
        return self.id < other.id

    def __eq__(self, other):
        return isinstance(other, ParallelTransfer) and self.id == other.id

    def __hash__(self):
        return hash(self.id)
