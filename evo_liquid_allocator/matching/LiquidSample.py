from typing import NamedTuple, Optional

from .Composition import Composition


class Location(NamedTuple):
    """
    Where a sample sits: group_id identifies the container (labware name),
    slot the position inside it (well id). Both empty means no location assigned yet
    """

    group_id: str = ""
    slot: str = ""

    @classmethod
    def parse(cls, text: str) -> "Location":
        """Parse a location written as "group:slot". An empty string gives an unassigned location"""
        if not text:
            return cls()
        group_id, _, slot = text.rpartition(":")
        return cls(group_id, slot)

    def __bool__(self):
        return bool(self.group_id) or bool(self.slot)

    def __str__(self):
        return f"{self.group_id}:{self.slot}" if self else ""


class LiquidSample:
    """
    A named liquid at some volume and location.
    Used both for destination requests (volume is the amount still needed)
    and for sources (volume is the working volume available for withdrawal)
    """

    def __init__(
        self,
        name: str = "",
        volume: float = 0.0,
        location: Optional[Location] = None,
        *,
        concentration: Optional[float] = None,
        composition: Optional[Composition] = None,
    ):
        self.name = name
        self.volume = volume
        self.location = location if location is not None else Location()
        self.concentration = concentration

        # Compositions are immutable, so samples duplicated from each other can share one
        if composition is not None and not isinstance(composition, Composition):
            composition = Composition(composition)
        self.composition = composition

    @classmethod
    def empty(cls, location: Optional[Location] = None) -> "LiquidSample":
        """An empty slot: no name, no volume"""
        return cls("", 0.0, location)

    @property
    def is_empty(self):
        return self.name == "" and self.volume == 0

    @property
    def is_mixture(self):
        return self.composition is not None and len(self.composition) > 0

    @property
    def group_id(self):
        return self.location.group_id

    @property
    def slot(self):
        return self.location.slot

    def dup(self) -> "LiquidSample":
        return LiquidSample(
            self.name,
            self.volume,
            self.location,
            concentration=self.concentration,
            composition=self.composition,
        )

    def __str__(self):
        if self.is_empty:
            return f"<empty {self.location}>"
        conc = "" if self.concentration is None else f" @{self.concentration:g}"
        location = f" at {self.location}" if self.location else ""
        return f"{self.name}{conc}: {self.volume:.1f}ul{location}"

    def __repr__(self):
        return (
            f"LiquidSample({self.name!r}, {self.volume!r}, {self.location!r}, "
            f"concentration={self.concentration!r}, composition={self.composition!r})"
        )
