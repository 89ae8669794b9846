from typing import Dict, List, Optional, Sequence

import robotools

from ..matching import Composition, LiquidSample, Location
from .utils import broadcast_arguments, rationalise_well


class LiquidContainer:
    """
    Mixin for robotools labware which presents its wells as LiquidSamples for source matching,
    in the canonical column-major order, with their working volumes
    """

    def __init__(self, *args, liquid_names: Optional[Dict[str, str]] = None, **kwargs):
        """Creates a labware object for source matching

        Parameters
        ----------
        name : str
            Label that the labware is identified by. Used as the group id of its samples
        rows : int
            Number of rows in the labware
        columns : int
            Number of columns in the labware
        min_volume : float
            Filling volume that must remain after an aspirate operation.
            Wells only offer the volume above this as working volume
        max_volume : float
            Maximum volume that must not be exceeded after a dispense.
        initial_volumes : float, array-like, optional
            Initial filling volume of the wells (default: 0)
        virtual_rows : int, optional
            When specified to a positive number, the `Labware` is treated as a trough.
            Must be used in combination with `rows=1`.
        component_names : dict, optional
            A dictionary that names the content of non-empty real wells for composition tracking.
        liquid_names : dict, optional
            A dictionary of {well: liquid name} naming well contents for matching.
            Wells not named here are named after the components robotools tracks in them:
            the component name for a single component, or the sorted component names joined by " + "
        """

        super().__init__(*args, **kwargs)

        self.liquid_names = {
            rationalise_well(well): name for well, name in (liquid_names or {}).items()
        }

    def traversal(self) -> List[str]:
        """
        Well ids in canonical order: down each column, then left to right across columns.
        A trough offers one well per column, since its virtual rows share the same liquid
        """
        if self.virtual_rows is not None:
            return list(self.wells[0, :])
        return list(self.wells.flatten("F"))

    def _volume_index(self, well):
        row, column = self.indices[rationalise_well(well)]
        # Virtual rows of a trough all draw on the single real row
        if self.virtual_rows is not None:
            row = 0
        return row, column

    def well_composition(self, well: str) -> Dict[str, float]:
        """{component: fraction} of the components robotools tracks in a well"""
        index = self._volume_index(well)
        return {
            name: float(fractions[index])
            for name, fractions in self.composition.items()
            if fractions[index] > 0
        }

    def working_volume(self, well: str) -> float:
        """Volume that can be withdrawn from a well without going below min_volume"""
        return max(0.0, float(self.volumes[self._volume_index(well)]) - self.min_volume)

    def sample(self, well: str) -> LiquidSample:
        """The contents of a well as a source LiquidSample, or an empty slot if the well holds nothing"""
        well = rationalise_well(well)
        location = Location(self.name, well)

        if self.volumes[self._volume_index(well)] <= 0:
            return LiquidSample.empty(location)

        components = self.well_composition(well)
        # Wells of a trough column are named through its first row
        row, column = self._volume_index(well)
        name = self.liquid_names.get(self.wells[row, column]) or " + ".join(sorted(components))

        # Only a well holding several components is a mixture, one component is an atomic liquid
        composition = Composition(components) if len(components) > 1 else None

        return LiquidSample(
            name, self.working_volume(well), location, composition=composition
        )

    def samples(self, wells: Optional[Sequence[str]] = None) -> List[LiquidSample]:
        """LiquidSamples for the given wells, or for every well in canonical order"""
        if wells is None:
            wells = self.traversal()
        return [self.sample(well) for well in wells]

    def windows(self, length: int) -> List[List[LiquidSample]]:
        """
        Every run of `length` adjacent wells within a column, column by column.
        These are the source vectors a multichannel head of `length` channels can reach in one move.
        Windows overlapping the same well share its LiquidSample
        """
        assert (
            self.virtual_rows is None
        ), "Positionally locked windows are not supported for troughs"

        windows = []
        for column in range(self.n_columns):
            column_samples = self.samples(self.wells[:, column])
            for start in range(self.n_rows - length + 1):
                windows.append(column_samples[start : start + length])
        return windows

    def requests(
        self,
        wells,
        liquid: str,
        volumes,
        *,
        concentration: Optional[float] = None,
        composition: Optional[Composition] = None,
    ) -> List[LiquidSample]:
        """Destination LiquidSamples asking for `volumes` of `liquid` in the given wells of this labware"""
        wells, volumes = broadcast_arguments(wells, volumes)
        return [
            LiquidSample(
                liquid,
                float(volume),
                Location(self.name, rationalise_well(well)),
                concentration=concentration,
                composition=composition,
            )
            for well, volume in zip(wells, volumes)
        ]


class LiquidLabware(LiquidContainer, robotools.Labware):
    """
    Labware object which presents its wells as LiquidSamples for source matching
    """


class LiquidTrough(LiquidContainer, robotools.Trough):
    """
    Trough which presents its columns as LiquidSamples for source matching.
    Created like a robotools.Trough: LiquidTrough(name, virtual_rows, columns, ...)
    liquid_names are given for the wells of the first row, e.g. {"A01": "water"}
    """
