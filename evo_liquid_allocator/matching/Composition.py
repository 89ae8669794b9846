from collections.abc import Mapping
from typing import Iterable, Tuple, Union
import warnings

import numpy as np

from .compatibility import name_key, normalise_name, split_concentration

# Relative precision used when comparing sub-component concentrations
COMPOSITION_RTOL = 5e-3


class ComponentAlreadyPresentException(Exception):
    """
    Raised when recording a sub-component that is already present with a different concentration
    """

    def __init__(self, name, existing, conflicting):
        self.name = name
        self.existing = existing
        self.conflicting = conflicting
        super().__init__(
            f"Component {name} already present at {existing:g}, cannot record it again at {conflicting:g}"
        )


def _close(a, b):
    return bool(np.isclose(a, b, rtol=COMPOSITION_RTOL, atol=0))


class Composition(Mapping):
    """
    Immutable mapping of sub-liquid name to concentration, describing what a mixture is made of.
    Keys are normalised liquid names and are kept sorted.
    An empty Composition describes an atomic liquid.

    Compositions are values: every operation returns a new Composition, and mixing flattens
    the sub-components of its parts into the result, so a composition never refers to another one.
    """

    __slots__ = ("_items", "_lookup")

    def __init__(
        self,
        components: Union[Mapping, Iterable[Tuple[str, float]], None] = None,
    ):
        if components is None:
            components = ()
        elif isinstance(components, Mapping):
            components = components.items()

        # Components are keyed case-insensitively, the first spelling seen is the one kept for display
        merged = {}
        for name, concentration in components:
            display = normalise_name(name)
            key = name_key(name)
            concentration = float(concentration)
            if key in merged and not _close(merged[key][1], concentration):
                raise ComponentAlreadyPresentException(merged[key][0], merged[key][1], concentration)
            merged.setdefault(key, (display, concentration))

        self._items = tuple(merged[key] for key in sorted(merged))
        self._lookup = {key: merged[key][1] for key in merged}

    def __getitem__(self, name):
        return self._lookup[name_key(name)]

    def __contains__(self, name):
        return isinstance(name, str) and name_key(name) in self._lookup

    def __iter__(self):
        return (name for name, _ in self._items)

    def __len__(self):
        return len(self._items)

    def _keyed(self):
        return tuple(sorted(self._lookup.items()))

    def __hash__(self):
        return hash(self._keyed())

    def __eq__(self, other):
        if isinstance(other, Composition):
            return self._keyed() == other._keyed()
        return super().__eq__(other)

    def nonzero(self):
        """The sub-components actually present"""
        return {name: conc for name, conc in self._items if conc > 0}

    def with_component(self, name: str, concentration: float) -> "Composition":
        """
        Return a copy with one more sub-component.
        Recording a name that is already present at the same concentration changes nothing,
        recording it with a different concentration raises ComponentAlreadyPresentException
        """
        return Composition(self._items + ((name, concentration),))

    def merged(self, other: Mapping) -> "Composition":
        """Return a copy with every sub-component of other added, with the same conflict rule as with_component"""
        return Composition(self._items + tuple(other.items()))

    def equivalent(self, other: Mapping) -> bool:
        """
        Two compositions are equivalent if they hold the same non-zero sub-components,
        each at a concentration equal within COMPOSITION_RTOL
        """
        mine = {key: conc for key, conc in self._lookup.items() if conc > 0}
        theirs = {name_key(name): conc for name, conc in other.items() if conc > 0}
        if mine.keys() != theirs.keys():
            return False
        if len(mine) == 0:
            return True

        names = sorted(mine)
        return bool(
            np.all(
                np.isclose(
                    [mine[name] for name in names],
                    [theirs[name] for name in names],
                    rtol=COMPOSITION_RTOL,
                    atol=0,
                )
            )
        )

    def __repr__(self):
        return f"Composition({dict(self._items)!r})"

    def __str__(self):
        if len(self) == 0:
            return "{}"
        return " + ".join(f"{conc:g} {name}" for name, conc in self._items)


def _components_of(sample):
    """
    The sub-components a sample brings into a mix.
    A mixture brings its own composition, an atomic liquid brings itself at its concentration
    """
    if sample.composition is not None and len(sample.composition) > 0:
        return dict(sample.composition.items())

    # Unnamed liquid is a pure diluent and brings nothing
    if not sample.name:
        return {}

    concentration = sample.concentration
    if concentration is None:
        # Fall back on a concentration written into the name, e.g. "10 X LB"
        concentration, _ = split_concentration(sample.name)
    if not concentration:
        warnings.warn(
            f"No concentration for {sample.name}, mixing it in at 1.0 (v/v)"
        )
        concentration = 1.0
    return {normalise_name(sample.name): concentration}


def mix(*parts) -> Composition:
    """Composition of the liquid made by mixing samples together

    Parameters
    ----------
    parts : (LiquidSample, float) tuples
        Each sample with the volume of it going into the mix

    Returns
    -------
    Composition
        Every sub-component of every part, diluted by the part's share of the total volume.
        Components shared between parts are summed.
    """
    total = sum(volume for _, volume in parts)
    if total <= 0:
        raise ValueError("Cannot mix samples with no total volume")

    # {key: [display name, concentration]}, so "NaCl" and "nacl" add up
    mixed = {}
    for sample, volume in parts:
        if volume <= 0:
            continue
        ratio = volume / total
        for name, concentration in _components_of(sample).items():
            entry = mixed.setdefault(name_key(name), [name, 0.0])
            entry[1] += concentration * ratio

    return Composition(tuple(entry) for entry in mixed.values())
