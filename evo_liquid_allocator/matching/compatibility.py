"""
Liquid identity: decides whether a source sample can satisfy, even partially, a destination request.
Everything here is a pure function of its arguments and never raises for well-formed samples.
"""

import re
from typing import Optional, Tuple

import numpy as np

# Relative precision used when comparing sample concentrations
CONCENTRATION_RTOL = 5e-3

# "<number> X " in front of a name, or " <number> X" behind it, e.g. "10 X LB" or "LB 10x"
_NUMBER = r"(\d+(?:\.\d*)?|\.\d+)"
_X_PREFIX = re.compile(r"^" + _NUMBER + r"\s*[xX]\s+")
_X_SUFFIX = re.compile(r"\s+" + _NUMBER + r"\s*[xX]$")


def split_concentration(name: str) -> Tuple[Optional[float], str]:
    """
    Strip every "<number> X" factor surrounding a liquid name

    Returns
    -------
    (factor, name)
        factor is the product of the stripped factors, or None if there were none.
        name is the remaining text, trimmed at the edges but otherwise verbatim.
    """
    name = (name or "").strip()
    factor = None

    while True:
        found = _X_PREFIX.match(name) or _X_SUFFIX.search(name)
        if found is None:
            break
        value = float(found.group(1))
        factor = value if factor is None else factor * value
        name = (name[: found.start()] + name[found.end() :]).strip()

    return factor, name


def normalise_name(name: str) -> str:
    """
    Normalised form of a liquid name used for matching.
    "1 X 1 X Solution" and " Solution " both normalise to "Solution"
    """
    return split_concentration(name)[1]


def name_key(name: str) -> str:
    """
    Key two names are compared by: the normalised name, casefolded.
    "Water" and " 1X water" share a key
    """
    return normalise_name(name).casefold()


def names_match(destination, source) -> bool:
    """True if both samples carry the same non-empty name, ignoring case and concentration factors"""
    wanted = name_key(destination.name)
    return wanted != "" and wanted == name_key(source.name)


def _has_composition(sample):
    return sample.composition is not None and len(sample.composition.nonzero()) > 0


def compositions_equivalent(destination, source) -> bool:
    """
    Atomic liquids on both sides trivially match.
    Otherwise both must be mixtures of the same sub-components at equal concentrations,
    so a mixture called "LB" only matches an "LB" that was made up the same way
    """
    wanted = _has_composition(destination)
    got = _has_composition(source)
    if not wanted and not got:
        return True
    if wanted != got:
        return False
    return destination.composition.equivalent(source.composition)


def concentrations_match(destination, source) -> bool:
    """Concentrations only constrain a match when both samples declare one"""
    if destination.concentration is None or source.concentration is None:
        return True
    return bool(
        np.isclose(
            destination.concentration,
            source.concentration,
            rtol=CONCENTRATION_RTOL,
            atol=0,
        )
    )


def same_liquid(destination, source) -> bool:
    """Identity check regardless of how much liquid the source still holds"""
    return (
        names_match(destination, source)
        and compositions_equivalent(destination, source)
        and concentrations_match(destination, source)
    )


def compatible(destination, source) -> bool:
    """True if source can give at least some liquid towards destination right now"""
    return source.volume > 0 and same_liquid(destination, source)
