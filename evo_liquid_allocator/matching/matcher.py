from typing import List, Sequence, Union

from .compatibility import compatible, same_liquid
from .LiquidSample import LiquidSample
from .Match import Match, MatchMode


def find_unsourced(
    destinations: Sequence[LiquidSample], sources: Sequence[LiquidSample]
) -> List[int]:
    """
    Indices of the requests for which no source in the whole list holds the same liquid,
    whatever its remaining volume. Requests already satisfied are not checked.
    Two requests sharing a name can differ here if they ask for different compositions
    """
    return [
        i
        for i, destination in enumerate(destinations)
        if destination.volume > 0
        and destination.name
        and not any(source.name and same_liquid(destination, source) for source in sources)
    ]


def find_missing_liquids(
    destinations: Sequence[LiquidSample], sources: Sequence[LiquidSample]
) -> List[str]:
    """Names of the requested liquids with no source at all, see find_unsourced"""
    missing = []
    for i in find_unsourced(destinations, sources):
        if destinations[i].name not in missing:
            missing.append(destinations[i].name)
    return missing


def _match_locked(destinations, sources, match):
    # Channel i can only draw from the well directly below it
    for i, (destination, source) in enumerate(zip(destinations, sources)):
        if destination.volume <= 0:
            continue
        if compatible(destination, source):
            match.assign(i, i, source, min(destination.volume, source.volume))


def _match_grouped(destinations, sources, match):
    # Each source can only be aspirated once per round
    used = set()
    for i, destination in enumerate(destinations):
        if destination.volume <= 0:
            continue

        # Sources are assumed to be in canonical plate order, so the first compatible one wins ties
        for j, source in enumerate(sources):
            if j in used or not compatible(destination, source):
                continue
            match.assign(i, j, source, min(destination.volume, source.volume))
            used.add(j)
            break


def match(
    destinations: Sequence[LiquidSample],
    sources: Sequence[LiquidSample],
    mode: Union[MatchMode, bool] = MatchMode.GROUPED,
) -> Match:
    """Compute one round of source to destination assignment

    Neither list is modified. Sources holding less than a destination needs give what they have,
    the caller is expected to deplete the samples (see apply_match) and match again.

    Parameters
    ----------
    destinations : sequence of LiquidSample
        Requests, with volume being the amount still needed. Requests at zero volume are skipped
    sources : sequence of LiquidSample
        Available liquids, in the order they should be preferred (canonical plate order)
    mode : MatchMode or bool
        GROUPED lets any destination take from any source.
        POSITIONALLY_LOCKED (or True) pairs destination i with source i only, in which case
        both lists must be the same length.

    Returns
    -------
    Match
        One entry per destination. Match.not_found names requested liquids with no source at all
    """
    mode = MatchMode.coerce(mode)

    if mode is MatchMode.POSITIONALLY_LOCKED and len(destinations) != len(sources):
        raise ValueError(
            f"Positionally locked matching needs one source per destination, got {len(destinations)} destinations and {len(sources)} sources"
        )

    result = Match.unmatched(len(destinations))

    if mode is MatchMode.POSITIONALLY_LOCKED:
        _match_locked(destinations, sources, result)
    else:
        _match_grouped(destinations, sources, result)

    result.not_found = tuple(find_missing_liquids(destinations, sources))
    return result
