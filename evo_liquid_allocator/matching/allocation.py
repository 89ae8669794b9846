from typing import Iterator, List, Literal, Optional, Sequence, Tuple, Union
import logging
import warnings

from .compatibility import same_liquid
from .LiquidSample import LiquidSample
from .Match import Match, MatchMode
from .matcher import find_unsourced, match

logger = logging.getLogger(__name__)


class SourceNotFoundException(Exception):
    """Raised when a requested liquid has no source at all, as opposed to not enough volume left"""

    def __init__(self, names: Sequence[str]):
        self.names = tuple(names)
        super().__init__(f"No source found for {', '.join(self.names)}")


class InsufficientSourceVolumeException(Exception):
    pass


class AllocationStuckException(Exception):
    pass


def apply_match(
    destinations: Sequence[LiquidSample],
    sources: Sequence[LiquidSample],
    match: Match,
) -> None:
    """
    Deplete the samples by the volumes assigned in match: each matched source loses the volume
    it gives and each matched destination needs that much less. Both are clamped at 0
    """
    for i in match.matched_indices():
        source = sources[match.source_index[i]]
        volume = match.volumes[i]
        source.volume = max(0.0, source.volume - volume)
        destinations[i].volume = max(0.0, destinations[i].volume - volume)


def check_source_volumes(
    destinations: Sequence[LiquidSample], sources: Sequence[LiquidSample]
) -> None:
    """
    Check that, for every distinct liquid requested, the sources of that liquid hold at least
    the total volume requested. Raises InsufficientSourceVolumeException otherwise.
    Passing this check does not guarantee positionally locked requests can be served
    """
    # [representative destination, total volume needed] for each distinct liquid
    kinds = []
    for destination in destinations:
        if destination.volume <= 0 or not destination.name:
            continue
        for kind in kinds:
            if same_liquid(kind[0], destination):
                kind[1] += destination.volume
                break
        else:
            kinds.append([destination, destination.volume])

    shortages = []
    for representative, needed in kinds:
        available = sum(
            source.volume
            for source in sources
            if source.name and same_liquid(representative, source)
        )
        if available < needed:
            shortages.append(
                f"{representative.name} needs {needed:.1f}ul but sources hold {available:.1f}ul"
            )

    if shortages:
        raise InsufficientSourceVolumeException(
            "Insufficient source volume: " + "; ".join(shortages)
        )


class Allocation:
    """
    Result of running matching rounds until the destinations are satisfied or no progress is possible
    Holds the rounds as (window index, Match) pairs, along with the depleted copies
    of the destinations and sources they were computed on
    """

    def __init__(
        self,
        destinations: List[LiquidSample],
        sources: List[LiquidSample],
        not_found: Sequence[str] = (),
        unsourced: Sequence[int] = (),
    ):
        self.rounds: List[Tuple[int, Match]] = []
        self.destinations = destinations
        self.sources = sources
        self.not_found = tuple(not_found)
        # Indices of the destinations behind not_found
        self.unsourced = tuple(unsourced)

    @property
    def complete(self):
        return all(destination.volume <= 0 for destination in self.destinations)

    @property
    def remaining_volume(self) -> float:
        return sum(destination.volume for destination in self.destinations)

    @property
    def total_volume(self) -> float:
        return sum(round_match.score for _, round_match in self.rounds)

    def __len__(self):
        return len(self.rounds)

    def __iter__(self) -> Iterator[Match]:
        return (round_match for _, round_match in self.rounds)

    def __str__(self):
        state = "complete" if self.complete else f"{self.remaining_volume:.1f}ul unallocated"
        return f"Allocation({len(self)} rounds, {self.total_volume:.1f}ul, {state})"


def _duplicate_windows(windows):
    # A sample shared between windows must stay shared, so depleting it in one window depletes it in all
    copies = {}
    duplicated = []
    for window in windows:
        duplicated_window = []
        for sample in window:
            if id(sample) not in copies:
                copies[id(sample)] = sample.dup()
            duplicated_window.append(copies[id(sample)])
        duplicated.append(duplicated_window)
    return duplicated, list(copies.values())


def allocate(
    destinations: Sequence[LiquidSample],
    sources: Optional[Sequence[LiquidSample]] = None,
    mode: Union[MatchMode, bool] = MatchMode.GROUPED,
    *,
    windows: Optional[Sequence[Sequence[LiquidSample]]] = None,
    max_rounds: Optional[int] = None,
    on_not_found: Literal["debug", "warn", "raise"] = "raise",
    check_volumes: bool = False,
) -> Allocation:
    """Repeatedly match destinations against sources, depleting both, until every destination is satisfied

    The samples passed in are not modified, the allocation works on copies of them.

    Parameters
    ----------
    destinations : sequence of LiquidSample
        Requests, with volume being the amount needed
    sources : sequence of LiquidSample, optional
        Available liquids in preference order. Used as the only window if windows is not given
    mode : MatchMode or bool
        Matching discipline used in every round, see match()
    windows : sequence of sequences of LiquidSample, optional
        Groups of sources a single round can draw from, e.g. the well vectors a multichannel head can reach.
        Each round uses the window giving the best score, the first one on ties.
        The same sample may appear in several windows
    max_rounds : int, optional
        Raise AllocationStuckException if the destinations are not satisfied after this many rounds.
        Defaults to one more than the number of destinations and distinct sources together
    on_not_found
        What to do about requested liquids with no source at all.

        Options:

        - ``"debug"`` mentions them in a log message at DEBUG level.
        - ``"warn"`` emits a warning.
        - ``"raise"`` raises a SourceNotFoundException.

        Unless raising, these requests are left unsatisfied and the rest is allocated
    check_volumes : bool
        Check the total source volume per liquid up front, see check_source_volumes()

    Returns
    -------
    Allocation
        Allocation.complete is False if the sources ran out before every destination was satisfied
    """
    mode = MatchMode.coerce(mode)

    if windows is None:
        if sources is None:
            raise ValueError("Either sources or windows must be given")
        windows = [sources]

    destinations = [destination.dup() for destination in destinations]
    windows, unique_sources = _duplicate_windows(windows)

    unsourced = find_unsourced(destinations, unique_sources)
    missing = []
    for i in unsourced:
        if destinations[i].name not in missing:
            missing.append(destinations[i].name)
    if missing:
        message = f"No source found for {', '.join(missing)}"
        if on_not_found == "raise":
            raise SourceNotFoundException(missing)
        elif on_not_found == "warn":
            warnings.warn(message)
        else:
            logger.debug(message)

    if check_volumes:
        check_source_volumes(
            [d for i, d in enumerate(destinations) if i not in unsourced], unique_sources
        )

    if max_rounds is None:
        max_rounds = len(destinations) + len(unique_sources) + 1

    allocation = Allocation(
        destinations, unique_sources, not_found=missing, unsourced=unsourced
    )

    while not allocation.complete:
        if len(allocation) >= max_rounds:
            raise AllocationStuckException(
                f"Destinations still need {allocation.remaining_volume:.1f}ul after {max_rounds} rounds"
            )

        # Try every window and keep the one which moves the most liquid
        best_window = -1
        best_match = None
        for index, window in enumerate(windows):
            candidate = match(destinations, window, mode)
            if best_match is None or candidate.score > best_match.score:
                best_window = index
                best_match = candidate

        # No progress possible, sources are exhausted
        if best_match is None or best_match.score <= 0:
            logger.debug(
                "Stopping after %d rounds with %.1ful unallocated",
                len(allocation),
                allocation.remaining_volume,
            )
            break

        apply_match(destinations, windows[best_window], best_match)
        allocation.rounds.append((best_window, best_match))
        logger.debug("Round %d (window %d): %s", len(allocation), best_window, best_match)

    return allocation
