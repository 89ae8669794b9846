from .compatibility import (
    CONCENTRATION_RTOL,
    compatible,
    compositions_equivalent,
    concentrations_match,
    name_key,
    names_match,
    normalise_name,
    same_liquid,
    split_concentration,
)
from .Composition import (
    COMPOSITION_RTOL,
    ComponentAlreadyPresentException,
    Composition,
    mix,
)
from .LiquidSample import LiquidSample, Location
from .Match import Match, MatchMode
from .matcher import find_missing_liquids, find_unsourced, match
from .allocation import (
    Allocation,
    AllocationStuckException,
    InsufficientSourceVolumeException,
    SourceNotFoundException,
    allocate,
    apply_match,
    check_source_volumes,
)
