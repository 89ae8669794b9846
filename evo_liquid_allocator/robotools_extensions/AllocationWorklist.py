from robotools import EvoWorklist, Labware
from typing import List, Literal, Optional, Sequence, Union
import warnings

from ..matching import (
    Composition,
    InsufficientSourceVolumeException,
    MatchMode,
    allocate,
)
from .LiquidLabware import LiquidContainer, LiquidLabware
from .ParallelTransfer import ParallelTransfer
from .utils import broadcast_arguments, rationalise_well

# Channels on the LiHa
MAX_CHANNELS = 8


class SourceRequest:
    """
    A queued auto_source call: liquid wanted in some destination wells,
    to be served from whichever wells of the source labwares hold it
    """

    def __init__(
        self,
        sources: List[LiquidContainer],
        destination: LiquidLabware,
        destination_wells: List[str],
        liquid: str,
        volumes: List[float],
        params: dict,
        *,
        label: str = "",
        composition: Optional[Composition] = None,
        concentration: Optional[float] = None,
    ):
        self.sources = sources
        self.destination = destination
        self.destination_wells = destination_wells
        self.liquid = liquid
        self.volumes = volumes
        self.params = params
        self.label = label
        self.composition = composition
        self.concentration = concentration

    def __str__(self):
        source_names = ", ".join(source.name for source in self.sources)
        return f"{self.liquid} from [{source_names}] to {self.destination.name}-{','.join(self.destination_wells)}"


class AllocationWorklist(EvoWorklist):

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.pending_requests: List[SourceRequest] = []
        self.committed_transfers: List[ParallelTransfer] = []

        self.currently_allocating = False
        self.silence_append_warning = False
        self.processing = False

        self.round_count = 0
        self.transfer_count = 0

        self.allocation_params = {}
        self.set_allocation_parameters()

    def set_allocation_parameters(
        self,
        mode: Union[MatchMode, bool] = MatchMode.GROUPED,
        max_rounds: Optional[int] = None,
        on_not_found: Literal["debug", "warn", "raise"] = "raise",
        check_volumes: bool = False,
        liquid_class: str = "",
        wash_scheme: Literal[1, 2, 3, 4] = 1,
    ):
        """
        Set the defaults used by auto_source() for requests that don't pass their own.
        Params not explicity passed to this method will stay as their previous value.
        Requests already queued keep the parameters they were queued with

        Parameters
        ----------
        mode : MatchMode or bool
            GROUPED lets each destination well take from any source well.
            POSITIONALLY_LOCKED (or True) moves the destination wells as one multichannel vector,
            each channel taking from the source well directly below it
        max_rounds : int, optional
            Limit on the number of parallel transfers per request, see allocate()
        on_not_found : str
            What to do when no source well holds the requested liquid: "debug", "warn" or "raise"
        check_volumes : bool
            Check the total source volume up front
        liquid_class : str
            Liquid class to use for pipetting
        wash_scheme : int
            Wash scheme passed to robotools for every transfer
        """

        param_defaults = {
            "mode": MatchMode.GROUPED,
            "max_rounds": None,
            "on_not_found": "raise",
            "check_volumes": False,
            "liquid_class": "",
            "wash_scheme": 1,
        }

        for key, default in param_defaults.items():

            # If the passed parameter is the default value, and the property is already set, don't overwrite it
            passed_value = locals()[key]
            if passed_value == default and key in self.allocation_params:
                continue

            self.allocation_params[key] = passed_value

        self.allocation_params["mode"] = MatchMode.coerce(self.allocation_params["mode"])

    def auto_source(
        self,
        sources: Union[LiquidContainer, Sequence[LiquidContainer]],
        destination: LiquidLabware,
        destination_wells: Union[str, Sequence[str]],
        liquid: str,
        volumes: Union[float, Sequence[float]],
        *,
        label: Optional[str] = "",
        mode: Union[MatchMode, bool, None] = None,
        composition: Optional[Composition] = None,
        concentration: Optional[float] = None,
        on_not_found: Literal["debug", "warn", "raise", None] = None,
        liquid_class: Optional[str] = None,
        wash_scheme: Literal[1, 2, 3, 4, None] = None,
    ) -> None:
        """Transfer a named liquid into destination wells, picking the source wells automatically
        Source wells are searched in the order the sources are given, each in column-major order.
        A source well short of liquid is used up and topped up from the next one
        use .commit() to allocate the sources and populate the worklist with the corresponding commands

        Parameters
        ----------
        sources : LiquidLabware, LiquidTrough or a list of them
            Labwares holding the liquid
        destination : LiquidLabware
            Destination labware
        destination_wells : str or iterable
            List of destination well ids
        liquid : str
            Name of the liquid wanted
        volumes : float or iterable
            Volume(s) to transfer
        label : str
            Label of the operation to log into labware history
        mode : MatchMode or bool, optional
            Overrides the session matching mode, see set_allocation_parameters()
        composition : Composition, optional
            Required make-up of the liquid, when it is a mixture
        concentration : float, optional
            Required concentration of the liquid
        on_not_found, liquid_class, wash_scheme : optional
            Override the session parameters, see set_allocation_parameters()
        """
        if isinstance(sources, Labware):
            sources = [sources]
        sources = list(sources)

        # reformat the convenience parameters
        destination_wells, volumes = broadcast_arguments(destination_wells, volumes)
        destination_wells = [rationalise_well(well) for well in destination_wells]

        assert len(sources) > 0, "At least one source labware is needed for auto_source"
        assert all(
            isinstance(source, LiquidContainer) for source in sources
        ), "Sources must be LiquidLabware or LiquidTrough for auto_source"
        assert len(set(source.name for source in sources)) == len(
            sources
        ), "Source labwares must have unique names"
        assert isinstance(
            destination, LiquidLabware
        ), "Destination must be LiquidLabware for auto_source"

        params = dict(self.allocation_params)
        overrides = {
            "mode": mode,
            "on_not_found": on_not_found,
            "liquid_class": liquid_class,
            "wash_scheme": wash_scheme,
        }
        params.update({key: value for key, value in overrides.items() if value is not None})
        params["mode"] = MatchMode.coerce(params["mode"])

        if params["mode"] is MatchMode.POSITIONALLY_LOCKED:
            assert (
                len(destination_wells) <= MAX_CHANNELS
            ), f"Positionally locked requests can use at most {MAX_CHANNELS} wells"

            # Each channel needs its own source well below it, in one column of every source
            for source in sources:
                assert (
                    source.virtual_rows is None
                ), f"Positionally locked requests can't source from trough {source.name}"
                assert len(destination_wells) <= source.n_rows, (
                    f"Positionally locked request for {len(destination_wells)} wells can't source from "
                    f"{source.name}, which has {source.n_rows} rows"
                )

        # Track that we have requests waiting to be allocated that haven't been committed to the worklist.
        # If so, we want to warn if the user tries to add anything else to the worklist.
        self.currently_allocating = True

        self.pending_requests.append(
            SourceRequest(
                sources,
                destination,
                destination_wells,
                liquid,
                [float(volume) for volume in volumes],
                params,
                label=label,
                composition=composition,
                concentration=concentration,
            )
        )

    def append(self, *args, **kwargs):
        # If we have un-commited requests and the user tries to append something else to the worklist
        # We have to allocate and commit these requests first, or they'll appear after whatever the
        # user appends.
        # Warn the user, then commit the requests automatically
        if self.currently_allocating and not self.silence_append_warning:
            warnings.warn(
                "Modifying worklist after auto_source without commit. Source requests will be committed now, before your modification"
            )
            self.commit()
        super().append(*args, **kwargs)

    # transfer and comment overrides that we will use internally when committing.
    # Avoid warning the user in this case
    def _transfer(self, *args, silence_append_warning=True, **kwargs):
        self.silence_append_warning = silence_append_warning
        super().transfer(*args, **kwargs)
        self.silence_append_warning = False

    def _comment(self, *args, silence_append_warning=True, **kwargs):
        self.silence_append_warning = silence_append_warning
        super().comment(*args, **kwargs)
        self.silence_append_warning = False

    def allocate_request(self, request: SourceRequest) -> List[ParallelTransfer]:
        """
        Allocate source wells for a request against the current labware volumes
        Returns one ParallelTransfer per allocation round, without touching the worklist
        """
        params = request.params

        destinations = request.destination.requests(
            request.destination_wells,
            request.liquid,
            request.volumes,
            concentration=request.concentration,
            composition=request.composition,
        )

        if params["mode"] is MatchMode.POSITIONALLY_LOCKED:
            # Every reachable vector of wells is a candidate, one round uses the best of them
            windows = [
                window
                for source in request.sources
                for window in source.windows(len(destinations))
            ]
            allocation = allocate(
                destinations,
                mode=params["mode"],
                windows=windows,
                max_rounds=params["max_rounds"],
                on_not_found=params["on_not_found"],
                check_volumes=params["check_volumes"],
            )
        else:
            samples = [sample for source in request.sources for sample in source.samples()]
            allocation = allocate(
                destinations,
                samples,
                params["mode"],
                max_rounds=params["max_rounds"],
                on_not_found=params["on_not_found"],
                check_volumes=params["check_volumes"],
            )

        # Requests for liquids without any source were already reported by allocate
        # Anything else left over means the sources ran dry
        short = [
            f"{destination.location.slot} ({destination.volume:.1f}ul)"
            for i, destination in enumerate(allocation.destinations)
            if destination.volume > 0 and i not in allocation.unsourced
        ]
        if short:
            raise InsufficientSourceVolumeException(
                f"Sources ran out of {request.liquid} for {request.destination.name} wells: {', '.join(short)}"
            )

        return [
            ParallelTransfer(
                request.destination,
                request.destination_wells,
                round_match,
                round_number=round_number,
                label=request.label,
                liquid_class=params["liquid_class"],
                wash_scheme=params["wash_scheme"],
            )
            for round_number, round_match in enumerate(allocation, start=1)
        ]

    def _apply_transfer(self, transfer: ParallelTransfer, sources: Sequence[LiquidContainer]):
        labware_by_name = {source.name: source for source in sources}

        kwargs = {}
        if transfer.liquid_class:
            kwargs["liquid_class"] = transfer.liquid_class

        # One robotools transfer per source labware drawn on in this round
        for source_name, channels in transfer.by_source().items():
            self._transfer(
                labware_by_name[source_name],
                [channel.source_well for channel in channels],
                transfer.destination,
                [channel.destination_well for channel in channels],
                [channel.volume for channel in channels],
                label=transfer.label,
                wash_scheme=transfer.wash_scheme,
                **kwargs,
            )
            self.transfer_count += len(channels)

        self.round_count += 1

    def commit(self):
        """
        Allocate sources for the pending requests and add their transfers to the worklist.
        Requests are allocated in order, each against the volumes left by the previous ones.
        If a request fails to allocate, the requests before it stay in the worklist,
        while it and the requests after it stay pending. Use discard_pending_requests() to drop them
        """

        # If we have requests pending, allocate and apply them
        if len(self.pending_requests) > 0 and not self.processing:
            self.processing = True
            try:
                while len(self.pending_requests) > 0:
                    request = self.pending_requests[0]

                    # Nothing reaches the worklist until the whole request is allocated
                    transfers = self.allocate_request(request)

                    self._comment(f"Sourcing {request}")
                    for transfer in transfers:
                        self._apply_transfer(transfer, request.sources)
                    self.committed_transfers += transfers
                    self.pending_requests.pop(0)
            finally:
                self.processing = False

            print(
                f"Allocation complete. rounds: {self.round_count}, transfers: {self.transfer_count}"
            )
        self.currently_allocating = False

    def discard_pending_requests(self) -> List[SourceRequest]:
        """Drop the requests waiting for commit(), returning them"""
        discarded = self.pending_requests
        self.pending_requests = []
        self.currently_allocating = False
        return discarded

    def report_transfers(self):
        """
        List the transfers committed so far, and the requests still waiting for commit()
        """
        for transfer in sorted(self.committed_transfers):
            print(transfer)
        for request in self.pending_requests:
            print(f"pending: {request}")

    def __enter__(self) -> "AllocationWorklist":
        # Redefine to give correct type hint
        return super().__enter__()

    def __exit__(self, *args):

        # Commit to allocate and apply any pending requests before exiting
        # If the block raised, leave them pending rather than raise again on top of it
        if args[0] is None:
            self.commit()

        super().__exit__(*args)
