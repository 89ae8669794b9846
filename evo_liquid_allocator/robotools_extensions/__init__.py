from .LiquidLabware import LiquidContainer, LiquidLabware, LiquidTrough
from .ParallelTransfer import ParallelTransfer, TransferChannel
from .AllocationWorklist import AllocationWorklist, SourceRequest, MAX_CHANNELS
from .utils import broadcast_arguments, group_channels, rationalise_well
