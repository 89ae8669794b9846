import numpy as np

from evo_liquid_allocator import *

# Define a rack of reagent tubes as source labware. It is a 16 tube holder, so 16 rows, 1 column
# Only some tubes are filled, and buffer is split over two tubes
reagent_tubes = LiquidLabware(
    "reagents",
    16,
    1,
    min_volume=50,
    max_volume=10000,
    initial_volumes=np.array([[2000], [2000], [300], [300], [1500]] + [[0]] * 11),
    liquid_names={
        "A01": "water",
        "B01": "water",
        "C01": "buffer",
        "D01": "buffer",
        "E01": "10X enzyme mix",
    },
)


# A trough of water. Each column is one source, so it gives one well per round
water_trough = LiquidTrough(
    "water trough",
    8,
    1,
    min_volume=1000,
    max_volume=100_000,
    initial_volumes=50_000,
    liquid_names={"A01": "Water"},
)


# Define assay plate. It is a 96-well microplate, so 8 rows, 12 columns
assay_plate = LiquidLabware(
    "assay",
    8,
    12,
    min_volume=20,
    max_volume=500,
    initial_volumes=0,
)


def auto_source(worklist):

    with AllocationWorklist(worklist) as wl:

        wl.set_allocation_parameters(liquid_class="Water free dispense")

        # Water for the whole first two columns. There are only two water tubes, so this takes several rounds
        wl.auto_source(reagent_tubes, assay_plate, assay_plate.wells[:, :2], "water", 100)

        # Each buffer tube only has 250ul to give, so later wells get topped up from the second tube
        wl.auto_source(reagent_tubes, assay_plate, assay_plate.wells[:, :2], "buffer", 30)

        # The factor in the name is ignored when matching, "10X enzyme mix" is sourced for "enzyme mix"
        wl.auto_source(
            reagent_tubes,
            assay_plate,
            assay_plate.wells[:, :2],
            "enzyme mix",
            10,
            label="enzyme",
        )

        # Names are matched whatever their case, so the trough serves "water" too
        wl.auto_source(water_trough, assay_plate, assay_plate.wells[:4, 2], "water", 50)

        # Print the requests we have registered, so we can sanity check
        wl.report_transfers()

        # Allocate sources for these requests and add to worklist
        wl.commit()

        # And the parallel transfers they turned into
        wl.report_transfers()


if __name__ == "__main__":
    auto_source("example_auto_source.gwl")
