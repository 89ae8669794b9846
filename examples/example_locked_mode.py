from evo_liquid_allocator import *

# Define a deep well plate of stock solutions. The first column is used up, stocks are in the second and third columns
stock_plate = LiquidLabware(
    "stocks",
    8,
    3,
    min_volume=50,
    max_volume=2000,
    initial_volumes=[[0, 1000, 1000]] * 8,
    liquid_names={f"{row}0{column}": "NaCl" for row in "ABCDEFGH" for column in (2, 3)},
)


# Define dilution plate. It is a 96-well microplate, so 8 rows, 12 columns
dilution_plate = LiquidLabware(
    "dilplate",
    8,
    12,
    min_volume=20,
    max_volume=500,
    initial_volumes=0,
)


def locked_mode(worklist):

    with AllocationWorklist(worklist) as wl:

        # Move all 8 channels together, each tip only takes from the stock well right below it
        wl.set_allocation_parameters(mode=MatchMode.POSITIONALLY_LOCKED)

        for column in range(4):
            wl.auto_source(
                stock_plate,
                dilution_plate,
                dilution_plate.wells[:, column],
                "NaCl",
                200,
            )

        wl.commit()

        # Normal robotools commands can be used after the allocated transfers
        wl.transfer(
            dilution_plate,
            dilution_plate.wells[:, 0],
            dilution_plate,
            dilution_plate.wells[:, 4],
            100,
            liquid_class="Water free dispense",
        )


if __name__ == "__main__":
    locked_mode("example_locked_mode.gwl")
