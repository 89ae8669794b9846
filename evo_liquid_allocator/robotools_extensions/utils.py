import numpy as np


def rationalise_well(well):
    """Rationalise a well id to robotools' A01 format"""
    well = str(well).strip()
    if len(well) == 2:
        well = well[0] + "0" + well[1]
    return well


def broadcast_arguments(*arguments):
    """
    Reformat the convenience parameters of a transfer: flatten each argument column-wise,
    then repeat any single value to the length of the longest argument.
    All arguments must end up the same length
    """
    arrays = [np.array(argument).flatten("F") for argument in arguments]
    nmax = max(len(array) for array in arrays)

    arrays = [np.repeat(array, nmax) if len(array) == 1 else array for array in arrays]

    lengths = tuple(len(array) for array in arrays)
    assert (
        len(set(lengths)) == 1
    ), f"Number of wells/volumes must be equal. They were {lengths}"
    return arrays


def group_channels(channels, field="source"):
    """
    Group transfer channels by the labware they aspirate from (field="source")
    or dispense to (field="destination"), keeping first-seen order.
    Everything in a group can be handled by one robotools transfer
    """
    group_dict = {}
    for channel in channels:

        if field == "source":
            key = channel.source_name
        else:
            key = channel.destination.name
        if key not in group_dict:
            group_dict[key] = []

        group_dict[key].append(channel)

    return group_dict
