import numpy as np
import pytest
import robotools

from evo_liquid_allocator import *


def make_source(name="src", rows=8, columns=1, volume=200, liquid="water", filled=None):
    # filled: wells holding the liquid, all of them by default
    wells = [f"{'ABCDEFGH'[r]}{c + 1:02d}" for c in range(columns) for r in range(rows)]
    if filled is None:
        filled = wells

    volumes = np.zeros((rows, columns))
    for well in filled:
        volumes["ABCDEFGH".index(well[0]), int(well[1:]) - 1] = volume

    return LiquidLabware(
        name,
        rows,
        columns,
        min_volume=20,
        max_volume=5000,
        initial_volumes=volumes,
        liquid_names={well: liquid for well in filled},
    )


def make_destination(name="dest"):
    return LiquidLabware(name, 8, 12, min_volume=20, max_volume=5000, initial_volumes=0)


def count_lines(worklist, prefix):
    return sum(1 for line in worklist if line.startswith(prefix))


def test_one_round(capsys):
    source = make_source()
    dest = make_destination()

    with AllocationWorklist() as wl:
        wl.auto_source(source, dest, dest.wells[:, 0], "water", 20)
        wl.commit()

    assert "Allocation complete. rounds: 1, transfers: 8" in capsys.readouterr().out
    assert np.all(dest.volumes[:, 0] == 20)
    assert np.all(source.volumes[:, 0] == 180)
    assert count_lines(wl, "A;") == 8
    assert count_lines(wl, "D;") == 8

    transfer = wl.committed_transfers[0]
    assert [c.source_well for c in transfer.channels()] == list(source.wells[:, 0])
    assert list(transfer.by_source()) == ["src"]


def test_multiple_rounds():
    # Only two tubes of buffer for eight wells
    source = make_source("tubes", filled=["A01", "B01"], liquid="buffer")
    dest = make_destination()

    wl = AllocationWorklist()
    wl.auto_source(source, dest, dest.wells[:, 0], "buffer", 20)
    wl.commit()

    assert wl.round_count == 4
    assert wl.transfer_count == 8
    assert np.all(dest.volumes[:, 0] == 20)
    assert source.volumes[0, 0] == 120
    assert source.volumes[1, 0] == 120


def test_top_up_from_second_labware():
    first = make_source("first", rows=1, volume=50)
    second = make_source("second", rows=1, volume=200)
    dest = make_destination()

    wl = AllocationWorklist()
    wl.auto_source([first, second], dest, "A01", "water", 50)
    wl.commit()

    assert dest.volumes[0, 0] == 50
    assert first.volumes[0, 0] == 20
    assert second.volumes[0, 0] == 180
    assert len(wl.committed_transfers) == 2


def test_locked_mode_uses_a_column_vector():
    # Column 1 is empty, column 2 holds water
    source = make_source("src", columns=2, filled=[f"{row}02" for row in "ABCDEFGH"])
    dest = make_destination()

    wl = AllocationWorklist()
    wl.set_allocation_parameters(mode=MatchMode.POSITIONALLY_LOCKED)
    wl.auto_source(source, dest, dest.wells[:4, 0], "water", 20)
    wl.commit()

    assert list(source.volumes[:, 1]) == [180] * 4 + [200] * 4
    assert wl.round_count == 1
    assert [c.source_well for c in wl.committed_transfers[0].channels()] == [
        "A02",
        "B02",
        "C02",
        "D02",
    ]


def test_locked_mode_channel_limit():
    wl = AllocationWorklist()
    dest = make_destination()
    with pytest.raises(AssertionError):
        wl.auto_source(make_source(), dest, dest.wells[:, :2], "water", 20, mode=True)


def test_allocation_parameters_persist():
    wl = AllocationWorklist()
    wl.set_allocation_parameters(mode=True, liquid_class="Water free dispense")

    # Params not passed again keep their value
    wl.set_allocation_parameters(on_not_found="warn")

    assert wl.allocation_params["mode"] is MatchMode.POSITIONALLY_LOCKED
    assert wl.allocation_params["liquid_class"] == "Water free dispense"
    assert wl.allocation_params["on_not_found"] == "warn"


def test_not_found():
    source = make_source()
    dest = make_destination()

    wl = AllocationWorklist()
    wl.auto_source(source, dest, "A01", "ethanol", 20)
    with pytest.raises(SourceNotFoundException):
        wl.commit()

    # The failed request waits until it is dropped
    assert [request.liquid for request in wl.discard_pending_requests()] == ["ethanol"]
    assert wl.pending_requests == []

    wl.auto_source(source, dest, "A01", "ethanol", 20, on_not_found="warn")
    with pytest.warns(UserWarning, match="ethanol"):
        wl.commit()
    assert dest.volumes[0, 0] == 0


def test_locked_mode_needs_enough_rows():
    # A 4 tube rack can't hold a vector of 8 channels, even though every tube is water
    tubes = make_source("tubes", rows=4)
    dest = make_destination()

    wl = AllocationWorklist()
    with pytest.raises(AssertionError, match="4 rows"):
        wl.auto_source(tubes, dest, dest.wells[:, 0], "water", 20, mode=MatchMode.POSITIONALLY_LOCKED)
    assert wl.pending_requests == []


def test_trough_source():
    trough = LiquidTrough(
        "trough", 8, 1, min_volume=100, max_volume=100_000, initial_volumes=10_000, liquid_names={"A01": "water"}
    )
    dest = make_destination()

    wl = AllocationWorklist()
    wl.auto_source(trough, dest, dest.wells[:, 0], "water", 20)
    wl.commit()

    # The trough column is one source, aspirated once per round
    assert wl.round_count == 8
    assert np.all(dest.volumes[:, 0] == 20)
    assert trough.volumes[0, 0] == 10_000 - 160

    # Locked vectors can't be taken from a trough
    with pytest.raises(AssertionError, match="trough"):
        wl.auto_source(trough, dest, dest.wells[:4, 1], "water", 20, mode=True)


def test_plain_labware_is_refused():
    trough = robotools.Trough("trough", 8, 1, min_volume=100, max_volume=100_000, initial_volumes=10_000)
    dest = make_destination()

    wl = AllocationWorklist()
    with pytest.raises(AssertionError, match="LiquidTrough"):
        wl.auto_source(trough, dest, dest.wells[:, 0], "trough.A01", 20)


def test_liquid_names_ignore_case():
    source = make_source(liquid="Water")
    dest = make_destination()

    wl = AllocationWorklist()
    wl.auto_source(source, dest, dest.wells[:, 0], "water", 20)
    wl.commit()

    assert np.all(dest.volumes[:, 0] == 20)


def test_failed_request_stays_pending():
    source = make_source()
    dest = make_destination()

    wl = AllocationWorklist()
    wl.auto_source(source, dest, "A01", "water", 20)
    wl.auto_source(source, dest, "B01", "ethanol", 20)
    wl.auto_source(source, dest, "C01", "water", 20)
    with pytest.raises(SourceNotFoundException):
        wl.commit()

    # The first request made it to the worklist, the rest is still queued
    assert dest.volumes[0, 0] == 20
    assert count_lines(wl, "A;") == 1
    assert [request.liquid for request in wl.pending_requests] == ["ethanol", "water"]
    assert not any("ethanol" in line for line in wl)

    wl.discard_pending_requests()
    wl.comment("done")
    assert wl[-1] == "C;done"


def test_sources_run_dry():
    source = make_source(rows=1, volume=40)
    dest = make_destination()

    wl = AllocationWorklist()
    wl.auto_source(source, dest, dest.wells[:2, 0], "water", 15)
    with pytest.raises(InsufficientSourceVolumeException):
        wl.commit()


def test_append_commits_pending_requests():
    source = make_source()
    dest = make_destination()

    wl = AllocationWorklist()
    wl.auto_source(source, dest, "A01", "water", 20)

    with pytest.warns(UserWarning, match="without commit"):
        wl.comment("after sourcing")

    assert wl[-1] == "C;after sourcing"
    assert count_lines(wl, "A;") == 1
    assert not wl.currently_allocating


def test_report_transfers(capsys):
    source = make_source()
    dest = make_destination()

    wl = AllocationWorklist()
    wl.auto_source(source, dest, dest.wells[:2, 0], "water", 20, label="fill")
    wl.report_transfers()
    assert "pending: water from [src] to dest-A01,B01" in capsys.readouterr().out

    wl.commit()
    wl.report_transfers()
    out = capsys.readouterr().out
    assert "fill" in out
    assert "src-A01" in out and "dest-B01" in out


def test_worklist_file(tmp_path):
    source = make_source()
    dest = make_destination()
    filepath = str(tmp_path / "allocation.gwl")

    # Pending requests are committed when the worklist closes
    with AllocationWorklist(filepath) as wl:
        wl.auto_source(source, dest, dest.wells[:, 0], "water", 20)

    with open(filepath) as file:
        content = file.read()
    assert content.count("A;") == 8


if __name__ == "__main__":
    test_one_round()
    test_multiple_rounds()
