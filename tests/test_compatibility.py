import pytest

from evo_liquid_allocator.matching import *


def test_normalise_name():
    assert normalise_name(" Solution ") == "Solution"
    assert normalise_name("1 X 1 X Solution") == "Solution"
    assert normalise_name("10x LB") == "LB"
    assert normalise_name("LB 2X") == "LB"

    # Only factors at the edges are stripped, the rest of the name is kept verbatim
    assert normalise_name("Tris 10 X buffer") == "Tris 10 X buffer"
    assert normalise_name("") == ""


def test_split_concentration():
    assert split_concentration("10 X LB") == (10.0, "LB")
    assert split_concentration("2X 5x LB") == (10.0, "LB")
    assert split_concentration("water") == (None, "water")


def test_names_match():
    assert names_match(LiquidSample("water", 10), LiquidSample(" water", 50))
    assert names_match(LiquidSample("1 X water", 10), LiquidSample("water", 50))
    assert not names_match(LiquidSample("water", 10), LiquidSample("ethanol", 50))

    # Case is ignored, like the whitespace at the edges
    assert names_match(LiquidSample("Water", 10), LiquidSample("water", 50))
    assert names_match(LiquidSample(" WATER", 10), LiquidSample("2x water ", 50))
    assert name_key("10X LB Broth") == "lb broth"

    # Nothing matches an unnamed request
    assert not names_match(LiquidSample("", 10), LiquidSample("", 50))


def test_compatible_needs_volume():
    destination = LiquidSample("water", 20)

    assert compatible(destination, LiquidSample("water", 0.5))
    assert not compatible(destination, LiquidSample("water", 0))

    # Identity ignores volume, so an exhausted source is still the same liquid
    assert same_liquid(destination, LiquidSample("water", 0))


def test_concentrations():
    destination = LiquidSample("NaCl", 20, concentration=1.0)

    assert compatible(destination, LiquidSample("NaCl", 100, concentration=1.001))
    assert not compatible(destination, LiquidSample("NaCl", 100, concentration=0.5))

    # An undeclared concentration doesn't constrain the match
    assert compatible(destination, LiquidSample("NaCl", 100))
    assert compatible(LiquidSample("NaCl", 20), LiquidSample("NaCl", 100, concentration=0.5))


def test_composition_equivalence():
    lb = Composition({"tryptone": 10, "yeast extract": 5, "NaCl": 10})
    destination = LiquidSample("LB", 20, composition=lb)

    same = LiquidSample("LB", 100, composition={"NaCl": 10.02, "tryptone": 10, "yeast extract": 5})
    # Zero entries are ignored
    same_with_zero = LiquidSample(
        "LB", 100, composition={"NaCl": 10, "tryptone": 10, "yeast extract": 5, "agar": 0}
    )
    weaker = LiquidSample("LB", 100, composition={"NaCl": 5, "tryptone": 10, "yeast extract": 5})
    fewer = LiquidSample("LB", 100, composition={"tryptone": 10, "yeast extract": 5})
    atomic = LiquidSample("LB", 100)

    assert compatible(destination, same)
    assert compatible(destination, same_with_zero)
    assert not compatible(destination, weaker)
    assert not compatible(destination, fewer)

    # A mixture never matches an atomic liquid of the same name, either way round
    assert not compatible(destination, atomic)
    assert not compatible(LiquidSample("LB", 20), same)

    # Two atomic liquids trivially agree
    assert compositions_equivalent(LiquidSample("water", 1), LiquidSample("water", 1))


def test_composition_values():
    composition = Composition({" water ": 0.5, "glucose": 0.5})

    assert list(composition) == ["glucose", "water"]
    assert composition["water"] == 0.5
    assert "1 X water" in composition
    assert composition == Composition([("glucose", 0.5), ("water", 0.5)])
    assert hash(composition) == hash(Composition({"water": 0.5, "glucose": 0.5}))
    assert str(composition) == "0.5 glucose + 0.5 water"
    assert len(Composition()) == 0


def test_composition_ignores_case():
    composition = Composition({"NaCl": 10, "Tris": 20})

    # Lookups and comparisons ignore case, the names keep their spelling
    assert composition["nacl"] == 10
    assert "TRIS" in composition
    assert list(composition) == ["NaCl", "Tris"]
    assert composition == Composition({"nacl": 10, "tris": 20})
    assert composition.equivalent({"NACL": 10, "tris": 20})

    request = LiquidSample("Buffer", 20, composition={"nacl": 10, "tris": 20})
    assert compatible(request, LiquidSample("buffer", 100, composition=composition))

    with pytest.raises(ComponentAlreadyPresentException):
        composition.with_component("NACL", 5)

    # Spellings of one component add up when mixing
    mixed = mix(
        (LiquidSample("nacl", 50, concentration=10), 50),
        (LiquidSample("NaCl", 50, concentration=30), 50),
    )
    assert len(mixed) == 1
    assert mixed["NaCl"] == pytest.approx(20)


def test_component_already_present():
    composition = Composition({"glucose": 0.5})

    # Recording the same thing again is harmless
    assert composition.with_component("glucose", 0.5) == composition
    assert composition.with_component("water", 0.5)["water"] == 0.5

    with pytest.raises(ComponentAlreadyPresentException) as excinfo:
        composition.with_component("glucose", 0.25)
    assert excinfo.value.name == "glucose"

    with pytest.raises(ComponentAlreadyPresentException):
        composition.merged({"glucose": 1.0})

    with pytest.raises(ComponentAlreadyPresentException):
        Composition([("glucose", 0.5), ("1X glucose", 0.6)])


def test_mix():
    # 10 X LB diluted ten fold into water gives LB at 1 X
    mixed = mix((LiquidSample("10 X LB", 10), 10), (LiquidSample("", 90), 90))
    assert mixed.keys() == {"LB"}
    assert mixed["LB"] == pytest.approx(1.0)

    # Mixtures bring their own sub-components, flattened into the result
    buffer = LiquidSample("buffer", 50, composition={"Tris": 20, "NaCl": 100})
    salt = LiquidSample("NaCl", 50, concentration=200)
    mixed = mix((buffer, 50), (salt, 50))
    assert mixed["Tris"] == pytest.approx(10)
    assert mixed["NaCl"] == pytest.approx(150)

    # The result is a plain composition, so it can be used to request the mixture
    request = LiquidSample("buffer", 20, composition=mixed)
    assert compatible(request, LiquidSample("buffer", 100, composition={"NaCl": 150, "Tris": 10}))

    with pytest.raises(ValueError):
        mix((buffer, 0))


def test_mix_without_concentration_warns():
    with pytest.warns(UserWarning):
        mixed = mix((LiquidSample("glycerol", 10), 10), (LiquidSample("water", 10, concentration=1.0), 10))
    assert mixed["glycerol"] == pytest.approx(0.5)


def test_location():
    location = Location.parse("Plate1:A1")

    assert location == Location("Plate1", "A1")
    assert str(location) == "Plate1:A1"
    assert not Location()
    assert Location.parse("") == Location()


def test_sample_dup():
    sample = LiquidSample("water", 100, Location("trough", "A01"), concentration=1.0)
    copy = sample.dup()
    copy.volume = 0

    assert sample.volume == 100
    assert copy.location == sample.location
    assert LiquidSample.empty(Location("plate", "B01")).is_empty
    assert not sample.is_mixture


if __name__ == "__main__":
    test_normalise_name()
    test_mix()
