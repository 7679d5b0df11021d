"""Tests for latest-authored selection and hero-prose detection."""

import pytest

from atlas_engine.layers.selection import is_hero_prose, latest_authored, select_hero_prose

HERO = {"role": "hero", "replacesBase": True}


class TestLatestAuthored:
    @pytest.mark.unit
    def test_empty(self):
        assert latest_authored([]) is None

    @pytest.mark.unit
    def test_latest_wins(self, make_layer):
        old = make_layer("old", "base", "Old.", day=1)
        new = make_layer("new", "base", "New.", day=9)

        assert latest_authored([new, old]).id == "new"
        assert latest_authored([old, new]).id == "new"

    @pytest.mark.unit
    def test_identical_timestamps_pick_smallest_id(self, make_layer):
        layers = [make_layer(layer_id, "base", "x", day=3) for layer_id in ("m", "b", "z")]

        assert latest_authored(layers).id == "b"
        assert latest_authored(reversed(layers)).id == "b"


class TestHeroProse:
    @pytest.mark.unit
    def test_flagged_dynamic_layer(self, make_layer):
        assert is_hero_prose(make_layer("h", "dynamic", "Ruins.", metadata=HERO)) is True

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "layer_type,metadata,value",
        [
            ("base", HERO, "Ruins."),
            ("ambient", HERO, "Ruins."),
            ("dynamic", {"role": "hero"}, "Ruins."),
            ("dynamic", {"role": "hero", "replacesBase": "true"}, "Ruins."),
            ("dynamic", {"role": "villain", "replacesBase": True}, "Ruins."),
            ("dynamic", HERO, "   "),
            ("dynamic", HERO, ""),
        ],
    )
    def test_not_hero(self, make_layer, layer_type, metadata, value):
        assert is_hero_prose(make_layer("x", layer_type, value, metadata=metadata)) is False

    @pytest.mark.unit
    def test_select_latest_hero(self, make_layer):
        layers = [
            make_layer("early", "dynamic", "Early hero.", day=10, metadata=HERO),
            make_layer("late", "dynamic", "Late hero.", day=15, metadata=HERO),
            make_layer("plain", "dynamic", "Not a hero.", day=20),
        ]

        assert select_hero_prose(layers).value == "Late hero."

    @pytest.mark.unit
    def test_select_none(self, make_layer):
        assert select_hero_prose([make_layer("b", "base", "Base.")]) is None
