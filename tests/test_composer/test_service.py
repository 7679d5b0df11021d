"""Tests for the description composer."""

from datetime import UTC, datetime

import pytest

from atlas_engine.composer.renderer import MarkdownRenderer
from atlas_engine.composer.service import DescriptionComposer, is_layer_active
from atlas_engine.core.events import Events
from atlas_engine.errors import StoreOperationContext, StoreReadError
from atlas_engine.models import LayerType, ViewContext

HERO = {"role": "hero", "replacesBase": True}
FIXED_NOW = datetime(2026, 2, 1, tzinfo=UTC)


class StaticLayers:
    """Layer source returning a fixed list."""

    def __init__(self, layers):
        self.layers = list(layers)

    def get_layers_for_location(self, location_id):
        return list(self.layers)


class BrokenRenderer:
    def render(self, text):
        raise RuntimeError("renderer exploded")


class WrongShapeRenderer:
    def render(self, text):
        return {"html": text}


@pytest.fixture
def compose(bus):
    """Compose a fixed layer list with the plain-text renderer."""

    def _compose(layers, context=None, base=None, renderer=None):
        composer = DescriptionComposer(
            StaticLayers(layers), renderer=renderer, bus=bus, clock=lambda: FIXED_NOW
        )
        return composer.compile_for_location("gate", context or ViewContext(), base)

    return _compose


class TestEmptyAndFallback:
    @pytest.mark.unit
    def test_no_layers_no_fallback(self, compose):
        result = compose([])

        assert result.text == ""
        assert result.html == ""
        assert result.provenance.layers == ()
        assert result.provenance.location_id == "gate"
        assert result.provenance.compiled_at == FIXED_NOW

    @pytest.mark.unit
    def test_fallback_text_used_without_base_layers(self, compose):
        result = compose([], base="A quiet lane.")

        assert result.text == "A quiet lane."
        assert result.provenance.layers == ()

    @pytest.mark.unit
    def test_base_layers_beat_fallback(self, compose, make_layer):
        result = compose([make_layer("b", "base", "Stone arch.")], base="A quiet lane.")

        assert result.text == "Stone arch."


class TestRootSelection:
    @pytest.mark.unit
    def test_base_layers_concatenated_by_priority(self, compose, make_layer):
        layers = [
            make_layer("b2", "base", "Gulls wheel.", priority=1),
            make_layer("b1", "base", "A stone arch.", priority=5),
            make_layer("b3", "base", "   "),
        ]

        result = compose(layers)

        assert result.text == "A stone arch. Gulls wheel."
        assert [p.id for p in result.provenance.layers] == ["b1", "b2", "b3"]

    @pytest.mark.unit
    def test_hero_replaces_base(self, compose, make_layer):
        layers = [
            make_layer("base", "base", "A plain gate."),
            make_layer("hero", "dynamic", "Only ash remains.", metadata=HERO),
        ]

        result = compose(layers)

        assert result.text == "Only ash remains."
        assert [p.id for p in result.provenance.layers] == ["hero"]

    @pytest.mark.unit
    def test_latest_hero_wins(self, compose, make_layer):
        layers = [
            make_layer("h1", "dynamic", "Hero of the tenth.", day=10, metadata=HERO),
            make_layer("h2", "dynamic", "Hero of the fifteenth.", day=15, metadata=HERO),
        ]

        result = compose(layers)

        assert result.text == "Hero of the fifteenth."

    @pytest.mark.unit
    def test_blank_hero_ignored(self, compose, make_layer):
        layers = [
            make_layer("base", "base", "A plain gate."),
            make_layer("hero", "dynamic", "   ", metadata=HERO),
        ]

        assert compose(layers).text == "A plain gate."


class TestActiveFiltering:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "weather,expected",
        [("clear", False), ("rain", True), (None, True)],
    )
    def test_ambient_weather(self, make_layer, weather, expected):
        layer = make_layer("a", "ambient", "Rain.", attributes={"weatherType": "rain"})

        assert is_layer_active(layer, ViewContext(weather=weather)) is expected

    @pytest.mark.unit
    def test_ambient_time_bucket(self, make_layer):
        layer = make_layer("a", "ambient", "Stars.", attributes={"timeBucket": "night"})

        assert is_layer_active(layer, ViewContext(time="night")) is True
        assert is_layer_active(layer, ViewContext(time="noon")) is False
        assert is_layer_active(layer, ViewContext()) is True

    @pytest.mark.unit
    def test_ambient_needs_every_declared_attribute(self, make_layer):
        layer = make_layer(
            "a", "ambient", "x", attributes={"weatherType": "rain", "timeBucket": "night"}
        )

        assert is_layer_active(layer, ViewContext(weather="rain", time="night")) is True
        assert is_layer_active(layer, ViewContext(weather="rain", time="noon")) is False

    @pytest.mark.unit
    def test_ambient_without_attributes_always_active(self, make_layer):
        layer = make_layer("a", "ambient", "Wind.")

        assert is_layer_active(layer, ViewContext(weather="clear", time="noon")) is True

    @pytest.mark.unit
    def test_dynamic_always_active(self, make_layer):
        layer = make_layer("d", "dynamic", "Smoke.", attributes={"weatherType": "rain"})

        assert is_layer_active(layer, ViewContext(weather="clear")) is True

    @pytest.mark.unit
    def test_excluded_ambient_not_in_output(self, compose, make_layer):
        layers = [
            make_layer("base", "base", "A gate."),
            make_layer("rain", "ambient", "Rain falls.", attributes={"weatherType": "rain"}),
        ]

        clear = compose(layers, ViewContext(weather="clear"))
        rain = compose(layers, ViewContext(weather="rain"))

        assert clear.text == "A gate."
        assert [p.id for p in clear.provenance.layers] == ["base"]
        assert rain.text == "A gate.\n\nRain falls."


class TestMasking:
    @pytest.mark.unit
    def test_structural_layer_masks_base_sentence(self, compose, make_layer):
        layers = [
            make_layer("base", "base", "A plain wooden gate stands."),
            make_layer(
                "fire",
                "dynamic",
                "The gate is ablaze.",
                attributes={"supersedes": ["plain wooden gate"]},
            ),
        ]

        result = compose(layers)

        assert result.text == "The gate is ablaze."

    @pytest.mark.unit
    def test_fragment_does_not_match_inside_word(self, compose, make_layer):
        layers = [
            make_layer("base", "base", "Guards investigate."),
            make_layer("d", "dynamic", "A new gate.", attributes={"supersedes": ["gate"]}),
        ]

        assert compose(layers).text == "Guards investigate.\n\nA new gate."

    @pytest.mark.unit
    def test_supersedes_given_as_plain_string_ignored(self, compose, make_layer):
        layers = [
            make_layer("base", "base", "A cat sleeps. The gate stands."),
            make_layer("d", "dynamic", "Smoke rises.", attributes={"supersedes": "gate"}),
        ]

        result = compose(layers)

        assert result.text == "A cat sleeps. The gate stands.\n\nSmoke rises."
        assert [p.superseded for p in result.provenance.layers] == [False, False]

    @pytest.mark.unit
    def test_ambient_supersedes_ignored(self, compose, make_layer):
        layers = [
            make_layer("base", "base", "The gate stands."),
            make_layer("a", "ambient", "Fog.", attributes={"supersedes": ["gate"]}),
        ]

        assert compose(layers).text == "The gate stands.\n\nFog."

    @pytest.mark.unit
    def test_masks_hero_text(self, compose, make_layer):
        layers = [
            make_layer("hero", "dynamic", "Ash drifts. The old bell hangs.", metadata=HERO),
            make_layer("d", "dynamic", "The bell has fallen.", attributes={"supersedes": ["bell"]}),
        ]

        assert compose(layers).text == "Ash drifts.\n\nThe bell has fallen."

    @pytest.mark.unit
    def test_hero_supersedes_not_applied(self, compose, make_layer):
        layers = [
            make_layer(
                "hero", "dynamic", "Ash drifts.", metadata=HERO, attributes={"supersedes": ["Ash"]}
            ),
        ]

        assert compose(layers).text == "Ash drifts."

    @pytest.mark.unit
    def test_superseded_flag_on_root_layers(self, compose, make_layer):
        layers = [
            make_layer("b1", "base", "A plain wooden gate stands.", priority=2),
            make_layer("b2", "base", "Gulls wheel.", priority=1),
            make_layer(
                "fire",
                "dynamic",
                "The gate is ablaze.",
                attributes={"supersedes": ["plain wooden gate"]},
            ),
        ]

        flags = {p.id: p.superseded for p in compose(layers).provenance.layers}

        assert flags == {"b1": True, "b2": False, "fire": False}


class TestOrdering:
    @pytest.mark.unit
    def test_dynamic_before_ambient_then_priority_then_id(self, compose, make_layer):
        layers = [
            make_layer("amb-hi", "ambient", "Ambient high.", priority=9),
            make_layer("dyn-b", "dynamic", "Dynamic b.", priority=1),
            make_layer("dyn-a", "dynamic", "Dynamic a.", priority=1),
            make_layer("dyn-top", "dynamic", "Dynamic top.", priority=3),
            make_layer("base", "base", "Base."),
        ]

        result = compose(layers)

        assert result.text.split("\n\n") == [
            "Base.",
            "Dynamic top.",
            "Dynamic a.",
            "Dynamic b.",
            "Ambient high.",
        ]
        assert [p.id for p in result.provenance.layers] == [
            "base",
            "dyn-top",
            "dyn-a",
            "dyn-b",
            "amb-hi",
        ]
        assert [p.layer_type for p in result.provenance.layers][-1] is LayerType.AMBIENT

    @pytest.mark.unit
    def test_deterministic_regardless_of_input_order(self, compose, make_layer):
        layers = [
            make_layer("a", "ambient", "Wind."),
            make_layer("d", "dynamic", "Smoke."),
            make_layer("b", "base", "Gate."),
        ]

        first = compose(layers)
        second = compose(list(reversed(layers)))

        assert first.text == second.text
        assert first.provenance.layers == second.provenance.layers


class TestRendering:
    @pytest.mark.unit
    def test_markdown_rendering(self, compose, make_layer):
        result = compose([make_layer("b", "base", "A *red* door.")], renderer=MarkdownRenderer())

        assert result.html == "<p>A <em>red</em> door.</p>"
        assert result.text == "A *red* door."

    @pytest.mark.unit
    @pytest.mark.parametrize("renderer", [BrokenRenderer(), WrongShapeRenderer()])
    def test_render_failure_falls_back_to_text(self, compose, make_layer, bus, renderer):
        result = compose([make_layer("b", "base", "A door.")], renderer=renderer)

        assert result.html == "A door."
        failures = bus.get_event_log(event_type=Events.DESCRIPTION_RENDER_FAILED)
        assert len(failures) == 1
        assert failures[0].detail["location_id"] == "gate"

    @pytest.mark.unit
    def test_without_renderer_html_is_text(self, compose, make_layer):
        assert compose([make_layer("b", "base", "A door.")]).html == "A door."


class TestFailureSemantics:
    @pytest.mark.unit
    def test_store_errors_propagate(self, bus):
        class FailingLayers:
            def get_layers_for_location(self, location_id):
                raise StoreReadError(context=StoreOperationContext("layers.list_layers"))

        composer = DescriptionComposer(FailingLayers(), bus=bus)

        with pytest.raises(StoreReadError):
            composer.compile_for_location("gate")

    @pytest.mark.unit
    def test_emits_compiled_event(self, compose, make_layer, bus):
        compose(
            [
                make_layer("b", "base", "The gate stands."),
                make_layer("d", "dynamic", "Ash.", attributes={"supersedes": ["gate"]}),
            ]
        )

        event = bus.get_event_log(event_type=Events.DESCRIPTION_COMPILED)[-1]
        assert event.detail["location_id"] == "gate"
        assert event.detail["layer_count"] == 2
        assert event.detail["active_count"] == 1
        assert event.detail["masked_sentences"] == 1
        assert event.detail["hero"] is False

    @pytest.mark.unit
    def test_provenance_payload(self, compose, make_layer):
        payload = compose(
            [make_layer("b", "base", "Gate.")], ViewContext(weather="rain", time="dusk")
        ).to_dict()

        assert payload["provenance"]["locationId"] == "gate"
        assert payload["provenance"]["context"]["weather"] == "rain"
        assert payload["provenance"]["layers"][0] == {
            "id": "b",
            "layerType": "base",
            "priority": 0,
            "authoredAt": "2026-01-01T00:00:00+00:00",
            "superseded": False,
        }
        assert payload["provenance"]["compiledAt"] == FIXED_NOW.isoformat()
