"""Tests for the sentence splitter and supersede masking."""

import pytest

from atlas_engine.composer.masking import mask_superseded, split_sentences


class TestSplitSentences:
    @pytest.mark.unit
    def test_keeps_terminators(self):
        assert split_sentences("A gate. Is it open? Yes!") == ["A gate.", "Is it open?", "Yes!"]

    @pytest.mark.unit
    def test_trailing_fragment_without_terminator(self):
        assert split_sentences("A gate. Then silence") == ["A gate.", "Then silence"]

    @pytest.mark.unit
    def test_collapses_whitespace_between_sentences(self):
        assert split_sentences("One.\n\n  Two.") == ["One.", "Two."]

    @pytest.mark.unit
    def test_known_limitation_abbreviations(self):
        # The splitter does not special-case abbreviations.
        assert split_sentences("Mr. Hobb waits.") == ["Mr.", "Hobb waits."]

    @pytest.mark.unit
    def test_decimal_numbers_stay_whole(self):
        assert split_sentences("It weighs 2.5 stone.") == ["It weighs 2.5 stone."]

    @pytest.mark.unit
    def test_empty(self):
        assert split_sentences("") == []


class TestMaskSuperseded:
    @pytest.mark.unit
    def test_drops_matching_sentence(self):
        result = mask_superseded(
            "A plain wooden gate stands. Gulls wheel overhead.", ["plain wooden gate"]
        )

        assert result.text == "Gulls wheel overhead."
        assert result.removed == ("A plain wooden gate stands.",)
        assert result.matched_fragments == frozenset({"plain wooden gate"})

    @pytest.mark.unit
    def test_word_boundary(self):
        result = mask_superseded("The guards investigate the noise.", ["gate"])

        assert result.text == "The guards investigate the noise."
        assert result.removed == ()

    @pytest.mark.unit
    def test_case_insensitive(self):
        assert mask_superseded("THE GATE creaks. Rain.", ["the gate"]).text == "Rain."

    @pytest.mark.unit
    def test_regex_characters_are_literal(self):
        assert mask_superseded("Ale (cheap) sold here. Quiet.", ["(cheap)"]).text == (
            "Ale (cheap) sold here. Quiet."
        )
        assert mask_superseded("A 3+ storey tower. Quiet.", ["3"]).text == "Quiet."

    @pytest.mark.unit
    def test_no_fragments_returns_text_unchanged(self):
        text = "Mr. Hobb waits.   Nothing else."

        assert mask_superseded(text, []).text == text
        assert mask_superseded(text, ["", "  "]).text == text

    @pytest.mark.unit
    def test_everything_masked(self):
        assert mask_superseded("The gate stands.", ["gate"]).text == ""

    @pytest.mark.unit
    def test_unmatched_fragment_not_reported(self):
        result = mask_superseded("The gate stands.", ["gate", "tower"])

        assert result.matched_fragments == frozenset({"gate"})
