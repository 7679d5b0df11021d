"""Tick-indexed description layers and hero-prose selection."""

from atlas_engine.layers.selection import is_hero_prose, latest_authored, select_hero_prose
from atlas_engine.layers.temporal import TemporalLayerStore

__all__ = ["TemporalLayerStore", "is_hero_prose", "latest_authored", "select_hero_prose"]
