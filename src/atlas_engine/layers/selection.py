"""Pure selection rules shared by the layer store and the composer."""

from __future__ import annotations

from collections.abc import Iterable
from operator import attrgetter

from atlas_engine.models import DescriptionLayer, LayerType


def latest_authored(layers: Iterable[DescriptionLayer]) -> DescriptionLayer | None:
    """Return the most recently authored layer.

    Layers sharing the latest ``authored_at`` are broken by the
    lexicographically smallest id, so the choice never depends on store
    iteration order.
    """
    ordered = sorted(layers, key=attrgetter("id"))
    if not ordered:
        return None
    # max() keeps the first of equal maxima, i.e. the smallest id
    return max(ordered, key=attrgetter("authored_at"))


def is_hero_prose(layer: DescriptionLayer) -> bool:
    """True for a dynamic layer that replaces the base description outright.

    Requires ``metadata.role == "hero"``, ``metadata.replacesBase is True``
    and a value that is not blank once trimmed.
    """
    if layer.layer_type is not LayerType.DYNAMIC:
        return False
    metadata = layer.metadata or {}
    if metadata.get("role") != "hero" or metadata.get("replacesBase") is not True:
        return False
    return bool(layer.value and layer.value.strip())


def select_hero_prose(layers: Iterable[DescriptionLayer]) -> DescriptionLayer | None:
    """Pick the hero-prose layer that should replace the base text, if any."""
    return latest_authored(layer for layer in layers if is_hero_prose(layer))
