"""Description composer.

Turns the layers currently stored for a location into one narrative text,
its rendered markup, and a provenance record. Composition is a pure function
of the layers, the view context and the optional fallback text, so identical
inputs always produce identical text and markup.

Pipeline
--------
1. Fetch the location's current layers (flat, not tick-indexed).
2. Nothing stored and no fallback text: return an empty result.
3. Root text: the latest hero-prose layer if any (base layers are then
   ignored), else the base layers joined with spaces, else the fallback.
4. Keep dynamic layers unconditionally; keep ambient layers whose declared
   ``weatherType`` / ``timeBucket`` match the view context.
5. Drop root sentences mentioning a ``supersedes`` fragment of a kept
   dynamic layer.
6. Emit the masked root, then kept layers by type priority, own priority
   (both descending) and id.
7. Join with blank lines, render, and record provenance.

Superseded flags
----------------
Masking runs on the merged root text, so a flag is attributed per root
layer: a base or hero layer is marked ``superseded`` when a fragment that
removed at least one sentence also occurs, as a whole word, in that layer's
own value. Appended layers are never marked.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from atlas_engine.composer.masking import MaskResult, fragment_pattern, mask_superseded
from atlas_engine.composer.renderer import MarkupRenderer
from atlas_engine.core.bus import AtlasBus, get_bus
from atlas_engine.core.events import Events
from atlas_engine.errors import RenderError
from atlas_engine.layers.selection import is_hero_prose, select_hero_prose
from atlas_engine.models import (
    LAYER_TYPE_PRIORITY,
    CompiledDescription,
    CompiledProvenance,
    DescriptionLayer,
    LayerProvenance,
    LayerType,
    ViewContext,
    utc_now,
)

logger = logging.getLogger(__name__)


class LayerSource(Protocol):
    def get_layers_for_location(self, location_id: str) -> list[DescriptionLayer]: ...


def is_layer_active(layer: DescriptionLayer, context: ViewContext) -> bool:
    """Whether a non-root layer applies under ``context``."""
    if layer.layer_type is LayerType.DYNAMIC:
        return True
    if layer.layer_type is not LayerType.AMBIENT:
        return False
    weather = layer.attributes.get("weatherType")
    if weather and context.weather and weather != context.weather:
        return False
    time_bucket = layer.attributes.get("timeBucket")
    if time_bucket and context.time and time_bucket != context.time:
        return False
    return True


def _section_order(layer: DescriptionLayer) -> tuple[int, int, str]:
    return (-LAYER_TYPE_PRIORITY[layer.layer_type], -layer.priority, layer.id)


class DescriptionComposer:
    """Compose location descriptions from layers and a view context."""

    def __init__(
        self,
        layers: LayerSource,
        *,
        renderer: MarkupRenderer | None = None,
        bus: AtlasBus | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._layers = layers
        self._renderer = renderer
        self._bus = bus or get_bus()
        self._clock = clock

    def compile_for_location(
        self,
        location_id: str,
        context: ViewContext | None = None,
        base_description: str | None = None,
    ) -> CompiledDescription:
        """Compose the description for ``location_id``.

        Args:
            location_id: Location whose layers are composed.
            context: Viewer conditions; defaults to an empty context.
            base_description: Fallback root text used when the location has
                no base layers and no hero prose.

        Returns:
            The composed text, markup and provenance. Never raises for
            missing data; store failures propagate unchanged.
        """
        started = time.perf_counter()
        context = context or ViewContext()
        layers = self._layers.get_layers_for_location(location_id)

        if not layers and not base_description:
            return self._result(location_id, context, "", "", [])

        hero = select_hero_prose(layers)
        if hero is not None:
            root_layers = [hero]
            root_text = hero.value.strip()
        else:
            root_layers = sorted(
                (layer for layer in layers if layer.layer_type is LayerType.BASE),
                key=lambda layer: (-layer.priority, layer.id),
            )
            if root_layers:
                root_text = " ".join(
                    layer.value.strip() for layer in root_layers if layer.value.strip()
                )
            else:
                root_text = (base_description or "").strip()

        active = [
            layer
            for layer in layers
            if layer.layer_type is not LayerType.BASE
            and not is_hero_prose(layer)
            and is_layer_active(layer, context)
        ]
        fragments = [
            fragment
            for layer in active
            if layer.layer_type is LayerType.DYNAMIC
            for fragment in layer.supersedes
        ]
        masked = mask_superseded(root_text, fragments)
        ordered = sorted(active, key=_section_order)

        sections = [masked.text] if masked.text else []
        sections.extend(layer.value.strip() for layer in ordered if layer.value.strip())
        text = "\n\n".join(sections).strip()
        html = self._render(location_id, text)

        provenance = [self._provenance(layer, masked) for layer in root_layers]
        provenance.extend(self._provenance(layer, None) for layer in ordered)

        self._bus.emit(
            Events.DESCRIPTION_COMPILED,
            {
                "location_id": location_id,
                "layer_count": len(layers),
                "active_count": len(active),
                "hero": hero is not None,
                "masked_sentences": len(masked.removed),
                "text_length": len(text),
                "duration_ms": round((time.perf_counter() - started) * 1000, 3),
            },
            source="composer",
        )
        return self._result(location_id, context, text, html, provenance)

    # ── Helpers ─────────────────────────────────────────────────────────────

    def _render(self, location_id: str, text: str) -> str:
        if self._renderer is None or not text:
            return text
        try:
            html = self._renderer.render(text)
            if not isinstance(html, str):
                raise RenderError(f"renderer returned {type(html).__name__}, expected str")
        except Exception as exc:
            logger.warning("Rendering failed for %s, returning plain text: %s", location_id, exc)
            self._bus.emit(
                Events.DESCRIPTION_RENDER_FAILED,
                {"location_id": location_id, "error": str(exc)},
                source="composer",
            )
            return text
        return html

    @staticmethod
    def _provenance(layer: DescriptionLayer, masked: MaskResult | None) -> LayerProvenance:
        superseded = False
        if masked is not None:
            superseded = any(
                fragment_pattern(fragment).search(layer.value)
                for fragment in masked.matched_fragments
            )
        return LayerProvenance(
            id=layer.id,
            layer_type=layer.layer_type,
            priority=layer.priority,
            authored_at=layer.authored_at,
            superseded=superseded,
        )

    def _result(
        self,
        location_id: str,
        context: ViewContext,
        text: str,
        html: str,
        provenance: list[LayerProvenance],
    ) -> CompiledDescription:
        return CompiledDescription(
            text=text,
            html=html,
            provenance=CompiledProvenance(
                location_id=location_id,
                layers=tuple(provenance),
                context=context,
                compiled_at=self._clock(),
            ),
        )
