"""Renderable handles, styles and viewport of the feature viewer.

The map itself is drawn by an external renderer. This module models the
part of it the selection logic drives: one handle per loaded feature with
its current style, and the viewport that is fitted to a loaded collection.

Handles are created by kind:

- ``"path"`` for lines and areas, which can be restyled;
- ``"circle_marker"`` for points drawn as circles, which can be restyled;
- ``"marker"`` for points drawn as icon pins, which have no style.
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Literal, NamedTuple

if TYPE_CHECKING:
    from featuremap.utils.geometry import BBox
    from featuremap.viewer import models

RenderKind = Literal["path", "circle_marker", "marker"]
PointRenderer = Literal["circle_marker", "marker"]

FIT_MAX_ZOOM = 16


class Style(NamedTuple):
    color: str
    weight: int
    fill_opacity: float


DEFAULT_STYLE = Style(color="#3388ff", weight=2, fill_opacity=0.2)
SELECTED_STYLE = Style(color="#ff7800", weight=3, fill_opacity=0.35)
POINT_STYLE = Style(color="#3388ff", weight=2, fill_opacity=0.9)

_STYLEABLE: frozenset[str] = frozenset({"path", "circle_marker"})


@dataclasses.dataclass
class FeatureHandle:
    """On-map representation of one loaded feature.

    Attributes:
        feature_id: Session identity of the feature.
        kind: How the feature is drawn.
        default_style: Style restored on deselection, None for kinds
            without a style.
        style: Current style, None for kinds without a style.
        highlighted: Whether the handle currently shows the selected state.
    """

    feature_id: int
    kind: RenderKind
    default_style: Style | None
    style: Style | None = None
    highlighted: bool = False

    def __post_init__(self) -> None:
        if self.style is None:
            self.style = self.default_style

    @property
    def supports_style(self) -> bool:
        return self.kind in _STYLEABLE

    def set_selected(self, selected: bool) -> bool:
        """Show or clear the selected visual state.

        Kinds without a style keep their look; the selection itself is
        tracked by the store regardless.

        Returns:
            True when the visual state changed.
        """
        if not self.supports_style:
            return False
        self.style = SELECTED_STYLE if selected else self.default_style
        self.highlighted = selected
        return True


def make_handle(
    feature_id: int,
    feature: models.Feature,
    point_renderer: PointRenderer = "circle_marker",
) -> FeatureHandle:
    """Create the handle for a feature, dispatching on geometry kind."""
    if feature.is_point:
        if point_renderer == "marker":
            return FeatureHandle(feature_id, "marker", default_style=None)
        return FeatureHandle(feature_id, "circle_marker", POINT_STYLE)
    return FeatureHandle(feature_id, "path", DEFAULT_STYLE)


@dataclasses.dataclass
class Viewport:
    """Map viewport state.

    Attributes:
        bounds: Extent last fitted, None before any fit.
        max_zoom: Zoom cap applied by the last fit.
    """

    bounds: BBox | None = None
    max_zoom: int | None = None

    def fit_bounds(self, bounds: BBox, max_zoom: int = FIT_MAX_ZOOM) -> None:
        self.bounds = bounds
        self.max_zoom = max_zoom
