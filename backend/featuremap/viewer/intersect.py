"""Rectangle hit-testing for box selection.

A single Point is hit when it lies inside the rectangle, bounds inclusive.
Every other geometry is hit when its own bounding box overlaps the
rectangle on both axes. This over-selects shapes whose box touches the
rectangle while their outline does not; exact shape intersection is not
attempted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from featuremap.utils import geometry

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from featuremap.utils.geometry import BBox
    from featuremap.viewer import models


def feature_hit(feature: models.Feature, rect: BBox) -> bool:
    if feature.bbox is None:
        return False
    if feature.is_point:
        minx, miny, _, _ = feature.bbox
        return geometry.point_in_bbox((minx, miny), rect)
    return geometry.bboxes_overlap(feature.bbox, rect)


def features_in_rectangle(
    features: Iterable[tuple[int, models.Feature]],
    rect: BBox,
) -> Iterator[int]:
    """Yield identities of features hit by a rectangle, in load order.

    Args:
        features: (identity, feature) pairs of the active collection.
        rect: Rectangle as (minx, miny, maxx, maxy).
    """
    rect = geometry.normalize_bbox(rect)
    for feature_id, feature in features:
        if feature_hit(feature, rect):
            yield feature_id
