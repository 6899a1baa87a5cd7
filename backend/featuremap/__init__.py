"""Feature map: selection viewer and PostGIS GeoJSON query service.

This package contains both halves of the feature map:

- ``featuremap.viewer``: the per-view session that loads a GeoJSON
  FeatureCollection, tracks selected features by click or rectangle,
  projects them into an attribute table and exports them as GeoJSON or CSV
- ``featuremap.api`` with ``featuremap.services`` and ``featuremap.db``: the
  read-only FastAPI service that serves source tables as a single GeoJSON
  FeatureCollection, filtered by label text and bounding box, with a hard
  cap on the number of rows

See README and module sub-docstrings for details on architecture and usage.
"""
