"""Per-view session owning the loaded collection and its selection.

A ViewerSession is created for each map view. It owns the active
FeatureCollection, the handles drawn for it, the SelectionStore, the
viewport and the notices shown to the user. Nothing here is shared between
sessions.

Two entry points are offered:

- the public methods (``load``, ``toggle``, ``export_csv`` ...) raise
  ViewerError subclasses for programmatic callers;
- ``dispatch`` applies a command from the UI, turning any ViewerError into
  a user-visible notice and leaving the state as it was.

Example:
    Click, select all and export:
        >>> session = ViewerSession()
        >>> session.dispatch(commands.Load(raw_geojson))
        >>> first = session.loaded_ids[0]
        >>> session.dispatch(commands.Toggle(first))
        >>> session.dispatch(commands.SelectAll())
        >>> csv_text = session.dispatch(commands.ExportCSV())
"""

from __future__ import annotations

import functools
import itertools
from typing import TYPE_CHECKING, Any

from loguru import logger

from featuremap.utils import geometry
from featuremap.viewer import (
    commands,
    errors,
    intersect,
    loader,
    models,
    projector,
    render,
    selection,
)

if TYPE_CHECKING:
    import os
    import pathlib
    from collections.abc import Mapping, Sequence

    import httpx


class ViewerSession:
    """View-model of one map view.

    Args:
        point_renderer: How Point features are drawn; icon markers cannot
            be restyled on selection.
    """

    def __init__(
        self, point_renderer: render.PointRenderer = "circle_marker"
    ) -> None:
        self.point_renderer = point_renderer
        self.collection = models.FeatureCollection()
        self.handles: dict[int, render.FeatureHandle] = {}
        self.selection = selection.SelectionStore()
        self.viewport = render.Viewport()
        self.notices: list[str] = []
        self._ids = itertools.count(1)
        self._features: dict[int, models.Feature] = {}

    @property
    def key_union(self) -> tuple[str, ...]:
        return self.collection.key_union

    @property
    def loaded_ids(self) -> tuple[int, ...]:
        return tuple(self._features)

    def feature(self, feature_id: int) -> models.Feature | None:
        return self._features.get(feature_id)

    def apply(self, collection: models.FeatureCollection) -> None:
        """Make collection the active one, dropping the previous selection.

        Identities continue from the previous load, so an identity kept by
        a caller can never point into the new collection.
        """
        features = {next(self._ids): f for f in collection.features}
        handles = {
            fid: render.make_handle(fid, f, self.point_renderer)
            for fid, f in features.items()
        }
        self.selection.reset(
            {fid: (features[fid], handles[fid]) for fid in features}
        )
        self.collection = collection
        self._features = features
        self.handles = handles
        if collection.bounds is not None:
            self.viewport.fit_bounds(collection.bounds)
        logger.info(
            "Loaded {} features with {} property keys",
            len(collection),
            len(collection.key_union),
        )

    def load(self, raw: str | bytes | Mapping[str, Any]) -> None:
        """Parse and apply a raw import.

        Raises:
            ParseError: If raw is not a valid FeatureCollection; the
                current collection and selection are kept.
        """
        self.apply(loader.parse_collection(raw))

    async def load_file(self, path: str | os.PathLike[str]) -> None:
        self.apply(await loader.read_collection_file(path))

    async def load_source(
        self,
        url: str,
        params: Mapping[str, Any] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Fetch a collection and apply it once the response arrives.

        Concurrent loads are not sequenced: the one completing last wins.
        """
        self.apply(await loader.fetch_collection(url, params, client))

    def toggle(self, feature_id: int) -> bool:
        return self.selection.toggle(feature_id)

    def select_all(self) -> int:
        return self.selection.select_all()

    def deselect_all(self) -> int:
        return self.selection.clear()

    def rectangle_select(self, bbox: Sequence[float]) -> int:
        """Add every feature hit by the rectangle to the selection.

        Raises:
            ParseError: If bbox does not hold four numbers.
        """
        try:
            rect = geometry.normalize_bbox(bbox)
        except (geometry.GeometryError, TypeError, ValueError) as exc:
            raise errors.ParseError(f"Invalid rectangle: {exc}") from exc
        hits = list(
            intersect.features_in_rectangle(self._features.items(), rect)
        )
        return self.selection.union(hits)

    def table(self, query: str = "") -> projector.AttributeTable:
        table = projector.render_table(self.selection, self.key_union)
        if query:
            table.filter(query)
        return table

    @staticmethod
    def _write(path: pathlib.Path | None, default_name: str, text: str) -> None:
        if path is None:
            return
        if path.is_dir():
            path = path / default_name
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise errors.ViewerError(f"Cannot write {path}: {exc}") from exc

    def export_geojson(self, path: pathlib.Path | None = None) -> str:
        """Serialize the selection as GeoJSON, optionally writing it.

        A directory path receives ``selected_features.geojson``.

        Raises:
            EmptySelectionError: If nothing is selected.
        """
        text = projector.dump_geojson(projector.export_geojson(self.selection))
        self._write(path, projector.GEOJSON_FILENAME, text)
        return text

    def export_csv(self, path: pathlib.Path | None = None) -> str:
        """Serialize the selection as CSV over the key union columns.

        Raises:
            EmptySelectionError: If nothing is selected.
        """
        text = projector.export_csv(self.selection, self.key_union)
        self._write(path, projector.CSV_FILENAME, text)
        return text

    def notify(self, error: errors.ViewerError) -> None:
        logger.warning("{}: {}", type(error).__name__, error)
        self.notices.append(str(error))

    def dispatch(self, command: commands.Command) -> Any:
        """Apply a UI command.

        Returns:
            Export text for export commands, a count or flag for selection
            commands, and None when the command failed with a notice.
        """
        try:
            return self._handle(command)
        except errors.ViewerError as exc:
            self.notify(exc)
            return None

    async def dispatch_async(
        self, command: commands.Command | commands.AsyncCommand
    ) -> Any:
        """Apply a command, suspending for file and network loads."""
        try:
            if isinstance(command, commands.LoadFile):
                return await self.load_file(command.path)
            if isinstance(command, commands.LoadSource):
                return await self.load_source(command.url, command.params)
        except errors.ViewerError as exc:
            self.notify(exc)
            return None
        return self.dispatch(command)

    @functools.singledispatchmethod
    def _handle(self, command: object) -> Any:
        raise TypeError(f"Unsupported command: {command!r}")

    @_handle.register(commands.Load)
    def _(self, command: commands.Load) -> None:
        self.load(command.raw)

    @_handle.register(commands.Toggle)
    def _(self, command: commands.Toggle) -> bool:
        return self.toggle(command.feature_id)

    @_handle.register(commands.SelectAll)
    def _(self, command: commands.SelectAll) -> int:
        return self.select_all()

    @_handle.register(commands.DeselectAll)
    @_handle.register(commands.ClearSelection)
    def _(self, command: object) -> int:
        return self.deselect_all()

    @_handle.register(commands.RectangleSelect)
    def _(self, command: commands.RectangleSelect) -> int:
        return self.rectangle_select(command.bbox)

    @_handle.register(commands.ExportGeoJSON)
    def _(self, command: commands.ExportGeoJSON) -> str:
        return self.export_geojson(command.path)

    @_handle.register(commands.ExportCSV)
    def _(self, command: commands.ExportCSV) -> str:
        return self.export_csv(command.path)
