"""Commands accepted by ViewerSession.dispatch.

Input plumbing (buttons, map clicks, the rectangle tool, file pickers)
translates user actions into these values; the session applies them.
"""

from __future__ import annotations

import dataclasses
import pathlib
from typing import Any

from featuremap.utils.geometry import BBox


@dataclasses.dataclass(frozen=True)
class Load:
    """Replace the active collection with a raw import."""

    raw: str | bytes | dict[str, Any]


@dataclasses.dataclass(frozen=True)
class LoadFile:
    """Replace the active collection with a GeoJSON file."""

    path: pathlib.Path


@dataclasses.dataclass(frozen=True)
class LoadSource:
    """Replace the active collection with one fetched from the service."""

    url: str
    params: dict[str, Any] | None = None


@dataclasses.dataclass(frozen=True)
class Toggle:
    """Click on a feature."""

    feature_id: int


@dataclasses.dataclass(frozen=True)
class SelectAll:
    pass


@dataclasses.dataclass(frozen=True)
class DeselectAll:
    pass


@dataclasses.dataclass(frozen=True)
class ClearSelection:
    """Same effect as DeselectAll; bound to its own button."""


@dataclasses.dataclass(frozen=True)
class RectangleSelect:
    """Rectangle drawn with the box-select tool."""

    bbox: BBox


@dataclasses.dataclass(frozen=True)
class ExportGeoJSON:
    """Export the selection; written to path when one is given."""

    path: pathlib.Path | None = None


@dataclasses.dataclass(frozen=True)
class ExportCSV:
    """Export the selection as CSV; written to path when one is given."""

    path: pathlib.Path | None = None


Command = (
    Load
    | Toggle
    | SelectAll
    | DeselectAll
    | ClearSelection
    | RectangleSelect
    | ExportGeoJSON
    | ExportCSV
)

AsyncCommand = LoadFile | LoadSource
