"""Attribute table and exports of the selected features.

The column set of the table and of the CSV export is the property key
union fixed when the collection was loaded, so properties that only
unselected features carry still get a column. Rows follow selection
insertion order.

Example:
    Render and export the current selection:
        >>> from featuremap.viewer import projector
        >>> table = projector.render_table(store, collection.key_union)
        >>> table.filter("zagreb")
        >>> html = table.to_html()
        >>> text = projector.export_csv(store, collection.key_union)
"""

from __future__ import annotations

import csv
import dataclasses
import html
import io
import json
from typing import TYPE_CHECKING, Any

from featuremap.viewer import errors

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from featuremap.viewer import models
    from featuremap.viewer.selection import SelectionStore

GEOJSON_FILENAME = "selected_features.geojson"
CSV_FILENAME = "selected_features.csv"
POPUP_PROPERTY_LIMIT = 10


def cell_text(properties: Mapping[str, Any], key: str) -> str:
    """Stringify a property value; a missing key becomes ``""``."""
    if key not in properties:
        return ""
    value = properties[key]
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, dict | list):
        return json.dumps(value, separators=(",", ":"))
    # Integral floats from numeric columns print without the ".0".
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclasses.dataclass
class TableRow:
    number: int
    feature_id: int
    cells: tuple[str, ...]
    visible: bool = True

    @property
    def text(self) -> str:
        """Full text of the row as displayed, number cell included."""
        return str(self.number) + "".join(self.cells)


@dataclasses.dataclass
class AttributeTable:
    """Tabular view of the selection.

    Attributes:
        header: Column names, the key union snapshot.
        rows: One row per selected feature in insertion order.
    """

    header: tuple[str, ...]
    rows: list[TableRow] = dataclasses.field(default_factory=list)

    @property
    def visible_rows(self) -> list[TableRow]:
        return [row for row in self.rows if row.visible]

    def filter(self, query: str) -> None:
        """Show only rows whose text contains query, case-insensitively.

        Only visibility changes; a blank query shows every row.
        """
        needle = query.strip().casefold()
        for row in self.rows:
            row.visible = needle in row.text.casefold()

    def to_html(self) -> str:
        """Render ``<thead>`` and ``<tbody>`` markup with escaped text."""
        head = "".join(f"<th>{html.escape(key)}</th>" for key in self.header)
        lines = [f"<thead><tr><th>#</th>{head}</tr></thead>", "<tbody>"]
        for row in self.rows:
            style = "" if row.visible else ' style="display:none"'
            cells = "".join(f"<td>{html.escape(c)}</td>" for c in row.cells)
            lines.append(f"<tr{style}><td>{row.number}</td>{cells}</tr>")
        lines.append("</tbody>")
        return "\n".join(lines)


def render_table(store: SelectionStore, keys: Sequence[str]) -> AttributeTable:
    """Project the selection onto the key union columns."""
    header = tuple(keys)
    table = AttributeTable(header=header)
    for number, entry in enumerate(store, start=1):
        props = entry.feature.properties
        table.rows.append(
            TableRow(
                number=number,
                feature_id=entry.feature_id,
                cells=tuple(cell_text(props, key) for key in header),
            )
        )
    return table


def _require_selection(store: SelectionStore) -> None:
    if not len(store):
        raise errors.EmptySelectionError()


def export_geojson(store: SelectionStore) -> dict[str, Any]:
    """Return the selected features as a GeoJSON FeatureCollection.

    Raises:
        EmptySelectionError: If nothing is selected.
    """
    _require_selection(store)
    return {
        "type": "FeatureCollection",
        "features": [entry.feature.to_geojson() for entry in store],
    }


def dump_geojson(document: Mapping[str, Any]) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False)


def _csv_text(rows: Iterable[Sequence[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue().removesuffix("\n")


def export_csv(store: SelectionStore, keys: Sequence[str]) -> str:
    """Return the selected features as CSV.

    Every field, header included, is double-quoted with embedded quotes
    doubled. Rows are joined with ``\\n`` and there is no trailing newline.

    Raises:
        EmptySelectionError: If nothing is selected.
    """
    _require_selection(store)
    table = render_table(store, keys)
    return _csv_text([table.header, *(row.cells for row in table.rows)])


def popup_summary(feature: models.Feature) -> str:
    """Escaped ``key: value`` lines of the first properties of a feature."""
    lines = [
        f"<b>{html.escape(key)}</b>: "
        f"{html.escape(cell_text(feature.properties, key))}"
        for key in list(feature.properties)[:POPUP_PROPERTY_LIMIT]
    ]
    return "<br/>".join(lines)
