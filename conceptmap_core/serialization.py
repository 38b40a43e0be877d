"""
Map serialization - JSON export/import and CSV export of nodes.

JSON uses the MapDocument shape:
    { nodes, edges, viewMode, settings, title }   (pretty-printed)

CSV lists nodes only, one row per node, every value quoted:
    id,label,shape,color,tags,notes
"""

import csv
import io
import json
import logging
import re
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .errors import MapImportError
from .models import DEFAULT_NODE_COLOR, DEFAULT_NODE_SHAPE, MapDocument
from .validation import IssueSeverity, validate_map

if TYPE_CHECKING:
    from .models import Node

logger = logging.getLogger(__name__)

CSV_COLUMNS = ("id", "label", "shape", "color", "tags", "notes")
REQUIRED_KEYS = ("nodes", "edges")


def export_json(document: MapDocument) -> str:
    """Serialize a map document as pretty-printed JSON."""
    return json.dumps(document.to_json_dict(), indent=2)


def import_json(text: str | bytes) -> MapDocument:
    """
    Parse a map document exported by `export_json` (or a compatible tool).

    Both `nodes` and `edges` must be present; `viewMode`, `settings` and
    `title` are optional. Structural issues (e.g. edges pointing at missing
    nodes) are logged but do not reject the document.

    Raises:
        MapImportError: if the text is not JSON, not an object, lacks
            `nodes`/`edges`, or does not match the document schema
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MapImportError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MapImportError("Map document must be a JSON object")

    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise MapImportError(f"Map document is missing required fields: {', '.join(missing)}")

    try:
        document = MapDocument.model_validate(data)
    except ValidationError as e:
        raise MapImportError(f"Invalid map document ({e.error_count()} errors): {e}") from e

    for issue in validate_map(document.nodes, document.edges):
        if issue.severity != IssueSeverity.INFO:
            logger.warning("Imported map: %s", issue.message)

    return document


def export_csv(nodes: list["Node"]) -> str:
    """
    Export nodes as CSV text.

    Tags are joined with ';'. Missing shape/color fall back to the node
    defaults; missing label/notes export as empty strings.
    """
    buffer = io.StringIO()
    buffer.write(",".join(CSV_COLUMNS) + "\n")

    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for node in nodes:
        data = node.data
        writer.writerow([
            node.id,
            data.label or "",
            data.shape or DEFAULT_NODE_SHAPE,
            data.color or DEFAULT_NODE_COLOR,
            ";".join(data.tags or []),
            data.notes or "",
        ])

    return buffer.getvalue().removesuffix("\n")


def sanitize_file_name(title: str) -> str:
    """Turn a map title into a safe, lower-case file name stem."""
    return re.sub(r"[^a-zA-Z0-9_-]", "-", title).lower()
