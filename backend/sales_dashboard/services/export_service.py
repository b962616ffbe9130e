from __future__ import annotations

import csv
import io
from typing import Sequence

from ..models.table import CellValue, Column, Row, cell_to_string


def _export_cell(value: CellValue) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    return cell_to_string(value)


def convert_to_csv(rows: Sequence[Row], columns: Sequence[Column]) -> str:
    """Serialize rows back to comma-separated text in column order.

    Dates are written as YYYY-MM-DD; cells holding a comma, quote or line break
    are quoted with doubled-quote escaping.
    """
    if not rows:
        return ""

    headers = [c.name for c in columns]
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_export_cell(row.get(h)) for h in headers])
    return output.getvalue()
