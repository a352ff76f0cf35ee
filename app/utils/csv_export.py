"""
CSV export utilities
"""
import csv
import io
from typing import Any, Dict, Iterable, Iterator, List

from fastapi.responses import StreamingResponse


def format_cell(value: Any) -> str:
    """None -> empty, booleans -> yes/no, everything else via str()."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def iter_csv_lines(headers: List[str], rows: Iterable[Dict[str, Any]]) -> Iterator[str]:
    """Yield the header line, then one encoded line per row, in header order."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL)

    def flush() -> str:
        line = buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)
        return line

    writer.writerow(headers)
    yield flush()
    for row in rows:
        writer.writerow([format_cell(row.get(header)) for header in headers])
        yield flush()


def stream_csv(headers: List[str], rows: Iterable[Dict[str, Any]], filename: str = "export.csv") -> StreamingResponse:
    """
    Stream CSV data as HTTP response

    Args:
        headers: Column headers; also the keys read from each row
        rows: Iterable of dictionaries with data rows
        filename: Filename for Content-Disposition header
    """
    return StreamingResponse(
        iter_csv_lines(headers, rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
