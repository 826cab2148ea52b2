import csv
import mimetypes
import os
from datetime import datetime

from .controller import resolve


def export_rows_to_csv(rows, columns, prefix="export", directory="."):
    """Export rows to a CSV file.

    ``columns`` is a list of ``(header, field_path)`` pairs; dotted paths read
    joined rows. Returns the written filename.
    """
    filename = os.path.join(
        directory, f"{prefix}_export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
    )
    with open(filename, 'w', newline='', encoding='utf-8') as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow([header for header, _ in columns])
        for row in rows:
            writer.writerow([
                "" if resolve(row, path) is None else resolve(row, path)
                for _, path in columns
            ])
    return filename


async def upload_document(backend, folder, filename, content: bytes):
    """Upload a document and return its public URL."""
    content_type, _ = mimetypes.guess_type(filename)
    path = backend.unique_path(folder, os.path.basename(filename))
    return await backend.upload(path, content, content_type=content_type)


def format_money(amount):
    try:
        return f"GH₵ {float(amount or 0):,.2f}"
    except (TypeError, ValueError):
        return "GH₵ 0.00"
