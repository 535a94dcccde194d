"""
CSV export of a session's results.
"""

import csv
import io
from typing import Iterable

from ..models import Result

CSV_COLUMNS = ['id', 'nickname', 'heads', 'tails', 'sequence', 'created_at']


def results_to_csv(results: Iterable[Result]) -> str:
    """All fields quoted so nicknames with commas or quotes survive spreadsheets."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(CSV_COLUMNS)
    for row in results:
        writer.writerow([
            row.id,
            row.nickname or '',
            row.heads,
            row.tails,
            row.sequence,
            row.created_at,
        ])
    return buffer.getvalue()


def export_filename(session_id: str) -> str:
    return f'coin-toss-{session_id}.csv'
