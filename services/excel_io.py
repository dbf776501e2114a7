"""
Excel import/export for results workbooks and ranking tables.

Workbooks are read into the same list-of-rows shape the CSV tokenizer
produces, so both formats go through one classifier.
"""
import io
import math
from datetime import date, datetime

import pandas as pd

import config
from services.errors import FatalParseError


def _cell_text(value) -> str:
    """Render one workbook cell the way it would appear in a CSV export."""
    if value is None:
        return ''
    if isinstance(value, float):
        if math.isnan(value):
            return ''
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if value is pd.NaT:
        return ''
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def read_workbook_rows(source) -> list:
    """
    Read the first sheet of an .xlsx/.xls workbook into rows of strings.

    Args:
        source: Path or binary file-like object

    Returns:
        List of rows (lists of stripped strings), blank rows dropped
    """
    if hasattr(source, 'read'):
        # Upload streams are not always seekable
        source = io.BytesIO(source.read())
    try:
        raw_df = pd.read_excel(source, sheet_name=0, header=None, dtype=object)
    except Exception as e:
        raise FatalParseError(f'Could not read Excel file: {str(e)}')

    rows = []
    for values in raw_df.itertuples(index=False, name=None):
        row = [_cell_text(v) for v in values]
        # Trailing empty cells come from wider rows elsewhere in the sheet
        while row and not row[-1]:
            row.pop()
        if any(row):
            rows.append(row)
    return rows


def export_rankings_to_excel(rankings: list, filepath: str):
    """Export a computed ranking table to an Excel file."""
    ranking_data = []
    for entry in rankings:
        row = {'Rank': entry['rank'], 'Name': entry['name']}
        for event in config.EVENTS:
            score = entry[event]
            row[event.capitalize()] = round(score, 2) if score is not None else None
        row['Total'] = round(entry['total'], 2)
        ranking_data.append(row)

    columns = ['Rank', 'Name'] + [e.capitalize() for e in config.EVENTS] + ['Total']
    with pd.ExcelWriter(filepath, engine='openpyxl') as writer:
        pd.DataFrame(ranking_data, columns=columns).to_excel(writer, sheet_name='Rankings', index=False)
