"""
Export utilities for generating CSV and Excel reports.
"""

import csv
import io
from datetime import date
from flask import make_response
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side

from fitdesk.utils.errors import ValidationError

EXPORT_FORMATS = ('csv', 'xlsx')

CONTENT_TYPES = {
    'csv': 'text/csv; charset=utf-8',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
}


def _row_values(row_data, headers):
    if isinstance(row_data, dict):
        return [row_data.get(key, '') for key in headers]
    return list(row_data)


def export_to_excel(data, headers, title="Report"):
    """
    Export data to Excel file.

    Args:
        data: List of dicts keyed by header or list of lists
        headers: List of column labels
        title: Sheet title

    Returns:
        BytesIO object containing the Excel file
    """
    wb = Workbook()
    ws = wb.active
    ws.title = title[:31]  # Excel sheet name limit

    # Styles
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="2563EB", end_color="2563EB", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    for col_num, label in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col_num, value=label)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment
        cell.border = thin_border
        ws.column_dimensions[cell.column_letter].width = max(len(str(label)) + 4, 15)

    for row_num, row_data in enumerate(data, 2):
        for col_num, value in enumerate(_row_values(row_data, headers), 1):
            cell = ws.cell(row=row_num, column=col_num, value=value)
            cell.border = thin_border

    ws.freeze_panes = 'A2'

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)

    return output


def export_to_csv(data, headers):
    """
    Export data to CSV text.

    The header row is always written, also when there is no data.
    """
    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(headers)
    for row_data in data:
        writer.writerow(['' if v is None else v for v in _row_values(row_data, headers)])
    return output.getvalue()


def report_filename(prefix, start=None, end=None, extension='xlsx'):
    """{prefix}_{start}_to_{end}.{ext}, or {prefix}_{today}.{ext} without a full range"""
    if start and end:
        period = f'{start.isoformat()}_to_{end.isoformat()}'
    else:
        period = date.today().isoformat()
    return f'{prefix}_{period}.{extension}'


def export_format(value, required=False):
    """Validate the export query parameter"""
    if not value:
        if required:
            raise ValidationError('Add ?export=xlsx or ?export=csv')
        return None
    value = value.lower()
    if value not in EXPORT_FORMATS:
        raise ValidationError('Add ?export=xlsx or ?export=csv')
    return value


def export_response(data, headers, fmt, prefix, start=None, end=None, title='Report'):
    """Build a file download response for a tabular report"""
    if fmt == 'csv':
        body = export_to_csv(data, headers)
    else:
        body = export_to_excel(data, headers, title).read()

    response = make_response(body)
    response.headers['Content-Type'] = CONTENT_TYPES[fmt]
    filename = report_filename(prefix, start, end, fmt)
    response.headers['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response
