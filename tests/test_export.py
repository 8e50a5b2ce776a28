from datetime import date

import pytest
from openpyxl import load_workbook

from fitdesk.utils.errors import ValidationError
from fitdesk.utils.export import export_format, export_to_csv, export_to_excel, report_filename

HEADERS = ['Name', 'Amount']


def test_report_filename_with_range():
    name = report_filename('clients', date(2025, 1, 1), date(2025, 1, 31), 'csv')
    assert name == 'clients_2025-01-01_to_2025-01-31.csv'


def test_report_filename_without_full_range():
    name = report_filename('revenue', start=date(2025, 1, 1))
    assert name == f'revenue_{date.today().isoformat()}.xlsx'


def test_csv_always_has_header():
    assert export_to_csv([], HEADERS) == 'Name,Amount\n'


def test_csv_rows_from_dicts_and_lists():
    text = export_to_csv([{'Name': 'Asha, V', 'Amount': None}, ['Ravi', 10]], HEADERS)
    assert text.splitlines() == ['Name,Amount', '"Asha, V",', 'Ravi,10']


def test_excel_sheet():
    output = export_to_excel([{'Name': 'Asha', 'Amount': 250.0}], HEADERS,
                             title='A very long sheet title for the revenue report')
    ws = load_workbook(output).active
    assert len(ws.title) == 31
    assert [c.value for c in ws[1]] == HEADERS
    assert [c.value for c in ws[2]] == ['Asha', 250]
    assert ws.freeze_panes == 'A2'


@pytest.mark.parametrize('value, expected', [
    (None, None),
    ('', None),
    ('CSV', 'csv'),
    ('xlsx', 'xlsx'),
])
def test_export_format(value, expected):
    assert export_format(value) == expected


def test_export_format_errors():
    with pytest.raises(ValidationError):
        export_format('pdf')
    with pytest.raises(ValidationError) as exc:
        export_format(None, required=True)
    assert exc.value.message == 'Add ?export=xlsx or ?export=csv'
