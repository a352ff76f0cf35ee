"""
Tests for CSV export helpers
"""
from app.utils.csv_export import format_cell, iter_csv_lines


def test_format_cell():
    assert format_cell(None) == ""
    assert format_cell(True) == "yes"
    assert format_cell(False) == "no"
    assert format_cell(7.25) == "7.25"
    assert format_cell("ATTENDANCE") == "ATTENDANCE"


def test_lines_follow_header_order_and_quote():
    lines = list(iter_csv_lines(
        ["emp_code", "employee_name", "total_hours"],
        [{"total_hours": 8.0, "employee_name": "Cruz, Ana", "emp_code": "EMP9"}, {"emp_code": "EMP10"}],
    ))

    assert lines[0] == "emp_code,employee_name,total_hours\r\n"
    assert lines[1] == 'EMP9,"Cruz, Ana",8.0\r\n'
    assert lines[2] == "EMP10,,\r\n"
