from datetime import datetime

from sales_dashboard.models.table import Column, ColumnType
from sales_dashboard.services.export_service import convert_to_csv
from sales_dashboard.services.parser_service import parse_file


def test_no_rows_exports_empty_string() -> None:
    assert convert_to_csv([], [Column(name="a", type=ColumnType.TEXT)]) == ""


def test_cells_are_formatted_and_quoted() -> None:
    columns = [
        Column(name="Date", type=ColumnType.DATE),
        Column(name="Note", type=ColumnType.TEXT),
        Column(name="Total", type=ColumnType.NUMBER),
    ]
    rows = [
        {"Date": datetime(2024, 3, 9), "Note": 'Smith, "J"', "Total": 12.0},
        {"Date": None, "Note": "two\nlines", "Total": 0.5},
    ]

    text = convert_to_csv(rows, columns)

    assert text == (
        "Date,Note,Total\n"
        '2024-03-09,"Smith, ""J""",12\n'
        ',"two\nlines",0.5\n'
    )


def test_export_then_parse_gives_back_the_same_table() -> None:
    source = (
        "Order Date,Customer,Product,Quantity,Total\n"
        '2024-01-05,"Smith, John",Laptop Pro,2,"1,999.98"\n'
        '2024-01-06,Jane Doe,"Cable ""XL""",5,149.95\n'
        "2024-01-07,Jane Doe,Desk Lamp,,699\n"
        "2024-01-08,Lee Chan,Laptop Pro,1,\n"
    ).encode("utf-8")
    original = parse_file(source, "orders.csv").data

    exported = convert_to_csv(original.rows, original.columns)
    reparsed = parse_file(exported.encode("utf-8"), "orders.csv").data

    assert [(c.name, c.type) for c in reparsed.columns] == [(c.name, c.type) for c in original.columns]
    assert reparsed.rows == original.rows
