from datetime import datetime, timedelta, timezone

from sales_dashboard.models.filters import CategoryFilter, DateFilter, NumberFilter, TextFilter
from sales_dashboard.models.table import Column, ColumnType
from sales_dashboard.services.filter_service import (
    default_filter_for_column,
    evaluate,
    mismatched_filters,
    sync_category_filters,
)


ROWS = [
    {"Customer": "Alice", "Region": "North", "Total": 10.0, "Date": datetime(2024, 1, 1)},
    {"Customer": "Bob", "Region": "South", "Total": 15.0, "Date": datetime(2024, 1, 15)},
    {"Customer": "alicia", "Region": "North", "Total": 20.0, "Date": datetime(2024, 2, 1)},
    {"Customer": "Carol", "Region": None, "Total": None, "Date": None},
    {"Customer": None, "Region": "East", "Total": 25.0, "Date": datetime(2024, 3, 1)},
]


def test_no_active_filters_returns_input_list() -> None:
    inactive = TextFilter(id="f1", column_name="Customer", value="zzz", is_active=False)
    assert evaluate(ROWS, []) is ROWS
    assert evaluate(ROWS, [inactive]) is ROWS


def test_text_operators_are_case_insensitive() -> None:
    contains = TextFilter(id="f1", column_name="Customer", operator="contains", value="ALI")
    starts = TextFilter(id="f2", column_name="Customer", operator="startsWith", value="b")
    equals = TextFilter(id="f3", column_name="Customer", operator="equals", value="carol")
    ends = TextFilter(id="f4", column_name="Customer", operator="endsWith", value="CIA")

    assert [r["Customer"] for r in evaluate(ROWS, [contains])] == ["Alice", "alicia"]
    assert [r["Customer"] for r in evaluate(ROWS, [starts])] == ["Bob"]
    assert [r["Customer"] for r in evaluate(ROWS, [equals])] == ["Carol"]
    assert [r["Customer"] for r in evaluate(ROWS, [ends])] == ["alicia"]


def test_between_is_inclusive_on_both_ends() -> None:
    f = NumberFilter(id="f1", column_name="Total", operator="between", value=10, value_to=20)
    assert [r["Total"] for r in evaluate(ROWS, [f])] == [10.0, 15.0, 20.0]


def test_between_without_upper_bound_uses_lower_bound() -> None:
    f = NumberFilter(id="f1", column_name="Total", operator="between", value=15)
    assert [r["Total"] for r in evaluate(ROWS, [f])] == [15.0]


def test_missing_numbers_never_match() -> None:
    for operator in ("equals", "greaterThan", "lessThan", "between"):
        f = NumberFilter(id="f1", column_name="Total", operator=operator, value=-1000, value_to=1000)
        assert all(r["Total"] is not None for r in evaluate(ROWS, [f]))


def test_numeric_strings_are_coerced() -> None:
    rows = [{"Total": "12.5"}, {"Total": "abc"}, {"Total": ""}]
    f = NumberFilter(id="f1", column_name="Total", operator="greaterThan", value=10)
    assert evaluate(rows, [f]) == [{"Total": "12.5"}]


def test_empty_category_selection_passes_everything() -> None:
    f = CategoryFilter(id="f1", column_name="Region", values=[])
    assert evaluate(ROWS, [f]) == ROWS


def test_category_membership_uses_string_form() -> None:
    f = CategoryFilter(id="f1", column_name="Region", values=["North", "East"])
    assert [r["Region"] for r in evaluate(ROWS, [f])] == ["North", "North", "East"]


def test_date_range_is_inclusive_and_skips_missing() -> None:
    f = DateFilter(
        id="f1",
        column_name="Date",
        date_from=datetime(2024, 1, 15),
        date_to=datetime(2024, 2, 1),
    )
    assert [r["Customer"] for r in evaluate(ROWS, [f])] == ["Bob", "alicia"]


def test_open_date_range_only_drops_rows_without_a_date() -> None:
    f = DateFilter(id="f1", column_name="Date")
    assert len(evaluate(ROWS, [f])) == 4


def test_adding_an_active_filter_never_grows_the_result() -> None:
    filters = [
        CategoryFilter(id="f1", column_name="Region", values=["North", "South"]),
        NumberFilter(id="f2", column_name="Total", operator="greaterThan", value=12),
        TextFilter(id="f3", column_name="Customer", operator="contains", value="o"),
    ]
    previous = ROWS
    for i in range(1, len(filters) + 1):
        current = evaluate(ROWS, filters[:i])
        assert len(current) <= len(previous)
        assert all(row in previous for row in current)
        previous = current
    assert [r["Customer"] for r in previous] == ["Bob"]


def test_unknown_operator_passes_through() -> None:
    f = TextFilter(id="f1", column_name="Customer", operator="regex", value="^A")
    assert evaluate(ROWS, [f]) == ROWS


def test_mismatched_filters_reports_wrong_types_and_unknown_columns() -> None:
    columns = [Column(name="Total", type=ColumnType.NUMBER), Column(name="Customer", type=ColumnType.TEXT)]
    good = NumberFilter(id="ok", column_name="Total")
    wrong_type = CategoryFilter(id="bad", column_name="Total")
    unknown = TextFilter(id="gone", column_name="Missing")

    bad = mismatched_filters([good, wrong_type, unknown], columns)

    assert [f.id for f in bad] == ["bad", "gone"]


def test_default_filters_follow_column_type() -> None:
    number = Column(name="Total", type=ColumnType.NUMBER, min=5.0, max=50.0)
    category = Column(name="Region", type=ColumnType.CATEGORY, unique_values=["East", "North"])

    number_filter = default_filter_for_column(number, "n")
    category_filter = default_filter_for_column(category, "c")

    assert (number_filter.value, number_filter.value_to) == (5.0, 50.0)
    assert category_filter.values == ["East", "North"]
    assert isinstance(default_filter_for_column(Column(name="Date", type=ColumnType.DATE), "d"), DateFilter)
    assert isinstance(default_filter_for_column(Column(name="Notes", type=ColumnType.TEXT), "t"), TextFilter)


def test_sync_category_filters_drops_stale_values() -> None:
    columns = [Column(name="Region", type=ColumnType.CATEGORY, unique_values=["East", "North"])]
    partly_stale = CategoryFilter(id="f1", column_name="Region", values=["North", "West"])
    fully_stale = CategoryFilter(id="f2", column_name="Region", values=["West"])

    synced = sync_category_filters([partly_stale, fully_stale], columns)

    assert synced[0].values == ["North"]
    assert synced[1].values == ["East", "North"]


def test_number_filter_ignores_underscore_numbers() -> None:
    rows = [{"Total": "1_000"}, {"Total": "1000"}]
    f = NumberFilter(id="f1", column_name="Total", operator="greaterThan", value=10)
    assert evaluate(rows, [f]) == [{"Total": "1000"}]


def test_zoned_date_bounds_keep_their_calendar_day() -> None:
    zone = timezone(timedelta(hours=7))
    f = DateFilter(
        id="f1",
        column_name="Date",
        date_from=datetime(2024, 1, 15, tzinfo=zone),
        date_to=datetime(2024, 2, 1, tzinfo=zone),
    )
    assert [r["Customer"] for r in evaluate(ROWS, [f])] == ["Bob", "alicia"]
