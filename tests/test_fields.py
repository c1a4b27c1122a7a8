import pytest

from Profit_analytics.fields import (
    FIELD_ALIASES,
    KeyedRow,
    PositionalRow,
    find_column,
    get_field,
    get_number,
    row_shape,
)


def test_positional_snake_case_columns() -> None:
    columns = ["product.id", "product.sku", "product.name", "sum_qty", "sum_total"]
    row = [7, "TEE-1", "Camisa", "3", "750.00"]
    assert get_field(row, columns, "id") == 7
    assert get_field(row, columns, "sku") == "TEE-1"
    assert get_field(row, columns, "name") == "Camisa"
    assert get_number(row, columns, "qty") == 3.0
    assert get_number(row, columns, "total") == 750.0


def test_positional_camel_case_columns() -> None:
    columns = ["productId", "productSku", "productName", "sumQty", "sumTotal"]
    row = [7, "TEE-1", "Camisa", 3, "C$ 750"]
    assert get_field(row, columns, "id") == 7
    assert get_field(row, columns, "sku") == "TEE-1"
    assert get_field(row, columns, "name") == "Camisa"
    assert get_number(row, columns, "qty") == 3.0
    assert get_number(row, columns, "total") == 750.0


def test_keyed_row_with_sum_qty_and_sum_total() -> None:
    row = {"sum_qty": "3", "sum_total": "1.500,25"}
    assert get_number(row, [], "qty") == 3.0
    assert get_number(row, [], "total") == 1500.25


def test_keyed_row_prefers_aggregate_spelling_over_bare() -> None:
    # "qty" is listed first but the sum_qty pattern ranks higher
    row = {"qty": 1, "sum_qty": 9, "total": 10, "sum_total": 90}
    assert get_number(row, None, "qty") == 9.0
    assert get_number(row, None, "total") == 90.0


def test_positional_first_matching_column_wins() -> None:
    # any pattern may match; the earliest column in order wins
    columns = ["qty", "sum_qty"]
    assert get_number([1, 9], columns, "qty") == 1.0


def test_keyed_row_searches_nested_product_then_metrics() -> None:
    row = {
        "product": {"id": 11, "sku": "MUG-9", "name": "Taza"},
        "metrics": {"sumQty": 4, "sumTotal": 380},
    }
    assert get_field(row, None, "id") == 11
    assert get_field(row, None, "sku") == "MUG-9"
    assert get_field(row, None, "name") == "Taza"
    assert get_number(row, None, "qty") == 4.0
    assert get_number(row, None, "total") == 380.0


def test_top_level_value_wins_over_nested() -> None:
    row = {"name": "Top", "product": {"name": "Nested"}}
    assert get_field(row, None, "name") == "Top"


def test_product_prefixed_keys() -> None:
    row = {"product_id": "5", "product_sku": "X-1", "productName": "Llavero"}
    assert get_field(row, None, "id") == "5"
    assert get_field(row, None, "sku") == "X-1"
    assert get_field(row, None, "name") == "Llavero"


def test_unresolvable_field_is_none_and_numeric_zero() -> None:
    assert get_field({"foo": 1}, None, "sku") is None
    assert get_number({"foo": 1}, None, "qty") == 0.0
    assert get_field(["a"], ["foo"], "name") is None
    assert get_field("not a row", None, "id") is None


def test_short_positional_row_yields_none() -> None:
    columns = ["product.id", "product.sku", "product.name", "sum_qty"]
    assert get_field([1, "A"], columns, "qty") is None


def test_revenue_aliases() -> None:
    assert get_number({"revenue": "C$ 20"}, None, "total") == 20.0
    assert get_number([5, 30], ["id", "amount"], "total") == 30.0
    assert get_number({"units_sold": 6}, None, "qty") == 6.0


def test_row_shape_tags_rows() -> None:
    assert isinstance(row_shape({"a": 1}), KeyedRow)
    shape = row_shape([1, 2], ["a", "b"])
    assert isinstance(shape, PositionalRow)
    assert shape.columns == ("a", "b")
    assert row_shape(shape) is shape


def test_find_column_returns_minus_one_when_missing() -> None:
    assert find_column(["foo", "bar"], FIELD_ALIASES["qty"].positional) == -1


def test_unknown_field_raises() -> None:
    with pytest.raises(KeyError):
        get_field({}, None, "colour")


def test_sku_from_camel_positional_row_and_nested_product() -> None:
    columns = ["productId", "productSku", "productName"]
    assert get_field(["10", "SKU1", "Widget"], columns, "sku") == "SKU1"
    assert get_field({"product": {"sku": "SKU1"}}, None, "sku") == "SKU1"
