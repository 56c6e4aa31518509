import pytest
from medicine_utils import StockStatus, stock_status


@pytest.mark.parametrize("min_stock", [0, 5, 10, 1000])
def test_zero_quantity_is_out_of_stock_regardless_of_threshold(min_stock):
    assert stock_status(0, min_stock).status is StockStatus.OUT_OF_STOCK


@pytest.mark.parametrize("quantity", [1, 5, 10])
def test_up_to_threshold_is_low_stock(quantity):
    info = stock_status(quantity)
    assert info.status is StockStatus.LOW_STOCK
    assert info.label == "Low Stock"


def test_above_threshold_is_in_stock():
    info = stock_status(11)
    assert info.status is StockStatus.IN_STOCK
    assert info.label == "In Stock"
    assert info.color == "success"


def test_custom_threshold():
    assert stock_status(20, min_stock=25).status is StockStatus.LOW_STOCK
    assert stock_status(20, min_stock=19).status is StockStatus.IN_STOCK


def test_missing_threshold_defaults_to_ten():
    assert stock_status(10, None).status is StockStatus.LOW_STOCK
    assert stock_status(11, None).status is StockStatus.IN_STOCK


def test_negative_quantity_is_reported_out_of_stock():
    assert stock_status(-3).status is StockStatus.OUT_OF_STOCK
