import pytest
from orders.gateway import get_catalog, get_gateway


@pytest.fixture()
def gateway():
    """The fake reservation gateway installed for this test."""
    return get_gateway()


@pytest.fixture()
def catalog():
    """The fake product catalogue installed for this test."""
    return get_catalog()


@pytest.fixture()
def sample_items():
    return [
        {"sku": "A", "quantity": 2, "unit_price": 10.0},
        {"sku": "B", "quantity": 1, "unit_price": 5.0},
    ]


@pytest.fixture()
def address():
    return {
        "street": "123 Main St",
        "city": "Springfield",
        "state": "IL",
        "postal_code": "62701",
        "country": "US",
    }
