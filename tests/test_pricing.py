import pytest

from lightfriend.core.exceptions import UnsupportedCountryError
from lightfriend.services.pricing import CURRENCY, SUPPORTED_COUNTRIES, get_pricing


def test_supported_countries():
    assert set(SUPPORTED_COUNTRIES) == {"US", "FI", "UK", "AU"}


def test_us_quotas_are_daily():
    us = get_pricing("us")
    assert us.limit_period == "day"
    assert (us.basic_limit, us.escape_limit) == (10, 15)


@pytest.mark.parametrize("country", ["FI", "UK", "AU"])
def test_other_countries_are_monthly(country):
    p = get_pricing(country)
    assert p.limit_period == "month"
    assert p.basic_price == 25.00
    assert p.premium_price == 70.00


def test_australia_message_overage_differs():
    assert get_pricing("AU").message_overage == pytest.approx(0.40)
    assert get_pricing("FI").message_overage == pytest.approx(0.30)


def test_unknown_country_raises():
    with pytest.raises(UnsupportedCountryError):
        get_pricing("SE")


def test_pricing_endpoint(client):
    resp = client.get("/api/pricing/fi")
    assert resp.status_code == 200
    body = resp.json()
    assert body["country"] == "FI"
    assert body["currency"] == CURRENCY
    assert body["escape_limit"] == 100


def test_pricing_endpoint_unknown_country(client):
    resp = client.get("/api/pricing/xx")
    assert resp.status_code == 400
    assert resp.json()["code"] == "REQ004"
