"""Per-country plan pricing shown on the pricing page."""
from __future__ import annotations

from dataclasses import dataclass

from lightfriend.core.exceptions import UnsupportedCountryError

CURRENCY = "EUR"


@dataclass(frozen=True)
class CountryPricing:
    country: str
    basic_price: float
    premium_price: float
    basic_limit: int
    escape_limit: int
    limit_period: str
    message_overage: float
    voice_overage_per_minute: float

    def as_dict(self) -> dict:
        return {
            "country": self.country,
            "currency": CURRENCY,
            "basic_price": self.basic_price,
            "premium_price": self.premium_price,
            "basic_limit": self.basic_limit,
            "escape_limit": self.escape_limit,
            "limit_period": self.limit_period,
            "message_overage": self.message_overage,
            "voice_overage_per_minute": self.voice_overage_per_minute,
        }


# US quotas are daily, everywhere else monthly
PRICING: dict[str, CountryPricing] = {
    "US": CountryPricing("US", 10.00, 50.00, 10, 15, "day", 0.10, 0.20),
    "FI": CountryPricing("FI", 25.00, 70.00, 50, 100, "month", 0.30, 0.25),
    "UK": CountryPricing("UK", 25.00, 70.00, 50, 100, "month", 0.30, 0.25),
    "AU": CountryPricing("AU", 25.00, 70.00, 50, 100, "month", 0.40, 0.25),
}

SUPPORTED_COUNTRIES = tuple(PRICING)


def get_pricing(country: str) -> CountryPricing:
    try:
        return PRICING[country.strip().upper()]
    except KeyError as exc:
        raise UnsupportedCountryError(country) from exc
