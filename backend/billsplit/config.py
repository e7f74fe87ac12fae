from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict

from billsplit.domain.models import FeeRates
from billsplit.domain.money import format_percentage


@dataclass(frozen=True)
class CountryPreset:
    """Default currency and fee rates for a country's restaurants."""
    country: str
    currency: str
    service_charge_rate: float
    service_charge_enabled: bool
    tax_rate: float
    tax_label: str

    def rates(self) -> FeeRates:
        return FeeRates(
            service_charge_rate=self.service_charge_rate if self.service_charge_enabled else 0.0,
            tax_rate=self.tax_rate,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "country": self.country,
            "currency": self.currency,
            "service_charge_rate": self.service_charge_rate,
            "service_charge_enabled": self.service_charge_enabled,
            "tax_rate": self.tax_rate,
            "tax_label": self.tax_label,
            "tax_display": f"{self.tax_label} {format_percentage(self.tax_rate)}",
        }


COUNTRY_PRESETS: Dict[str, CountryPreset] = {
    p.country: p
    for p in (
        CountryPreset("Singapore", "SGD", 0.10, True, 0.09, "GST"),
        CountryPreset("Malaysia", "MYR", 0.10, False, 0.06, "SST"),
        CountryPreset("Indonesia", "IDR", 0.07, False, 0.11, "PPN"),
        CountryPreset("Thailand", "THB", 0.10, False, 0.07, "VAT"),
        CountryPreset("Philippines", "PHP", 0.10, False, 0.12, "VAT"),
        CountryPreset("Vietnam", "VND", 0.05, False, 0.08, "VAT"),
    )
}


class Config:
    DEFAULT_COUNTRY = os.getenv("BILLSPLIT_DEFAULT_COUNTRY", "Singapore")
    DEFAULT_ROUNDING_MODE = os.getenv("BILLSPLIT_DEFAULT_ROUNDING_MODE", "half-up")
    MAX_PARTIES = int(os.getenv("BILLSPLIT_MAX_PARTIES", "50"))
    MAX_ITEMS = int(os.getenv("BILLSPLIT_MAX_ITEMS", "200"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    ENV = os.getenv("ENV", "dev")
