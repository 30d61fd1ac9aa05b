"""
Pricing domain
"""
from topup.core.pricing.models import PricingRule, Discount, AdjustmentType
from topup.core.pricing.regions import REGIONS, get_countries_for_region, get_regions_for_country

__all__ = [
    "PricingRule",
    "Discount",
    "AdjustmentType",
    "REGIONS",
    "get_countries_for_region",
    "get_regions_for_country",
]
