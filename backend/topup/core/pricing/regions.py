"""
Static region -> country table used by pricing rules

Pricing rules reference regions by name, so renaming a region or changing its
membership is a data migration: bump REGIONS_VERSION and migrate stored rules.
"""

from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

REGIONS_VERSION = 1

REGIONS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "Africa": (
        "DZ", "AO", "BJ", "BW", "BF", "BI", "CM", "CV", "CF", "TD", "KM", "CG", "CD", "CI", "DJ",
        "EG", "GQ", "ER", "ET", "GA", "GM", "GH", "GN", "GW", "KE", "LS", "LR", "LY", "MG", "MW",
        "ML", "MR", "MU", "YT", "MA", "MZ", "NA", "NE", "NG", "RE", "RW", "SH", "ST", "SN", "SC",
        "SL", "SO", "ZA", "SS", "SD", "SZ", "TZ", "TG", "TN", "UG", "ZM", "ZW",
    ),
    "Asia": (
        "AF", "AM", "AZ", "BH", "BD", "BT", "BN", "KH", "CN", "CX", "CC", "IO", "GE", "HK", "IN",
        "ID", "IR", "IQ", "IL", "JP", "JO", "KZ", "KW", "KG", "LA", "LB", "MO", "MY", "MV", "MN",
        "MM", "NP", "KP", "OM", "PK", "PS", "PH", "QA", "SA", "SG", "KR", "LK", "SY", "TW", "TJ",
        "TH", "TL", "TR", "TM", "AE", "UZ", "VN", "YE",
    ),
    "Europe": (
        "AX", "AL", "AD", "AT", "BY", "BE", "BA", "BG", "HR", "CY", "CZ", "DK", "EE", "FO", "FI",
        "FR", "DE", "GI", "GR", "GG", "HU", "IS", "IE", "IM", "IT", "JE", "XK", "LV", "LI", "LT",
        "LU", "MK", "MT", "MD", "MC", "ME", "NL", "NO", "PL", "PT", "RO", "RU", "SM", "RS", "SK",
        "SI", "ES", "SJ", "SE", "CH", "UA", "GB", "VA",
    ),
    "North America": (
        "AI", "AG", "AW", "BS", "BB", "BZ", "BM", "BQ", "VG", "CA", "KY", "CR", "CU", "CW", "DM",
        "DO", "SV", "GL", "GD", "GP", "GT", "HT", "HN", "JM", "MQ", "MX", "MS", "NI", "PA", "PM",
        "PR", "BL", "KN", "LC", "MF", "VC", "SX", "TT", "TC", "US", "VI",
    ),
    "South America": (
        "AR", "BO", "BR", "CL", "CO", "EC", "FK", "GF", "GY", "PY", "PE", "SR", "UY", "VE",
    ),
    "Oceania": (
        "AS", "AU", "CK", "FJ", "PF", "GU", "KI", "MH", "FM", "NR", "NC", "NZ", "NU", "NF", "MP",
        "PW", "PG", "PN", "WS", "SB", "TK", "TO", "TV", "UM", "VU", "WF",
    ),
    "Caribbean": (
        "AI", "AG", "AW", "BS", "BB", "BQ", "VG", "KY", "CU", "CW", "DM", "DO", "GD", "GP", "HT",
        "JM", "MQ", "MS", "PR", "BL", "KN", "LC", "MF", "VC", "SX", "TT", "TC", "VI",
    ),
    "Latin America": (
        "AR", "BO", "BR", "CL", "CO", "CR", "CU", "DO", "EC", "SV", "GT", "HT", "HN", "MX", "NI",
        "PA", "PY", "PE", "UY", "VE",
    ),
})


def get_countries_for_region(region: str) -> Tuple[str, ...]:
    """Countries belonging to a named region (empty for unknown regions)"""
    return REGIONS.get(region, ())


def get_regions_for_country(country_code: Optional[str]) -> List[str]:
    """All region names containing the given ISO country code"""
    if not country_code:
        return []
    code = country_code.upper()
    return [name for name, countries in REGIONS.items() if code in countries]


def country_in_regions(country_code: str, regions: List[str]) -> bool:
    code = country_code.upper()
    return any(code in REGIONS.get(region, ()) for region in regions or [])
