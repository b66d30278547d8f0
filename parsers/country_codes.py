"""
ISO 3166-1 alpha-2 country codes and suggestions for common misentries.

Spreadsheets often carry a country name ("Denmark"), a native name
("Norge"), an alpha-3 code ("DNK") or the colloquial "UK" where the
platform expects a two-letter ISO code.
"""

from typing import Any, Optional

from utils.text_utils import normalize_name

ISO_COUNTRY_CODES = frozenset("""
AD AE AF AG AI AL AM AO AQ AR AS AT AU AW AX AZ BA BB BD BE BF BG BH BI BJ BL
BM BN BO BQ BR BS BT BV BW BY BZ CA CC CD CF CG CH CI CK CL CM CN CO CR CU CV
CW CX CY CZ DE DJ DK DM DO DZ EC EE EG EH ER ES ET FI FJ FK FM FO FR GA GB GD
GE GF GG GH GI GL GM GN GP GQ GR GS GT GU GW GY HK HM HN HR HT HU ID IE IL IM
IN IO IQ IR IS IT JE JM JO JP KE KG KH KI KM KN KP KR KW KY KZ LA LB LC LI LK
LR LS LT LU LV LY MA MC MD ME MF MG MH MK ML MM MN MO MP MQ MR MS MT MU MV MW
MX MY MZ NA NC NE NF NG NI NL NO NP NR NU NZ OM PA PE PF PG PH PK PL PM PN PR
PS PT PW PY QA RE RO RS RU RW SA SB SC SD SE SG SH SI SJ SK SL SM SN SO SR SS
ST SV SX SY SZ TC TD TF TG TH TJ TK TL TM TN TO TR TT TV TW TZ UA UG UM US UY
UZ VA VC VE VG VI VN VU WF WS YE YT ZA ZM ZW
""".split())

# Normalized (lowercase, accent-free) misentry -> ISO alpha-2
COUNTRY_SUGGESTIONS: dict[str, str] = {
    # Nordics
    "denmark": "DK", "danmark": "DK", "dnk": "DK", "danish": "DK",
    "norway": "NO", "norge": "NO", "noreg": "NO", "nor": "NO", "norwegian": "NO",
    "sweden": "SE", "sverige": "SE", "swe": "SE", "swedish": "SE",
    "finland": "FI", "suomi": "FI", "fin": "FI",
    "iceland": "IS", "island": "IS", "isl": "IS",
    "faroe islands": "FO", "faroes": "FO", "foroyar": "FO",
    "greenland": "GL", "kalaallit nunaat": "GL",
    # British Isles
    "uk": "GB", "united kingdom": "GB", "great britain": "GB", "britain": "GB",
    "england": "GB", "scotland": "GB", "wales": "GB", "northern ireland": "GB",
    "gbr": "GB",
    "ireland": "IE", "eire": "IE", "irl": "IE",
    # Western / central Europe
    "germany": "DE", "deutschland": "DE", "deu": "DE", "ger": "DE",
    "france": "FR", "fra": "FR",
    "netherlands": "NL", "holland": "NL", "the netherlands": "NL", "nederland": "NL", "nld": "NL",
    "belgium": "BE", "belgique": "BE", "belgie": "BE", "bel": "BE",
    "luxembourg": "LU", "lux": "LU",
    "switzerland": "CH", "schweiz": "CH", "suisse": "CH", "svizzera": "CH", "che": "CH",
    "austria": "AT", "osterreich": "AT", "aut": "AT",
    "spain": "ES", "espana": "ES", "esp": "ES",
    "portugal": "PT", "prt": "PT",
    "italy": "IT", "italia": "IT", "ita": "IT",
    "greece": "GR", "hellas": "GR", "grc": "GR",
    "poland": "PL", "polska": "PL", "pol": "PL",
    "czech republic": "CZ", "czechia": "CZ", "cze": "CZ",
    "slovakia": "SK", "svk": "SK",
    "hungary": "HU", "magyarorszag": "HU", "hun": "HU",
    "romania": "RO", "rou": "RO",
    "bulgaria": "BG", "bgr": "BG",
    "croatia": "HR", "hrvatska": "HR", "hrv": "HR",
    "slovenia": "SI", "svn": "SI",
    "serbia": "RS", "srb": "RS",
    "estonia": "EE", "eesti": "EE", "est": "EE",
    "latvia": "LV", "latvija": "LV", "lva": "LV",
    "lithuania": "LT", "lietuva": "LT", "ltu": "LT",
    "ukraine": "UA", "ukr": "UA",
    "turkey": "TR", "turkiye": "TR", "tur": "TR",
    # Rest of world
    "united states": "US", "united states of america": "US", "usa": "US", "america": "US",
    "canada": "CA", "can": "CA",
    "mexico": "MX", "mex": "MX",
    "brazil": "BR", "brasil": "BR", "bra": "BR",
    "australia": "AU", "aus": "AU",
    "new zealand": "NZ", "nzl": "NZ",
    "japan": "JP", "jpn": "JP",
    "south korea": "KR", "korea": "KR", "kor": "KR",
    "china": "CN", "chn": "CN",
    "india": "IN", "ind": "IN",
    "south africa": "ZA", "zaf": "ZA",
    "singapore": "SG", "sgp": "SG",
    "vietnam": "VN", "viet nam": "VN", "vnm": "VN",
    "philippines": "PH", "phl": "PH",
    "thailand": "TH", "tha": "TH",
    "pakistan": "PK", "pak": "PK",
}


def normalize_country_code(value: Optional[Any]) -> Optional[str]:
    """
    Uppercase/trim a country code cell.

    Returns:
        Two-letter code if value is a known ISO code, else None
    """
    if value is None:
        return None
    code = str(value).strip().upper()
    return code if code in ISO_COUNTRY_CODES else None


def suggest_country_code(value: Optional[Any]) -> Optional[str]:
    """
    Suggest the ISO code for a country name or common misentry.

    Args:
        value: What the user typed ("Denmark", "UK", "DNK")

    Returns:
        Suggested ISO alpha-2 code, or None if nothing matches
    """
    key = normalize_name(value)
    if not key:
        return None
    return COUNTRY_SUGGESTIONS.get(key)
