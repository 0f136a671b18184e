"""Indian state and union territory codes.

Codes follow the commerce platform's ``province_code`` values. Names are
resolved through an alias table first; a close fuzzy match is accepted only
above ``FUZZY_SCORE_CUTOFF`` so a typo never maps to a different state.
"""

import re

from rapidfuzz import fuzz, process

FUZZY_SCORE_CUTOFF = 90

STATE_CODES: dict[str, str] = {
    "AN": "Andaman and Nicobar Islands",
    "AP": "Andhra Pradesh",
    "AR": "Arunachal Pradesh",
    "AS": "Assam",
    "BR": "Bihar",
    "CH": "Chandigarh",
    "CG": "Chhattisgarh",
    "DN": "Dadra and Nagar Haveli",
    "DD": "Daman and Diu",
    "DL": "Delhi",
    "GA": "Goa",
    "GJ": "Gujarat",
    "HR": "Haryana",
    "HP": "Himachal Pradesh",
    "JK": "Jammu and Kashmir",
    "JH": "Jharkhand",
    "KA": "Karnataka",
    "KL": "Kerala",
    "LA": "Ladakh",
    "LD": "Lakshadweep",
    "MP": "Madhya Pradesh",
    "MH": "Maharashtra",
    "MN": "Manipur",
    "ML": "Meghalaya",
    "MZ": "Mizoram",
    "NL": "Nagaland",
    "OR": "Odisha",
    "PY": "Puducherry",
    "PB": "Punjab",
    "RJ": "Rajasthan",
    "SK": "Sikkim",
    "TN": "Tamil Nadu",
    "TS": "Telangana",
    "TR": "Tripura",
    "UP": "Uttar Pradesh",
    "UK": "Uttarakhand",
    "WB": "West Bengal",
}

# Historical names, common abbreviations and ISO 3166-2:IN codes
_ALIASES: dict[str, str] = {
    "andaman and nicobar": "AN",
    "andaman nicobar islands": "AN",
    "orissa": "OR",
    "od": "OR",
    "pondicherry": "PY",
    "pondichery": "PY",
    "uttaranchal": "UK",
    "ut": "UK",
    "new delhi": "DL",
    "nct of delhi": "DL",
    "national capital territory of delhi": "DL",
    "bombay": "MH",
    "chattisgarh": "CG",
    "ct": "CG",
    "tg": "TS",
    "dadra and nagar haveli and daman and diu": "DN",
    "jammu kashmir": "JK",
    "j and k": "JK",
}


def _normalize_name(name: str) -> str:
    cleaned = name.strip().lower().replace("&", " and ")
    cleaned = re.sub(r"[^a-z ]+", " ", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()


_NAME_INDEX: dict[str, str] = {
    _normalize_name(state): code for code, state in STATE_CODES.items()
}
_NAME_INDEX.update(_ALIASES)


def normalize_code(code: str | None) -> str | None:
    """Uppercase and strip a jurisdiction code; blank becomes None."""
    if code is None:
        return None
    cleaned = str(code).strip().upper()
    if cleaned.startswith("IN-"):
        cleaned = cleaned[3:]
    return cleaned or None


def is_known_code(code: str | None) -> bool:
    return normalize_code(code) in STATE_CODES


def resolve_name(name: str | None) -> str | None:
    """Map a state name (or alias) to its canonical code.

    Returns:
        Two-letter code, or None when nothing matches closely enough
    """
    if not name or not name.strip():
        return None

    maybe_code = normalize_code(name)
    if maybe_code in STATE_CODES:
        return maybe_code

    key = _normalize_name(name)
    if key in _NAME_INDEX:
        return _NAME_INDEX[key]

    match = process.extractOne(
        key,
        _NAME_INDEX.keys(),
        scorer=fuzz.ratio,
        score_cutoff=FUZZY_SCORE_CUTOFF,
    )
    if match is None:
        return None
    return _NAME_INDEX[match[0]]


def state_name(code: str | None) -> str:
    normalized = normalize_code(code)
    return STATE_CODES.get(normalized or "", normalized or "")
