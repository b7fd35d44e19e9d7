# carpet_qr/services/id_rules.py
import re
from datetime import date
from typing import Optional

ID_TYPES = {
    "PRO": "Product",
    "RM": "Raw Material",
    "IPD": "Individual Product",
    "QR": "QR Code",
    "CUST": "Customer",
    "RECIPE": "Recipe",
    "RECMAT": "Recipe Material",
}

DATED_ID_REGEX = re.compile(r"^([A-Z]+)-(\d{6})-(\d{3})$")
CUSTOMER_ID_REGEX = re.compile(r"^(CUST)-(\d{3,})$")


def type_description(id_value: str) -> str:
    match = re.match(r"^([A-Z]+)-", id_value or "")
    if not match:
        return "Unknown"
    return ID_TYPES.get(match.group(1), match.group(1))


def parse_id(id_value: str) -> Optional[dict]:
    """
    Split an id like PRO-250314-007 into its parts.
    Customer ids (CUST-012) have no date. Returns None for anything else.
    """
    if not id_value:
        return None
    id_value = id_value.strip()

    match = CUSTOMER_ID_REGEX.match(id_value)
    if match:
        return {
            "prefix": match.group(1),
            "type": ID_TYPES["CUST"],
            "date": None,
            "sequence": int(match.group(2)),
        }

    match = DATED_ID_REGEX.match(id_value)
    if not match:
        return None

    prefix, date_str, sequence = match.groups()
    try:
        day = date(2000 + int(date_str[:2]), int(date_str[2:4]), int(date_str[4:6]))
    except ValueError:
        return None

    return {
        "prefix": prefix,
        "type": ID_TYPES.get(prefix, prefix),
        "date": day.isoformat(),
        "sequence": int(sequence),
    }


def format_id(prefix: str, sequence: int, on: Optional[date] = None) -> str:
    prefix = prefix.upper()
    if prefix == "CUST":
        return f"CUST-{sequence:03d}"
    on = on or date.today()
    return f"{prefix}-{on.strftime('%y%m%d')}-{sequence:03d}"
