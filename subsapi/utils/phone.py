"""
Phone number normalization
"""

import re


def normalize_phone(phone: str) -> str:
    """Normalize to the canonical local format: +98912... / 0098912... -> 0912..."""
    p = re.sub(r"[\s\-()]", "", phone.strip())
    if p.startswith("+98"):
        p = "0" + p[3:]
    elif p.startswith("0098"):
        p = "0" + p[4:]
    return p
