"""
API key format check, shared with the upstream auth layer.
Lookup of keys and accounts happens upstream; this only checks the shape.
"""

import re

API_KEY_PATTERN = re.compile(r"^[A-Za-z0-9-]{32}$")


def is_api_key_valid(api_key: str) -> bool:
    """32 characters of letters, digits and dashes."""
    return bool(API_KEY_PATTERN.fullmatch(api_key))
