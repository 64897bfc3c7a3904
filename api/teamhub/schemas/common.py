"""Field helpers shared by the request schemas."""
from typing import Optional


def clean_name(value: Optional[str]) -> Optional[str]:
    """Strip surrounding whitespace; a name of only whitespace is rejected."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("Name cannot be blank")
    return value
