import re
from typing import Optional


def validate_phone_number(phone: str) -> bool:
    """Validate phone number format (international or local)."""
    if not phone:
        return True  # Allow empty/null

    # Basic phone validation - accepts various formats
    phone_pattern = r'^[\+]?[1-9][\d\-\s\(\)\.]{7,15}$'
    return bool(re.match(phone_pattern, phone.replace(' ', '')))


def normalize_label(value: Optional[str]) -> Optional[str]:
    """Trim and collapse internal whitespace of a free-text label."""
    if value is None:
        return None
    return re.sub(r'\s+', ' ', value).strip()


def clean_phone(phone: Optional[str]) -> Optional[str]:
    """Normalize an optional phone field, raising ValueError when malformed."""
    if phone is None:
        return None
    phone = phone.strip()
    if not phone:
        return None
    if not validate_phone_number(phone):
        raise ValueError("Invalid phone number format")
    return phone


def clean_required_text(value: str, field_name: str) -> str:
    """Normalize a required free-text field, rejecting blank values."""
    value = normalize_label(value)
    if not value:
        raise ValueError(f"{field_name} must not be blank")
    return value
