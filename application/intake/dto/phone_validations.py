import re

from intake.logging.utils import get_app_logger
logger = get_app_logger('intake.phone_number_validations')


def normalize_phone_number(v: str) -> str:
    """Normalise an Indian mobile number to +91XXXXXXXXXX or raise ValueError."""
    if not v or not v.strip():
        raise ValueError('Phone number is required')

    # Remove non-digits except +
    cleaned = re.sub(r'[^\d+]', '', v)

    if re.match(r'^\d{10}$', cleaned):
        return f'+91{cleaned}'
    elif re.match(r'^91\d{10}$', cleaned):
        return f'+{cleaned}'
    elif re.match(r'^\+91\d{10}$', cleaned):
        return cleaned
    elif re.match(r'^0\d{10}$', cleaned):
        return f'+91{cleaned[1:]}'
    logger.warning(f"invalid_phone_format | value={v}")
    raise ValueError('Invalid phone number format. Expected: 10 digits, 91+10 digits, or +91+10 digits')


def normalize_phone_or_none(phone: str) -> str | None:
    """Best-effort normalisation for lookups; None for unparseable input."""
    try:
        return normalize_phone_number(phone)
    except ValueError:
        return None
