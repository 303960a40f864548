import re
import secrets
import string
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
MAX_AMOUNT = Decimal(10) ** 16  # Numeric(18, 2) upper bound


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_today():
    return utcnow().date()


def validate_email(email):
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email or "") is not None


def to_decimal(value):
    """
    Parse a request value into a Decimal rounded to cents.
    Returns None for anything that is not a finite number or does not fit
    a Numeric(18, 2) column.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite() or abs(amount) >= MAX_AMOUNT:
            return None
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return None


def money(value):
    return Decimal(str(value or "0")).quantize(CENT, rounding=ROUND_HALF_UP)


def generate_referral_code(length=8):
    chars = string.ascii_uppercase + string.digits
    return ''.join(secrets.choice(chars) for _ in range(length))


def generate_otp(length=6):
    """Generate a numeric one-time code"""
    return ''.join(secrets.choice(string.digits) for _ in range(length))


def mask_email(email):
    # jo***@example.com
    return re.sub(r'^(.{1,2})(.*)(@.*)$', r'\1***\3', email or "")
