"""Phone number helpers shared by the orchestrator and the session store."""

import re

from ivrmap.errors import InvalidIdentity

_E164_RE = re.compile(r"^\+[1-9]\d{7,14}$")
_INTL_KEY_PREFIX = "intl-"
_NANP_KEY_RE = re.compile(r"^1-\d{3}-\d{3}-\d{4}$")
_INTL_KEY_RE = re.compile(r"^intl-[1-9]\d{7,14}$")


def normalize_phone(value: str) -> str:
    """Strip everything except digits and a leading +.

    Examples:
        >>> normalize_phone("(800) 752-1547")
        '8007521547'
        >>> normalize_phone("+1 800 752 1547")
        '+18007521547'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def to_e164(value: str) -> str:
    """Canonicalize a loosely formatted phone number to E.164.

    Accepts 10-digit NANP numbers, 11-digit numbers with a leading ``1``,
    and numbers already written with a ``+`` country prefix.

    Raises:
        InvalidIdentity: If the value cannot be normalized.
    """
    raw = str(value or "")
    normalized = normalize_phone(raw)
    if normalized.startswith("+"):
        if _E164_RE.match(normalized):
            return normalized
        raise InvalidIdentity(f"Invalid phone number: {raw!r} is not a valid E.164 number")
    if len(normalized) == 11 and normalized.startswith("1"):
        return f"+{normalized}"
    if len(normalized) == 10:
        return f"+1{normalized}"
    raise InvalidIdentity(
        f"Invalid phone number: {raw!r}. Use E.164 format like +1XXXXXXXXXX "
        "(US 10-digit numbers are accepted)."
    )


def format_phone_key(value: str) -> str:
    """Build the filesystem-safe session key for a phone number.

    The number is canonicalized to E.164 first. ``+1`` numbers become
    ``1-AAA-BBB-CCCC``; any other country becomes ``intl-<digits>`` so the
    two forms never collide. A key maps back to itself.

    Raises:
        InvalidIdentity: If the value is neither a key nor a valid number.
    """
    raw = str(value or "").strip()
    if _NANP_KEY_RE.match(raw) or _INTL_KEY_RE.match(raw):
        return raw
    e164 = to_e164(raw)
    digits = e164[1:]
    if len(digits) == 11 and digits.startswith("1"):
        return f"1-{digits[1:4]}-{digits[4:7]}-{digits[7:11]}"
    return f"{_INTL_KEY_PREFIX}{digits}"
