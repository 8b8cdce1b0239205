"""Display and normalization helpers shared by the API layer.

Everything here is cosmetic string work: phone numbers, card numbers,
theme colors, slugs and money. Functions that can reject input raise
``ValueError`` so routes can turn it into a 400 response.
"""
from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

_NON_DIGITS = re.compile(r"\D")
_HEX_COLOR = re.compile(r"^#?[0-9a-fA-F]{6}$")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def unformat_phone_number(value: str | None) -> str:
    """Return only the digits of ``value``."""
    return _NON_DIGITS.sub("", str(value or ""))


def format_phone_number(value: str | None) -> str:
    """Format up to ten digits as ``(555) 123-4567``, partially while typing."""
    digits = unformat_phone_number(value)[:10]

    if not digits:
        return ""
    if len(digits) <= 3:
        return f"({digits}"
    if len(digits) <= 6:
        return f"({digits[:3]}) {digits[3:]}"
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def format_card_number(value: str | None) -> str:
    """Group a card number in blocks of four digits (max 16 digits)."""
    digits = _NON_DIGITS.sub("", re.sub(r"\s+", "", value or ""))
    match = re.search(r"\d{4,16}", digits)
    number = match.group(0) if match else ""

    parts = [number[i:i + 4] for i in range(0, len(number), 4)]
    if parts:
        return " ".join(parts)
    return digits


def mask_card_number(value: str | None) -> str:
    """Return the last four digits of a card number."""
    return _NON_DIGITS.sub("", format_card_number(value))[-4:]


def format_expiry(value: str | None) -> str:
    """Format card expiry input as ``MM/YY``."""
    digits = unformat_phone_number(value)
    if len(digits) >= 2:
        return f"{digits[:2]}/{digits[2:4]}"
    return digits


def sanitize_cvv(value: str | None) -> str:
    return unformat_phone_number(value)[:4]


def _parse_hsl_parts(hsl: str) -> list[float]:
    cleaned = re.sub(r"hsl\(|\)", "", hsl or "").strip()
    parts: list[float] = []
    for token in cleaned.replace(",", " ").split():
        try:
            number = float(token.rstrip("%"))
        except ValueError:
            number = 0.0
        parts.append(0.0 if math.isnan(number) else number)
    while len(parts) < 3:
        parts.append(0.0)
    return parts


def hsl_to_hex(hsl: str) -> str:
    """Convert ``"168 60% 45%"`` (optionally ``hsl(...)``) to ``#rrggbb``.

    Unparseable input yields ``#000000``.
    """
    try:
        h, s, l = _parse_hsl_parts(hsl)[:3]
        h_norm, s_norm, l_norm = h / 360, s / 100, l / 100

        if s_norm == 0:
            r = g = b = l_norm
        else:
            def hue_to_rgb(p: float, q: float, t: float) -> float:
                if t < 0:
                    t += 1
                if t > 1:
                    t -= 1
                if t < 1 / 6:
                    return p + (q - p) * 6 * t
                if t < 1 / 2:
                    return q
                if t < 2 / 3:
                    return p + (q - p) * (2 / 3 - t) * 6
                return p

            q = l_norm * (1 + s_norm) if l_norm < 0.5 else l_norm + s_norm - l_norm * s_norm
            p = 2 * l_norm - q
            r = hue_to_rgb(p, q, h_norm + 1 / 3)
            g = hue_to_rgb(p, q, h_norm)
            b = hue_to_rgb(p, q, h_norm - 1 / 3)

        channels = [max(0, min(255, _round_half_up(c * 255))) for c in (r, g, b)]
        return "#" + "".join(f"{c:02x}" for c in channels)
    except (TypeError, ValueError):
        return "#000000"


def hex_to_hsl(hex_value: str) -> str:
    """Convert ``#rrggbb`` to ``"H S% L%"`` with whole-number components."""
    if not hex_value or not _HEX_COLOR.match(hex_value):
        raise ValueError(f"invalid hex color: {hex_value!r}")

    hex_value = hex_value.lstrip("#")
    r = int(hex_value[0:2], 16) / 255
    g = int(hex_value[2:4], 16) / 255
    b = int(hex_value[4:6], 16) / 255

    high = max(r, g, b)
    low = min(r, g, b)
    h = s = 0.0
    l = (high + low) / 2

    if high != low:
        d = high - low
        s = d / (2 - high - low) if l > 0.5 else d / (high + low)
        if high == r:
            h = ((g - b) / d + (6 if g < b else 0)) / 6
        elif high == g:
            h = ((b - r) / d + 2) / 6
        else:
            h = ((r - g) / d + 4) / 6

    return f"{_round_half_up(h * 360)} {_round_half_up(s * 100)}% {_round_half_up(l * 100)}%"


def normalize_color(value: str) -> str:
    """Accept a hex or HSL color and return the HSL storage form."""
    value = (value or "").strip()
    if not value:
        raise ValueError("color is required")
    if value.startswith("#") or _HEX_COLOR.match(value):
        return hex_to_hsl(value)

    cleaned = re.sub(r"hsl\(|\)", "", value).replace(",", " ").strip()
    tokens = cleaned.split()
    if len(tokens) != 3:
        raise ValueError(f"invalid color: {value!r}")
    try:
        h = float(tokens[0])
        s = float(tokens[1].rstrip("%"))
        l = float(tokens[2].rstrip("%"))
    except ValueError as exc:
        raise ValueError(f"invalid color: {value!r}") from exc
    if not (0 <= h <= 360 and 0 <= s <= 100 and 0 <= l <= 100):
        raise ValueError(f"color out of range: {value!r}")
    return f"{tokens[0]} {tokens[1].rstrip('%')}% {tokens[2].rstrip('%')}%"


def slugify(text: str) -> str:
    slug = (text or "").strip().lower()
    slug = re.sub(r"['\"]", "", slug)
    slug = re.sub(r"[^a-z0-9]+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def to_cents(amount) -> int:
    """Convert a dollar amount (number or numeric string) to integer cents."""
    if isinstance(amount, bool) or amount is None:
        raise ValueError("amount is required")
    try:
        value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"invalid amount: {amount!r}") from exc
    if not value.is_finite():
        raise ValueError(f"invalid amount: {amount!r}")
    if value < 0:
        raise ValueError("amount must not be negative")
    return int(value * 100)


def cents_to_dollars(cents: int | None) -> float:
    return (cents or 0) / 100.0
