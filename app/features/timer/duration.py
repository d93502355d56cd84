"""
Duration codec for tracked time.

Durations live in memory as integer milliseconds and are stored remotely as
PostgreSQL interval literals. The canonical encoding is ``HH:MM:SS`` with a
``.mmm`` fraction when the value is not a whole number of seconds; hours are
never folded into days.
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Optional

ZERO_DURATION = "00:00:00"
UNKNOWN_DURATION = "--:--:--"

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR

# "[N day[s]] HH:MM:SS[.ffffff]" as rendered by PostgreSQL
_CLOCK_RE = re.compile(
    r"^(?:(?P<days>\d+)\s+days?\s+)?"
    r"(?P<hours>\d+):(?P<minutes>\d{2}):(?P<seconds>\d{2})(?:\.(?P<fraction>\d{1,6}))?$"
)
# "90", "90.5", "90 seconds"
_SECONDS_RE = re.compile(r"^(?P<value>\d+(?:\.\d+)?)(?:\s*(?:seconds?|secs?))?$")
# "1 hour 2 mins 3 secs"
_VERBOSE_TOKEN = r"(\d+(?:\.\d+)?)\s*(days?|hours?|hrs?|minutes?|mins?|seconds?|secs?)"
_VERBOSE_RE = re.compile(rf"^(?:{_VERBOSE_TOKEN}\s*)+$")
_VERBOSE_TOKEN_RE = re.compile(_VERBOSE_TOKEN)

_UNIT_MS = {
    "day": MS_PER_DAY,
    "hour": MS_PER_HOUR,
    "hr": MS_PER_HOUR,
    "minute": MS_PER_MINUTE,
    "min": MS_PER_MINUTE,
    "second": MS_PER_SECOND,
    "sec": MS_PER_SECOND,
}


def encode_duration(ms: int) -> str:
    """
    Encode milliseconds as a PostgreSQL interval literal.

    Raises:
        ValueError: If ms is negative or not an integer
    """
    if isinstance(ms, bool) or not isinstance(ms, int):
        raise ValueError(f"Duration must be an integer number of milliseconds, got {ms!r}")
    if ms < 0:
        raise ValueError(f"Duration cannot be negative: {ms}")

    hours, rest = divmod(ms, MS_PER_HOUR)
    minutes, rest = divmod(rest, MS_PER_MINUTE)
    seconds, millis = divmod(rest, MS_PER_SECOND)

    encoded = f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    if millis:
        encoded += f".{millis:03d}"
    return encoded


def _seconds_to_ms(value: str) -> int:
    try:
        return int(Decimal(value) * MS_PER_SECOND)
    except InvalidOperation:
        raise ValueError(f"Invalid number of seconds: {value!r}")


def decode_duration(encoded: str) -> int:
    """
    Decode an interval literal into milliseconds.

    Accepts the canonical encoding plus the other shapes the backing store
    hands back: "N days HH:MM:SS", "N seconds", bare seconds and the verbose
    "1 hour 2 mins 3 secs" form. Sub-millisecond fractions are truncated.

    Raises:
        ValueError: If the value is not a recognisable non-negative interval
    """
    if not isinstance(encoded, str):
        raise ValueError(f"Encoded duration must be a string, got {type(encoded).__name__}")

    text = encoded.strip().lower()
    if not text:
        raise ValueError("Encoded duration is empty")

    match = _CLOCK_RE.match(text)
    if match:
        minutes = int(match.group("minutes"))
        seconds = int(match.group("seconds"))
        if minutes >= 60 or seconds >= 60:
            raise ValueError(f"Invalid clock component in duration {encoded!r}")
        fraction = (match.group("fraction") or "").ljust(6, "0")
        return (
            int(match.group("days") or 0) * MS_PER_DAY
            + int(match.group("hours")) * MS_PER_HOUR
            + minutes * MS_PER_MINUTE
            + seconds * MS_PER_SECOND
            + int(fraction) // 1000
        )

    match = _SECONDS_RE.match(text)
    if match:
        return _seconds_to_ms(match.group("value"))

    if _VERBOSE_RE.match(text):
        total = Decimal(0)
        for value, unit in _VERBOSE_TOKEN_RE.findall(text):
            total += Decimal(value) * _UNIT_MS[unit.rstrip("s")]
        return int(total)

    raise ValueError(f"Unrecognised duration format: {encoded!r}")


def format_duration(ms: int, compact: bool = False) -> str:
    """
    Render milliseconds for display.

    ``HH:MM:SS`` by default; the compact form is "1h 23m" when there are whole
    hours and "23m 5s" otherwise. Partial seconds are dropped.
    """
    total_seconds = max(0, int(ms)) // MS_PER_SECOND
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)

    if compact:
        if hours:
            return f"{hours}h {minutes}m"
        return f"{minutes}m {seconds}s"

    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_stored_duration(encoded: Optional[str], compact: bool = False) -> str:
    """Render a stored interval, or the unknown placeholder if it is absent or malformed"""
    if encoded is None:
        return UNKNOWN_DURATION
    try:
        return format_duration(decode_duration(encoded), compact=compact)
    except ValueError:
        return UNKNOWN_DURATION
