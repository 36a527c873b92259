import re

from tfs_relay.exceptions import InvalidDelayError

_DELAY_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|secs?|s)?\s*$")


def parse_delay(delay: str | None, default: float) -> float:
    """
    Parse a scheduling delay into seconds.

    Accepts a plain number of seconds, or a number with a ``sec``, ``secs``,
    ``s`` or ``ms`` suffix. ``None`` or an empty string yields ``default``.
    """
    if delay is None or delay.strip() == "":
        return default

    match = _DELAY_PATTERN.match(delay)
    if match is None:
        raise InvalidDelayError(f"Invalid delay: {delay}")

    value = float(match.group(1))
    if match.group(2) == "ms":
        value /= 1000
    return value
