"""Date and time functions. Timestamps are Unix seconds (UTC)."""

import re
import time
from datetime import UTC, datetime

from strata._errors import ParseError
from strata._value import Number, ParamType, Value, require_integer

from ._registry import FunctionGroup

functions = FunctionGroup()

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}
_DURATION = re.compile(r"(?:\d+[smhd])+")
_DURATION_PART = re.compile(r"(\d+)([smhd])")


def parse_duration(text: str) -> int:
    """Parse a duration such as ``1h30m`` into seconds.

    Raises:
        ParseError: If the text is not a sequence of ``<number><unit>`` parts
            with units ``s``, ``m``, ``h`` or ``d``.

    """
    compact = text.strip()
    if not _DURATION.fullmatch(compact):
        msg = f"Invalid duration '{text}'"
        raise ParseError(msg)
    return sum(int(amount) * _UNIT_SECONDS[unit] for amount, unit in _DURATION_PART.findall(compact))


@functions.register("date::timestamp", aliases=("timestamp",))
def timestamp() -> Value:
    """Current Unix time in seconds."""
    return int(time.time())


@functions.register("date::timeadd", ParamType.NUMBER, ParamType.STRING, aliases=("timeadd",))
def timeadd(ts: Number, duration: str) -> Value:
    """Add a duration to a timestamp."""
    return require_integer(ts, "timeadd() timestamp") + parse_duration(duration)


@functions.register("date::duration", ParamType.STRING, aliases=("parseduration",))
def duration(text: str) -> Value:
    """Length of a duration in seconds."""
    return parse_duration(text)


@functions.register("date::format", ParamType.STRING, ParamType.NUMBER, aliases=("formatdate",))
def format_date(fmt: str, ts: Number) -> Value:
    """Format a timestamp with strftime directives."""
    moment = datetime.fromtimestamp(require_integer(ts, "formatdate() timestamp"), tz=UTC)
    return moment.strftime(fmt)
