"""
Common utilities shared across the library
"""

# Standard
from datetime import timedelta
from typing import Any, Optional
import re

# First Party
import alog

# Local
from . import constants
from .exceptions import ConfigError

log = alog.use_channel("OIUTL")

# Sentinel for missing dict values
__MISSING__ = "__MISSING__"

## Dicts #######################################################################


def nested_get(dct: dict, key: str, dflt=None) -> Any:
    """Helper to get values from a dict using 'foo.bar' key notation

    Args:
        dct:  dict
            The dict to read from
        key:  str
            Key that may contain '.' notation indicating dict nesting

    Returns:
        val:  Any
            Whatever is found at the given key or dflt if the key is not found.
            This includes missing intermediate dicts.
    """
    parts = key.split(constants.NESTED_DICT_DELIM)
    for i, part in enumerate(parts[:-1]):
        dct = dct.get(part, __MISSING__)
        if dct is __MISSING__ or dct is None:
            return dflt
        if not isinstance(dct, dict):
            raise TypeError(
                "Intermediate key {} is not a dict".format(  # pylint: disable=consider-using-f-string
                    constants.NESTED_DICT_DELIM.join(parts[:i])
                )
            )
    return dct.get(parts[-1], dflt)


## Time ########################################################################

_TIME_DELTA_REGEX = re.compile(
    r"^((?P<hours>\d+?)h(r)?)?((?P<minutes>\d+?)m)?((?P<seconds>\d*\.?\d+?)s)?$"
)


def parse_time_delta(time_str: str) -> Optional[timedelta]:
    """Parse a string into a timedelta. Accepts values in the following
    formats: 1h, 1hr, 5m, 10s, 0.5s, 1h30m, etc

    Args:
        time_str:  str
            The string representation of a timedelta

    Returns:
        result:  Optional[timedelta]
            The parsed timedelta if one could be found
    """
    parts = _TIME_DELTA_REGEX.match(str(time_str))
    if not parts or all(
        parts.group(name) is None for name in ["hours", "minutes", "seconds"]
    ):
        return None
    return timedelta(
        **{
            name: float(param)
            for name, param in parts.groupdict().items()
            if param is not None
        }
    )


def config_seconds(time_str: str, config_key: str) -> float:
    """Parse a duration string from the library config into seconds, raising a
    ConfigError that names the offending key if it can't be parsed
    """
    delta = parse_time_delta(time_str)
    if delta is None:
        log.error("Invalid '%s' value: '%s'", config_key, time_str)
        raise ConfigError(f"Invalid '{config_key}' value: '{time_str}'")
    return delta.total_seconds()
