"""
Module to validate values in a loaded config
"""

# Standard
from typing import Any, Dict, List, Optional
import abc
import builtins

# First Party
import aconfig
import alog

# Local
from .. import constants
from ..utils import nested_get, parse_time_delta  # pylint: disable=cyclic-import

log = alog.use_channel("CONFG")


################################################################################
## Public ######################################################################
################################################################################


def get_invalid_params(
    config: aconfig.Config,
    validation_config: aconfig.Config,
) -> List[str]:
    """Get a list of any params that are invalid

    Args:
        config:  aconfig.Config
            The parsed config with any override values
        validation_config:  aconfig.Config
            The parallel config holding validation setup

    Returns:
        invalid_params:  List[str]
            A list of all nested keys for parameters that fail validation
    """
    invalid_params = []
    for val_key, validator in _parse_validation_config(validation_config).items():
        if not validator.validate(nested_get(config, val_key)):
            log.warning("Found invalid config key [%s]", val_key)
            invalid_params.append(val_key)
    return invalid_params


################################################################################
## Implementation ##############################################################
################################################################################

# pylint: disable=too-few-public-methods


class _ValidatedParameter(abc.ABC):
    """A config value of a given type which may also be null when optional"""

    TYPES = []
    TYPE_KEY = None

    def __init__(self, optional: bool = False):
        self.optional = optional

    def validate(self, value: Any) -> bool:
        if self.optional and value is None:
            return True
        if not isinstance(value, tuple(self.TYPES)):
            log.warning("Invalid type <%s>", type(value))
            return False
        valid_value = self._validate_value(value)
        if not valid_value:
            log.warning("Invalid value [%s]", value)
        return valid_value

    def _validate_value(self, value: Any) -> bool:
        return True


class _IntParameter(_ValidatedParameter):
    """An int with an optional lower bound. Bools are rejected."""

    TYPES = [int]
    TYPE_KEY = "int"

    def __init__(
        self,
        *,
        min: Optional[int] = None,  # pylint: disable=redefined-builtin
        **kwargs,
    ):
        super().__init__(**kwargs)
        self._min = min

    def _validate_value(self, value: int) -> bool:
        return not isinstance(value, bool) and (self._min is None or value >= self._min)


class _StrParameter(_ValidatedParameter):
    TYPES = [str]
    TYPE_KEY = "str"

    def __init__(self, *, min_len: int = 0, **kwargs):
        super().__init__(**kwargs)
        self._min_len = min_len

    def _validate_value(self, value: str) -> bool:
        return len(value) >= self._min_len


class _BoolParameter(_ValidatedParameter):
    TYPES = [bool]
    TYPE_KEY = "bool"


class _DurationParameter(_ValidatedParameter):
    """A duration string such as "5m" or "1h30m" (see parse_time_delta)"""

    TYPES = [str]
    TYPE_KEY = "duration"

    def _validate_value(self, value: str) -> bool:
        delta = parse_time_delta(value)
        return delta is not None and delta.total_seconds() > 0


class _EnumParameter(_ValidatedParameter):
    TYPES = [str]
    TYPE_KEY = "enum"

    def __init__(self, *, values: List[str], **kwargs):
        super().__init__(**kwargs)
        assert (
            isinstance(values, list) and values
        ), "Must specify at least one enum value!"
        self.values = values

    def _validate_value(self, value: str) -> bool:
        return value in self.values


class _ListParameter(_ValidatedParameter):
    """A list whose items may be required to have a builtin type"""

    TYPES = [list]
    TYPE_KEY = "list"

    def __init__(self, *, item_type: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._item_type = None
        if item_type is not None:
            assert hasattr(builtins, item_type), f"Unsupported item_type: {item_type}"
            self._item_type = getattr(builtins, item_type)

    def _validate_value(self, value: list) -> bool:
        return self._item_type is None or all(
            isinstance(item, self._item_type) for item in value
        )


# pylint: enable=too-few-public-methods

## Factory #####################################################################

_factory_map = {
    param_class.TYPE_KEY: param_class
    for param_class in _ValidatedParameter.__subclasses__()
}


def _construct_parameter(param_args: Dict[str, Any]) -> Optional[_ValidatedParameter]:
    """Construct a _ValidatedParameter from the args parsed out of the
    validation file. Unknown types yield None.
    """
    param_args = dict(param_args)
    param_type = param_args.pop("type")
    if not (isinstance(param_type, str) and param_type in _factory_map):
        return None
    return _factory_map[param_type](**param_args)


## Parsing #####################################################################


def _parse_validation_config(
    validation_config: aconfig.Config,
    prefix_parts: Optional[List[str]] = None,
) -> Dict[str, _ValidatedParameter]:
    """Recursively walk the validation config. A dict with a known "type" is a
    parameter and any other dict is a section.
    """
    output_dict = {}
    prefix_parts = prefix_parts or []
    for key, val in validation_config.items():
        if not isinstance(val, dict):
            continue
        key_parts = prefix_parts + [key]
        nested_key = constants.NESTED_DICT_DELIM.join(key_parts)

        param = _construct_parameter(val) if "type" in val else None
        if param:
            log.debug3("Found parameter at %s", nested_key)
            output_dict[nested_key] = param
        else:
            log.debug3("Recursing into %s", nested_key)
            output_dict.update(_parse_validation_config(val, prefix_parts=key_parts))

    return output_dict
