from typing import Any, Dict

from console_utils import print_verbose


class JsonParser:
    """
    A parser for JSON configuration files that yields import options.

    The configuration is a single object whose keys mirror the command line
    flags, e.g.::

        {
            "prefix": "my_",
            "exclude": ["^admin$", "^local$"],
            "drop": "true",
            "parallel": 4,
            "batch_size": 500
        }

    Booleans may be given as JSON booleans or as "true"/"false" strings.
    """

    BOOL_OPTIONS = ("drop", "skip_confirm", "create_indexes", "verbose")
    INT_OPTIONS = ("parallel", "batch_size")
    FLOAT_OPTIONS = ("ping_timeout",)
    STR_OPTIONS = ("source", "target", "prefix")
    LIST_OPTIONS = ("exclude",)

    def __init__(self, config: dict, verbose: bool = False):
        self.config = config
        self.verbose = verbose

    def parse_json(self) -> Dict[str, Any]:
        """
        Parse the JSON configuration and return the options it sets.

        :return: A dictionary of option name to value.
        :raises ValueError: On unknown keys or values of the wrong type.
        """
        if not isinstance(self.config, dict):
            raise ValueError("Configuration must be a JSON object")

        known = set(self.BOOL_OPTIONS + self.INT_OPTIONS + self.FLOAT_OPTIONS + self.STR_OPTIONS + self.LIST_OPTIONS)
        unknown = sorted(set(self.config) - known)
        if unknown:
            raise ValueError(f"Unknown configuration option(s): {', '.join(unknown)}")

        options = {}
        for key, value in self.config.items():
            if key in self.BOOL_OPTIONS:
                options[key] = self._parse_bool(key, value)
            elif key in self.INT_OPTIONS:
                options[key] = self._parse_number(key, value, int)
            elif key in self.FLOAT_OPTIONS:
                options[key] = self._parse_number(key, value, float)
            elif key in self.LIST_OPTIONS:
                options[key] = self._parse_list(key, value)
            else:
                if not isinstance(value, str):
                    raise ValueError(f"Option '{key}' must be a string")
                options[key] = value
            print_verbose(self.verbose, f"[VERBOSE]   {key}: {options[key]}")

        return options

    def _parse_bool(self, key: str, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise ValueError(f"Option '{key}' must be true or false")

    def _parse_number(self, key: str, value: Any, kind: type):
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise ValueError(f"Option '{key}' must be a number")
        if kind is int and isinstance(value, float) and not value.is_integer():
            raise ValueError(f"Option '{key}' must be a whole number")
        try:
            return kind(value)
        except ValueError:
            raise ValueError(f"Option '{key}' must be a number") from None

    def _parse_list(self, key: str, value: Any) -> list:
        if isinstance(value, str):
            return [value]
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return list(value)
        raise ValueError(f"Option '{key}' must be a string or a list of strings")
