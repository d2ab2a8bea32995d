"""Central configuration helper for the department document client."""

import logging
import os


class HelperConfig:
    """Central configuration helper. Reads settings from environment variables.

    Values passed in ``overrides`` take precedence over the environment. This is how
    the bridge API and the tests inject settings without touching ``os.environ``.
    """

    def __init__(self, logger: logging.Logger, overrides: dict[str, str] | None = None) -> None:
        self._logger = logger
        self._overrides = {key.upper(): str(val) for key, val in (overrides or {}).items()}

    def _read_raw(self, key: str) -> str | None:
        """Returns the raw value for key, or None if unset or blank."""
        key = key.upper()
        raw = self._overrides.get(key, os.getenv(key))
        if raw is None or not raw.strip():
            return None
        return raw.strip()

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string setting.

        Args:
            key (str): Setting name (case-insensitive).
            default (str | None): Fallback value if the setting is not present.

        Returns:
            str: The resolved value.

        Raises:
            ValueError: If the setting is not present and no default is provided.
        """
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        return raw

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric setting.

        Args:
            key (str): Setting name (case-insensitive).
            default (float | int | None): Fallback value if the setting is not present.

        Returns:
            float | int: The resolved number. Values without a dot are returned as int.

        Raises:
            ValueError: If the setting is missing without default or is not a number.
        """
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key.upper()}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean setting. "true", "1" and "yes" are truthy.

        Raises:
            ValueError: If the setting is not present and no default is provided.
        """
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        return raw.lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a list setting written as "[elem1,elem2,...]".

        Args:
            key (str): Setting name (case-insensitive).
            default (list | None): Fallback value if the setting is not present.
            separator (str): The delimiter between elements.
            element_type (type): The type each element is cast to.

        Returns:
            list: The resolved elements. Blank elements are dropped.

        Raises:
            ValueError: If the setting is missing without default, is not bracketed, or holds elements that cannot be cast.
        """
        raw = self._read_raw(key)
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        if not raw.startswith("[") or not raw.endswith("]"):
            raise ValueError(f"Environment variable '{key.upper()}' must be in the format '[elem1{separator}elem2{separator}...]'. Got: '{raw}'")
        elements = [v.strip() for v in raw[1:-1].split(separator) if v.strip()]
        try:
            return [element_type(elem) for elem in elements]
        except ValueError as e:
            raise ValueError(f"Environment variable '{key.upper()}' contains invalid elements: {e}. Type set to {element_type.__name__}. Got: '{raw}'")

    def get_logger(self) -> logging.Logger:
        """Return the application logger."""
        return self._logger
