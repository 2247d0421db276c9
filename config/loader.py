"""Configuration file loader and validator.

Reads ``voicefeed.ini``, coerces every value to the type declared in ``models.config_models``
and validates the translation settings. Raises exceptions for any issue encountered during loading.
"""

from __future__ import annotations

import ast
import configparser
from configparser import ConfigParser
from dataclasses import fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

from models.config_models import Config
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable
    from dataclasses import Field as DataclassField

__all__: list[str] = [
    "Config",
    "ConfigFileNotFoundError",
    "ConfigFormatError",
    "ConfigLoader",
    "ConfigLoaderError",
    "ConfigTypeError",
    "ConfigValueError",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

ALLOWED_TRANSLATION_ENGINES: list[str] = ["openai", "http", "deepl"]


class ConfigLoaderError(Exception):
    """An error occurred while processing the configuration file."""


class ConfigFileNotFoundError(ConfigLoaderError):
    """The specified configuration file does not exist."""


class ConfigFormatError(ConfigLoaderError):
    """The configuration file is not formatted correctly."""


class ConfigValueError(ConfigFormatError):
    """The configuration file contains an invalid value."""


class ConfigTypeError(ConfigFormatError):
    """The configuration file contains an invalid type."""


class ConfigLoader:
    """Handles loading and validation of configuration settings.

    Args:
        config_filename (str): INI file name to load.
        script_name (str): Executing script name, used in error messaging.
        **args: Command-line overrides. Recognised keys are ``debug`` (bool) and ``target`` (str).

    Raises:
        ConfigFileNotFoundError: If the configuration file does not exist.
        ConfigFormatError: If the file cannot be parsed or contains invalid values/types.
    """

    def __init__(
        self,
        *,
        config_filename: str,
        script_name: str,
        **args,
    ) -> None:
        config_path = Path(config_filename)
        msg: str
        if not config_path.exists():
            msg = (
                f"Configuration file '{config_filename}' not found. "
                f"Please create '{config_filename}' in the same directory as '{script_name}'."
            )
            raise ConfigFileNotFoundError(msg)

        parser: ConfigParser = ConfigParser()
        # Keys are matched against upper-case dataclass field names.
        parser.optionxform = str.upper  # type: ignore[assignment, method-assign]

        try:
            parser.read(config_filename, encoding="utf-8")
        except configparser.Error as err:
            msg = f"Failed to parse configuration file '{config_filename}': {err}"
            raise ConfigFormatError(msg) from None

        self.config = Config()
        self.config.GENERAL.SCRIPT_NAME = script_name
        self._convert_settings(parser)

        if args.get("debug", False):
            self.config.GENERAL.DEBUG = True
        if args.get("target"):
            self.config.TRANSLATION.DEFAULT_TARGET_LANGUAGE = args["target"]
        self._validate_settings()

    def _convert_settings(self, parser: ConfigParser) -> None:
        """Copy every known key from the parser into the Config object.

        Raises:
            ConfigFormatError: If a value cannot be parsed or coerced to the expected type.
        """
        formatter = _ConfigFormatter(self.config, parser)
        for section in fields(self.config):
            if not parser.has_section(section.name):
                logger.debug("Section '%s' not present, using defaults", section.name)
                continue
            for key in fields(getattr(self.config, section.name)):
                if not parser.has_option(section.name, key.name):
                    logger.debug("Skipping undefined setting: '%s.%s'", section.name, key.name)
                    continue
                formatted_value = formatter.apply_format(section, key)
                setattr(getattr(self.config, section.name), key.name, formatted_value)

    def _validate_settings(self) -> None:
        """Validate the translation section.

        Raises:
            ConfigFormatError: If validation fails for any setting.
        """
        translation = self.config.TRANSLATION
        if isinstance(translation.ENGINE, str):
            translation.ENGINE = [translation.ENGINE]
        self._inspect_defined_item("TRANSLATION", "ENGINE", ALLOWED_TRANSLATION_ENGINES)

        if translation.BATCH_SIZE < 1:
            msg = f"'TRANSLATION.BATCH_SIZE' must be at least 1: {translation.BATCH_SIZE}"
            raise ConfigValueError(msg)
        if translation.TIMEOUT < 0:
            msg = f"'TRANSLATION.TIMEOUT' must not be negative: {translation.TIMEOUT}"
            raise ConfigValueError(msg)
        if translation.RETRY_COUNT < 0:
            msg = f"'TRANSLATION.RETRY_COUNT' must not be negative: {translation.RETRY_COUNT}"
            raise ConfigValueError(msg)
        if translation.CACHE_MAX_ENTRIES < 0:
            msg = f"'TRANSLATION.CACHE_MAX_ENTRIES' must not be negative: {translation.CACHE_MAX_ENTRIES}"
            raise ConfigValueError(msg)

        if not isinstance(translation.SUPPORTED_LANGUAGES, list):
            msg = f"Unsupported type used for 'TRANSLATION.SUPPORTED_LANGUAGES': {type(translation.SUPPORTED_LANGUAGES)}"
            raise ConfigTypeError(msg)
        translation.SUPPORTED_LANGUAGES = [StringUtils.normalize_lang(lang) for lang in translation.SUPPORTED_LANGUAGES]
        translation.DEFAULT_TARGET_LANGUAGE = StringUtils.normalize_lang(translation.DEFAULT_TARGET_LANGUAGE)
        if translation.DEFAULT_TARGET_LANGUAGE not in translation.SUPPORTED_LANGUAGES:
            logger.warning(
                "'TRANSLATION.DEFAULT_TARGET_LANGUAGE' (%s) is not one of %s",
                translation.DEFAULT_TARGET_LANGUAGE,
                translation.SUPPORTED_LANGUAGES,
            )

        if "http" in translation.ENGINE and not self.config.HTTP_TRANSLATOR.URL:
            logger.warning("'http' translation engine selected but 'HTTP_TRANSLATOR.URL' is empty")

    def _inspect_defined_item(self, section_name: str, key_name: str, defined_list: list[str]) -> None:
        """Warn about values that are not among the allowed options.

        Raises:
            ConfigTypeError: If the configured value is not a list.
        """
        value: Any = getattr(getattr(self.config, section_name), key_name)
        field_name: str = f"{section_name}.{key_name}"

        if not isinstance(value, list):
            msg: str = f"Unsupported type used for '{field_name}': {type(value)}"
            raise ConfigTypeError(msg)
        for val in value:
            if val not in defined_list:
                logger.warning("Unknown value '%s' is set for '%s'", val, field_name)


class _ConfigFormatter:
    """Converts INI string values to typed Python objects (bool, int, float, str, list)."""

    def __init__(self, config: Config, parser: ConfigParser) -> None:
        self.config: Config = config
        self.parser: ConfigParser = parser

    def apply_format(self, section: DataclassField[Any], key: DataclassField[Any]) -> Any:
        """Convert an INI value to the type of the matching Config field's default.

        Raises:
            ConfigValueError: If a value cannot be coerced to the expected type.
            ConfigFormatError: If literal evaluation fails due to invalid syntax.
            ConfigTypeError: If an unexpected type is encountered during coercion.
        """
        formatters: dict[type, Callable[[DataclassField[Any], DataclassField[Any]], Any]] = {
            bool: self.parse_as_boolean,
            int: self.parse_as_integer,
            float: self.parse_as_float,
            str: self.parse_as_string,
        }

        formatter: Callable[[DataclassField[Any], DataclassField[Any]], Any] | None = formatters.get(
            type(getattr(getattr(self.config, section.name), key.name))
        )
        if formatter:
            try:
                return formatter(section, key)
            except ValueError as err:
                msg = f"Invalid value for {section.name}.{key.name}: {err}"
                raise ConfigValueError(msg) from err
            except TypeError as err:
                msg = f"Invalid value for {section.name}.{key.name}: {err}"
                raise ConfigTypeError(msg) from err

        value_str: str = self.parser[section.name][key.name]
        try:
            return ast.literal_eval(value_str)
        except ValueError as err:
            msg = f"Invalid literal for {section.name}.{key.name}: {value_str}"
            raise ConfigValueError(msg) from err
        except SyntaxError as err:
            msg = f"Invalid literal for {section.name}.{key.name}: {value_str}"
            raise ConfigFormatError(msg) from err

    def _strip_quotes(self, section: DataclassField[Any], key: DataclassField[Any]) -> str:
        value: str = self.parser.get(section.name, key.name).strip()
        for char in ("'", '"'):
            value = value.removeprefix(char).removesuffix(char)
        return value

    def parse_as_string(self, section: DataclassField[Any], key: DataclassField[Any]) -> str:
        """Convert INI string to str, dropping surrounding quotes."""
        return self._strip_quotes(section, key)

    def parse_as_float(self, section: DataclassField[Any], key: DataclassField[Any]) -> float:
        """Convert INI string to float."""
        return float(self._strip_quotes(section, key))

    def parse_as_integer(self, section: DataclassField[Any], key: DataclassField[Any]) -> int:
        """Convert INI string to integer."""
        return int(float(self._strip_quotes(section, key)))

    def parse_as_boolean(self, section: DataclassField[Any], key: DataclassField[Any]) -> bool:
        """Convert INI string to boolean."""
        return self.parser.getboolean(section.name, key.name)
