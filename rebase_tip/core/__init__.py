"""Core types: results, exit codes, configuration."""

from .config import Config, ConfigError, load_config, resolve_config
from .errors import ExitCode
from .result import Err, Ok, Result

__all__ = [
    # config
    "Config",
    "ConfigError",
    "load_config",
    "resolve_config",
    # errors
    "ExitCode",
    # result
    "Err",
    "Ok",
    "Result",
]
