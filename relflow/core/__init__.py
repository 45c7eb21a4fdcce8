"""Core types: results, exit codes, configuration, options and run context."""

from .config import ConfigError, ReleaseConfig, load_release_config
from .context import RunContext
from .errors import ErrorCode
from .options import BumpStrategy, PrereleaseBase, ReleaseType, RunOptions
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "ConfigError",
    "ReleaseConfig",
    "load_release_config",
    # context
    "RunContext",
    # errors
    "ErrorCode",
    # options
    "BumpStrategy",
    "PrereleaseBase",
    "ReleaseType",
    "RunOptions",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
