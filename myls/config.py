"""Option defaults from the user config file and environment.

Precedence, lowest first: built-in defaults, ``config.json`` in the
platform user-config directory, ``MYLS_*`` environment variables. Command-line
flags are layered on top by ``myls.cli``. All access is defensive: malformed
or missing values fall back field by field.
"""

from __future__ import annotations

import json
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from platformdirs import user_config_dir

from .sorting import SortKey, parse_sort_key

APP_NAME = "myls"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

DEFAULT_TIME_FORMAT_OLD = "%b %e  %Y"
DEFAULT_TIME_FORMAT_NEW = "%b %e %H:%M"
COLOR_MODES = ("auto", "always", "never")

_TRUE_WORDS = {"1", "t", "true"}
_FALSE_WORDS = {"0", "f", "false"}


@dataclass(frozen=True)
class ListingDefaults:
    """Option values that may come from config or environment."""

    dirs_first: bool = False
    git: bool = False
    sort_key: SortKey = SortKey.NAME
    color: str = "auto"
    time_format_old: str = DEFAULT_TIME_FORMAT_OLD
    time_format_new: str = DEFAULT_TIME_FORMAT_NEW
    git_timeout: float | None = None


def load_config() -> dict[str, object]:
    """Load the JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def parse_bool_text(value: str | None) -> bool | None:
    """Parse ``1/t/true/0/f/false`` (any case); ``None`` for anything else."""
    if value is None:
        return None
    word = value.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    return None


def parse_timeout(value: object) -> float | None:
    """Return a positive number of seconds, or ``None`` when unusable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
        return None
    return float(value)


def _non_empty_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    return value if value.strip() else None


def apply_config(defaults: ListingDefaults, data: Mapping[str, object]) -> ListingDefaults:
    """Overlay valid config-file keys onto ``defaults``."""
    updates: dict[str, object] = {}
    for key in ("dirs_first", "git"):
        value = data.get(key)
        if isinstance(value, bool):
            updates[key] = value

    sort_word = _non_empty_str(data.get("sort"))
    sort_key = parse_sort_key(sort_word) if sort_word else None
    if sort_key is not None:
        updates["sort_key"] = sort_key

    color = _non_empty_str(data.get("color"))
    if color is not None and color.lower() in COLOR_MODES:
        updates["color"] = color.lower()

    for key in ("time_format_old", "time_format_new"):
        fmt = _non_empty_str(data.get(key))
        if fmt is not None:
            updates[key] = fmt

    git_timeout = parse_timeout(data.get("git_timeout"))
    if git_timeout is not None:
        updates["git_timeout"] = git_timeout
    return replace(defaults, **updates)


def apply_environment(defaults: ListingDefaults, environ: Mapping[str, str]) -> ListingDefaults:
    """Overlay ``MYLS_*`` environment variables onto ``defaults``."""
    updates: dict[str, object] = {}
    dirs_first = parse_bool_text(environ.get("MYLS_DIRS_FIRST"))
    if dirs_first is not None:
        updates["dirs_first"] = dirs_first
    git = parse_bool_text(environ.get("MYLS_GIT"))
    if git is not None:
        updates["git"] = git

    time_old = _non_empty_str(environ.get("MYLS_TIMEFMT_OLD"))
    if time_old is not None:
        updates["time_format_old"] = time_old
    time_new = _non_empty_str(environ.get("MYLS_TIMEFMT_NEW"))
    if time_new is not None:
        updates["time_format_new"] = time_new
    git_timeout = parse_timeout(environ.get("MYLS_GIT_TIMEOUT"))
    if git_timeout is not None:
        updates["git_timeout"] = git_timeout
    return replace(defaults, **updates)


def load_defaults(environ: Mapping[str, str] | None = None) -> ListingDefaults:
    """Resolve option defaults from config file then environment."""
    env = os.environ if environ is None else environ
    defaults = apply_config(ListingDefaults(), load_config())
    return apply_environment(defaults, env)


def debug_enabled(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return bool(parse_bool_text(env.get("MYLS_DEBUG")))


__all__ = [
    "APP_NAME",
    "CONFIG_PATH",
    "COLOR_MODES",
    "DEFAULT_TIME_FORMAT_OLD",
    "DEFAULT_TIME_FORMAT_NEW",
    "ListingDefaults",
    "load_config",
    "parse_bool_text",
    "parse_timeout",
    "apply_config",
    "apply_environment",
    "load_defaults",
    "debug_enabled",
]
