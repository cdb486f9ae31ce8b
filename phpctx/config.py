from __future__ import annotations
import logging
import os
from typing import Iterable, List


def _sep() -> str:
    return ';' if os.name == 'nt' else ':'


# Defaults
_DEFAULT_LOG_LEVEL = 'WARNING'
_DEFAULT_TRIGGER_CHARACTERS = ["'", '"', '(', ',', '[']


def values_from_env(var: str, defaults: Iterable[str]) -> List[str]:
    raw = os.environ.get(var)
    if not raw:
        return list(defaults)
    sep = _sep()
    return [v.strip() for v in raw.split(sep) if v.strip()]


def get_trigger_characters() -> List[str]:
    return values_from_env('PHPCTX_TRIGGER_CHARACTERS', _DEFAULT_TRIGGER_CHARACTERS)


def get_log_level() -> int:
    raw = os.environ.get('PHPCTX_LOG_LEVEL', _DEFAULT_LOG_LEVEL).strip().upper()
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw)
    # getLevelName answers "Level X" for unknown names
    return level if isinstance(level, int) else logging.WARNING
