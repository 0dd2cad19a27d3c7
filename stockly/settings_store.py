"""Runtime settings service backed by the ``.env`` files."""

from __future__ import annotations

import logging
import os
from collections import OrderedDict
from decimal import Decimal, InvalidOperation
from threading import RLock
from types import SimpleNamespace
from typing import Iterable, Mapping, Optional

from . import settings_io

LOGGER = logging.getLogger(__name__)

INT_SUFFIXES = ("_DAYS", "_LIMIT", "_PORT", "_LEVEL")
# ``*_LEVEL`` keys are numeric except for the logging level name.
STRING_KEYS = {"LOG_LEVEL"}


def _cast(key: str, value: Optional[str]):
    if key in STRING_KEYS:
        return value
    if key.startswith("ENABLE_"):
        return (value or "0").strip().lower() in {"1", "true", "yes", "on"}
    if key.endswith(INT_SUFFIXES):
        try:
            return int(value)
        except (TypeError, ValueError):
            return value
    if key.endswith("_RATE"):
        try:
            return Decimal(str(value))
        except (InvalidOperation, TypeError):
            return value
    return value


class SettingsStore:
    """Merge ``.env.example`` and ``.env`` into a typed namespace."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._values: "OrderedDict[str, str]" = OrderedDict()
        self._namespace: Optional[SimpleNamespace] = None
        self._loaded = False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        with self._lock:
            if self._loaded:
                return
            values = settings_io.load_settings(
                example_path=settings_io.EXAMPLE_PATH,
                env_path=settings_io.ENV_PATH,
                logger=lambda message, exc: LOGGER.error("%s: %s", message, exc),
            )
            self._values = OrderedDict(
                (key, "" if value is None else str(value))
                for key, value in values.items()
            )
            self._namespace = self._build_namespace(self._values)
            self._apply_environment(self._values)
            self._loaded = True

    def _build_namespace(self, values: Mapping[str, str]) -> SimpleNamespace:
        return SimpleNamespace(**{key: _cast(key, value) for key, value in values.items()})

    def _apply_environment(
        self, values: Mapping[str, str], removed: Iterable[str] = ()
    ) -> None:
        for key in removed:
            os.environ.pop(key, None)
        for key, value in values.items():
            os.environ[key] = str(value)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def settings(self) -> SimpleNamespace:
        self._ensure_loaded()
        assert self._namespace is not None
        return self._namespace

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        self._ensure_loaded()
        return self._values.get(key, default)

    def update(self, values: Mapping[str, Optional[str]]) -> None:
        """Apply ``values`` at runtime; ``None`` removes a key."""
        self._ensure_loaded()
        with self._lock:
            changed: "OrderedDict[str, str]" = OrderedDict()
            removed = []
            for key, value in values.items():
                if value is None:
                    if self._values.pop(key, None) is not None:
                        removed.append(key)
                    continue
                str_value = str(value)
                if self._values.get(key) == str_value:
                    continue
                self._values[key] = str_value
                changed[key] = str_value

            if not changed and not removed:
                return

            self._apply_environment(changed, removed)
            self._namespace = self._build_namespace(self._values)

    def reload(self) -> None:
        """Drop cached values and read the ``.env`` files again."""
        with self._lock:
            self._loaded = False
            self._values = OrderedDict()
        self._ensure_loaded()


settings_store = SettingsStore()

__all__ = ["settings_store", "SettingsStore"]
