"""Helpers for loading configuration values from ``.env`` files."""

from __future__ import annotations

from collections import OrderedDict
from pathlib import Path
from typing import Callable, Optional

from dotenv import dotenv_values

ROOT_DIR = Path(__file__).resolve().parents[1]
ENV_PATH = ROOT_DIR / ".env"
EXAMPLE_PATH = ROOT_DIR / ".env.example"


def _handle_error(
    error: Exception,
    *,
    logger: Optional[Callable[[str, Exception], None]] = None,
    on_error: Optional[Callable[[str], None]] = None,
    message: str,
) -> None:
    if logger is not None:
        logger(message, error)
    if on_error is not None:
        on_error(message)


def load_settings(
    *,
    example_path: Path = EXAMPLE_PATH,
    env_path: Path = ENV_PATH,
    logger: Optional[Callable[[str, Exception], None]] = None,
    on_error: Optional[Callable[[str], None]] = None,
) -> "OrderedDict[str, str]":
    """Return merged configuration values from ``.env`` files.

    ``.env.example`` fixes the key order and the defaults, ``.env`` wins
    where it defines a key. Keys only present in ``.env`` are appended.
    """

    if not example_path.exists():
        _handle_error(
            FileNotFoundError(example_path),
            logger=logger,
            on_error=on_error,
            message=f"Settings template missing: {example_path}",
        )
        return OrderedDict()

    example = dotenv_values(example_path)
    current = dotenv_values(env_path) if env_path.exists() else {}

    values: "OrderedDict[str, str]" = OrderedDict()
    for key in example.keys():
        values[key] = current.get(key, example[key])
    for key, val in current.items():
        if key not in values:
            values[key] = val
    return values


__all__ = ["ENV_PATH", "EXAMPLE_PATH", "load_settings"]
