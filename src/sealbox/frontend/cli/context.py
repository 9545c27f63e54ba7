"""Small helper to build a SealBox runtime context for the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional
import logging
import os

from sealbox.core.exceptions import InvalidInputError
from sealbox.security.encryption import DEFAULT_MAX_ITERATIONS, PassphraseEncryptor
from sealbox.security.kdf import DEFAULT_ITERATIONS

ENV_ITERATIONS = "SEALBOX_ITERATIONS"
ENV_MAX_ITERATIONS = "SEALBOX_MAX_ITERATIONS"
ENV_LOG_LEVEL = "SEALBOX_LOG_LEVEL"


@dataclass
class CliContext:
    """Container for runtime objects the CLI needs."""

    encryptor: PassphraseEncryptor
    log_level: int = logging.WARNING


def _int_from_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise InvalidInputError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise InvalidInputError(f"{name} must not be negative, got {value}")
    return value


def _level_from_env(env: Mapping[str, str]) -> int:
    raw = env.get(ENV_LOG_LEVEL)
    if not raw:
        return logging.WARNING
    level = logging.getLevelName(raw.strip().upper())
    if not isinstance(level, int):
        raise InvalidInputError(f"{ENV_LOG_LEVEL} must be a logging level name, got {raw!r}")
    return level


def build_context(env: Optional[Mapping[str, str]] = None) -> CliContext:
    """
    Read CLI configuration from environment variables.

    - ``SEALBOX_ITERATIONS``: PBKDF2 iterations for new envelopes (default 200000)
    - ``SEALBOX_MAX_ITERATIONS``: largest iteration count an envelope may ask
      for (default 10000000); ``0`` lifts the ceiling
    - ``SEALBOX_LOG_LEVEL``: logging level name (default WARNING)
    """
    if env is None:
        env = os.environ

    iterations = _int_from_env(env, ENV_ITERATIONS, DEFAULT_ITERATIONS)
    max_iterations: Optional[int] = _int_from_env(env, ENV_MAX_ITERATIONS, DEFAULT_MAX_ITERATIONS)
    if max_iterations == 0:
        max_iterations = None

    encryptor = PassphraseEncryptor(iterations=iterations, max_iterations=max_iterations)
    return CliContext(
        encryptor=encryptor,
        log_level=_level_from_env(env),
    )
