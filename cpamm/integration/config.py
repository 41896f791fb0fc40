"""
Engine configuration.

The program identity and the ids of the collaborating programs are injected at
start-up through an immutable `EngineConfig`, never read from module globals by
the engine itself. Three sources are supported: defaults, environment
variables, and a YAML file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml
from solders.pubkey import Pubkey

from ..state.addresses import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    DEFAULT_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)

DEFAULT_LP_MINT_DECIMALS = 6
MAX_DECIMALS = 18

_ENV_PREFIX = "CPAMM_"


@dataclass(frozen=True)
class EngineConfig:
    # Identity of this program: namespace for the pool and LP-mint addresses and
    # owner of pool records.
    program_id: Pubkey = DEFAULT_PROGRAM_ID

    # Collaborating programs.
    token_program_id: Pubkey = TOKEN_PROGRAM_ID
    associated_token_program_id: Pubkey = ASSOCIATED_TOKEN_PROGRAM_ID
    system_program_id: Pubkey = SYSTEM_PROGRAM_ID

    # Decimals of newly created LP mints.
    lp_mint_decimals: int = DEFAULT_LP_MINT_DECIMALS

    def __post_init__(self) -> None:
        for f in fields(self):
            if f.name.endswith("_id") and not isinstance(getattr(self, f.name), Pubkey):
                raise TypeError(f"{f.name} must be a Pubkey")
        d = self.lp_mint_decimals
        if not isinstance(d, int) or isinstance(d, bool) or not (0 <= d <= MAX_DECIMALS):
            raise ValueError(f"lp_mint_decimals must be in [0, {MAX_DECIMALS}]: {d!r}")


def _parse_pubkey(raw: Any, *, name: str) -> Pubkey:
    if isinstance(raw, Pubkey):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError(f"{name} must be a non-empty base58 string")
    try:
        return Pubkey.from_string(raw.strip())
    except Exception as exc:
        raise ValueError(f"{name} is not a valid pubkey: {exc}") from exc


def _env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer: {raw!r}") from None


def config_from_mapping(values: Mapping[str, Any]) -> EngineConfig:
    """Build a config from plain values; unknown keys are rejected."""
    known = {f.name for f in fields(EngineConfig)}
    unknown = sorted(str(k) for k in set(values) - known)
    if unknown:
        raise ValueError(f"unknown config keys: {', '.join(unknown)}")

    kwargs: dict[str, Any] = {}
    for name, raw in values.items():
        if name.endswith("_id"):
            kwargs[name] = _parse_pubkey(raw, name=name)
        else:
            if not isinstance(raw, int) or isinstance(raw, bool):
                raise ValueError(f"{name} must be an int")
            kwargs[name] = raw
    return EngineConfig(**kwargs)


def config_from_env() -> EngineConfig:
    """
    Read `CPAMM_PROGRAM_ID`, `CPAMM_TOKEN_PROGRAM_ID`,
    `CPAMM_ASSOCIATED_TOKEN_PROGRAM_ID`, `CPAMM_SYSTEM_PROGRAM_ID` and
    `CPAMM_LP_MINT_DECIMALS`. Unset or blank variables keep their defaults; a malformed value raises
    `ValueError`.
    """
    base = EngineConfig()
    values: dict[str, Any] = {}
    for f in fields(EngineConfig):
        env_name = _ENV_PREFIX + f.name.upper()
        if f.name.endswith("_id"):
            values[f.name] = _env_str(env_name, str(getattr(base, f.name)))
        else:
            values[f.name] = _env_int(env_name, getattr(base, f.name))
    return config_from_mapping(values)


def load_config(path: str | Path) -> EngineConfig:
    """Load a config from a YAML mapping (missing keys keep their defaults)."""
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        return EngineConfig()
    if not isinstance(obj, Mapping):
        raise ValueError("config YAML must be a mapping")
    return config_from_mapping(obj)
