r"""
Refinement presets and environment configuration.

Presets trade wall time for confidence:
    - quick: few rounds, loose tolerance (smoke checks)
    - standard: default stopping rule (n_min=10, n_max=100, rtol=1%)
    - thorough: long sessions for publishable comparisons

Any preset can be overridden from the environment with RANK_BENCH_N_MIN,
RANK_BENCH_N_MAX, RANK_BENCH_RTOL and RANK_BENCH_TAIL_PROBABILITY.

    from rank_bench.config import get_preset, config_from_env

    config = config_from_env(get_preset("standard"))
"""

import dataclasses
import os
from pathlib import Path

from dotenv import load_dotenv

from rank_bench.types import RefineConfig

# Look for .env in current dir, then next to the package
_env_file = Path(".env")
if not _env_file.exists():
    _env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

__all__ = [
    "PRESETS",
    "DEFAULT_PRESET",
    "DEFAULT_SEED",
    "DEFAULT_BUDGET_NS",
    "ENV_PREFIX",
    "get_preset",
    "get_env",
    "config_from_env",
]

ENV_PREFIX = "RANK_BENCH_"

# Seed of the per-candidate random sources
DEFAULT_SEED = 1234

# Wall time one trial sample should cost (100 ms)
DEFAULT_BUDGET_NS = 100_000_000

PRESETS: dict[str, RefineConfig] = {
    "quick": RefineConfig(
        name="quick",
        n_min=5,
        n_max=30,
        rtol=0.05,
        tail_probability=0.05,
    ),
    "standard": RefineConfig(
        name="standard",
        n_min=10,
        n_max=100,
        rtol=0.01,
        tail_probability=0.01,
    ),
    "thorough": RefineConfig(
        name="thorough",
        n_min=30,
        n_max=1_000,
        rtol=0.005,
        tail_probability=0.001,
    ),
}

# Aliases
PRESETS["default"] = PRESETS["standard"]
PRESETS["smoke"] = PRESETS["quick"]

DEFAULT_PRESET = "standard"


def get_preset(name: str) -> RefineConfig:
    """Get refinement preset by name.

    Args:
        name: Preset name (quick, standard, thorough).

    Returns:
        RefineConfig for the requested preset.

    Raises:
        ValueError: If preset name is not recognized.
    """
    if name not in PRESETS:
        valid = ", ".join(PRESETS.keys())
        msg = f"Unknown preset '{name}'. Valid presets: {valid}"
        raise ValueError(msg)
    return PRESETS[name]


def get_env(key: str, *, default: str | None = None) -> str | None:
    """Get environment variable with RANK_BENCH_ prefix.

    Args:
        key: Variable name without prefix (e.g., "N_MAX").
        default: Default value if not set.

    Returns:
        Environment variable value or default.
    """
    return os.environ.get(f"{ENV_PREFIX}{key}", default)


def config_from_env(base: RefineConfig | None = None) -> RefineConfig:
    """Apply environment overrides on top of a preset.

    Args:
        base: Starting configuration (None = default preset).

    Returns:
        New RefineConfig; base is left untouched.

    Raises:
        ValueError: If an override does not parse or breaks a bound.
    """
    if base is None:
        base = get_preset(DEFAULT_PRESET)

    overrides: dict[str, int | float] = {}
    for key, field_name, cast in (
        ("N_MIN", "n_min", int),
        ("N_MAX", "n_max", int),
        ("RTOL", "rtol", float),
        ("TAIL_PROBABILITY", "tail_probability", float),
    ):
        raw = get_env(key)
        if raw is None:
            continue
        try:
            overrides[field_name] = cast(raw)
        except ValueError:
            msg = f"Invalid value for {ENV_PREFIX}{key}: {raw!r}"
            raise ValueError(msg) from None

    if not overrides:
        return base
    return dataclasses.replace(base, **overrides)
