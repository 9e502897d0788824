"""
QUANTUM CATS — Cluster Slot Configuration Schema

Every number the simulation uses lives here: symbol weights for the base game
and free spins, the tiered cluster paytable, free-spin modes, jackpot and
observer-bonus parameters, grid size and run length.

This module:
  1. Defines Pydantic models for the game math (immutable once built)
  2. Provides the reference Quantum Cats config via default_config()
  3. Validates a config before any spin runs (validate_config)
  4. Computes the theoretical retrigger profile used for the termination check

Usage:
    from config.cluster_schema import default_config, load_config, validate_config
    config = load_config("quantum_cats.json")   # or default_config()
    validate_config(config)                     # raises ConfigurationError
    json_str = config.model_dump_json(indent=2)
"""

from __future__ import annotations

import json
import math
from enum import Enum
from pathlib import Path
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


# ═══════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════

class ConfigErrorKind(str, Enum):
    INVALID_WEIGHTS = "invalid_weights"
    EMPTY_PAYOUT_TIERS = "empty_payout_tiers"
    INVALID_GRID = "invalid_grid"
    INVALID_SPIN_COUNT = "invalid_spin_count"
    INVALID_FREE_SPIN_MODE = "invalid_free_spin_mode"
    NON_TERMINATING_FREE_SPINS = "non_terminating_free_spins"
    INVALID_FIELD = "invalid_field"


class ConfigurationError(Exception):
    """A config that cannot produce a meaningful statistical result."""

    def __init__(self, kind: ConfigErrorKind, message: str):
        super().__init__(f"[{kind.value}] {message}")
        self.kind = kind
        self.message = message


# ═══════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════

class Symbol(str, Enum):
    H1 = "H1"   # superposition cat
    H2 = "H2"   # observer cat
    H3 = "H3"   # entangled cat A
    H4 = "H4"   # entangled cat B
    L1 = "L1"   # electron
    L2 = "L2"   # proton
    L3 = "L3"   # neutron
    L4 = "L4"   # photon
    WD = "WD"   # wild
    SC = "SC"   # scatter
    EN = "EN"   # entanglement connector, never pays


HIGH_SYMBOLS = (Symbol.H1, Symbol.H2, Symbol.H3, Symbol.H4)
LOW_SYMBOLS = (Symbol.L1, Symbol.L2, Symbol.L3, Symbol.L4)
SPECIAL_SYMBOLS = frozenset({Symbol.WD, Symbol.SC, Symbol.EN})
ANCHOR_SYMBOLS = HIGH_SYMBOLS + LOW_SYMBOLS


# ═══════════════════════════════════════════════════════════════
# Reference Game Data
# ═══════════════════════════════════════════════════════════════

BASE_WEIGHTS = {
    Symbol.H1: 3, Symbol.H2: 5, Symbol.H3: 8, Symbol.H4: 8,
    Symbol.L1: 25, Symbol.L2: 30, Symbol.L3: 35, Symbol.L4: 40,
    Symbol.WD: 8, Symbol.SC: 3, Symbol.EN: 25,
}

FREE_SPIN_WEIGHTS = {
    Symbol.H1: 6, Symbol.H2: 10, Symbol.H3: 12, Symbol.H4: 12,
    Symbol.L1: 22, Symbol.L2: 25, Symbol.L3: 28, Symbol.L4: 32,
    Symbol.WD: 15, Symbol.SC: 5, Symbol.EN: 28,
}

# cluster size tier → stake multiplier
PAYTABLE = {
    Symbol.H1: {5: 2.0, 6: 3.0, 7: 5.0, 8: 8.0, 9: 15.0, 10: 25.0, 15: 50.0},
    Symbol.H2: {5: 1.5, 6: 2.0, 7: 3.0, 8: 5.0, 9: 10.0, 10: 18.0, 15: 35.0},
    Symbol.H3: {5: 1.0, 6: 1.5, 7: 2.0, 8: 3.0, 9: 6.0, 10: 12.0, 15: 25.0},
    Symbol.H4: {5: 1.0, 6: 1.5, 7: 2.0, 8: 3.0, 9: 6.0, 10: 12.0, 15: 25.0},
    Symbol.L1: {5: 0.5, 6: 0.6, 7: 0.8, 8: 1.0, 9: 1.5, 10: 2.0, 15: 4.0},
    Symbol.L2: {5: 0.4, 6: 0.5, 7: 0.6, 8: 0.8, 9: 1.2, 10: 1.8, 15: 3.5},
    Symbol.L3: {5: 0.3, 6: 0.4, 7: 0.5, 8: 0.6, 9: 1.0, 10: 1.5, 15: 3.0},
    Symbol.L4: {5: 0.2, 6: 0.3, 7: 0.4, 8: 0.5, 9: 0.8, 10: 1.2, 15: 2.5},
}


# ═══════════════════════════════════════════════════════════════
# Sub-Models
# ═══════════════════════════════════════════════════════════════

class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class IntRange(_Frozen):
    """Inclusive integer range, sampled uniformly."""
    low: int
    high: int

    def sample(self, rng) -> int:
        return rng.randint(self.low, self.high)


class FloatRange(_Frozen):
    """Half-open float range [low, high), sampled uniformly."""
    low: float
    high: float

    def sample(self, rng) -> float:
        return self.low + rng.random() * (self.high - self.low)


class FreeSpinMode(_Frozen):
    """A free-spin variant. Ranged fields are sampled once per session."""
    name: str
    spins: Union[int, IntRange]
    start_multiplier: Union[float, IntRange] = 1.0
    growth: Union[float, FloatRange] = 0.0   # added to the multiplier after every spin
    weight: float = 1.0                      # selection weight among modes

    def max_spins(self) -> int:
        return self.spins.high if isinstance(self.spins, IntRange) else self.spins

    def min_spins(self) -> int:
        return self.spins.low if isinstance(self.spins, IntRange) else self.spins


DEFAULT_MODES = [
    FreeSpinMode(name="Particle", spins=5, start_multiplier=3.0, growth=1.0),
    FreeSpinMode(name="Wave", spins=15, start_multiplier=1.0, growth=0.167),
    FreeSpinMode(
        name="Superposition",
        spins=IntRange(low=3, high=20),
        start_multiplier=IntRange(low=1, high=5),
        growth=FloatRange(low=0.0, high=1.0),
    ),
]


class GridConfig(_Frozen):
    rows: int = 7
    cols: int = 7

    @property
    def cells(self) -> int:
        return self.rows * self.cols


class JackpotConfig(_Frozen):
    """Multiverse jackpot: best of several parallel spins, scaled by their count."""
    threshold: float = 100.0                       # multiplier needed to qualify
    probability: float = Field(0.05, ge=0.0, le=1.0)
    universes: int = Field(4, ge=1)


class ObserverBonusConfig(_Frozen):
    """Observer bonus: a paying spin is amplified with a fixed probability."""
    probability: float = Field(0.05, ge=0.0, le=1.0)
    multiplier: float = Field(1.5, ge=0.0)


class FreeSpinConfig(_Frozen):
    modes: list[FreeSpinMode] = Field(default_factory=lambda: list(DEFAULT_MODES))
    retrigger_spins: int = Field(3, ge=0)
    max_session_spins: int = 10_000                # hard stop for a single session
    jackpot: JackpotConfig = Field(default_factory=JackpotConfig)


# ═══════════════════════════════════════════════════════════════
# Top-Level Config
# ═══════════════════════════════════════════════════════════════

class SimulationConfig(_Frozen):
    """Complete math model for one cluster-pays game.

    The model is frozen but its weight and paytable dicts are plain dicts.
    WeightedSampler and PayoutResolver copy them into tuples when built, so
    a running game never sees later edits to the config.
    """
    name: str = "Quantum Cats"
    grid: GridConfig = Field(default_factory=GridConfig)
    base_weights: dict[Symbol, int] = Field(default_factory=lambda: dict(BASE_WEIGHTS))
    free_spin_weights: dict[Symbol, int] = Field(default_factory=lambda: dict(FREE_SPIN_WEIGHTS))
    paytable: dict[Symbol, dict[int, float]] = Field(
        default_factory=lambda: {s: dict(t) for s, t in PAYTABLE.items()}
    )
    min_cluster_size: int = Field(5, ge=1)
    scatter_trigger: int = Field(3, ge=1)
    free_spins: FreeSpinConfig = Field(default_factory=FreeSpinConfig)
    observer_bonus: ObserverBonusConfig = Field(default_factory=ObserverBonusConfig)
    spins: int = 1_000_000

    @model_validator(mode="after")
    def _special_symbols_never_pay(self):
        special = sorted(s.value for s in self.paytable if s in SPECIAL_SYMBOLS)
        if special:
            raise ValueError(f"special symbols cannot carry payout tiers: {special}")
        return self


def default_config(**overrides) -> SimulationConfig:
    """Reference Quantum Cats config, with optional top-level overrides."""
    return SimulationConfig(**overrides)


def load_config(source: Union[str, Path, dict]) -> SimulationConfig:
    """Build a config from a JSON file path or a plain dict.

    Schema violations are surfaced as ConfigurationError(INVALID_FIELD).
    """
    if isinstance(source, dict):
        data = source
    else:
        try:
            data = json.loads(Path(source).read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(ConfigErrorKind.INVALID_FIELD, f"cannot read {source}: {e}") from e
    try:
        return SimulationConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(ConfigErrorKind.INVALID_FIELD, str(e)) from e


# ═══════════════════════════════════════════════════════════════
# Theoretical Profile
# ═══════════════════════════════════════════════════════════════

def retrigger_probability(weights: dict, cells: int, trigger: int) -> float:
    """P(at least `trigger` scatters on a grid of `cells` independent draws)."""
    total = sum(weights.values())
    if total <= 0:
        return 0.0
    q = weights.get(Symbol.SC, 0) / total
    below = sum(
        math.comb(cells, k) * q ** k * (1 - q) ** (cells - k)
        for k in range(min(trigger, cells + 1))
    )
    return max(0.0, 1.0 - below)


def expected_session_spins(base_spins: float, p_retrigger: float, bonus: int) -> float:
    """Expected spins in a session: every spin adds `bonus` more with probability p.

    Finite only while p * bonus < 1; returns inf otherwise.
    """
    growth = p_retrigger * bonus
    if growth >= 1.0:
        return math.inf
    return base_spins / (1.0 - growth)


# ═══════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════

def validate_weights(weights: dict, label: str = "weights") -> None:
    negative = sorted(str(getattr(s, "value", s)) for s, w in weights.items() if w < 0)
    if negative:
        raise ConfigurationError(ConfigErrorKind.INVALID_WEIGHTS,
                                 f"{label}: negative weight for {negative}")
    if sum(weights.values()) <= 0:
        raise ConfigurationError(ConfigErrorKind.INVALID_WEIGHTS,
                                 f"{label}: total weight must be positive")


def validate_tiers(symbol, tiers: dict) -> None:
    name = getattr(symbol, "value", symbol)
    if not tiers:
        raise ConfigurationError(ConfigErrorKind.EMPTY_PAYOUT_TIERS,
                                 f"paytable for {name} has no tiers")
    bad = [size for size, mult in tiers.items() if size < 1 or mult < 0]
    if bad:
        raise ConfigurationError(ConfigErrorKind.INVALID_FIELD,
                                 f"paytable for {name}: invalid tiers at sizes {sorted(bad)}")


def _validate_mode(mode: FreeSpinMode) -> None:
    def fail(msg):
        raise ConfigurationError(ConfigErrorKind.INVALID_FREE_SPIN_MODE, f"mode {mode.name!r}: {msg}")

    if mode.weight < 0:
        fail("selection weight must be non-negative")
    for field_name in ("spins", "start_multiplier", "growth"):
        value = getattr(mode, field_name)
        if isinstance(value, (IntRange, FloatRange)) and value.low > value.high:
            fail(f"{field_name} range is empty ({value.low} > {value.high})")
    if mode.min_spins() <= 0:
        fail("spin count must be positive")
    low_mult = mode.start_multiplier.low if isinstance(mode.start_multiplier, IntRange) else mode.start_multiplier
    if low_mult < 0:
        fail("starting multiplier must be non-negative")


def validate_config(config: SimulationConfig) -> None:
    """Fail fast on anything that would make the run meaningless."""
    if config.grid.rows <= 0 or config.grid.cols <= 0:
        raise ConfigurationError(ConfigErrorKind.INVALID_GRID,
                                 f"grid must be positive, got {config.grid.rows}x{config.grid.cols}")
    if config.spins <= 0:
        raise ConfigurationError(ConfigErrorKind.INVALID_SPIN_COUNT,
                                 f"spin count must be positive, got {config.spins}")

    validate_weights(config.base_weights, "base_weights")
    validate_weights(config.free_spin_weights, "free_spin_weights")

    if not config.paytable:
        raise ConfigurationError(ConfigErrorKind.EMPTY_PAYOUT_TIERS, "paytable is empty")
    for symbol, tiers in config.paytable.items():
        validate_tiers(symbol, tiers)

    fs = config.free_spins
    if not fs.modes:
        raise ConfigurationError(ConfigErrorKind.INVALID_FREE_SPIN_MODE, "no free-spin modes configured")
    for mode in fs.modes:
        _validate_mode(mode)
    if sum(m.weight for m in fs.modes) <= 0:
        raise ConfigurationError(ConfigErrorKind.INVALID_FREE_SPIN_MODE,
                                 "free-spin mode weights sum to zero")
    if fs.max_session_spins <= 0:
        raise ConfigurationError(ConfigErrorKind.INVALID_FREE_SPIN_MODE,
                                 "max_session_spins must be positive")

    p = retrigger_probability(config.free_spin_weights, config.grid.cells, config.scatter_trigger)
    if p * fs.retrigger_spins >= 1.0:
        raise ConfigurationError(
            ConfigErrorKind.NON_TERMINATING_FREE_SPINS,
            f"retrigger probability {p:.4f} x {fs.retrigger_spins} bonus spins >= 1; "
            f"expected session length is unbounded",
        )


def session_profile(config: SimulationConfig) -> dict:
    """Theoretical free-spin termination profile per mode."""
    fs = config.free_spins
    p = retrigger_probability(config.free_spin_weights, config.grid.cells, config.scatter_trigger)
    return {
        "retrigger_probability": round(p, 6),
        "retrigger_spins": fs.retrigger_spins,
        "expected_spins": {
            m.name: round(expected_session_spins(m.max_spins(), p, fs.retrigger_spins), 3)
            for m in fs.modes
        },
    }
