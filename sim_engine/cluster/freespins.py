"""
QUANTUM CATS — Free-Spin Session Runner

A triggered session walks SELECTING_MODE → SPINNING → JACKPOT_CHECK → DONE.

  • SELECTING_MODE  weighted pick of a mode, ranged parameters sampled once
                    into an immutable SessionPlan
  • SPINNING        free-spin weights, multiplier grows by plan.growth after
                    each spin, ≥ trigger scatters add `retrigger_spins`
  • JACKPOT_CHECK   multiplier ≥ threshold → with fixed probability, play
                    `universes` parallel spins at the final multiplier and
                    award best × universes
  • DONE            session record returned to the driver

Sessions end because validate_config requires p(retrigger) × bonus < 1.
`max_session_spins` is a hard stop on top of that; a capped session is
flagged and logged.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from config.cluster_schema import FloatRange, FreeSpinConfig, FreeSpinMode, IntRange

logger = logging.getLogger("quantumcats.freespins")


class SessionState(str, Enum):
    SELECTING_MODE = "selecting_mode"
    SPINNING = "spinning"
    JACKPOT_CHECK = "jackpot_check"
    DONE = "done"


@dataclass(frozen=True)
class SessionPlan:
    mode: str
    spins: int
    start_multiplier: float
    growth: float


@dataclass
class FreeSpinSession:
    plan: SessionPlan
    spins_played: int = 0
    retriggers: int = 0
    multiplier: float = 1.0
    total_win: float = 0.0
    jackpot_win: float = 0.0
    jackpot_triggered: bool = False
    observer_bonuses: int = 0
    capped: bool = False
    states: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "mode": self.plan.mode,
            "planned_spins": self.plan.spins,
            "spins_played": self.spins_played,
            "retriggers": self.retriggers,
            "final_multiplier": round(self.multiplier, 4),
            "total_win": round(self.total_win, 4),
            "jackpot_win": round(self.jackpot_win, 4),
            "capped": self.capped,
        }


def sample_plan(mode: FreeSpinMode, rng) -> SessionPlan:
    """Resolve a mode's ranged parameters into one concrete plan."""
    spins = mode.spins.sample(rng) if isinstance(mode.spins, IntRange) else mode.spins
    start = mode.start_multiplier
    start = float(start.sample(rng)) if isinstance(start, IntRange) else float(start)
    growth = mode.growth.sample(rng) if isinstance(mode.growth, FloatRange) else float(mode.growth)
    return SessionPlan(mode=mode.name, spins=spins, start_multiplier=start, growth=growth)


class FreeSpinRunner:

    def __init__(self, settings: FreeSpinConfig, evaluator, generator):
        """
        Args:
            settings: modes, retrigger bonus, session cap, jackpot
            evaluator: SpinEvaluator shared with the base game
            generator: GridGenerator over the free-spin weight table
        """
        self.settings = settings
        self.evaluator = evaluator
        self.generator = generator
        self._modes = list(settings.modes)
        self._mode_weights = [m.weight for m in self._modes]

    def select_mode(self, rng) -> FreeSpinMode:
        return rng.choices(self._modes, weights=self._mode_weights, k=1)[0]

    def run(self, rng) -> FreeSpinSession:
        cfg = self.settings
        state = SessionState.SELECTING_MODE
        session = None
        remaining = 0
        trail = []

        while state is not SessionState.DONE:
            trail.append(state)
            if state is SessionState.SELECTING_MODE:
                plan = sample_plan(self.select_mode(rng), rng)
                session = FreeSpinSession(plan=plan, multiplier=plan.start_multiplier)
                remaining = plan.spins
                state = SessionState.SPINNING

            elif state is SessionState.SPINNING:
                while remaining > 0:
                    if session.spins_played >= cfg.max_session_spins:
                        session.capped = True
                        logger.warning(f"Free-spin session capped at {cfg.max_session_spins} spins "
                                       f"(mode={session.plan.mode}, retriggers={session.retriggers})")
                        break
                    outcome = self.evaluator.spin(self.generator, rng, session.multiplier,
                                                  in_free_spins=True)
                    session.total_win += outcome.payout
                    session.observer_bonuses += outcome.observer_bonus
                    session.spins_played += 1
                    session.multiplier += session.plan.growth
                    if outcome.scatter_count >= self.evaluator.scatter_trigger:
                        remaining += cfg.retrigger_spins
                        session.retriggers += 1
                    remaining -= 1
                state = SessionState.JACKPOT_CHECK

            elif state is SessionState.JACKPOT_CHECK:
                self._jackpot_check(session, rng)
                state = SessionState.DONE

        trail.append(state)
        session.states = trail
        return session

    def _jackpot_check(self, session: FreeSpinSession, rng) -> None:
        jp = self.settings.jackpot
        if session.multiplier < jp.threshold or rng.random() >= jp.probability:
            return
        best = 0.0
        for _ in range(jp.universes):
            outcome = self.evaluator.spin(self.generator, rng, session.multiplier, in_free_spins=True)
            best = max(best, outcome.payout)
        session.jackpot_triggered = True
        session.jackpot_win = best * jp.universes
        session.total_win += session.jackpot_win
        logger.debug(f"Multiverse jackpot: best={best:.2f} x{jp.universes} at multiplier "
                     f"{session.multiplier:.2f}")
