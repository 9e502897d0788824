"""
Quantum Cats Simulator - Run Settings & Logging

Run-level knobs come from the environment (a local .env is honoured), the
game math itself lives in config/cluster_schema.py.

    SIM_SPINS        spins for a single CLI run         (default 0 = sweep)
    SIM_SEED         base seed for the random streams   (default 42)
    SIM_WORKERS      parallel batches                   (default 1)
    SIM_EXECUTOR     "process" | "thread"               (default process)
    SIM_CONFIG_PATH  JSON game config, empty = built-in reference game
    LOG_LEVEL        root level for quantumcats.* loggers
"""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()


class SimSettings:

    SPINS = int(os.getenv("SIM_SPINS", "0"))
    SEED = int(os.getenv("SIM_SEED", "42"))
    WORKERS = int(os.getenv("SIM_WORKERS", "1"))
    EXECUTOR = os.getenv("SIM_EXECUTOR", "process").lower()
    CONFIG_PATH = os.getenv("SIM_CONFIG_PATH", "")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # CLI default sweep, same sizes the reference report used
    SWEEP_SIZES = [10_000, 100_000, 1_000_000]

    @classmethod
    def config_path(cls):
        return Path(cls.CONFIG_PATH) if cls.CONFIG_PATH else None


def configure_logging(level: str = None) -> logging.Logger:
    """Attach one stream handler to the quantumcats logger tree."""
    logger = logging.getLogger("quantumcats")
    if not logger.handlers:
        _h = logging.StreamHandler()
        _h.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(name)s %(message)s",
                                          datefmt="%H:%M:%S"))
        logger.addHandler(_h)
    logger.setLevel(level or SimSettings.LOG_LEVEL)
    return logger
