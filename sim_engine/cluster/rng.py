"""
QUANTUM CATS — Random Streams

Each simulation batch owns its own `random.Random`. Stream seeds are derived
by hashing (base seed, label) so batches never share or overlap a sequence
and a fixed base seed always reproduces the same run.
"""

import hashlib
import random


def derive_seed(base_seed: int, label: str) -> int:
    """Deterministic 64-bit seed for a named sub-stream."""
    digest = hashlib.md5(f"{base_seed}:{label}".encode()).hexdigest()
    return int(digest[:16], 16)


def make_stream(base_seed: int, index: int = 0) -> random.Random:
    return random.Random(derive_seed(base_seed, f"batch:{index}"))


def partition(total: int, parts: int) -> list[int]:
    """Split `total` into `parts` sizes that differ by at most one."""
    parts = max(1, min(parts, total)) if total > 0 else 1
    size, extra = divmod(total, parts)
    return [size + (1 if i < extra else 0) for i in range(parts)]
