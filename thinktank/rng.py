"""
Instance id generation for placed occupants.

Ids combine the species slug, a millisecond timestamp, a per-factory
sequence number and a random suffix drawn from numpy.random.Generator(PCG64),
so rapid successive placements never collide. Passing a seed makes the
random stream reproducible (tests); the default draws OS entropy.
"""

import itertools
import time
from typing import Callable, Optional

import numpy as np

from .slug import canonicalize

_BASE36 = '0123456789abcdefghijklmnopqrstuvwxyz'
SUFFIX_LENGTH = 6


def to_base36(number: int) -> str:
    if number == 0:
        return '0'
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return ''.join(reversed(digits))


class InstanceIdFactory:
    """
    Callable producing collision-resistant instance ids.

    Format: "{species-slug}-{epoch_ms}-{sequence}{suffix}", never containing
    the composite separator.
    """

    def __init__(self, seed: Optional[int] = None, clock: Callable[[], float] = time.time):
        self._rng = np.random.Generator(np.random.PCG64(seed))
        self._sequence = itertools.count()
        self._clock = clock

    def __call__(self, species_id: str) -> str:
        prefix = canonicalize(species_id) or 'item'
        stamp = int(self._clock() * 1000)
        sequence = to_base36(next(self._sequence))
        suffix = to_base36(int(self._rng.integers(0, 36 ** SUFFIX_LENGTH))).rjust(SUFFIX_LENGTH, '0')
        return f"{prefix}-{stamp}-{sequence}{suffix}"


# Process-wide factory used when callers do not inject one
new_instance_id = InstanceIdFactory()
