"""
Deterministic seeded randomizer used to regenerate the origin's scramble order.

All arithmetic is done on Python ints and masked after every step so the
results match the origin's unsigned 64-bit (and 32-bit) wraparound exactly.
"""

from typing import List, Tuple

from .kdf import SEED_MASK, hash_seed, expand_entropy

MASK64 = 0xFFFFFFFFFFFFFFFF
MASK32 = 0xFFFFFFFF
MASK8 = 0xFF

PRNG_MULTIPLIER = 0x27BB2EE687B0B0FD
ROUND_MULTIPLIER = 0x45D9F3B
FEISTEL_ROUNDS = 4

SBOX_TABLE = (163, 95, 137, 13, 55, 193, 107, 228, 114, 185, 22, 243, 68, 218, 158, 40)


def sbox(value: int) -> int:
    """Substitute a byte through the two-nibble lookup table."""
    return SBOX_TABLE[value & 0xF] ^ SBOX_TABLE[(value >> 4) & 0xF]


class SeededRandomizer:
    """
    Xorshift-multiply generator with an entropy pool and Feistel mixer.

    Construction runs the two-pass permutation exactly once and leaves the
    result in ``order``. The generator state keeps advancing afterwards, so a
    fresh instance with the same seed can be used as a plain number source.
    """

    def __init__(self, seed: int, grid_size: int = 10):
        """
        Initialize randomizer.

        Args:
            seed: 64-bit seed (wider values are masked)
            grid_size: Grid dimension; the permutation covers grid_size**2 cells
        """
        if grid_size < 1:
            raise ValueError("Grid size must be positive")

        self.size = grid_size * grid_size
        self.seed = seed & SEED_MASK
        self._state = hash_seed(self.seed)
        self._entropy_pool = expand_entropy(self.seed)
        self.order: List[int] = list(range(self.size))
        self._permute()

    @property
    def state(self) -> int:
        """Current 64-bit generator register."""
        return self._state

    @property
    def entropy_pool(self) -> bytes:
        return self._entropy_pool

    def next(self) -> int:
        """Advance the generator and return the new 64-bit state."""
        s = self._state
        s ^= (s << 11) & MASK64
        s ^= s >> 19
        s ^= (s << 7) & MASK64
        s = (s * PRNG_MULTIPLIER) & MASK64
        self._state = s
        return s

    def _round(self, value: int, tweak: int) -> int:
        n = value ^ self.next() ^ tweak
        # Right shift sees the full value before the 32-bit mask
        rotated = ((n << 5) | (n >> 3)) & MASK32
        n = (rotated * ROUND_MULTIPLIER) & MASK32
        return n ^ sbox(n & MASK8) ^ (n >> 13)

    def feistel_mix(self, left: int, right: int, rounds: int = FEISTEL_ROUNDS) -> Tuple[int, int]:
        """
        Mix an index pair through alternating round functions.

        Args:
            left: First index
            right: Second index
            rounds: Number of double half-rounds

        Returns:
            Tuple of mixed (left, right) values, not yet reduced
        """
        pool = self._entropy_pool
        for rnd in range(rounds):
            ent = pool[rnd % len(pool)]
            left ^= self._round(right, ent)
            right ^= self._round(left, ent ^ ((rnd * 31) & 0xFF))
        return left, right

    def _permute(self) -> None:
        order = self.order
        size = self.size
        pool = self._entropy_pool

        # Pass 1: Feistel swaps between the two halves
        half = size // 2
        for t in range(half):
            left, right = self.feistel_mix(t, t + half)
            s = left % size
            a = right % size
            order[s], order[a] = order[a], order[s]

        # Pass 2: Fisher-Yates biased by the entropy pool
        for e in range(size - 1, 0, -1):
            ent = pool[e % len(pool)]
            k = (self.next() + ent) % (e + 1)
            order[e], order[k] = order[k], order[e]
