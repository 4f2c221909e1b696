"""
Permuted congruential generator (PCG-XSH-RR, 64-bit state, 32-bit output).

Every tile of the image tracer owns its own generator, seeded with the
render seed and the tile index as sequence, so renders are reproducible
regardless of how tiles are scheduled across threads.

See O'Neill, "PCG: A Family of Simple Fast Space-Efficient Statistically
Good Algorithms for Random Number Generation" (2014).
"""

_MASK64 = 0xFFFFFFFFFFFFFFFF
_MASK32 = 0xFFFFFFFF
_MULTIPLIER = 6364136223846793005


class PCG:
    """A small, seedable pseudo-random generator."""

    __slots__ = ('state', 'inc')

    def __init__(self, init_state: int = 42, init_seq: int = 54):
        self.state = 0
        self.inc = ((init_seq << 1) | 1) & _MASK64
        self.random()
        self.state = (self.state + init_state) & _MASK64
        self.random()

    def random(self) -> int:
        """Advance the state and return a uniformly distributed uint32."""
        oldstate = self.state
        self.state = (oldstate * _MULTIPLIER + self.inc) & _MASK64

        xorshifted = (((oldstate >> 18) ^ oldstate) >> 27) & _MASK32
        rot = oldstate >> 59
        return ((xorshifted >> rot) | (xorshifted << ((-rot) & 31))) & _MASK32

    def random_float(self) -> float:
        """Return a float uniformly distributed in [0, 1)."""
        return self.random() / 4294967296.0

    def random_int(self, n: int) -> int:
        """Return an integer uniformly distributed in [0, n).

        Uses rejection sampling so that small ranges carry no modulo bias.
        """
        if n <= 0:
            raise ValueError(f"random_int needs a positive bound, got {n}")
        # Largest multiple of n that fits in 32 bits
        threshold = (1 << 32) - ((1 << 32) % n)
        while True:
            value = self.random()
            if value < threshold:
                return value % n

    def __repr__(self) -> str:
        return f"PCG(state={self.state}, inc={self.inc})"
