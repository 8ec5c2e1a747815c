from __future__ import annotations


class LowPass:
    """
    Exponential moving average: x = a * sample + (1 - a) * x.

    With seed_first=True the first sample after reset() is taken as-is (no
    warm-up lag). Otherwise the average starts from x0.
    """

    def __init__(self, alpha: float, x0: float = 0.0, seed_first: bool = True):
        self.alpha = float(alpha)
        self.x0 = float(x0)
        self.seed_first = seed_first
        self.x = self.x0
        self.initialized = not seed_first

    def reset(self):
        self.x = self.x0
        self.initialized = not self.seed_first

    @property
    def value(self) -> float | None:
        return self.x if self.initialized else None

    def apply(self, x: float) -> float:
        if not self.initialized:
            self.x = x
            self.initialized = True
            return x
        self.x = self.alpha * x + (1.0 - self.alpha) * self.x
        return self.x
