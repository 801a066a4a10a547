from __future__ import annotations
from dataclasses import dataclass
import math

from .errors import InvalidRange

# Seconds of slack allowed when a selection end is compared with a duration
_END_TOLERANCE = 1e-9


@dataclass(frozen=True, slots=True)
class SelectionRange:
    """Time window in seconds that effects and exports operate on."""
    start: float
    end: float

    @classmethod
    def full(cls, buffer) -> "SelectionRange":
        """Selection spanning the whole buffer."""
        return cls(0.0, buffer.duration)

    @property
    def length(self) -> float:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def validate(self, duration: float) -> "SelectionRange":
        """Raise InvalidRange unless 0 <= start <= end <= duration."""
        if not (math.isfinite(self.start) and math.isfinite(self.end)):
            raise InvalidRange("Selection bounds must be finite numbers.")
        if self.start < 0 or self.end < self.start or self.end > duration + _END_TOLERANCE:
            raise InvalidRange(
                f"Selection {self.start:.3f}s-{self.end:.3f}s is outside the audio (0.000s-{duration:.3f}s)."
            )
        return self

    def clamped(self, duration: float) -> "SelectionRange":
        """Clip both ends into [0, duration], swapping them if reversed."""
        lo, hi = sorted((self.start, self.end))
        return SelectionRange(min(max(lo, 0.0), duration), min(max(hi, 0.0), duration))

    def frame_bounds(self, sample_rate: int) -> tuple[int, int]:
        """(floor(start*sr), floor(end*sr))"""
        return math.floor(self.start * sample_rate), math.floor(self.end * sample_rate)
