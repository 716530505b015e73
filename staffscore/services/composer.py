from dataclasses import dataclass
from typing import Dict, Optional

COMPONENTS = ("attendance", "punctuality", "task", "test", "review")


@dataclass(frozen=True)
class ComponentScores:
    attendance: Optional[float] = None
    punctuality: Optional[float] = None
    task: Optional[float] = None
    test: Optional[float] = None
    review: Optional[float] = None

    def applicable(self) -> Dict[str, float]:
        """Components that produced a score, in fixed order."""
        values = {name: getattr(self, name) for name in COMPONENTS}
        return {name: value for name, value in values.items() if value is not None}


@dataclass(frozen=True)
class CompositeScore:
    effective_score: Optional[float]
    used_components: int


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def compose(components: ComponentScores, penalty: float = 0.0) -> CompositeScore:
    # Missing components are left out of the mean, never counted as zero.
    scores = list(components.applicable().values())
    if not scores:
        return CompositeScore(effective_score=None, used_components=0)
    raw = sum(scores) / len(scores)
    return CompositeScore(effective_score=clamp(raw - penalty), used_components=len(scores))
