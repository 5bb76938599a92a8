"""
Difficulty shaping of raw classifier scores.

Pipeline:
  1. drop banned labels
  2. once the round has run past the reject delay (and the top score is
     confident enough), suppress non-target labels from the top of the
     ranking down; the number suppressed grows with elapsed drawing time,
     with a fractional partial suppression at the boundary rank
  3. re-sort, renormalize into a probability distribution

The target label is never suppressed, so the longer a player struggles the
more likely the target surfaces as the top guess.
"""
from doodledash.orchestrator.config import GameConfig
from doodledash.orchestrator.contracts import Candidate
from doodledash.orchestrator.errors import DegenerateDistributionError


def rejection_factor(rank: int, reject_amount: float) -> float:
    """Multiplier applied to the score at `rank` (0-indexed).

    Ranks strictly below `reject_amount` are zeroed, the single boundary rank
    in [reject_amount, reject_amount + 1) is scaled by (rank - reject_amount),
    everything further down is untouched.
    """
    if rank >= reject_amount + 1:
        return 1.0
    if reject_amount > rank:
        return 0.0
    return rank - reject_amount


def normalize(candidates: list[Candidate]) -> list[Candidate]:
    total = sum(c.score for c in candidates)
    if total <= 0:
        raise DegenerateDistributionError(f"scores sum to {total} over {len(candidates)} candidates")
    for c in candidates:
        c.score /= total
    return candidates


class DifficultyShaper:
    def __init__(self, config: GameConfig, status_store):
        self.status = status_store
        self.banned = set(config.banned_labels)
        self.reject_delay_ms = config.reject_time_delay_ms
        self.reject_time_per_label_ms = config.reject_time_per_label_ms
        self.start_reject_threshold = config.start_reject_threshold

    def shape(self, raw: list[Candidate], elapsed_ms: float, target: str) -> list[Candidate]:
        """Rewrites scores in place; returns the shaped, sorted distribution."""
        result = [c for c in raw if c.label not in self.banned]
        if not result:
            return result

        overage = elapsed_ms - self.reject_delay_ms
        if overage > 0 and result[0].score >= self.start_reject_threshold:
            reject_amount = overage / self.reject_time_per_label_ms
            for i, c in enumerate(result):
                if i >= reject_amount + 1:
                    break
                if c.label == target:
                    continue
                c.score *= rejection_factor(i, reject_amount)
            result.sort(key=lambda c: c.score, reverse=True)

        try:
            return normalize(result)
        except DegenerateDistributionError as e:
            self.status.log(f"shaper: {e}, falling back to uniform")
            share = 1.0 / len(result)
            for c in result:
                c.score = share
            return result
