"""Tier computation for achievements.

A tier is reached when progress is greater than or equal to its threshold.
Thresholds are strictly increasing, so the current tier is simply the number
of thresholds already reached.
"""

from __future__ import annotations

from collections.abc import Sequence


def validate_tiers(max_tier: int, thresholds: Sequence[int], rewards: Sequence[int]) -> None:
    """Raise ValueError if an achievement's tier arrays are malformed."""
    if max_tier < 1:
        raise ValueError("max_tier must be at least 1")
    if len(thresholds) != max_tier or len(rewards) != max_tier:
        raise ValueError("tier_thresholds and tier_rewards must both have max_tier entries")
    if thresholds[0] <= 0:
        raise ValueError("tier thresholds must be positive")
    if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
        raise ValueError("tier thresholds must be strictly increasing")
    if any(r < 0 for r in rewards):
        raise ValueError("tier rewards must not be negative")


def compute_tier(thresholds: Sequence[int], progress: int) -> int:
    """Number of thresholds reached by ``progress``."""
    return sum(1 for threshold in thresholds if progress >= threshold)


def next_threshold(thresholds: Sequence[int], max_tier: int, current_tier: int) -> int | None:
    """Threshold of the next tier, or None once the last tier is reached."""
    if current_tier >= max_tier:
        return None
    return thresholds[current_tier]


def next_reward(rewards: Sequence[int], max_tier: int, current_tier: int) -> int | None:
    """Reward of the next tier, or None once the last tier is reached."""
    if current_tier >= max_tier:
        return None
    return rewards[current_tier]


def progress_percentage(thresholds: Sequence[int], max_tier: int, progress: int, current_tier: int) -> int:
    """Whole-number percentage of the way from the current tier to the next.

    100 at max tier; otherwise floor(100 * (progress - lower) / (upper - lower))
    clamped to 0..100, where lower is the current tier's threshold (0 for tier 0).
    """
    if current_tier >= max_tier:
        return 100

    upper = thresholds[current_tier]
    lower = thresholds[current_tier - 1] if current_tier > 0 else 0
    pct = (100 * (progress - lower)) // (upper - lower)
    return max(0, min(pct, 100))


def tier_rewards_due(rewards: Sequence[int], old_tier: int, new_tier: int) -> list[tuple[int, int]]:
    """(tier_number, reward) for every tier crossed going from old_tier to new_tier.

    Tier numbers are 1-based. Zero rewards are skipped.
    """
    return [(index + 1, rewards[index]) for index in range(old_tier, new_tier) if rewards[index] > 0]
