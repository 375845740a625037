"""Tier math: current tier, next milestone, percentage and rewards due."""

import pytest

from betthat.achievements.seed import ACHIEVEMENT_SEED_DATA
from betthat.achievements.tiers import (
    compute_tier,
    next_reward,
    next_threshold,
    progress_percentage,
    tier_rewards_due,
    validate_tiers,
)

THRESHOLDS = [100, 200, 300]
REWARDS = [10, 20, 30]


class TestComputeTier:
    """Tier is the number of thresholds reached."""

    @pytest.mark.parametrize(
        ("progress", "tier"),
        [(0, 0), (99, 0), (100, 1), (150, 1), (200, 2), (299, 2), (300, 3), (10_000, 3)],
    )
    def test_boundaries(self, progress, tier):
        assert compute_tier(THRESHOLDS, progress) == tier

    def test_tier_never_exceeds_max(self):
        assert compute_tier([1], 500) == 1


class TestNextMilestone:
    def test_next_threshold_and_reward_below_max(self):
        assert next_threshold(THRESHOLDS, 3, 0) == 100
        assert next_threshold(THRESHOLDS, 3, 2) == 300
        assert next_reward(REWARDS, 3, 1) == 20

    def test_none_at_max_tier(self):
        assert next_threshold(THRESHOLDS, 3, 3) is None
        assert next_reward(REWARDS, 3, 3) is None


class TestProgressPercentage:
    def test_zero_progress(self):
        assert progress_percentage(THRESHOLDS, 3, 0, 0) == 0

    def test_within_first_tier(self):
        assert progress_percentage(THRESHOLDS, 3, 50, 0) == 50

    def test_within_later_tier_uses_previous_threshold(self):
        # tier 1 reached at 100, next at 200: 150 is halfway
        assert progress_percentage(THRESHOLDS, 3, 150, 1) == 50

    def test_floors_fractional_percentages(self):
        assert progress_percentage([3, 5, 10], 3, 1, 0) == 33

    def test_max_tier_is_100(self):
        assert progress_percentage(THRESHOLDS, 3, 300, 3) == 100
        assert progress_percentage(THRESHOLDS, 3, 900, 3) == 100

    def test_clamped_to_range(self):
        assert progress_percentage(THRESHOLDS, 3, 250, 1) == 100
        assert progress_percentage(THRESHOLDS, 3, 50, 1) == 0


class TestTierRewardsDue:
    def test_single_tier_crossed(self):
        assert tier_rewards_due(REWARDS, 0, 1) == [(1, 10)]

    def test_jump_pays_every_crossed_tier(self):
        assert tier_rewards_due(REWARDS, 0, 3) == [(1, 10), (2, 20), (3, 30)]

    def test_no_change_pays_nothing(self):
        assert tier_rewards_due(REWARDS, 2, 2) == []

    def test_zero_rewards_skipped(self):
        assert tier_rewards_due([0, 5], 0, 2) == [(2, 5)]


class TestValidateTiers:
    def test_seed_data_is_valid(self):
        for data in ACHIEVEMENT_SEED_DATA:
            validate_tiers(data["max_tier"], data["tier_thresholds"], data["tier_rewards"])

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="max_tier entries"):
            validate_tiers(3, [1, 2], [1, 2, 3])

    def test_thresholds_must_increase(self):
        with pytest.raises(ValueError, match="strictly increasing"):
            validate_tiers(3, [1, 5, 5], [1, 2, 3])

    def test_negative_reward(self):
        with pytest.raises(ValueError, match="negative"):
            validate_tiers(2, [1, 2], [1, -2])

    def test_zero_max_tier(self):
        with pytest.raises(ValueError):
            validate_tiers(0, [], [])
