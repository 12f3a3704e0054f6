import math
import unittest

from ecowatch import capacity_policy
from ecowatch.domain import (
    DEFAULT_CAPACITY_POLICIES,
    CapacityPolicy,
    Destination,
    RiskTier,
    Sensitivity,
)


def _dest(occupancy: int, max_capacity: int = 100, sensitivity: Sensitivity = Sensitivity.LOW) -> Destination:
    return Destination(
        id="d1",
        name="Manali",
        max_capacity=max_capacity,
        current_occupancy=occupancy,
        ecological_sensitivity=sensitivity,
    )


class TestAdjustedCapacity(unittest.TestCase):
    def test_floor_of_max_times_multiplier(self):
        self.assertEqual(capacity_policy.adjusted_capacity(_dest(0, 100, Sensitivity.HIGH)), 80)
        self.assertEqual(capacity_policy.adjusted_capacity(_dest(0, 99, Sensitivity.MEDIUM)), 89)  # 89.1
        self.assertEqual(capacity_policy.adjusted_capacity(_dest(0, 101, Sensitivity.CRITICAL)), 50)  # 50.5

    def test_never_exceeds_max_and_equal_only_for_multiplier_one(self):
        for tier in Sensitivity:
            dest = _dest(0, 1000, tier)
            adjusted = capacity_policy.adjusted_capacity(dest)
            self.assertLessEqual(adjusted, dest.max_capacity)
            if DEFAULT_CAPACITY_POLICIES[tier].capacity_multiplier == 1.0:
                self.assertEqual(adjusted, dest.max_capacity)
            else:
                self.assertLess(adjusted, dest.max_capacity)

    def test_default_multipliers_strictly_decrease(self):
        order = [Sensitivity.LOW, Sensitivity.MEDIUM, Sensitivity.HIGH, Sensitivity.CRITICAL]
        multipliers = [DEFAULT_CAPACITY_POLICIES[t].capacity_multiplier for t in order]
        self.assertEqual(multipliers, sorted(multipliers, reverse=True))
        self.assertEqual(len(set(multipliers)), len(multipliers))


class TestRiskTier(unittest.TestCase):
    def test_high_sensitivity_over_capacity_is_critical(self):
        dest = _dest(90, 100, Sensitivity.HIGH)
        self.assertEqual(capacity_policy.adjusted_capacity(dest), 80)
        self.assertAlmostEqual(capacity_policy.utilization(dest), 1.125)
        self.assertEqual(capacity_policy.risk_tier(dest), RiskTier.CRITICAL)

    def test_threshold_boundaries_are_inclusive(self):
        self.assertEqual(capacity_policy.risk_tier(_dest(49)), RiskTier.LOW)
        self.assertEqual(capacity_policy.risk_tier(_dest(50)), RiskTier.MEDIUM)
        self.assertEqual(capacity_policy.risk_tier(_dest(69)), RiskTier.MEDIUM)
        self.assertEqual(capacity_policy.risk_tier(_dest(70)), RiskTier.HIGH)
        self.assertEqual(capacity_policy.risk_tier(_dest(84)), RiskTier.HIGH)
        self.assertEqual(capacity_policy.risk_tier(_dest(85)), RiskTier.CRITICAL)

    def test_over_capacity_does_not_clamp_or_raise(self):
        dest = _dest(250, 100)
        self.assertAlmostEqual(capacity_policy.utilization(dest), 2.5)
        self.assertEqual(capacity_policy.available_spots(dest), 0)
        assessment = capacity_policy.assess_capacity(dest)
        self.assertTrue(assessment.over_capacity)
        self.assertEqual(assessment.risk_tier, RiskTier.CRITICAL)

    def test_zero_capacity(self):
        self.assertEqual(capacity_policy.utilization(_dest(0, 0)), 0.0)
        self.assertTrue(math.isinf(capacity_policy.utilization(_dest(3, 0))))
        self.assertEqual(capacity_policy.risk_tier(_dest(3, 0)), RiskTier.CRITICAL)


class TestAssessment(unittest.TestCase):
    def test_assessment_carries_policy_advisories(self):
        assessment = capacity_policy.assess_capacity(_dest(10, 100, Sensitivity.CRITICAL))
        self.assertEqual(assessment.adjusted_capacity, 50)
        self.assertEqual(assessment.available_spots, 40)
        self.assertTrue(assessment.requires_permit)
        self.assertIsNotNone(assessment.restriction_message)
        self.assertFalse(assessment.over_capacity)


class TestValidatePolicies(unittest.TestCase):
    def test_rejects_non_decreasing_multipliers(self):
        policies = dict(DEFAULT_CAPACITY_POLICIES)
        policies[Sensitivity.HIGH] = CapacityPolicy(sensitivity=Sensitivity.HIGH, capacity_multiplier=0.95)
        with self.assertRaises(ValueError):
            capacity_policy.validate_policies(policies)

    def test_rejects_missing_tier(self):
        policies = dict(DEFAULT_CAPACITY_POLICIES)
        policies.pop(Sensitivity.MEDIUM)
        with self.assertRaises(ValueError):
            capacity_policy.validate_policies(policies)

    def test_defaults_are_valid(self):
        capacity_policy.validate_policies(DEFAULT_CAPACITY_POLICIES)


if __name__ == "__main__":
    unittest.main()
