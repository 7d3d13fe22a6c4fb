"""
Tests for the position sizing calculator.
"""

import unittest

from tradebook.risk import calculate_position_size


class TestCalculatePositionSize(unittest.TestCase):

    def test_basic_sizing(self):
        # 2% of 10,000 = 200 at risk over a 5-point stop
        result = calculate_position_size(10_000, 2, 100.0, 95.0)
        self.assertAlmostEqual(result.risk_amount, 200.0)
        self.assertAlmostEqual(result.price_distance, 5.0)
        self.assertAlmostEqual(result.position_size, 40.0)
        self.assertIsNone(result.reward_amount)
        self.assertIsNone(result.risk_reward_ratio)

    def test_short_side_uses_absolute_distance(self):
        result = calculate_position_size(10_000, 1, 100.0, 104.0)
        self.assertAlmostEqual(result.position_size, 25.0)

    def test_take_profit_gives_reward_and_ratio(self):
        result = calculate_position_size(10_000, 2, 100.0, 95.0, take_profit=115.0)
        self.assertAlmostEqual(result.reward_amount, 600.0)
        self.assertAlmostEqual(result.risk_reward_ratio, 3.0)

    def test_pip_value_scales_position(self):
        # gold in an IDR account: 15,000 IDR per price unit per lot
        result = calculate_position_size(10_000_000, 2, 2000.0, 1990.0, take_profit=2020.0, pip_value=15_000)
        self.assertAlmostEqual(result.risk_amount, 200_000)
        self.assertAlmostEqual(result.position_size, 200_000 / (10 * 15_000))
        self.assertAlmostEqual(result.risk_reward_ratio, 2.0)

    def test_zero_distance_returns_zero(self):
        result = calculate_position_size(10_000, 2, 100.0, 100.0, take_profit=110.0)
        self.assertEqual(result.position_size, 0.0)
        self.assertEqual(result.reward_amount, 0.0)
        self.assertEqual(result.risk_reward_ratio, 0.0)

    def test_zero_risk_returns_zero(self):
        result = calculate_position_size(10_000, 0, 100.0, 95.0, take_profit=110.0)
        self.assertEqual(result.risk_amount, 0.0)
        self.assertEqual(result.position_size, 0.0)
        self.assertEqual(result.risk_reward_ratio, 0.0)

    def test_to_risk_calculation(self):
        result = calculate_position_size(10_000, 2, 100.0, 95.0, take_profit=115.0)
        calc = result.to_risk_calculation("u1", " xauusd ", 10_000, 2, 100.0, 95.0, 115.0)
        self.assertEqual(calc.symbol, "XAUUSD")
        self.assertEqual(calc.owner_id, "u1")
        self.assertAlmostEqual(calc.position_size, 40.0)
        self.assertAlmostEqual(calc.risk_reward_ratio, 3.0)
        self.assertIsNone(calc.id)


    def test_zero_take_profit_is_not_treated_as_missing(self):
        result = calculate_position_size(10_000, 2, 100.0, 95.0, take_profit=0.0)
        self.assertAlmostEqual(result.reward_amount, 4000.0)
        self.assertAlmostEqual(result.risk_reward_ratio, 20.0)


if __name__ == "__main__":
    unittest.main()
