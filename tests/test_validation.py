"""
Tests for the trade validation engine.

Checks message ordering, the directional stop-loss / take-profit rules and
that an invalid field does not produce follow-on errors.
"""

import math
import unittest

from tradebook.models import TradeDraft
from tradebook import validation as v
from tradebook.validation import validate_trade, is_valid


def _draft(**overrides):
    base = dict(asset="AAPL", direction="BUY", entry_price=100.0, quantity=10.0)
    base.update(overrides)
    return TradeDraft(**base)


class TestRequiredFields(unittest.TestCase):

    def test_valid_minimal_draft(self):
        self.assertEqual(validate_trade(_draft()), [])
        self.assertTrue(is_valid(_draft()))

    def test_empty_draft_reports_every_required_field_in_order(self):
        errors = validate_trade(TradeDraft())
        self.assertEqual(errors, [
            v.ASSET_REQUIRED,
            v.DIRECTION_REQUIRED,
            v.ENTRY_PRICE_INVALID,
            v.QUANTITY_INVALID,
        ])

    def test_blank_asset_after_trim(self):
        self.assertEqual(validate_trade(_draft(asset="   ")), [v.ASSET_REQUIRED])

    def test_asset_length_limit(self):
        self.assertEqual(validate_trade(_draft(asset="X" * 50)), [])
        self.assertEqual(validate_trade(_draft(asset="X" * 51)), [v.ASSET_TOO_LONG])

    def test_direction_must_be_buy_or_sell(self):
        self.assertEqual(validate_trade(_draft(direction="HOLD")), [v.DIRECTION_INVALID])
        self.assertEqual(validate_trade(_draft(direction="sell", stop_loss=110.0)), [])

    def test_quantity_must_be_positive(self):
        self.assertEqual(validate_trade(_draft(quantity=0)), [v.QUANTITY_INVALID])
        self.assertEqual(validate_trade(_draft(quantity=0.0001)), [])

    def test_fees_cannot_be_negative(self):
        self.assertEqual(validate_trade(_draft(fees=-1)), [v.FEES_NEGATIVE])
        self.assertEqual(validate_trade(_draft(fees=0)), [])

    def test_nan_fails_numeric_checks(self):
        errors = validate_trade(_draft(entry_price=math.nan, fees=math.nan))
        self.assertEqual(errors, [v.ENTRY_PRICE_INVALID, v.FEES_NEGATIVE])


    def test_infinity_fails_numeric_checks(self):
        errors = validate_trade(_draft(entry_price=math.inf, quantity=math.inf, fees=math.inf))
        self.assertEqual(errors, [v.ENTRY_PRICE_INVALID, v.QUANTITY_INVALID, v.FEES_NEGATIVE])

    def test_infinite_form_input_is_rejected(self):
        draft = TradeDraft.from_form({
            "asset": "AAPL", "direction": "BUY", "entry_price": "inf", "quantity": "1e400",
            "stop_loss": "-inf",
        })
        self.assertEqual(
            validate_trade(draft),
            [v.ENTRY_PRICE_INVALID, v.QUANTITY_INVALID, v.STOP_LOSS_INVALID],
        )

class TestDirectionalLevels(unittest.TestCase):

    def test_buy_stop_loss_above_entry_is_rejected(self):
        self.assertEqual(validate_trade(_draft(stop_loss=150.0)), [v.STOP_LOSS_BUY_SIDE])

    def test_buy_stop_loss_below_entry_passes(self):
        self.assertEqual(validate_trade(_draft(stop_loss=90.0)), [])

    def test_stop_loss_equal_to_entry_is_rejected(self):
        self.assertEqual(validate_trade(_draft(stop_loss=100.0)), [v.STOP_LOSS_BUY_SIDE])

    def test_sell_levels(self):
        self.assertEqual(
            validate_trade(_draft(direction="SELL", stop_loss=90.0, take_profit=110.0)),
            [v.STOP_LOSS_SELL_SIDE, v.TAKE_PROFIT_SELL_SIDE],
        )
        self.assertEqual(
            validate_trade(_draft(direction="SELL", stop_loss=110.0, take_profit=90.0)),
            [],
        )

    def test_buy_take_profit_below_entry_is_rejected(self):
        self.assertEqual(validate_trade(_draft(take_profit=95.0)), [v.TAKE_PROFIT_BUY_SIDE])

    def test_non_positive_levels_get_their_own_message(self):
        self.assertEqual(
            validate_trade(_draft(stop_loss=0, take_profit=-5)),
            [v.STOP_LOSS_INVALID, v.TAKE_PROFIT_INVALID],
        )

    def test_zero_entry_price_does_not_cascade(self):
        errors = validate_trade(_draft(entry_price=0, stop_loss=150.0, take_profit=50.0))
        self.assertEqual(errors, [v.ENTRY_PRICE_INVALID])

    def test_invalid_direction_does_not_cascade(self):
        errors = validate_trade(_draft(direction="LONG", stop_loss=150.0))
        self.assertEqual(errors, [v.DIRECTION_INVALID])


class TestStatusAndProfitLoss(unittest.TestCase):

    def test_unknown_status(self):
        self.assertEqual(validate_trade(_draft(status="pending")), [v.STATUS_INVALID])

    def test_profit_loss_only_on_closed(self):
        self.assertEqual(validate_trade(_draft(profit_loss=10.0)), [v.PROFIT_LOSS_NOT_CLOSED])
        self.assertEqual(validate_trade(_draft(status="closed", profit_loss=-10.0)), [])

    def test_infinite_profit_loss_is_rejected(self):
        for value in (math.inf, -math.inf):
            self.assertEqual(
                validate_trade(_draft(status="closed", profit_loss=value)),
                [v.PROFIT_LOSS_INVALID],
            )

    def test_never_raises_on_garbage(self):
        draft = TradeDraft.from_form({"asset": None, "entry_price": "abc", "quantity": "1,5x"})
        errors = validate_trade(draft)
        self.assertIn(v.ENTRY_PRICE_INVALID, errors)
        self.assertIn(v.QUANTITY_INVALID, errors)


if __name__ == "__main__":
    unittest.main()
