from __future__ import annotations

import importlib
import itertools
import unittest

from pricing_engine import (
    DEFAULT_PRICE_TABLE,
    AddonRule,
    PriceTable,
    PricingError,
    enabled_addon_ids,
    format_usd,
    price,
    price_breakdown,
)

ALL_ON = {"delivery": True, "totes": True, "wheels": True}
ALL_OFF = {"delivery": False, "totes": False, "wheels": False}


def _print_estimate(label: str, estimate) -> None:
    print("\n" + "=" * 72)
    print(label)
    for li in estimate.line_items:
        print(f"  - {li.code}: {format_usd(li.amount_usd)} | {li.description}")
    print(f"TOTAL  {format_usd(estimate.total_usd)}")
    print("=" * 72)


class TestPricingEngine(unittest.TestCase):
    def test_base_price_only(self) -> None:
        self.assertEqual(price(25, ALL_OFF, DEFAULT_PRICE_TABLE), 25 * 35)

    def test_all_addons(self) -> None:
        estimate = price_breakdown(25, ALL_ON, DEFAULT_PRICE_TABLE)
        _print_estimate("test_all_addons", estimate)
        self.assertEqual(estimate.total_usd, 25 * 35 + 75 + 75 + 25 * 12)
        self.assertEqual([li.code for li in estimate.line_items], ["BASE", "DELIVERY", "TOTES", "WHEELS"])

    def test_addons_are_additive_and_independent(self) -> None:
        rates = DEFAULT_PRICE_TABLE
        for bays in (0, 1, 7, 25):
            full = price(bays, ALL_ON, rates)
            for combo in itertools.product((False, True), repeat=3):
                selection = dict(zip(("delivery", "totes", "wheels"), combo))
                expected = full
                for rule in rates.addons:
                    if not selection[rule.addon_id]:
                        expected -= rule.amount_usd * bays if rule.per_bay else rule.amount_usd
                self.assertAlmostEqual(price(bays, selection, rates), expected)

    def test_zero_bays_only_charges_flat_addons(self) -> None:
        self.assertEqual(price(0, ALL_ON, DEFAULT_PRICE_TABLE), 75 + 75)
        self.assertEqual(price(0, ALL_OFF, DEFAULT_PRICE_TABLE), 0)
        estimate = price_breakdown(0, {"totes": True}, DEFAULT_PRICE_TABLE)
        self.assertEqual(estimate.total_usd, 0)

    def test_unknown_addons_are_ignored(self) -> None:
        self.assertEqual(price(2, {"gold_plating": True}, DEFAULT_PRICE_TABLE), 70)

    def test_fractional_rates_keep_full_precision(self) -> None:
        rates = PriceTable(price_per_bay_usd=10.125, addons=(AddonRule("totes", "Totes", 0.335, per_bay=True),))
        self.assertAlmostEqual(price(3, {"totes": True}, rates), 3 * 10.125 + 3 * 0.335)

    def test_negative_bays_rejected(self) -> None:
        with self.assertRaises(PricingError):
            price(-1, ALL_OFF, DEFAULT_PRICE_TABLE)

    def test_whole_number_float_bays_are_accepted(self) -> None:
        self.assertEqual(price(2.0, {}, DEFAULT_PRICE_TABLE), 70)
        estimate = price_breakdown(3.0, {"totes": True}, DEFAULT_PRICE_TABLE)
        self.assertEqual(estimate.bays, 3)
        self.assertIsInstance(estimate.bays, int)
        for bad in (2.5, float("nan"), float("inf"), "3", None, True):
            with self.assertRaises(PricingError):
                price(bad, {}, DEFAULT_PRICE_TABLE)  # type: ignore[arg-type]

    def test_module_defaults_are_built_at_import(self) -> None:
        module = importlib.import_module("pricing_engine")
        self.assertEqual([r.addon_id for r in module.DEFAULT_PRICE_TABLE.addons], ["delivery", "totes", "wheels"])
        self.assertEqual(module.DEFAULT_PRICE_TABLE.price_per_bay_usd, 35.0)
        self.assertEqual(set(module.DEFAULT_ADDON_SELECTION), {"delivery", "totes", "wheels"})

    def test_price_table_validation(self) -> None:
        with self.assertRaises(PricingError):
            PriceTable(price_per_bay_usd=-5)
        with self.assertRaises(PricingError):
            PriceTable(
                price_per_bay_usd=5,
                addons=(AddonRule("delivery", "A", 1), AddonRule("delivery", "B", 2)),
            )

    def test_enabled_addon_ids_follow_table_order(self) -> None:
        ids = enabled_addon_ids({"wheels": True, "delivery": True, "totes": False}, DEFAULT_PRICE_TABLE)
        self.assertEqual(ids, ("delivery", "wheels"))

    def test_format_usd(self) -> None:
        self.assertEqual(format_usd(950), "$950")
        self.assertEqual(format_usd(1325.5), "$1,326")
        self.assertEqual(format_usd(0), "$0")
        self.assertEqual(format_usd(-12.4), "-$12")


if __name__ == "__main__":
    unittest.main()
