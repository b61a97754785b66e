from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple


class PricingError(ValueError):
    pass


def _validate_amount(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
        raise PricingError(f"{name} must be a non-negative number (got {value!r})")


def _validate_bays(bays: object) -> int:
    # Whole-number floats such as 2.0 count.
    if isinstance(bays, bool) or not isinstance(bays, (int, float)):
        raise PricingError(f"bays must be a non-negative integer (got {bays!r})")
    if not math.isfinite(bays) or not float(bays).is_integer() or bays < 0:
        raise PricingError(f"bays must be a non-negative integer (got {bays!r})")
    return int(bays)


@dataclass(frozen=True)
class AddonRule:
    addon_id: str
    name: str
    amount_usd: float
    # True: amount is charged per bay; False: charged once per rack.
    per_bay: bool = False


@dataclass(frozen=True)
class PriceTable:
    price_per_bay_usd: float
    addons: Tuple[AddonRule, ...] = ()

    def __post_init__(self) -> None:
        _validate_amount("price_per_bay_usd", self.price_per_bay_usd)
        seen = set()
        for rule in self.addons:
            if not isinstance(rule, AddonRule):
                raise PricingError(f"addons must contain AddonRule (got {type(rule).__name__})")
            _validate_amount(f"addon {rule.addon_id!r} amount", rule.amount_usd)
            if rule.addon_id in seen:
                raise PricingError(f"duplicate add-on id: {rule.addon_id!r}")
            seen.add(rule.addon_id)

    def addon(self, addon_id: str) -> Optional[AddonRule]:
        for rule in self.addons:
            if rule.addon_id == addon_id:
                return rule
        return None


@dataclass(frozen=True)
class LineItem:
    code: str
    description: str
    amount_usd: float


@dataclass(frozen=True)
class Estimate:
    bays: int
    line_items: Tuple[LineItem, ...]
    total_usd: float


DEFAULT_PRICE_TABLE = PriceTable(
    price_per_bay_usd=35.0,
    addons=(
        AddonRule(addon_id="delivery", name="Include Delivery", amount_usd=75.0),
        AddonRule(addon_id="totes", name="Include Totes", amount_usd=12.0, per_bay=True),
        AddonRule(addon_id="wheels", name="Include Wheels", amount_usd=75.0),
    ),
)

DEFAULT_ADDON_SELECTION: Mapping[str, bool] = {
    "delivery": True,
    "totes": False,
    "wheels": False,
}


def addon_charge(rule: AddonRule, bays: int) -> float:
    return rule.amount_usd * bays if rule.per_bay else rule.amount_usd


def price_breakdown(bays: int, addons: Mapping[str, bool], rates: PriceTable) -> Estimate:
    """
    Itemized estimate for a bay count plus toggled add-ons.

    Add-ons are emitted in price-table order; ids not present in the table are ignored. Amounts
    keep full float precision; rounding happens only when formatting for display.
    """
    n = _validate_bays(bays)
    line_items: List[LineItem] = [
        LineItem(
            code="BASE",
            description=f"{n} bays x {format_usd(rates.price_per_bay_usd)}",
            amount_usd=n * rates.price_per_bay_usd,
        )
    ]
    for rule in rates.addons:
        if not bool(addons.get(rule.addon_id, False)):
            continue
        description = (
            f"{rule.name} ({n} x {format_usd(rule.amount_usd)})" if rule.per_bay else rule.name
        )
        line_items.append(
            LineItem(
                code=rule.addon_id.upper(),
                description=description,
                amount_usd=addon_charge(rule, n),
            )
        )
    total = sum(li.amount_usd for li in line_items)
    return Estimate(bays=n, line_items=tuple(line_items), total_usd=total)


def price(bays: int, addons: Mapping[str, bool], rates: PriceTable) -> float:
    return price_breakdown(bays, addons, rates).total_usd


def enabled_addon_ids(addons: Mapping[str, bool], rates: PriceTable) -> Tuple[str, ...]:
    return tuple(rule.addon_id for rule in rates.addons if bool(addons.get(rule.addon_id, False)))


def format_usd(amount: float) -> str:
    """
    Whole-dollar display string, e.g. `$1,234` or `-$5`.
    """
    rounded = int(math.copysign(math.floor(abs(amount) + 0.5), amount))
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,}"
