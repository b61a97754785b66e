from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pricing_engine import (
    DEFAULT_ADDON_SELECTION,
    DEFAULT_PRICE_TABLE,
    Estimate,
    PriceTable,
    enabled_addon_ids,
    format_usd,
    price_breakdown,
)
from rack_fit import (
    DEFAULT_STRUCTURE,
    TOTE_CATALOG,
    BaySelection,
    FitResult,
    Orientation,
    RackDimensions,
    SizingMode,
    StructureConstants,
    ToteSpec,
    ToteType,
    WallDimensions,
    project,
    resolve,
    solve,
)

logger = logging.getLogger(__name__)

REQUEST_SOURCE = "tote-builder-v1"


class Stage(str, Enum):
    BUILD = "build"
    QUOTE = "quote"
    REQUEST = "request"


STAGE_LABELS: Mapping[Stage, str] = {
    Stage.BUILD: "Build",
    Stage.QUOTE: "Review",
    Stage.REQUEST: "Request",
}


class QuoteSessionError(ValueError):
    pass


class QuoteRequestError(QuoteSessionError):
    def __init__(self, title: str, description: str) -> None:
        super().__init__(f"{title}: {description}")
        self.title = title
        self.description = description


@dataclass(frozen=True)
class BuildConfig:
    wall_width_in: float = 118.0
    wall_height_in: float = 96.0
    tote_type: ToteType = ToteType.HDX27
    orientation: Orientation = Orientation.STANDARD
    sizing_mode: SizingMode = SizingMode.MAX
    manual_cols: int = 1
    manual_rows: int = 1
    addons: Mapping[str, bool] = field(default_factory=lambda: dict(DEFAULT_ADDON_SELECTION))


@dataclass(frozen=True)
class BuildEstimate:
    config: BuildConfig
    fit: FitResult
    selection: BaySelection
    dimensions: RackDimensions
    # None when the layout does not fit: an infeasible rack is never priced.
    estimate: Optional[Estimate]
    # Table the estimate was priced with; add-on ids in quote snapshots come from it.
    rates: PriceTable = DEFAULT_PRICE_TABLE

    @property
    def fits(self) -> bool:
        return self.selection.fits

    @property
    def total_usd(self) -> Optional[float]:
        return None if self.estimate is None else self.estimate.total_usd

    @property
    def status_line(self) -> str:
        if not self.fits:
            return "Not enough space for this configuration."
        return f"{self.selection.cols} totes wide by {self.selection.rows} totes tall"


def evaluate_build(
    config: BuildConfig,
    *,
    catalog: Mapping[ToteType, ToteSpec] = TOTE_CATALOG,
    structure: StructureConstants = DEFAULT_STRUCTURE,
    rates: PriceTable = DEFAULT_PRICE_TABLE,
) -> BuildEstimate:
    """
    Run the fit -> selection -> price/dimensions pipeline for one configuration.
    """
    tote = catalog[ToteType(config.tote_type)]
    wall = WallDimensions(width_in=config.wall_width_in, height_in=config.wall_height_in)
    fit = solve(wall, tote, config.orientation, structure)
    selection = resolve(config.sizing_mode, config.manual_cols, config.manual_rows, fit)

    if not selection.fits:
        logger.debug(
            "layout does not fit: wall=%sx%s tote=%s orientation=%s fit=%sx%s",
            config.wall_width_in,
            config.wall_height_in,
            ToteType(config.tote_type).value,
            Orientation(config.orientation).value,
            fit.cols,
            fit.rows,
        )
        return BuildEstimate(
            config=config,
            fit=fit,
            selection=selection,
            dimensions=RackDimensions(width_in=0, height_in=0),
            estimate=None,
            rates=rates,
        )

    return BuildEstimate(
        config=config,
        fit=fit,
        selection=selection,
        dimensions=project(selection.cols, selection.rows, tote, config.orientation, structure),
        estimate=price_breakdown(selection.priced_bays, config.addons, rates),
        rates=rates,
    )


@dataclass(frozen=True)
class QuoteItemMeta:
    wall_width_in: float
    wall_height_in: float
    tote_type: ToteType
    orientation: Orientation
    cols: int
    rows: int
    total_bays: int
    addons: Tuple[str, ...]


@dataclass(frozen=True)
class QuoteLineItem:
    id: str
    title: str
    est_total: float
    meta: QuoteItemMeta

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "estTotal": self.est_total,
            "meta": {
                "wallWidthIn": self.meta.wall_width_in,
                "wallHeightIn": self.meta.wall_height_in,
                "toteType": self.meta.tote_type.value,
                "orientation": self.meta.orientation.value,
                "cols": self.meta.cols,
                "rows": self.meta.rows,
                "totalBays": self.meta.total_bays,
                "addons": list(self.meta.addons),
            },
        }


@dataclass(frozen=True)
class ContactInfo:
    first: str = ""
    last: str = ""
    email: str = ""
    phone: str = ""
    zip: str = ""

    def missing_fields(self) -> Tuple[str, ...]:
        return tuple(
            name
            for name in ("first", "last", "email", "phone", "zip")
            if not str(getattr(self, name) or "").strip()
        )

    def to_payload(self) -> Dict[str, str]:
        return {
            "first": self.first,
            "last": self.last,
            "email": self.email,
            "phone": self.phone,
            "zip": self.zip,
        }


@dataclass(frozen=True)
class Notice:
    title: str
    description: str


def _tiny_id() -> str:
    return uuid.uuid4().hex[:8]


@dataclass
class QuoteSession:
    """
    Per-visitor state: current stage, the quote list, request form fields and pending notices.

    Line items are frozen snapshots; editing the build afterwards never changes them.
    """

    stage: Stage = Stage.BUILD
    items: List[QuoteLineItem] = field(default_factory=list)
    contact: ContactInfo = field(default_factory=ContactInfo)
    preferred_date: Optional[str] = None
    notes: str = ""
    notices: List[Notice] = field(default_factory=list)
    rates: PriceTable = DEFAULT_PRICE_TABLE

    @property
    def quote_total(self) -> float:
        return sum(item.est_total for item in self.items)

    def can_enter(self, stage: Stage) -> bool:
        return Stage(stage) != Stage.REQUEST or bool(self.items)

    def go_to(self, stage: Stage) -> None:
        target = Stage(stage)
        if not self.can_enter(target):
            raise QuoteSessionError("Add at least one configuration before requesting a quote.")
        self.stage = target

    def start_new_build(self) -> None:
        self.stage = Stage.BUILD

    def notify(self, title: str, description: str) -> None:
        self.notices.append(Notice(title=title, description=description))

    def drain_notices(self) -> Tuple[Notice, ...]:
        out = tuple(self.notices)
        self.notices.clear()
        return out

    def add_to_quote(self, build: BuildEstimate) -> QuoteLineItem:
        if not build.fits or build.estimate is None:
            raise QuoteSessionError("Not enough space for this configuration.")

        sel = build.selection
        config = build.config
        item = QuoteLineItem(
            id=_tiny_id(),
            title=f"Tote rack - {sel.cols} x {sel.rows} bays",
            est_total=build.estimate.total_usd,
            meta=QuoteItemMeta(
                wall_width_in=config.wall_width_in,
                wall_height_in=config.wall_height_in,
                tote_type=ToteType(config.tote_type),
                orientation=Orientation(config.orientation),
                cols=sel.cols,
                rows=sel.rows,
                total_bays=sel.total_bays,
                addons=enabled_addon_ids(config.addons, build.rates),
            ),
        )
        self.items.insert(0, item)
        logger.info(
            "added quote item",
            extra={"quote_item_id": item.id, "bays": sel.total_bays, "est_total_usd": item.est_total},
        )
        self.notify("Added to quote", f"{item.title} - Est. {format_usd(item.est_total)}")
        self.stage = Stage.QUOTE
        return item

    def remove_item(self, item_id: str) -> None:
        before = len(self.items)
        self.items = [item for item in self.items if item.id != item_id]
        if len(self.items) == before:
            raise QuoteSessionError(f"Unknown quote item: {item_id!r}")
        logger.info("removed quote item", extra={"quote_item_id": item_id})
        if not self.items and self.stage == Stage.REQUEST:
            self.stage = Stage.QUOTE

    def validate_request(self) -> None:
        if self.contact.missing_fields():
            raise QuoteRequestError("Missing info", "Please add name, email, phone, and ZIP.")
        if not self.items:
            raise QuoteRequestError("No items", "Add at least one configuration to your quote.")

    def build_request_payload(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        created = now or datetime.now(timezone.utc)
        return {
            "source": REQUEST_SOURCE,
            "createdAt": created.isoformat(),
            "contact": self.contact.to_payload(),
            "preferredDate": self.preferred_date or None,
            "notes": self.notes,
            "estimate": self.quote_total,
            "items": [item.to_payload() for item in self.items],
        }
