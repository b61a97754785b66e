from __future__ import annotations

"""
Smoke test for the tote builder (local, offline by default).

This script simulates a few visitor sessions by mutating an in-memory widget-state dict one
"button press" at a time, then for each step:
- evaluates the build (fit + selection + price + dimensions)
- renders the rack previews (rack_views)
- adds the configuration to the quote list when it fits

Each scenario ends with a quote request. The request payload is written to the output
directory and, when `--webhook-url` is given, POSTed once.

Usage:
  python3 scripts/smoke_test_builder.py
  python3 scripts/smoke_test_builder.py --out-dir out/smoke_test_builder --webhook-url https://example.test/hook
"""

import argparse
import json
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, MutableMapping, Optional

# Allow running as `python3 scripts/smoke_test_builder.py` (module imports live at repo root).
_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import tote_builder_app
from builder_logging import setup_logging
from pricing_engine import format_usd
from quote_session import ContactInfo, QuoteSession, evaluate_build
from quote_webhook import submit_quote_request
from rack_fit import DEFAULT_STRUCTURE
from rack_views import render_rack_views_png


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


@dataclass(frozen=True)
class Step:
    label: str
    apply: Callable[[MutableMapping[str, object]], None]
    add_to_quote: bool = False


def _run_scenario(
    *,
    name: str,
    base_state: dict[str, object],
    steps: list[Step],
    out_dir: Path,
    webhook_url: str,
) -> None:
    state: dict[str, object] = dict(base_state)
    session = QuoteSession()
    slug = name.replace(" ", "_").lower()

    print("")
    print("=" * 72)
    print(f"SCENARIO: {name}")
    print("=" * 72)

    for i, step in enumerate(steps, start=1):
        step.apply(state)
        build = evaluate_build(tote_builder_app._build_config_from_state(state))

        views = render_rack_views_png(
            cols=build.selection.cols if build.fits else 0,
            rows=build.selection.rows if build.fits else 0,
            tote_width_in=build.fit.tote_width_in,
            tote_height_in=build.fit.tote_height_in,
            structure=DEFAULT_STRUCTURE,
        )
        label = f"{slug}_{i:02d}_{step.label.replace(' ', '_').lower()}"
        for view_name, png in views.items():
            if not png.startswith(b"\x89PNG"):
                raise RuntimeError(f"{label}: {view_name} preview is not a PNG")
            (out_dir / f"{label}_{view_name}.png").write_bytes(png)

        print(f"[{i}/{len(steps)}] {step.label}")
        print(f"  - fit: {build.fit.cols}x{build.fit.rows}  selected: {build.selection.cols}x{build.selection.rows}")
        if build.total_usd is None:
            print("  - does not fit; no estimate")
        else:
            print(f"  - total: {format_usd(build.total_usd)}  size: {build.dimensions.width_in}x{build.dimensions.height_in} in")

        if step.add_to_quote:
            item = session.add_to_quote(build)
            print(f"  - added: {item.title} ({format_usd(item.est_total)})")

    session.contact = ContactInfo(
        first="Demo",
        last="Customer",
        email="demo@example.com",
        phone="555-0100",
        zip="97201",
    )
    session.notes = f"smoke test: {name}"
    ok = submit_quote_request(session, url=webhook_url)
    (out_dir / f"{slug}_payload.json").write_text(
        json.dumps(session.build_request_payload(), indent=2), encoding="utf-8"
    )
    for notice in session.drain_notices():
        print(f"  - notice: {notice.title}: {notice.description}")
    if not ok:
        raise RuntimeError(f"{name}: quote request was not sent")
    print(f"  - quote total: {format_usd(session.quote_total)} ({len(session.items)} item(s))")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--out-dir",
        default=str(_repo_root() / "out" / "smoke_test_builder"),
        help="Directory to write previews and payloads into (default: out/smoke_test_builder).",
    )
    parser.add_argument(
        "--webhook-url",
        default="",
        help="Optional webhook URL; when empty the request payload is only logged.",
    )
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    out_dir = Path(args.out_dir).resolve()
    out_dir.mkdir(parents=True, exist_ok=True)

    base_state = tote_builder_app._default_state()

    # Scenario 1: max fit on the default wall, then a sideways variant.
    s1_steps = [
        Step(label="set_wall", apply=lambda s: s.update({"wall_width_in": 118, "wall_height_in": 96})),
        Step(label="press_add_to_quote", apply=lambda s: None, add_to_quote=True),
        Step(
            label="press_sideways_with_totes",
            apply=lambda s: s.update({"orientation": "sideways", "addon_totes": True}),
            add_to_quote=True,
        ),
    ]

    # Scenario 2: manual sizing, with an out-of-range request that gets clamped.
    s2_steps = [
        Step(
            label="set_manual",
            apply=lambda s: s.update({"sizing_mode": "manual", "manual_cols": 2, "manual_rows": 3}),
        ),
        Step(
            label="press_oversized_manual",
            apply=lambda s: s.update({"manual_cols": 99, "manual_rows": 99, "addon_wheels": True}),
            add_to_quote=True,
        ),
    ]

    # Scenario 3: a narrow wall that cannot hold one sideways tote, then a wider wall.
    s3_steps = [
        Step(
            label="set_narrow_sideways",
            apply=lambda s: s.update({"wall_width_in": 24, "wall_height_in": 60, "orientation": "sideways"}),
        ),
        Step(label="press_widen_wall", apply=lambda s: s.update({"wall_width_in": 120}), add_to_quote=True),
    ]

    _run_scenario(name="max fit", base_state=base_state, steps=s1_steps, out_dir=out_dir, webhook_url=args.webhook_url)
    _run_scenario(name="manual size", base_state=base_state, steps=s2_steps, out_dir=out_dir, webhook_url=args.webhook_url)
    _run_scenario(name="does not fit", base_state=base_state, steps=s3_steps, out_dir=out_dir, webhook_url=args.webhook_url)

    print("")
    print(f"OK: wrote previews and payloads to {out_dir}")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception:
        traceback.print_exc()
        raise SystemExit(1)
