from __future__ import annotations

import logging
import os
from datetime import date
from typing import Mapping, MutableMapping, Optional

import streamlit as st

from builder_logging import setup_logging
from pricing_engine import DEFAULT_ADDON_SELECTION, DEFAULT_PRICE_TABLE, format_usd
from quote_session import (
    STAGE_LABELS,
    BuildConfig,
    BuildEstimate,
    ContactInfo,
    QuoteSession,
    QuoteSessionError,
    Stage,
    evaluate_build,
)
from quote_webhook import DEFAULT_TIMEOUT_S, submit_quote_request
from rack_fit import (
    DEFAULT_STRUCTURE,
    ORIENTATION_DEPTH_IN,
    TOTE_LABELS,
    WALL_HEIGHT_RANGE_IN,
    WALL_WIDTH_RANGE_IN,
    FitResult,
    Orientation,
    SizingMode,
    ToteType,
    resolve,
)
from rack_views import render_rack_views_png

logger = logging.getLogger(__name__)

BRAND_NAME = "Rack Your Garage"
PRODUCT_NAME = "Tote Storage Builder"

_SESSION_KEY = "quote_session"
_CONTACT_FIELDS = ("first", "last", "email", "phone", "zip")


def _read_secret_or_env_str(key: str) -> str:
    """
    Read a configuration value from Streamlit Secrets (preferred) or environment variables.

    Returns a stripped string; returns "" when missing.
    """
    val: object = ""
    try:
        val = st.secrets.get(key, "")  # type: ignore[attr-defined]
    except Exception:
        # No secrets.toml: Streamlit raises instead of returning the default.
        val = ""
    if not val:
        val = os.environ.get(key, "")
    if isinstance(val, str):
        return val.strip()
    return str(val).strip() if val is not None else ""


def _webhook_timeout_s() -> float:
    raw = _read_secret_or_env_str("QUOTE_WEBHOOK_TIMEOUT_S")
    try:
        value = float(raw) if raw else DEFAULT_TIMEOUT_S
    except ValueError:
        logger.warning("ignoring invalid QUOTE_WEBHOOK_TIMEOUT_S=%r", raw)
        return DEFAULT_TIMEOUT_S
    return value if value > 0 else DEFAULT_TIMEOUT_S


@st.cache_data(show_spinner=False)
def _cached_rack_views_png(*, cols: int, rows: int, tote_width_in: float, tote_height_in: float) -> dict[str, bytes]:
    return render_rack_views_png(
        cols=cols,
        rows=rows,
        tote_width_in=tote_width_in,
        tote_height_in=tote_height_in,
        structure=DEFAULT_STRUCTURE,
        view_names=("front", "isometric"),
        canvas_px=(900, 520),
    )


def _default_state() -> dict[str, object]:
    state: dict[str, object] = {
        "wall_width_in": 118.0,
        "wall_height_in": 96.0,
        "tote_type": ToteType.HDX27.value,
        "orientation": Orientation.STANDARD.value,
        "sizing_mode": SizingMode.MAX.value,
        "manual_cols": 1,
        "manual_rows": 1,
        "preview_view": "front",
        "preferred_date": None,
        "request_notes": "",
    }
    for addon_id, enabled in DEFAULT_ADDON_SELECTION.items():
        state[f"addon_{addon_id}"] = bool(enabled)
    for name in _CONTACT_FIELDS:
        state[f"contact_{name}"] = ""
    return state


def _init_state() -> None:
    for key, value in _default_state().items():
        if key not in st.session_state:
            st.session_state[key] = value
    if not isinstance(st.session_state.get(_SESSION_KEY), QuoteSession):
        st.session_state[_SESSION_KEY] = QuoteSession(rates=DEFAULT_PRICE_TABLE)


def _quote_session() -> QuoteSession:
    return st.session_state[_SESSION_KEY]


def _enum_or_default(enum_cls, value: object, default):
    try:
        return enum_cls(str(value))
    except ValueError:
        return default


def _build_config_from_state(state: Mapping[str, object]) -> BuildConfig:
    """
    Map widget state into a `BuildConfig`. Unknown or missing values fall back to defaults.
    """
    defaults = BuildConfig()
    addons = {
        rule.addon_id: bool(state.get(f"addon_{rule.addon_id}", DEFAULT_ADDON_SELECTION.get(rule.addon_id, False)))
        for rule in DEFAULT_PRICE_TABLE.addons
    }
    return BuildConfig(
        wall_width_in=_float_or(state.get("wall_width_in"), defaults.wall_width_in),
        wall_height_in=_float_or(state.get("wall_height_in"), defaults.wall_height_in),
        tote_type=_enum_or_default(ToteType, state.get("tote_type"), defaults.tote_type),
        orientation=_enum_or_default(Orientation, state.get("orientation"), defaults.orientation),
        sizing_mode=_enum_or_default(SizingMode, state.get("sizing_mode"), defaults.sizing_mode),
        manual_cols=int(_float_or(state.get("manual_cols"), defaults.manual_cols)),
        manual_rows=int(_float_or(state.get("manual_rows"), defaults.manual_rows)),
        addons=addons,
    )


def _float_or(value: object, default: float) -> float:
    if value is None or isinstance(value, bool):
        return float(default)
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return float(default)


def _contact_from_state(state: Mapping[str, object]) -> ContactInfo:
    values = {name: str(state.get(f"contact_{name}") or "").strip() for name in _CONTACT_FIELDS}
    return ContactInfo(**values)


def _preferred_date_from_state(state: Mapping[str, object]) -> Optional[str]:
    value = state.get("preferred_date")
    if isinstance(value, date):
        return value.isoformat()
    text = str(value or "").strip()
    return text or None


def _clamp_manual_state(state: MutableMapping[str, object], fit: FitResult) -> None:
    """
    Pull the manual widget values back inside [1, max fit] before the inputs render.

    Streamlit rejects a session value above `max_value`, which happens when the wall shrinks
    after a manual size was picked.
    """
    sel = resolve(SizingMode.MANUAL, state.get("manual_cols"), state.get("manual_rows"), fit)
    state["manual_cols"] = sel.cols
    state["manual_rows"] = sel.rows


def _sync_request_fields(session: QuoteSession, state: Mapping[str, object]) -> None:
    session.contact = _contact_from_state(state)
    session.preferred_date = _preferred_date_from_state(state)
    session.notes = str(state.get("request_notes") or "")


def _go_to(stage: Stage) -> None:
    session = _quote_session()
    try:
        session.go_to(stage)
    except QuoteSessionError as exc:
        session.notify("No items", str(exc))


def _add_to_quote(build: BuildEstimate) -> None:
    session = _quote_session()
    try:
        session.add_to_quote(build)
    except QuoteSessionError as exc:
        session.notify("Does not fit", str(exc))


def _start_new_build() -> None:
    _quote_session().start_new_build()


def _remove_item(item_id: str) -> None:
    session = _quote_session()
    try:
        session.remove_item(item_id)
    except QuoteSessionError as exc:
        logger.warning("remove failed: %s", exc)


def _flush_notices(session: QuoteSession) -> None:
    for notice in session.drain_notices():
        st.toast(f"**{notice.title}**  \n{notice.description}")


def _render_header(session: QuoteSession, build: BuildEstimate) -> None:
    left, right = st.columns([3, 1])
    with left:
        st.markdown(f"### {BRAND_NAME}")
        st.caption(PRODUCT_NAME)
    with right:
        if session.stage == Stage.BUILD:
            shown = format_usd(build.total_usd) if build.total_usd is not None else "-"
        else:
            shown = format_usd(session.quote_total)
        st.metric("Est.", shown)
        st.button(
            f"Quote ({len(session.items)})",
            key="open_quote",
            on_click=_go_to,
            args=(Stage.QUOTE,),
            use_container_width=True,
        )

    stages = list(Stage)
    current = stages.index(session.stage)
    st.progress((current + 1) / len(stages))
    labels = [
        f"**{STAGE_LABELS[s]}**" if idx == current else STAGE_LABELS[s] for idx, s in enumerate(stages)
    ]
    st.caption("  >  ".join(labels))


def _render_build_stage(session: QuoteSession, build: BuildEstimate) -> None:
    st.subheader("Configure Your Tote Storage")
    st.caption(
        "Enter the width and height of the area you would like your shelving and we'll suggest how many totes fit."
    )

    c1, c2 = st.columns(2)
    c1.number_input("Wall width (in)", min_value=0.0, max_value=1000.0, step=1.0, key="wall_width_in")
    c1.caption(f"Max fit suggests {build.fit.cols} across")
    c2.number_input("Wall height (in)", min_value=0.0, max_value=1000.0, step=1.0, key="wall_height_in")
    c2.caption(
        f"Supported: {WALL_WIDTH_RANGE_IN[0]:.0f}-{WALL_WIDTH_RANGE_IN[1]:.0f} in wide, "
        f"{WALL_HEIGHT_RANGE_IN[0]:.0f}-{WALL_HEIGHT_RANGE_IN[1]:.0f} in tall"
    )

    st.markdown("**Tote details**")
    st.selectbox(
        "Tote type",
        options=[t.value for t in ToteType],
        format_func=lambda v: TOTE_LABELS[ToteType(v)],
        key="tote_type",
    )
    st.radio(
        "Tote orientation",
        options=[o.value for o in Orientation],
        format_func=lambda v: f'{v.title()} ({ORIENTATION_DEPTH_IN[Orientation(v)]}" deep)',
        horizontal=True,
        key="orientation",
    )

    st.divider()
    st.markdown("**Maximum Tote Capacity**")
    if not build.fit.fits:
        st.error("Not enough space for this configuration.")
    else:
        st.write(build.status_line)
        depth = ORIENTATION_DEPTH_IN[build.config.orientation]
        st.caption(
            f'Based on {build.fit.tote_width_in}" width ({depth}" deep) and {build.fit.tote_height_in}" height'
        )

    st.divider()
    st.markdown("**Rack size**")
    st.radio(
        "Choose max capacity, or set a smaller rack size.",
        options=[m.value for m in SizingMode],
        format_func=lambda v: (
            f"Max fit ({build.fit.cols} wide x {build.fit.rows} tall)" if v == SizingMode.MAX.value else "Manual"
        ),
        horizontal=True,
        key="sizing_mode",
    )
    if build.config.sizing_mode == SizingMode.MANUAL:
        _clamp_manual_state(st.session_state, build.fit)
        m1, m2 = st.columns(2)
        m1.number_input("Totes wide", min_value=1, max_value=max(build.fit.cols, 1), step=1, key="manual_cols")
        m1.caption(f"Max: {build.fit.cols}")
        m2.number_input("Totes tall", min_value=1, max_value=max(build.fit.rows, 1), step=1, key="manual_rows")
        m2.caption(f"Max: {build.fit.rows}")
    if build.fits:
        sel = build.selection
        st.caption(f"Selected: {sel.cols} wide x {sel.rows} tall ({sel.total_bays} bays)")

    st.divider()
    st.markdown("**Options (for your quote)**")
    for rule in DEFAULT_PRICE_TABLE.addons:
        a1, a2 = st.columns([3, 2])
        a1.checkbox(rule.name, key=f"addon_{rule.addon_id}")
        if rule.per_bay:
            a2.caption(f"{build.selection.priced_bays} totes x {format_usd(rule.amount_usd)}")
        else:
            a2.caption("flat add-on")

    st.divider()
    st.markdown("**Price estimate**")
    if build.estimate is None:
        st.warning("No estimate: this configuration does not fit the wall.")
    else:
        st.metric("Estimated total", format_usd(build.estimate.total_usd))
        st.caption(f"{build.selection.rows} totes tall x {build.selection.cols} totes wide")
        rows = [
            {"Item": li.description, "Amount": format_usd(li.amount_usd)} for li in build.estimate.line_items
        ]
        st.dataframe(rows, use_container_width=True, hide_index=True)

    _render_preview(build)

    st.button(
        "Add to quote",
        key="add_to_quote",
        type="primary",
        disabled=not build.fits,
        on_click=_add_to_quote,
        args=(build,),
        use_container_width=True,
    )


def _render_preview(build: BuildEstimate) -> None:
    st.radio(
        "Preview",
        options=["front", "isometric"],
        format_func=lambda v: "Schematic" if v == "front" else "3D",
        horizontal=True,
        key="preview_view",
    )
    try:
        views = _cached_rack_views_png(
            cols=build.selection.cols if build.fits else 0,
            rows=build.selection.rows if build.fits else 0,
            tote_width_in=build.fit.tote_width_in,
            tote_height_in=build.fit.tote_height_in,
        )
        view = str(st.session_state.get("preview_view") or "front")
        st.image(views.get(view) or views["front"], use_container_width=True)
    except Exception:
        # The estimate should still render even if the preview fails.
        logger.exception("rack preview failed")
    if build.fits:
        st.caption(f'Approx. {build.dimensions.width_in}" W x {build.dimensions.height_in}" H')


def _render_quote_stage(session: QuoteSession) -> None:
    st.subheader("Review your quote")
    st.caption("Remove items or add another configuration.")

    n1, n2 = st.columns(2)
    n1.button("Back", key="quote_back", on_click=_go_to, args=(Stage.BUILD,), use_container_width=True)
    n2.button(
        "Request quote",
        key="quote_next",
        on_click=_go_to,
        args=(Stage.REQUEST,),
        disabled=not session.items,
        use_container_width=True,
    )

    st.markdown("**Items**")
    if not session.items:
        st.caption("No items yet. Add one first.")
    else:
        st.caption(f"{len(session.items)} item(s)")

    addon_names = {rule.addon_id: rule.name for rule in session.rates.addons}
    for item in session.items:
        with st.container(border=True):
            left, right = st.columns([4, 1])
            with left:
                st.markdown(f"**{item.title}**")
                tote = "Custom tote" if item.meta.tote_type == ToteType.CUSTOM else "HDX 27-gal"
                depth = ORIENTATION_DEPTH_IN[item.meta.orientation]
                st.caption(
                    f"{item.meta.cols} across / {item.meta.rows} tall / {item.meta.total_bays} bays / "
                    f'{tote} / {item.meta.orientation.value.title()} ({depth}")'
                )
                if item.meta.addons:
                    st.caption(", ".join(addon_names.get(a, a) for a in item.meta.addons))
            with right:
                st.write(f"Est. {format_usd(item.est_total)}")
                st.button("Remove", key=f"remove_{item.id}", on_click=_remove_item, args=(item.id,))

    st.divider()
    st.metric("Estimated hardware total", format_usd(session.quote_total))
    b1, b2 = st.columns(2)
    b1.button("Add more", key="quote_add_more", on_click=_go_to, args=(Stage.BUILD,), use_container_width=True)
    b2.button(
        "Request quote",
        key="quote_request",
        on_click=_go_to,
        args=(Stage.REQUEST,),
        disabled=not session.items,
        use_container_width=True,
    )


def _submit_request() -> None:
    session = _quote_session()
    _sync_request_fields(session, st.session_state)
    submit_quote_request(session, url=_read_secret_or_env_str("QUOTE_WEBHOOK_URL"), timeout=_webhook_timeout_s())


def _render_request_stage(session: QuoteSession) -> None:
    st.subheader("Request your custom quote")
    st.caption("We'll confirm fit and send a final price.")

    n1, n2 = st.columns([1, 1])
    n1.button("Back", key="request_back", on_click=_go_to, args=(Stage.QUOTE,), use_container_width=True)
    n2.write(f"Est. {format_usd(session.quote_total)}")

    st.markdown("**Your info**")
    f1, f2 = st.columns(2)
    f1.text_input("First name", key="contact_first")
    f2.text_input("Last name", key="contact_last")
    st.text_input("Email", key="contact_email")
    p1, p2 = st.columns(2)
    p1.text_input("Phone", key="contact_phone")
    p2.text_input("ZIP", key="contact_zip")

    st.divider()
    st.date_input("Preferred install date (optional)", key="preferred_date")
    st.caption("We'll confirm availability after we review your garage.")
    st.text_area(
        "Notes (optional)",
        key="request_notes",
        placeholder="Anything we should know? Garage door tracks, sprinklers, lighting, etc.",
    )

    st.button("Request Quote", key="submit_request", type="primary", on_click=_submit_request, use_container_width=True)
    if not _read_secret_or_env_str("QUOTE_WEBHOOK_URL"):
        st.caption("To connect submissions, set `QUOTE_WEBHOOK_URL` in secrets or the environment.")

    with st.container(border=True):
        st.markdown("**What happens next**")
        st.caption(
            "We'll review your info, confirm the right rack sizing for your tote type, and send a final quote."
        )
        st.button("Start a new build", key="request_new_build", on_click=_start_new_build)


def main() -> None:
    st.set_page_config(page_title=f"{BRAND_NAME} - {PRODUCT_NAME}", layout="centered")
    setup_logging(_read_secret_or_env_str("TOTE_BUILDER_LOG_LEVEL") or "INFO")

    _init_state()
    session = _quote_session()
    # Recomputed on every rerun from the current widget values; nothing derived is stored.
    build = evaluate_build(_build_config_from_state(st.session_state), rates=session.rates)

    _render_header(session, build)

    if session.stage == Stage.BUILD:
        _render_build_stage(session, build)
    elif session.stage == Stage.QUOTE:
        _render_quote_stage(session)
    else:
        _render_request_stage(session)

    _flush_notices(session)
    st.caption("v1 prototype")


if __name__ == "__main__":
    main()
