import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
from datetime import date
from decimal import Decimal

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from cashtrack.aggregation import ALL_CATEGORIES, filter_by_category, top_categories, total
from cashtrack.categories import CategoryRegistry
from cashtrack.config import configure_logging, get_settings
from cashtrack.domain import Identity, Kind, Period
from cashtrack.events import DARK_MODE_CHANGED, EventBus
from cashtrack.exceptions import CategoryNotFound, RegistryConflict, ValidationFailure
from cashtrack.formatting import format_currency, format_date, format_percent, month_options
from cashtrack.preferences import Preferences
from cashtrack.recurring import PropagationStatus
from cashtrack.search import SearchStatus
from cashtrack.services import DashboardService
from cashtrack.store import JsonFileStore

settings = get_settings()
configure_logging(settings.log_level)

st.set_page_config(page_title=settings.app_name, layout="wide")

if not settings.allowed_email:
    st.error("Set CASHTRACK_ALLOWED_EMAIL to the account allowed to use this dashboard.")
    st.stop()


@st.cache_resource
def build_service() -> tuple[DashboardService, Preferences, EventBus]:
    bus = EventBus()
    prefs = Preferences(settings.preferences_file)
    prefs.attach(bus)
    registry = CategoryRegistry(prefs.custom_categories, bus)
    identity = Identity(uid="local", email=settings.allowed_email)
    store = JsonFileStore(settings.data_file, identity, [settings.allowed_email])
    return DashboardService(store, registry, bus), prefs, bus


service, prefs, bus = build_service()
registry = service.registry
TEMPLATE = "plotly_dark" if prefs.dark_mode else "plotly_white"


def money(x) -> str:
    return format_currency(x, settings.currency)


def run(coro):
    return asyncio.run(coro)


# ---- sidebar: period picker, navigation, preferences
today = date.today()
options = month_options(today)
current = Period.of(today)
period = st.sidebar.selectbox(
    "Month",
    options,
    index=options.index(current),
    format_func=lambda p: p.start.strftime("%B %Y"),
)

menu = st.sidebar.radio(
    "Menu",
    ["🏠 Dashboard", "💰 Income", "🧾 Expenses", "💳 Bills", "📊 Analytics", "🔎 Search", "🏷 Categories"],
)

dark = st.sidebar.toggle("Dark mode", value=prefs.dark_mode)
if dark != prefs.dark_mode:
    bus.publish(DARK_MODE_CHANGED, {"enabled": dark})
    st.rerun()

data, report = run(service.period(period))
summary = report["summary"]


def entries_table(kind: Kind, entries) -> None:
    if not entries:
        st.info(f"No {kind.collection} entries for {period.label}.")
        return
    rows = []
    for t in entries:
        row = {"Date": format_date(t.date), kind.label_field.title(): t.label, "Amount": money(t.amount)}
        if kind is Kind.EXPENSE:
            row["Category"] = t.category or "Other"
        row["Recurring"] = "↻" if t.recurring else ""
        row["Tags"] = ", ".join(t.tags)
        rows.append(row)
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


def entry_form(kind: Kind, existing=None) -> None:
    key = f"{kind.value}_{existing.id if existing else 'new'}"
    with st.form(key, clear_on_submit=existing is None):
        col1, col2 = st.columns(2)
        with col1:
            when = st.date_input("Date", value=existing.date if existing else today)
            amount = st.number_input(
                "Amount", min_value=0.0, step=10.0, format="%.2f",
                value=float(existing.amount) if existing else 0.0,
            )
        with col2:
            label = st.text_input(kind.label_field.title(), value=existing.label if existing else "")
            category = None
            if kind is Kind.EXPENSE:
                names = registry.choices(existing.category if existing else "")
                current_cat = existing.category if existing and existing.category else names[0]
                category = st.selectbox("Category", names, index=names.index(current_cat))
        notes = st.text_input("Notes", value=existing.notes if existing else "")
        tags = st.text_input("Tags (comma separated)", value=", ".join(existing.tags) if existing else "")
        recurring = st.checkbox("Recurring", value=existing.recurring if existing else False)
        submitted = st.form_submit_button("Save" if existing else f"Add {kind.value.title()}")

    if not submitted:
        return
    fields = {
        "date": when.isoformat(),
        "amount": str(Decimal(str(amount))),
        kind.label_field: label,
        "notes": notes,
        "tags": [t.strip() for t in tags.split(",") if t.strip()],
        "recurring": recurring,
    }
    if category is not None:
        fields["category"] = category
    try:
        if existing:
            allowed = registry.choices(getattr(existing, "category", ""))
            result = run(service.store.update(kind, existing.id, fields, allowed))
        else:
            result = run(service.store.create(kind, fields, registry.names()))
    except ValidationFailure as e:
        for err in e.errors:
            st.error(f"{err['field']}: {err['message']}")
        return
    if result.success:
        st.success("Saved")
        st.rerun()
    else:
        st.error("Failed to save entry. Please try again.")


def manage_entries(kind: Kind, entries) -> None:
    with st.expander(f"➕ Add {kind.value}"):
        entry_form(kind)

    if entries:
        by_id = {t.id: t for t in entries}
        chosen = st.selectbox(
            "Edit or delete",
            list(by_id),
            format_func=lambda i: f"{format_date(by_id[i].date)} · {by_id[i].label} · {money(by_id[i].amount)}",
            key=f"pick_{kind.value}",
        )
        with st.expander("✏️ Edit"):
            entry_form(kind, by_id[chosen])
        if st.button("🗑 Delete", key=f"del_{kind.value}"):
            result = run(service.store.delete(kind, chosen))
            if result.success:
                st.rerun()
            st.error("Failed to delete entry. Please try again.")

    if st.button(f"↻ Copy recurring {kind.collection} from {period.previous().label}", key=f"rec_{kind.value}"):
        outcome = run(service.propagate(kind, period))
        if outcome.status is PropagationStatus.NO_SOURCES:
            st.info(f"No recurring {kind.collection} found in {period.previous().label}.")
        elif outcome.status is PropagationStatus.ALREADY_PRESENT:
            st.info("All recurring entries are already present this month.")
        elif outcome.status is PropagationStatus.FAILED:
            st.error("Could not copy recurring entries. Please try again.")
        else:
            st.success(f"Added {outcome.created} recurring entr{'y' if outcome.created == 1 else 'ies'}.")
            st.rerun()


def category_pie(totals: dict, title: str, hole: float = 0.0):
    fig = px.pie(
        names=list(totals),
        values=[float(v) for v in totals.values()],
        color=list(totals),
        color_discrete_map={name: registry.color_for(name) for name in totals},
        hole=hole,
        title=title,
        template=TEMPLATE,
    )
    return fig


if menu == "🏠 Dashboard":
    st.title(f"🏠 {period.label}")
    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Income", money(summary.total_income))
    k2.metric("Expenses", money(summary.total_expenses))
    k3.metric("Bills", money(summary.total_bills))
    k4.metric("Net Savings", money(summary.net_savings))
    st.progress(float(summary.spending_ratio), text=f"Spent {format_percent(summary.spending_ratio * 100)} of income")

    col_pie, col_bar = st.columns(2)
    with col_pie:
        if report["categories"]:
            st.plotly_chart(category_pie(report["categories"], "Expense breakdown", hole=0.5), use_container_width=True)
        else:
            st.info("No expenses this month.")
    with col_bar:
        fig_bar = px.bar(
            x=["Income", "Expenses", "Bills"],
            y=[float(summary.total_income), float(summary.total_expenses), float(summary.total_bills)],
            color=["Income", "Expenses", "Bills"],
            color_discrete_sequence=["#10b981", "#ef4444", "#f59e0b"],
            title="Monthly overview",
            template=TEMPLATE,
        )
        fig_bar.update_layout(showlegend=False)
        st.plotly_chart(fig_bar, use_container_width=True)

    top = list(top_categories(data.expenses, 3))
    if top:
        st.subheader("Top categories")
        shares = report["category_shares"]
        for name, amount in top:
            st.write(f"**{name}**: {money(amount)} ({format_percent(shares.get(name, 0))})")

elif menu == "💰 Income":
    st.title("💰 Income")
    entries_table(Kind.INCOME, data.income)
    st.metric("Total", money(summary.total_income))
    manage_entries(Kind.INCOME, data.income)

elif menu == "🧾 Expenses":
    st.title("🧾 Expenses")
    selected = st.selectbox("Category", [ALL_CATEGORIES] + registry.names())
    shown = filter_by_category(data.expenses, selected)
    entries_table(Kind.EXPENSE, shown)
    st.metric("Total", money(total(shown)))
    manage_entries(Kind.EXPENSE, data.expenses)

elif menu == "💳 Bills":
    st.title("💳 Credit card bills")
    entries_table(Kind.BILL, data.bills)
    c1, c2 = st.columns(2)
    c1.metric("Total bills", money(summary.total_bills))
    c2.metric("Available savings", money(summary.available_savings))
    manage_entries(Kind.BILL, data.bills)

elif menu == "📊 Analytics":
    st.title("📊 Analytics")
    c1, c2 = st.columns(2)
    c1.metric("Net savings", money(summary.net_savings))
    c2.metric("Available savings", money(summary.available_savings))

    if report["categories"]:
        st.plotly_chart(category_pie(report["categories"], "Spending by category"), use_container_width=True)

    bars = report["waterfall"]
    fig_wf = go.Figure(go.Waterfall(
        x=[b.label for b in bars],
        y=[float(b.delta) if not b.is_total else float(b.running_total) for b in bars],
        measure=["absolute"] + ["relative"] * (len(bars) - 2) + ["total"],
    ))
    fig_wf.update_layout(title="Where the income went", template=TEMPLATE)
    st.plotly_chart(fig_wf, use_container_width=True)

    history = run(service.history(period, settings.history_months))
    fig_stack = go.Figure()
    for name, values in history.category_matrix.items():
        fig_stack.add_trace(go.Bar(
            x=history.labels, y=[float(v) for v in values], name=name,
            marker_color=registry.color_for(name),
        ))
    fig_stack.update_layout(barmode="stack", title="Monthly spending by category", template=TEMPLATE)
    st.plotly_chart(fig_stack, use_container_width=True)

    fig_ts = go.Figure()
    for name, values in (
        ("Income", history.series.income),
        ("Expenses", history.series.expenses),
        ("Bills", history.bills),
        ("Net Savings", history.series.savings),
    ):
        fig_ts.add_trace(go.Scatter(x=history.labels, y=[float(v) for v in values], mode="lines+markers", name=name))
    fig_ts.update_layout(title="Trend", template=TEMPLATE)
    st.plotly_chart(fig_ts, use_container_width=True)

    annual = run(service.annual(period.year, today))
    st.subheader(f"📅 {annual.year}")
    a1, a2, a3, a4 = st.columns(4)
    a1.metric("Projected income", money(annual.projection.income), delta=annual.income_trend.direction)
    a2.metric("Projected expenses", money(annual.projection.expenses), delta=annual.expense_trend.direction,
              delta_color="inverse")
    a3.metric("Projected savings", money(annual.projection.savings))
    a4.metric("Savings rate", format_percent(annual.projection.savings_rate))
    months = [Period(annual.year, m).start.strftime("%b") for m in range(1, 13)]
    annual_df = pd.DataFrame({
        "Income": [float(v) for v in annual.series.income],
        "Expenses": [float(v) for v in annual.series.expenses],
        "Savings": [float(v) for v in annual.series.savings],
    }, index=months)
    st.bar_chart(annual_df)

elif menu == "🔎 Search":
    st.title("🔎 Search")
    query = st.text_input("Search all entries (source, description, category, notes, tags)")
    if query:
        result = run(service.search(query))
        if result.status is SearchStatus.TOO_SHORT:
            st.caption("Type at least 2 characters.")
        elif result.status is SearchStatus.NO_MATCHES:
            st.info(f'No entries match "{result.query}".')
        else:
            if result.truncated:
                st.caption(f"Showing {len(result.hits)} of {result.total_matches} matches.")
            st.dataframe(pd.DataFrame([
                {
                    "Date": format_date(h.transaction.date),
                    "Kind": h.kind.value.title(),
                    "Label": h.transaction.label,
                    "Category": getattr(h.transaction, "category", ""),
                    "Amount": money(h.transaction.amount),
                }
                for h in result.hits
            ]), use_container_width=True, hide_index=True)

elif menu == "🏷 Categories":
    st.title("🏷 Categories")
    for cat in registry.categories():
        st.markdown(
            f"<span style='color:{cat.color}'>●</span> {cat.name}" + (" · built-in" if cat.builtin else ""),
            unsafe_allow_html=True,
        )
    with st.form("add_category", clear_on_submit=True):
        name = st.text_input("Name")
        color = st.color_picker("Color", "#14b8a6")
        if st.form_submit_button("Add category"):
            try:
                registry.add(name, color)
                st.rerun()
            except (RegistryConflict, ValidationFailure) as e:
                st.error(e.message)
    customs = list(registry.customs())
    if customs:
        to_remove = st.selectbox("Remove custom category", customs)
        if st.button("Remove"):
            try:
                registry.remove(to_remove)
                st.rerun()
            except (RegistryConflict, CategoryNotFound) as e:
                st.error(e.message)
