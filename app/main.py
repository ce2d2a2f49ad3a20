"""
Streamlit Dashboard for Receipt Sorter

The reporting client: browse, correct and remove stored receipts, manage
categories, export reports, and ask for insights and budget advice.

DESIGN PRINCIPLES:
1. Receipts arrive from the workflow; here they are only corrected or removed
2. Every AI answer says when it came from the heuristic fallback
3. Clear error messages, no stack traces

Run with:
    streamlit run app/main.py
"""

import asyncio
from datetime import date

import streamlit as st

from receipt_sorter.config import validate_all_settings
from receipt_sorter.errors import ReceiptSorterError
from receipt_sorter.orchestrator import (
    ReceiptManagementFlow,
    ReportingFlow,
    create_app_components,
)
from receipt_sorter.reports import format_receipt_date, summarize
from receipt_sorter.reports.summary import (
    UNCATEGORIZED,
    UNKNOWN_VENDOR,
    as_label,
    to_decimal,
)


# Page configuration
st.set_page_config(
    page_title="Receipt Sorter",
    page_icon="🧾",
    layout="wide",
    initial_sidebar_state="expanded",
)

PERIODS = {
    "All time": "all",
    "Last month": "month",
    "Last quarter": "quarter",
    "Last year": "year",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return create_app_components(use_storage=True)


def main():
    """Main application entry point."""
    components = get_components()
    flow = components.reporting_flow
    management = components.management_flow

    # Sidebar navigation
    st.sidebar.title("🧾 Receipt Sorter")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["🧾 Receipts", "🏷️ Categories", "📊 Reports", "🤖 AI Hub", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.caption(f"Storage: {components.storage_backend}")

    # Route to appropriate page
    if page == "🧾 Receipts":
        render_receipts_page(flow, management)
    elif page == "🏷️ Categories":
        render_categories_page(management)
    elif page == "📊 Reports":
        render_reports_page(flow, management)
    elif page == "🤖 AI Hub":
        render_ai_page(flow)
    elif page == "⚙️ Settings":
        render_settings_page(components.storage_backend)


def load_receipts(flow: ReportingFlow, limit: int = 1000) -> list[dict]:
    try:
        return run_async(flow.list_receipts(limit))
    except ReceiptSorterError as e:
        st.error(f"Could not load receipts: {e}")
        return []


def render_receipts_page(flow: ReportingFlow, management: ReceiptManagementFlow):
    """Render the receipts list with edit and delete."""
    st.title("🧾 Receipts")
    st.markdown("Most recently processed first.")

    receipts = load_receipts(flow)
    if not receipts:
        st.info("No receipts yet. They appear here once the workflow stores them.")
        return

    categories = sorted({as_label(r.get("category"), UNCATEGORIZED) for r in receipts})
    selected = st.selectbox("Filter by Category", options=["All Categories"] + categories)
    if selected != "All Categories":
        receipts = [r for r in receipts if as_label(r.get("category"), UNCATEGORIZED) == selected]

    st.dataframe(
        [
            {
                "Date": format_receipt_date(r.get("date")),
                "Vendor": as_label(r.get("vendor"), UNKNOWN_VENDOR),
                "Total": r.get("total") or 0,
                "Category": as_label(r.get("category"), UNCATEGORIZED),
                "Payment": as_label(r.get("payment_method"), "Unknown"),
            }
            for r in receipts
        ],
        use_container_width=True,
    )

    st.markdown("---")
    st.markdown("### Edit a receipt")

    labels = {
        f"{format_receipt_date(r.get('date'))} · {as_label(r.get('vendor'), UNKNOWN_VENDOR)} · "
        f"{r.get('total') or 0} · {r['id'][:6]}": r
        for r in receipts
    }
    receipt = labels[st.selectbox("Receipt", options=list(labels))]
    category_names = [c["name"] for c in load_categories(management)]
    current_category = as_label(receipt.get("category"), "")
    if current_category and current_category not in category_names:
        category_names.append(current_category)

    with st.form(f"edit_{receipt['id']}"):
        vendor = st.text_input("Vendor", value=as_label(receipt.get("vendor"), ""))
        receipt_date = st.text_input("Date (YYYY-MM-DD)", value=as_label(receipt.get("date"), ""))
        total = st.number_input(
            "Total", min_value=0.0, value=max(0.0, float(to_decimal(receipt.get("total")))), step=0.01
        )
        category = st.selectbox(
            "Category",
            options=category_names,
            index=category_names.index(current_category) if current_category in category_names else 0,
        )
        payment_method = st.text_input("Payment method", value=as_label(receipt.get("payment_method"), ""))
        submitted = st.form_submit_button("💾 Save changes")

    if submitted:
        changes = {
            "vendor": vendor,
            "date": receipt_date,
            "total": total,
            "category": category,
            "payment_method": payment_method or None,
        }
        try:
            run_async(management.edit_receipt(receipt["id"], changes))
        except ReceiptSorterError as e:
            st.error(f"Could not save: {e}")
        else:
            st.success("Receipt updated")
            st.rerun()

    confirm = st.checkbox("I want to delete this receipt")
    if st.button("🗑️ Delete receipt", disabled=not confirm):
        try:
            run_async(management.delete_receipt(receipt["id"]))
        except ReceiptSorterError as e:
            st.error(f"Could not delete: {e}")
        else:
            st.success("Receipt deleted")
            st.rerun()


def load_categories(management: ReceiptManagementFlow) -> list[dict]:
    try:
        return run_async(management.list_categories())
    except ReceiptSorterError as e:
        st.error(f"Could not load categories: {e}")
        return []


def render_categories_page(management: ReceiptManagementFlow):
    """Render category management."""
    st.title("🏷️ Categories")

    categories = load_categories(management)
    for category in categories:
        st.markdown(
            f"{category.get('icon', '')} **{category['name']}** "
            f"<span style='color:{category.get('color', '')}'>●</span>",
            unsafe_allow_html=True,
        )

    st.markdown("---")
    st.markdown("### Add a category")
    with st.form("add_category", clear_on_submit=True):
        name = st.text_input("Name")
        color = st.color_picker("Color", value="#667eea")
        icon = st.text_input("Icon", value="📄")
        if st.form_submit_button("➕ Add"):
            try:
                run_async(management.add_category(name, color=color, icon=icon))
            except ReceiptSorterError as e:
                st.error(str(e))
            else:
                st.success(f"Added {name.strip()}")
                st.rerun()

    if not categories:
        return

    st.markdown("---")
    st.markdown("### Edit or remove")
    by_name = {c["name"]: c for c in categories}
    category = by_name[st.selectbox("Category", options=list(by_name))]

    with st.form(f"edit_category_{category['id']}"):
        new_name = st.text_input("Name", value=category["name"])
        new_color = st.color_picker("Color", value=category.get("color") or "#667eea")
        new_icon = st.text_input("Icon", value=category.get("icon") or "")
        if st.form_submit_button("💾 Save"):
            try:
                run_async(management.update_category(
                    category["id"],
                    {"name": new_name, "color": new_color, "icon": new_icon or None},
                ))
            except ReceiptSorterError as e:
                st.error(str(e))
            else:
                st.success("Category updated")
                st.rerun()

    st.caption("Receipts already filed under a removed category keep their label.")
    if st.button("🗑️ Remove category"):
        try:
            run_async(management.delete_category(category["id"]))
        except ReceiptSorterError as e:
            st.error(str(e))
        else:
            st.rerun()


def render_reports_page(flow: ReportingFlow, management: ReceiptManagementFlow):
    """Render the summary and CSV export page."""
    st.title("📊 Reports")

    receipts = load_receipts(flow)
    if not receipts:
        st.info("Nothing to report yet.")
        return

    summary = summarize(receipts)
    col1, col2, col3 = st.columns(3)
    col1.metric("Receipts", summary.totals.receipts)
    col2.metric("Total spend", f"${summary.totals.amount:,.2f}")
    col3.metric("Average receipt", f"${summary.totals.average:,.2f}")
    st.caption(f"From {summary.period.start} to {summary.period.end}")

    left, right = st.columns(2)
    with left:
        st.markdown("### By category")
        st.bar_chart({c.category: c.amount for c in summary.by_category})
    with right:
        st.markdown("### By month")
        st.bar_chart({m.month: m.amount for m in reversed(summary.by_month)})

    today = date.today()
    try:
        this_month = run_async(management.spending_by_category(today.replace(day=1), today))
    except ReceiptSorterError as e:
        st.error(f"Could not load this month: {e}")
        this_month = {}
    st.markdown("### This month by category")
    if this_month:
        st.bar_chart(this_month)
    else:
        st.caption("No receipts dated this month.")

    st.markdown("---")
    st.markdown("### Export")
    period_label = st.selectbox("Period", options=list(PERIODS))

    if st.button("Prepare CSV"):
        try:
            export = run_async(flow.export_csv(period=PERIODS[period_label]))
        except ReceiptSorterError as e:
            st.error(f"Export failed: {e}")
            return
        if export is None:
            st.warning("No receipts found to export")
            return
        st.success(f"{export.receipts_count} receipts ready")
        st.download_button(
            "⬇️ Download CSV",
            data=export.csv,
            file_name=export.filename,
            mime="text/csv",
        )


def render_ai_page(flow: ReportingFlow):
    """Render insights, budgets, advice and analytics."""
    st.title("🤖 AI Hub")

    receipts = load_receipts(flow)
    if not receipts:
        st.info("Add some receipts first.")
        return

    tab_insights, tab_budget, tab_advice, tab_trends = st.tabs(
        ["Insights", "Budgets", "Saving advice", "Anomalies & forecast"]
    )

    with tab_insights:
        max_insights = st.slider("Number of insights", 1, 50, 10)
        if st.button("Generate insights"):
            with st.spinner("Analysing your spending..."):
                result = run_async(flow.generate_insights(receipts, max_insights))
            if result.fallback:
                st.warning("AI unavailable - showing computed insights")
            st.markdown(result.insights)

    with tab_budget:
        inputs = run_async(flow.budget_inputs())
        if not inputs:
            st.info("Not enough recent data for suggestions.")
        elif st.button("Suggest budgets"):
            with st.spinner("Working out budgets..."):
                result = run_async(flow.suggest_budgets(inputs))
            if result.fallback:
                st.warning("AI unavailable - budgets are one third of the last three months")
            if not result.suggestions:
                st.error("The AI answer could not be read. Try again later.")
            for suggestion in result.suggestions:
                st.markdown(f"- **{suggestion.category}:** ${suggestion.suggested_budget:,} / month")

    with tab_advice:
        max_tips = st.slider("Number of tips", 5, 50, 25)
        if st.button("Get saving advice"):
            with st.spinner("Looking for savings..."):
                result = run_async(flow.saving_advice(receipts, max_tips))
            if result.fallback:
                st.warning("AI unavailable - showing general advice")
            st.markdown(result.advice)

    with tab_trends:
        anomalies, threshold, average = run_async(flow.anomalies())
        st.markdown(f"Average receipt **${average:,.2f}**, flagging anything above **${threshold:,.2f}**.")
        if anomalies:
            for anomaly in anomalies:
                st.markdown(
                    f"- {anomaly.vendor}: ${anomaly.total:,.2f} on {format_receipt_date(anomaly.date)}"
                )
        else:
            st.success("No anomalies detected.")

        forecast = run_async(flow.prediction())
        st.metric("Estimated spend next month", f"${forecast.predicted_amount:,.2f}")
        if forecast.months_used:
            st.caption(f"Based on {', '.join(forecast.months_used)}")


def render_settings_page(storage_backend: str):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Gemini (AI)", "gemini"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if storage_backend == "memory":
        st.warning("Running on the in-memory store: data is lost when the app stops.")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
