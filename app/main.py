"""
Streamlit Frontend for Expense Ledger

The screen people use to enter purchases and look at where the money
went.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. A submission is all or nothing; errors say which row and field
3. Clear error messages in simple language
4. Visual feedback for all operations

Pages:
- Add purchases: one or more rows, written in one submission
- Month charts: weekly and per-store totals for one month
- Yearly dashboard: totals per month
- E-mail report: send a month's report to an address
- Settings: configuration status
"""

from datetime import date

import streamlit as st

from expense_ledger.audit import configure_logging, create_correlation_id
from expense_ledger.config import get_settings, validate_all_settings
from expense_ledger.ledger import InvalidArgument, InvalidTransaction, LedgerError
from expense_ledger.ledger.layout import to_cell_number
from expense_ledger.orchestrator import PurchaseFlow, ReportFlow, create_app_components
from expense_ledger.services.delivery import DeliveryError
from expense_ledger.services.storage import InMemoryGridStore, StorageError
from expense_ledger.validation import REQUIRED_FIELDS


# Page configuration
st.set_page_config(
    page_title="Expense Ledger",
    page_icon="🧾",
    layout="wide",
    initial_sidebar_state="expanded",
)


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    configure_logging(get_settings().app.log_level)
    return create_app_components(use_storage=True)


def main():
    """Main application entry point."""
    purchase_flow, report_flow, store = get_components()

    st.sidebar.title("🧾 Expense Ledger")
    if isinstance(store, InMemoryGridStore):
        st.sidebar.warning(
            "Google Sheets is not configured. Purchases are kept in memory "
            "and lost when the app restarts."
        )
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["➕ Add Purchases", "📈 Month Charts", "📊 Yearly Dashboard", "📤 E-mail Report", "⚙️ Settings"],
        index=0,
    )

    if page == "➕ Add Purchases":
        render_purchase_page(purchase_flow)
    elif page == "📈 Month Charts":
        render_month_charts_page(report_flow)
    elif page == "📊 Yearly Dashboard":
        render_dashboard_page(report_flow)
    elif page == "📤 E-mail Report":
        render_email_page(report_flow)
    elif page == "⚙️ Settings":
        render_settings_page()


def _empty_row() -> dict:
    return {
        "date": date.today(),
        "store": "",
        "product": "",
        "quantity": 1,
        "price": None,
    }


def _is_unused(row: dict) -> bool:
    """Rows added in the editor and never filled in."""
    return all(
        row.get(field) in (None, "")
        for field in ("store", "product", "price")
    )


def render_purchase_page(purchase_flow: PurchaseFlow):
    """Render the purchase entry page."""
    st.title("➕ Add Purchases")
    st.markdown(
        "Enter one row per product. All rows are checked before anything "
        "is written, so one mistake never leaves half a submission behind."
    )

    rows = st.data_editor(
        [_empty_row()],
        num_rows="dynamic",
        use_container_width=True,
        key="purchase_rows",
        column_config={
            "date": st.column_config.DateColumn("Date", required=True, format="YYYY-MM-DD"),
            "store": st.column_config.TextColumn("Store", required=True),
            "product": st.column_config.TextColumn("Product", required=True),
            "quantity": st.column_config.NumberColumn("Quantity", min_value=0, step=1),
            "price": st.column_config.NumberColumn("Price", min_value=0),
        },
    )

    if not st.button("💾 Save purchases", type="primary"):
        return

    items = [
        {field: row.get(field) for field in REQUIRED_FIELDS}
        for row in rows
        if not _is_unused(row)
    ]

    with st.spinner("Saving..."):
        try:
            result = purchase_flow.submit(items, correlation_id=create_correlation_id())
        except InvalidTransaction as e:
            position = f"Row {e.index + 1}: " if e.index >= 0 else ""
            st.error(f"{position}{e}")
            return
        except InvalidArgument as e:
            st.error(str(e))
            return
        except (LedgerError, StorageError) as e:
            st.error(f"Could not save: {e}")
            return

    st.success(f"{result.message} ({result.added} added to {', '.join(result.periods)})")


def render_month_charts_page(report_flow: ReportFlow):
    """Render weekly and per-store charts for one month."""
    st.title("📈 Month Charts")

    periods = report_flow.list_periods()
    if not periods:
        st.info("No month sheets yet. Add a purchase first.")
        return

    period_key = st.selectbox("Month", options=periods, index=len(periods) - 1)

    try:
        weeks = report_flow.weekly_chart(period_key)
        stores = report_flow.store_chart(period_key)
    except (LedgerError, StorageError) as e:
        st.error(str(e))
        return

    formatter = report_flow.formatter
    col1, col2 = st.columns(2)

    with col1:
        st.markdown("### Weekly spending")
        if weeks:
            st.line_chart(
                {
                    "Week": [week.label for week in weeks],
                    "Total": [to_cell_number(week.total) for week in weeks],
                },
                x="Week",
                y="Total",
            )
        else:
            st.info("No weekly data for this month.")

    with col2:
        st.markdown("### Spending by store")
        if stores:
            st.bar_chart(
                {
                    "Store": list(stores),
                    "Total": [to_cell_number(total) for total in stores.values()],
                },
                x="Store",
                y="Total",
            )
            for store, total in stores.items():
                st.markdown(f"- **{store}**: {formatter.currency(total)}")
        else:
            st.info("No store data for this month.")


def render_dashboard_page(report_flow: ReportFlow):
    """Render the per-month overview."""
    st.title("📊 Yearly Dashboard")

    try:
        periods = report_flow.yearly_overview()
    except StorageError as e:
        st.error(str(e))
        return

    if not periods:
        st.info("No data found.")
        return

    formatter = report_flow.formatter
    grand_total = sum(summary.total for summary in periods)
    st.metric("Total spent", formatter.currency(grand_total))

    st.line_chart(
        {
            "Month": [summary.period_key for summary in periods],
            "Total Spent": [to_cell_number(summary.total) for summary in periods],
        },
        x="Month",
        y="Total Spent",
    )

    for summary in periods:
        st.markdown(f"- **{summary.period_key}**: {formatter.currency(summary.total)}")


def render_email_page(report_flow: ReportFlow):
    """Render the report e-mail form."""
    st.title("📤 E-mail Report")

    periods = report_flow.list_periods()
    if not periods:
        st.info("No month sheets yet. Add a purchase first.")
        return

    with st.form("report_form"):
        period_key = st.selectbox("1. Select month to report", options=periods, index=len(periods) - 1)
        email = st.text_input("2. Recipient e-mail")
        submitted = st.form_submit_button("Send report", type="primary")

    if not submitted:
        return

    with st.spinner("Sending..."):
        try:
            delivery = report_flow.send_report(
                period_key,
                email,
                correlation_id=create_correlation_id(),
            )
        except (LedgerError, DeliveryError, StorageError) as e:
            st.error(str(e))
            return

    st.success(f"Report sent to {delivery.to_address}: {delivery.subject}")


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")

    status = validate_all_settings()

    groups = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Ledger layout", "ledger"),
        ("SMTP (E-mail reports)", "email"),
        ("Application", "app"),
    ]

    for name, key in groups:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your settings. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
