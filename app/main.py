"""
Streamlit Frontend for Budget Ledger

This is the user interface for recording income, expenses, recurring bills
and monthly targets, and for reading the summary figures.

DESIGN PRINCIPLES:
1. Every page load is a ledger access (prune, tick, save)
2. The form layer tells the user when input was not recorded
3. No hidden actions: recurring expenses are labelled as such

The ledger service drops invalid input silently; this page re-runs the
validator on the submitted values to explain why nothing was saved.
"""

from datetime import datetime, timezone

import streamlit as st

from src.audit import AuditLogger, configure_logging
from src.config import get_settings, validate_all_settings
from src.models.ledger import BillState, Dashboard, Frequency
from src.orchestrator import LedgerService, create_app_components
from src.accounts import AccountService
from src.services.storage import StorageWriteError
from src.validation import EntryValidator


# Page configuration
st.set_page_config(
    page_title="Budget Ledger",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


BILL_STATE_LABELS = {
    BillState.PENDING: "⏳ Not started",
    BillState.DUE: "🔔 Due",
    BillState.SETTLED: "✅ Paid this period",
}


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    configure_logging()
    return create_app_components(use_storage=True)


def money(amount: float) -> str:
    symbol = get_settings().app.currency_symbol
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def explain_rejection(result) -> None:
    st.warning(EntryValidator().get_user_friendly_summary(result))


def main():
    """Main application entry point."""
    account_service, ledger_service, audit_logger = get_components()

    if "session_token" not in st.session_state:
        st.session_state.session_token = None

    username = account_service.resolve_session(st.session_state.session_token)
    if username is None:
        render_login_page(account_service)
        return

    st.sidebar.title("💰 Budget Ledger")
    st.sidebar.markdown(f"Signed in as **{username}**")
    if st.sidebar.button("Log out"):
        account_service.logout(st.session_state.session_token)
        st.session_state.session_token = None
        st.rerun()

    st.sidebar.markdown("---")
    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "➕ Add Entry", "🔁 Recurring Bills", "🎯 Targets", "📤 Export", "⚙️ Settings"],
        index=0,
    )

    try:
        if page == "📊 Dashboard":
            render_dashboard_page(ledger_service, username)
        elif page == "➕ Add Entry":
            render_entry_page(ledger_service, username)
        elif page == "🔁 Recurring Bills":
            render_recurring_page(ledger_service, username)
        elif page == "🎯 Targets":
            render_targets_page(ledger_service, username)
        elif page == "📤 Export":
            render_export_page(ledger_service, username)
        elif page == "⚙️ Settings":
            render_settings_page(audit_logger, username)
    except StorageWriteError as e:
        audit_logger.log_error("StorageWriteError", str(e), username=username)
        st.error("Your changes could not be saved. Please try again in a moment.")


def render_login_page(account_service: AccountService):
    """Render login and registration forms."""
    st.title("💰 Budget Ledger")

    login_tab, register_tab = st.tabs(["Log in", "Register"])

    with login_tab:
        with st.form("login_form"):
            username = st.text_input("Username")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Log in")
        if submitted:
            outcome = account_service.login(
                username, password, current_session=st.session_state.session_token
            )
            if outcome.success:
                st.session_state.session_token = outcome.session_token
                st.rerun()
            else:
                st.error(outcome.message)

    with register_tab:
        with st.form("register_form"):
            username = st.text_input("Choose a username")
            password = st.text_input("Choose a password", type="password")
            submitted = st.form_submit_button("Create account")
        if submitted:
            outcome = account_service.register(
                username, password, current_session=st.session_state.session_token
            )
            if outcome.success:
                st.session_state.session_token = outcome.session_token
                st.rerun()
            else:
                st.error(outcome.message)


def render_dashboard_page(ledger_service: LedgerService, username: str):
    """Render summary metrics, charts and recent entries."""
    view: Dashboard = ledger_service.dashboard(username)
    summary = view.summary

    st.title("📊 Dashboard")

    col1, col2, col3 = st.columns(3)
    col1.metric("Total income", money(summary.income_total))
    col2.metric("Total expenses", money(summary.expense_total))
    col3.metric("Net", money(summary.net))

    col1, col2, col3 = st.columns(3)
    col1.metric("Monthly burn rate", money(summary.monthly_burn_rate))
    col2.metric(
        "Runway",
        "∞" if summary.has_infinite_runway else f"{summary.runway_months:.1f} months",
    )
    col3.metric(f"Tax reserve ({summary.month})", money(summary.tax_reserve))

    st.markdown("---")

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Income by category")
        if summary.income_by_category:
            st.bar_chart({"amount": summary.income_by_category})
        else:
            st.info("No income recorded yet.")
    with col2:
        st.subheader("Expenses by category")
        if summary.expense_by_category:
            st.bar_chart({"amount": summary.expense_by_category})
        else:
            st.info("No expenses recorded yet.")

    if summary.target_progress:
        st.subheader(f"Targets for {summary.month}")
        for item in summary.target_progress:
            ratio = item.spent / item.budget if item.budget > 0 else 1.0
            st.progress(
                min(max(ratio, 0.0), 1.0),
                text=f"{item.category}: {money(item.spent)} of {money(item.budget)}",
            )
            if item.over_budget:
                st.error(f"Over budget on {item.category} by {money(-item.remaining)}")

    st.markdown("---")
    render_recent(ledger_service, username, "income", view.recent_income)
    render_recent(ledger_service, username, "expense", view.recent_expenses)


def render_recent(ledger_service: LedgerService, username: str, kind: str, entries):
    days = get_settings().ledger.recent_window_days
    st.subheader(f"Recent {kind} (last {days} days)")
    if not entries:
        st.caption("Nothing in this window.")
        return

    for entry in reversed(entries):
        col1, col2, col3, col4 = st.columns([3, 2, 3, 1])
        label = entry.category + (" 🔁" if entry.is_recurring else "")
        col1.write(label)
        col2.write(money(entry.amount))
        col3.write(entry.date.strftime("%d %b %Y %H:%M"))
        if col4.button("🗑️", key=f"delete-{kind}-{entry.id}"):
            if kind == "income":
                ledger_service.delete_income(username, entry.id)
            else:
                ledger_service.delete_expense(username, entry.id)
            st.rerun()


def render_entry_page(ledger_service: LedgerService, username: str):
    """Render the income and expense forms."""
    st.title("➕ Add Entry")

    kind = st.radio("Type", ["Expense", "Income"], horizontal=True)

    with st.form("entry_form", clear_on_submit=True):
        amount = st.text_input("Amount")
        category = st.text_input("Category")
        entry_date = st.date_input("Date", value=datetime.now(timezone.utc).date())
        submitted = st.form_submit_button("Save")

    if submitted:
        moment = datetime.combine(entry_date, datetime.now(timezone.utc).timetz())
        if kind == "Income":
            entry = ledger_service.add_income(username, amount, category, moment)
        else:
            entry = ledger_service.add_expense(username, amount, category, moment)

        if entry is not None:
            st.success(f"Saved {kind.lower()} of {money(entry.amount)} for {entry.category}.")
        else:
            explain_rejection(EntryValidator().validate_entry(
                amount, category, moment, datetime.now(timezone.utc)
            ))


def render_recurring_page(ledger_service: LedgerService, username: str):
    """Render recurring bills with pay and delete actions."""
    st.title("🔁 Recurring Bills")

    with st.form("recurring_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            amount = st.text_input("Amount")
            category = st.text_input("Category")
        with col2:
            frequency = st.selectbox(
                "Frequency",
                options=list(Frequency),
                format_func=lambda f: f.value.title(),
                index=2,
            )
            start_date = st.date_input("Start date", value=datetime.now(timezone.utc).date())
        submitted = st.form_submit_button("Add recurring bill")

    if submitted:
        bill = ledger_service.add_recurring_bill(
            username, amount, category, frequency.value, start_date
        )
        if bill is not None:
            st.success(f"Added {bill.frequency.value} bill for {bill.category}.")
        else:
            explain_rejection(EntryValidator().validate_recurring_bill(
                amount, category, frequency.value, start_date, datetime.now(timezone.utc)
            ))

    view = ledger_service.dashboard(username)
    bills = view.ledger.recurring_bills

    st.markdown("---")
    if not bills:
        st.info("No recurring bills yet.")
        return

    for bill in bills:
        state = view.bill_states.get(str(bill.id), BillState.PENDING)
        col1, col2, col3, col4, col5, col6 = st.columns([3, 2, 2, 3, 1, 1])
        col1.write(bill.category)
        col2.write(money(bill.amount))
        col3.write(bill.frequency.value.title())
        last_paid = bill.last_paid.strftime("%d %b %Y") if bill.last_paid else "never"
        col4.write(f"{BILL_STATE_LABELS[state]} (last paid {last_paid})")
        if col5.button("Pay", key=f"pay-{bill.id}"):
            ledger_service.pay_recurring_bill(username, bill.id)
            st.rerun()
        if col6.button("🗑️", key=f"delete-bill-{bill.id}"):
            ledger_service.delete_recurring_bill(username, bill.id)
            st.rerun()


def render_targets_page(ledger_service: LedgerService, username: str):
    """Render the monthly target form and the list of targets."""
    st.title("🎯 Targets")

    current_month = datetime.now(timezone.utc).strftime("%Y-%m")
    with st.form("target_form", clear_on_submit=True):
        category = st.text_input("Category")
        month = st.text_input("Month (YYYY-MM)", value=current_month)
        amount = st.text_input("Budget")
        submitted = st.form_submit_button("Set target")

    if submitted:
        target = ledger_service.set_target(username, category, month, amount)
        if target is not None:
            st.success(f"Target for {target.category} in {target.month}: {money(target.amount)}")
        else:
            explain_rejection(EntryValidator().validate_target(
                category, month, amount, datetime.now(timezone.utc)
            ))

    ledger = ledger_service.open_ledger(username)
    st.markdown("---")
    if not ledger.targets:
        st.info("No targets set.")
        return

    for target in sorted(ledger.targets, key=lambda t: (t.month, t.category), reverse=True):
        col1, col2, col3, col4 = st.columns([3, 2, 2, 1])
        col1.write(target.category)
        col2.write(target.month)
        col3.write(money(target.amount))
        if col4.button("🗑️", key=f"delete-target-{target.category}-{target.month}"):
            ledger_service.delete_target(username, target.category, target.month)
            st.rerun()


def render_export_page(ledger_service: LedgerService, username: str):
    """Render the CSV download and the monthly report."""
    st.title("📤 Export")

    st.download_button(
        "Download CSV",
        data=ledger_service.export_csv(username),
        file_name=f"budget-{username}.csv",
        mime="text/csv",
    )

    st.markdown("### Monthly report")
    st.code(ledger_service.monthly_report(username), language=None)


def render_settings_page(audit_logger: AuditLogger, username: str):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")
    status = validate_all_settings()

    for key in ("storage", "ledger", "auth", "app"):
        if status.get(key, False):
            st.success(f"✅ {key.title()} settings loaded")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {key.title()} settings - {error}")

    settings = get_settings()
    st.markdown("---")
    st.markdown(f"- Data file: `{settings.storage.data_file}`")
    st.markdown(f"- Recurring bill policy: `{settings.ledger.recurring_policy.value}`")
    st.markdown(
        "To change these, create a `.env` file. "
        "See `.env.example` for the available variables."
    )

    st.markdown("---")
    st.markdown("### Recent activity")
    limit = 100 if settings.app.debug_mode else 20
    events = audit_logger.recent_events(limit=limit, username=username)
    if not events:
        st.caption("No recorded activity.")
    for event in events:
        st.markdown(f"- `{event['timestamp'][:19]}` {event['description']}")


if __name__ == "__main__":
    main()
