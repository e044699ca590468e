"""
Streamlit Frontend for D/C Ledger

The screen the owner uses every day: who owes what, add a person,
record a credit or debit, settle up.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Balances always recomputed from the stored transactions
3. Clear error messages in simple language
4. Destructive actions need an explicit confirmation

The UI only talks to LedgerService and the identity provider held in
the LedgerContext. It never touches storage directly.
"""

import asyncio
from datetime import datetime, time, timezone
from decimal import Decimal

import streamlit as st

from dc_ledger.config import validate_all_settings
from dc_ledger.errors import (
    AuthenticationError,
    ConflictError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from dc_ledger.models.ledger import BalanceStatus, Direction
from dc_ledger.orchestrator import LedgerContext, create_ledger_context
from dc_ledger.services.storage import sheets_summary


# Page configuration
st.set_page_config(
    page_title="D/C Ledger",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .total-box {
        padding: 16px;
        border-radius: 10px;
        border: 1px solid #2c3e50;
        margin: 5px 0;
    }
    .credit { color: #28a745; }
    .debit { color: #dc3545; }
    .big-number {
        font-size: 2em;
        font-weight: bold;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_context() -> LedgerContext:
    """Get or create the ledger context (cached for the process lifetime)."""
    return create_ledger_context()


def format_money(amount: Decimal) -> str:
    return f"Rs.{amount:,.2f}"


def balance_label(status: BalanceStatus, net: Decimal) -> str:
    if status == BalanceStatus.OWES_YOU:
        return f"Owes {format_money(net)}"
    if status == BalanceStatus.YOU_OWE:
        return f"Owe {format_money(abs(net))}"
    return "Settled"


def current_owner(ctx: LedgerContext):
    """Return the owner id for the session token, or None to show login."""
    token = st.session_state.get("token")
    if not token:
        return None
    try:
        return ctx.identity.verify_token(token)
    except AuthenticationError:
        logout()
        return None


def logout():
    st.session_state.token = None
    st.session_state.user = None
    st.session_state.selected_person_id = None


def main():
    """Main application entry point."""
    try:
        ctx = get_context()
    except ValueError as e:
        st.error(f"Failed to initialize: {e}")
        st.info("Set AUTH_SECRET_KEY in your environment or .env file.")
        st.stop()

    if "selected_person_id" not in st.session_state:
        st.session_state.selected_person_id = None

    owner_id = current_owner(ctx)
    if owner_id is None:
        render_auth_page(ctx)
        return

    page = st.sidebar.radio(
        "Navigate to:",
        ["📒 Ledger", "⚙️ Settings"],
        index=0,
    )

    if page == "📒 Ledger":
        render_ledger_page(ctx, owner_id)
    else:
        render_settings_page(ctx)


def render_auth_page(ctx: LedgerContext):
    """Login / register screen."""
    st.title("💰 D/C Ledger")
    login_tab, register_tab = st.tabs(["Login", "Register"])

    with login_tab:
        with st.form("login"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Login", type="primary")
        if submitted:
            try:
                session = run_async(ctx.identity.login(email, password))
                st.session_state.token = session.token
                st.session_state.user = session.user
                st.rerun()
            except AuthenticationError as e:
                st.error(str(e))

    with register_tab:
        with st.form("register"):
            name = st.text_input("Name")
            email = st.text_input("Email", key="register_email")
            password = st.text_input("Password", type="password", key="register_password")
            submitted = st.form_submit_button("Create account", type="primary")
        if submitted:
            try:
                session = run_async(ctx.identity.register(name, email, password))
                st.session_state.token = session.token
                st.session_state.user = session.user
                st.rerun()
            except ValidationError as e:
                for issue in e.issues:
                    st.error(issue.message)
            except ConflictError as e:
                st.error(str(e))


def render_ledger_page(ctx: LedgerContext, owner_id):
    """Sidebar with totals and people; main area for the selected person."""
    ledger = ctx.ledger
    overview = run_async(ledger.get_overview(owner_id))

    # Sidebar
    user = st.session_state.get("user")
    st.sidebar.title("💰 D/C Manager")
    if user:
        st.sidebar.caption(f"Signed in as {user.name}")
    if st.sidebar.button("Logout"):
        logout()
        st.rerun()

    col1, col2 = st.sidebar.columns(2)
    col1.markdown(
        f'<div class="total-box"><small>RECEIVABLE</small><br>'
        f'<span class="credit">{format_money(overview.totals.total_credit)}</span></div>',
        unsafe_allow_html=True,
    )
    col2.markdown(
        f'<div class="total-box"><small>PAYABLE</small><br>'
        f'<span class="debit">{format_money(overview.totals.total_debit)}</span></div>',
        unsafe_allow_html=True,
    )

    with st.sidebar.form("add_person", clear_on_submit=True):
        new_name = st.text_input("Add Name...")
        if st.form_submit_button("➕ Add person"):
            try:
                person = run_async(ledger.add_person(owner_id, new_name))
                st.session_state.selected_person_id = person.id
                st.rerun()
            except ValidationError as e:
                st.sidebar.error(str(e))

    st.sidebar.markdown("---")
    for balance in overview.balances:
        person, stats = balance.person, balance.stats
        label = f"{person.name} · {balance_label(stats.status, stats.net)}"
        if st.sidebar.button(label, key=f"person-{person.id}"):
            st.session_state.selected_person_id = person.id
            st.rerun()

    # Main area
    balances = {b.person.id: b for b in overview.balances}
    selected = balances.get(st.session_state.selected_person_id)
    if selected is None:
        st.info("Select a person to manage")
        return

    render_person(ctx, owner_id, selected)


def render_person(ctx: LedgerContext, owner_id, balance):
    ledger = ctx.ledger
    person, stats = balance.person, balance.stats

    header, figure = st.columns([3, 1])
    with header:
        st.title(person.name)
        st.markdown(
            f'<span class="credit">CREDIT: {stats.total_credit}</span> &nbsp; '
            f'<span class="debit">DEBIT: {stats.total_debit}</span>',
            unsafe_allow_html=True,
        )
    with figure:
        sign = "+" if stats.net >= 0 else "-"
        st.metric("Balance", f"{sign}{abs(stats.net)}")

    # Transactions
    try:
        transactions = run_async(ledger.list_transactions(owner_id, person.id))
    except NotFoundError:
        st.session_state.selected_person_id = None
        st.rerun()

    if not transactions:
        st.caption("No transactions yet.")
    for tx in transactions:
        arrow = "↙️" if tx.direction == Direction.CREDIT else "↗️"
        left, right = st.columns([4, 1])
        left.markdown(f"{arrow} **{tx.description}**  \n{tx.occurred_at:%d %b %Y}")
        right.markdown(f"`{tx.signed_amount:+,.2f}`")

    st.markdown("---")

    # Add transaction
    with st.form("add_transaction", clear_on_submit=True):
        c1, c2, c3 = st.columns([2, 3, 2])
        amount = c1.text_input("Amount")
        description = c2.text_input("Description")
        direction = c3.radio(
            "Type",
            options=list(Direction),
            format_func=lambda d: "Credit (they owe)" if d == Direction.CREDIT else "Debit (you owe / paid)",
            horizontal=True,
        )
        occurred_on = st.date_input("Date", value=datetime.now().date())
        if st.form_submit_button("Add transaction", type="primary"):
            try:
                run_async(ledger.add_transaction(
                    owner_id,
                    person_id=person.id,
                    amount=amount,
                    direction=direction,
                    description=description,
                    occurred_at=datetime.combine(occurred_on, time(), tzinfo=timezone.utc),
                ))
                st.rerun()
            except ValidationError as e:
                for issue in e.issues:
                    st.error(issue.message)
            except LedgerError as e:
                st.error(f"Operation failed: {e}")

    # Settle and delete
    col1, col2 = st.columns(2)
    with col1:
        if st.button("🔄 Settle balance", disabled=stats.net == 0):
            tx = run_async(ledger.settle(owner_id, person.id))
            if tx is None:
                st.info("Already settled.")
            else:
                st.rerun()
    with col2:
        confirm = st.checkbox("Yes, delete this person and all their transactions")
        if st.button("🗑️ Delete person", disabled=not confirm):
            try:
                run_async(ledger.delete_person(owner_id, person.id))
            except NotFoundError:
                st.warning("This person was already removed.")
            st.session_state.selected_person_id = None
            st.rerun()


def render_settings_page(ctx: LedgerContext):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")
    status = validate_all_settings()
    groups = [
        ("Ledger", "ledger"),
        ("Authentication", "auth"),
        ("Google Sheets (Storage)", "google_sheets"),
        ("Application", "app"),
    ]
    for name, key in groups:
        if status.get(key, False):
            st.success(f"✅ {name}")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("### Storage")
    if ctx.sheets_client:
        st.success("Connected to Google Sheets")
        st.json(sheets_summary(ctx.sheets_client))
    else:
        st.warning("Using in-memory storage - data is lost when the app restarts.")

    st.markdown("---")
    st.markdown(
        "To configure the application, create a `.env` file with your settings. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
