"""
Streamlit Frontend for Shop Ledger

The screen the tea-stall owner uses through the day: record sales and
expenses, pay staff, look at the week.

DESIGN PRINCIPLES:
1. One tap per common action
2. Clear error messages; a rejected form keeps what was typed
3. Money always shown with the rupee sign and two decimals
4. Nothing here computes figures; everything comes from LedgerService

Until onboarding is complete only the setup screen is shown.
"""

import asyncio
import base64
from datetime import datetime
from decimal import Decimal

import streamlit as st

from src.config import validate_all_settings
from src.ledger import LedgerError, View
from src.models.ledger import (
    EscrowState,
    PaymentMethod,
    TransactionType,
    categories_for,
)
from src.orchestrator import LedgerService, create_app_components
from src.reports import staff_filename, transactions_filename
from src.services.storage import StorageError


st.set_page_config(
    page_title="Shop Ledger",
    page_icon="🍵",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .info-box {
        padding: 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)

NAV_LABELS = {
    View.DASHBOARD: "🏠 Dashboard",
    View.LOGS: "📒 Logs",
    View.REPORTS: "📊 Reports",
    View.STAFF: "👥 Staff",
    View.SETTINGS: "⚙️ Settings",
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
def get_service() -> LedgerService:
    """Create the service and load saved data once per server process."""
    service = create_app_components()
    run_async(service.load())
    return service


def money(amount: Decimal) -> str:
    return f"₹{amount:,.2f}"


def attempt(action, success: str = None) -> bool:
    """Run a service call, showing the error instead of crashing."""
    try:
        run_async(action)
    except LedgerError as e:
        st.error(str(e))
        return False
    except StorageError as e:
        st.error(f"Saved in this session, but could not write to storage: {e}")
        return False
    if success:
        st.success(success)
    return True


def main():
    """Main application entry point."""
    service = get_service()

    if service.resolve_view() == View.SETUP:
        render_setup_page(service)
        return

    st.sidebar.title(f"🍵 {service.profile.business_name}")
    st.sidebar.markdown("---")
    choice = st.sidebar.radio(
        "Navigate to:",
        list(NAV_LABELS),
        format_func=lambda view: NAV_LABELS[view],
        index=0,
    )
    view = service.resolve_view(choice)

    if view == View.DASHBOARD:
        render_dashboard_page(service)
    elif view == View.LOGS:
        render_logs_page(service)
    elif view == View.REPORTS:
        render_reports_page(service)
    elif view == View.STAFF:
        render_staff_page(service)
    elif view == View.SETTINGS:
        render_settings_page(service)


def render_setup_page(service: LedgerService):
    st.title("🍵 Set up your shop")
    st.markdown("Tell us about your shop to get started.")

    with st.form("setup"):
        business_name = st.text_input("Shop name")
        business_address = st.text_area("Shop address")
        col1, col2 = st.columns(2)
        with col1:
            latitude = st.number_input("Latitude (optional)", value=0.0, format="%.6f")
        with col2:
            longitude = st.number_input("Longitude (optional)", value=0.0, format="%.6f")
        photo = st.file_uploader("Shop photo (optional)", type=["jpg", "jpeg", "png"])
        submitted = st.form_submit_button("🚀 Start", type="primary")

    if submitted:
        location = None
        if latitude or longitude:
            location = {"latitude": latitude, "longitude": longitude}
        shop_image = None
        if photo is not None:
            encoded = base64.b64encode(photo.getvalue()).decode("ascii")
            shop_image = f"data:{photo.type};base64,{encoded}"

        if attempt(service.complete_onboarding(
            business_name=business_name,
            business_address=business_address,
            location=location,
            shop_image=shop_image,
        )):
            st.rerun()


def render_entry_form(service: LedgerService):
    """Add form, or edit form when a row has been picked for editing."""
    editing_id = st.session_state.get("editing_id")
    original = None
    if editing_id:
        try:
            original = service.store.get(editing_id)
        except LedgerError:
            st.session_state.editing_id = None

    st.markdown("### ✏️ Edit entry" if original else "### ➕ New entry")

    types = list(TransactionType)
    transaction_type = st.radio(
        "Type",
        types,
        index=types.index(original.type) if original else 0,
        format_func=lambda t: t.value.title(),
        horizontal=True,
    )
    with st.form("entry", clear_on_submit=original is None):
        amount = st.text_input("Amount (₹)", value=str(original.amount) if original else "")
        options = list(categories_for(transaction_type))
        if original and original.category not in options:
            options.append(original.category)
        category = st.selectbox(
            "Category",
            options,
            index=options.index(original.category) if original else 0,
        )
        methods = list(PaymentMethod)
        payment_method = st.selectbox(
            "Paid by",
            methods,
            index=methods.index(original.payment_method) if original else 0,
            format_func=lambda m: m.value.title(),
        )
        notes = st.text_input("Notes", value=(original.notes or "") if original else "")
        submitted = st.form_submit_button("💾 Save", type="primary")

    if submitted:
        if original:
            action = service.edit_entry(
                transaction_id=original.id,
                amount=amount,
                category=category,
                transaction_type=transaction_type,
                payment_method=payment_method,
                notes=notes,
            )
        else:
            action = service.record_entry(
                amount=amount,
                category=category,
                transaction_type=transaction_type,
                payment_method=payment_method,
                notes=notes,
            )
        if attempt(action):
            st.session_state.editing_id = None
            st.rerun()

    if original and st.button("Cancel edit"):
        st.session_state.editing_id = None
        st.rerun()


def render_dashboard_page(service: LedgerService):
    st.title("🏠 Dashboard")

    totals = service.compute_totals()
    col1, col2, col3 = st.columns(3)
    col1.metric("Income", money(totals.income))
    col2.metric("Expenses", money(totals.expenses))
    col3.metric("Profit", money(totals.profit))

    if st.button("💡 Get business tips"):
        with st.spinner("Thinking..."):
            st.session_state.insight = run_async(service.fetch_insights())
    insight = st.session_state.get("insight")
    if insight:
        st.markdown(f'<div class="info-box">{insight}</div>', unsafe_allow_html=True)

    st.markdown("---")
    render_entry_form(service)


def render_logs_page(service: LedgerService):
    st.title("📒 Logs")

    transactions = service.list_transactions()
    if not transactions:
        st.info("No entries yet. Add your first sale from the dashboard.")
        return

    for transaction in transactions:
        sign = "+" if transaction.type == TransactionType.INCOME else "-"
        col1, col2, col3 = st.columns([6, 1, 1])
        col1.markdown(
            f"**{sign}{money(transaction.amount)}** · {transaction.category} · "
            f"{transaction.payment_method.value.title()} · "
            f"{transaction.date.strftime('%d %b %Y %H:%M')}"
            + (f"  \n_{transaction.notes}_" if transaction.notes else "")
        )
        if col2.button("Edit", key=f"edit_{transaction.id}"):
            st.session_state.editing_id = transaction.id
            st.info("Open the dashboard to finish editing.")
        if col3.button("Delete", key=f"delete_{transaction.id}"):
            if attempt(service.remove_transaction(transaction.id)):
                st.rerun()

    st.download_button(
        "⬇️ Download CSV",
        data=run_async(service.export_transactions_csv()),
        file_name=transactions_filename(),
        mime="text/csv",
    )


def render_reports_page(service: LedgerService):
    st.title("📊 Reports")

    trend = service.compute_daily_trend()
    st.markdown("### Last 7 days")
    st.bar_chart(
        {
            "Income": [float(point.income) for point in trend],
            "Expense": [float(point.expense) for point in trend],
        },
    )
    st.caption(" · ".join(point.label for point in trend))

    st.markdown("### Income by payment method")
    breakdown = service.compute_payment_breakdown()
    if not breakdown:
        st.info("No income recorded yet.")
    for method, amount in breakdown.items():
        st.markdown(f"- **{method.value.title()}**: {money(amount)}")


def render_staff_page(service: LedgerService):
    st.title("👥 Staff")

    st.metric("Held for month end", money(service.total_escrow_liability()))

    with st.expander("➕ Register staff"):
        with st.form("staff", clear_on_submit=True):
            name = st.text_input("Name")
            phone = st.text_input("Phone")
            address = st.text_input("Address")
            aadhaar = st.text_input("Aadhaar")
            weekly_base_pay = st.text_input("Weekly pay (₹)")
            submitted = st.form_submit_button("Register", type="primary")
        if submitted and attempt(service.register_staff(
            name=name,
            phone=phone,
            address=address,
            aadhaar=aadhaar,
            weekly_base_pay=weekly_base_pay,
        )):
            st.rerun()

    staff = service.list_staff()
    if not staff:
        st.info("No staff registered yet.")
        return

    for member in staff:
        st.markdown("---")
        col1, col2, col3 = st.columns([4, 2, 2])
        col1.markdown(
            f"**{member.name}** · {member.phone}  \n"
            f"Weekly pay {money(member.weekly_base_pay)} · "
            f"Held {money(member.total_held_balance)}"
        )
        if col2.button("Pay week", key=f"pay_{member.id}"):
            if attempt(service.process_weekly_pay(member.id)):
                st.rerun()
        settle_disabled = member.escrow_state == EscrowState.NO_ESCROW
        if col3.button("Settle month", key=f"settle_{member.id}", disabled=settle_disabled):
            if attempt(service.settle_monthly_hold(member.id)):
                st.rerun()

    st.download_button(
        "⬇️ Download staff list",
        data=run_async(service.export_staff_csv()),
        file_name=staff_filename(datetime.now().date()),
        mime="text/csv",
    )


def render_settings_page(service: LedgerService):
    st.title("⚙️ Settings")

    profile = service.profile
    with st.form("profile"):
        name = st.text_input("Your name", value=profile.name)
        email = st.text_input("Email", value=profile.email)
        business_name = st.text_input("Shop name", value=profile.business_name)
        business_address = st.text_area("Shop address", value=profile.business_address)
        submitted = st.form_submit_button("💾 Save", type="primary")
    if submitted:
        attempt(
            service.update_profile(
                name=name,
                email=email,
                business_name=business_name,
                business_address=business_address,
            ),
            success="Saved.",
        )

    st.markdown("### Connection Status")
    status = validate_all_settings()
    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Gemini (AI tips)", "gemini"),
    ]
    for label, key in services:
        if status.get(key, False):
            st.success(f"✅ {label} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.warning(f"⚠️ {label} - {error}")

    st.markdown("---")
    if st.button("🔄 Reset shop setup"):
        if attempt(service.reset_profile()):
            st.rerun()


if __name__ == "__main__":
    main()
