"""
Streamlit Frontend for Finance Tracker

A single page: the balance, a form to add an entry, and the history.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Explicit confirmation before deleting or signing out
3. Clear error messages in simple language
4. Controls are disabled while a save is in flight

Backends (document store, uploader, audit log) are shared by every browser
session. Each session gets its own TrackerFlow in st.session_state.
"""

import asyncio

import streamlit as st

from finance_tracker.audit import configure_logging
from finance_tracker.config import get_settings, validate_all_settings
from finance_tracker.models.transaction import Attachment, Transaction
from finance_tracker.orchestrator import Backends, TrackerFlow, create_app_components, create_backends
from finance_tracker.services.storage import NotFoundError, StorageError
from finance_tracker.services.upload import UploadError
from finance_tracker.store import OperationInProgressError, format_amount
from finance_tracker.validation import ValidationError
from finance_tracker.workflow import ConfirmationError, ConfirmationState


# Page configuration
st.set_page_config(
    page_title="Finance Tracker",
    page_icon="💰",
    layout="centered",
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
    .income {
        color: #28a745;
    }
    .expense {
        color: #dc3545;
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
def get_backends() -> Backends:
    """Get or create the shared backends (cached)."""
    configure_logging(get_settings().app.debug_mode)
    return create_backends()


def get_flow() -> TrackerFlow:
    """Get or create this browser session's flow."""
    if "flow" not in st.session_state:
        st.session_state.flow = create_app_components(backends=get_backends())
    return st.session_state.flow


def init_state() -> None:
    if "form_nonce" not in st.session_state:
        st.session_state.form_nonce = 0  # Bumped to clear the add form
    if "editing_id" not in st.session_state:
        st.session_state.editing_id = None
    if "flash" not in st.session_state:
        st.session_state.flash = None


def show_error(error: Exception) -> None:
    """Map failures to plain-language messages."""
    if isinstance(error, ValidationError):
        st.error("\n".join(issue.message for issue in error.issues))
    elif isinstance(error, UploadError):
        st.error(f"Could not upload the attachment: {error.message}. Nothing was saved.")
    elif isinstance(error, OperationInProgressError):
        st.warning("Please wait for the previous save to finish.")
    elif isinstance(error, ConfirmationError):
        st.warning(str(error))
    elif isinstance(error, StorageError):
        st.error(f"Could not reach your records: {error}")
    else:
        st.error(f"Something went wrong: {error}")


def main():
    """Main application entry point."""
    init_state()
    flow = get_flow()
    currency = get_settings().app.currency_symbol

    try:
        run_async(flow.sync_session())
    except StorageError as e:
        show_error(e)

    render_sidebar(flow)

    st.title("💰 Finance Tracker")

    if flow.user is None:
        st.info("Sign in to see and add your transactions.")
        if st.button("🔑 Sign in", type="primary"):
            run_async(flow.login())
            st.rerun()
        return

    if st.session_state.flash:
        st.success(st.session_state.flash)
        st.session_state.flash = None

    render_confirmation(flow)
    render_summary(flow, currency)
    render_add_form(flow)
    render_history(flow, currency)


def render_sidebar(flow: TrackerFlow):
    """Render the account and connection status panel."""
    st.sidebar.title("💰 Finance Tracker")
    st.sidebar.markdown("---")

    user = flow.user
    if user is not None:
        st.sidebar.markdown(f"Signed in as **{user.display_name or user.id}**")
        if st.sidebar.button("🚪 Sign out", disabled=flow.store.is_busy):
            try:
                run_async(flow.request_logout())
            except ConfirmationError as e:
                show_error(e)
            st.rerun()

    st.sidebar.markdown("---")
    with st.sidebar.expander("⚙️ Connection Status"):
        status = validate_all_settings()
        app_settings = get_settings().app

        services = [("Application", "app")]
        if app_settings.storage_backend == "google_sheets":
            services.append(("Google Sheets (Storage)", "google_sheets"))
        if app_settings.upload_backend == "dropbox":
            services.append(("Dropbox (Attachments)", "dropbox"))
        elif app_settings.upload_backend == "cloudinary":
            services.append(("Cloudinary (Attachments)", "cloudinary"))

        for name, key in services:
            if status.get(key, False):
                st.success(f"✅ {name} - Configured")
            else:
                error = status.get(f"{key}_error", "Not configured")
                st.error(f"❌ {name} - {error}")

        if app_settings.storage_backend == "memory":
            st.info("Records are kept in memory and are lost on restart.")


def render_confirmation(flow: TrackerFlow):
    """Render the pending confirmation prompt, if any."""
    workflow = flow.workflow
    if not workflow.is_pending:
        return

    st.warning(f"⚠️ {workflow.message}")
    if workflow.state == ConfirmationState.FAILED:
        st.error(f"That did not work: {workflow.error}. Confirm to try again, or cancel.")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("✅ Confirm", type="primary", key="confirm_action"):
            try:
                run_async(flow.confirm())
            except Exception as e:
                # The prompt stays open in FAILED state
                show_error(e)
            else:
                st.rerun()
    with col2:
        if st.button("❌ Cancel", key="cancel_action"):
            run_async(flow.cancel())
            st.rerun()


def render_summary(flow: TrackerFlow, currency: str):
    """Render the balance and the income/expense totals."""
    totals = flow.summary()

    balance = format_amount(totals.balance, currency, signed=False)
    if totals.balance < 0:
        balance = f"-{balance}"

    st.markdown("#### Your Balance")
    st.markdown(f'<div class="big-number">{balance}</div>', unsafe_allow_html=True)

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("**Income**")
        st.markdown(
            f'<span class="income">{format_amount(totals.income, currency)}</span>',
            unsafe_allow_html=True,
        )
    with col2:
        st.markdown("**Expense**")
        st.markdown(
            f'<span class="expense">{format_amount(totals.expense, currency)}</span>',
            unsafe_allow_html=True,
        )


def render_add_form(flow: TrackerFlow):
    """Render the add-transaction form."""
    st.markdown("---")
    st.subheader("Add New Transaction")

    with st.form(key=f"add_form_{st.session_state.form_nonce}"):
        text = st.text_input(
            "Text",
            placeholder="Enter text...",
        )
        amount = st.text_input(
            "Amount",
            placeholder="Enter amount...",
            help="Negative for an expense, positive for income",
        )
        uploaded_file = None
        if flow.store.accepts_attachments:
            uploaded_file = st.file_uploader(
                "Attachment (optional)",
                help="A receipt or invoice for this entry",
            )
        submitted = st.form_submit_button(
            "Add transaction",
            type="primary",
            disabled=flow.store.is_busy,
        )

    if not submitted:
        return

    attachment = None
    if uploaded_file is not None:
        attachment = Attachment(
            filename=uploaded_file.name,
            content=uploaded_file.getvalue(),
            mime_type=uploaded_file.type or "application/octet-stream",
        )

    with st.spinner("Saving..."):
        try:
            tx = run_async(flow.add_transaction(text, amount, attachment))
        except Exception as e:
            # Form keeps its input so the user can correct and retry
            show_error(e)
            return

    st.session_state.form_nonce += 1
    st.session_state.flash = f'Added "{tx.text}"'
    st.rerun()


def render_history(flow: TrackerFlow, currency: str):
    """Render the transaction list, most recent first."""
    st.markdown("---")
    st.subheader("History")

    if not flow.transactions:
        st.info("No transactions yet. Add your first one above.")
        return

    busy = flow.store.is_busy or flow.workflow.state == ConfirmationState.RUNNING
    for tx in flow.transactions:
        if st.session_state.editing_id == tx.id:
            render_edit_form(flow, tx)
            continue

        col1, col2, col3, col4 = st.columns([4, 2, 1, 1])
        with col1:
            st.markdown(tx.text)
            if tx.file_url:
                st.markdown(f"[📎 Attachment]({tx.file_url})")
        with col2:
            css = "income" if tx.is_income else "expense" if tx.is_expense else ""
            st.markdown(
                f'<span class="{css}">{format_amount(tx.amount, currency)}</span>',
                unsafe_allow_html=True,
            )
        with col3:
            if st.button("✏️", key=f"edit_{tx.id}", disabled=busy, help="Edit"):
                st.session_state.editing_id = tx.id
                st.rerun()
        with col4:
            if st.button("🗑️", key=f"delete_{tx.id}", disabled=busy, help="Delete"):
                try:
                    run_async(flow.request_delete(tx.id))
                except (NotFoundError, ConfirmationError) as e:
                    show_error(e)
                else:
                    st.rerun()


def render_edit_form(flow: TrackerFlow, tx: Transaction):
    """Render the inline edit form for one transaction."""
    with st.form(key=f"edit_form_{tx.id}"):
        text = st.text_input("Text", value=tx.text)
        amount = st.text_input("Amount", value=str(tx.amount))

        col1, col2 = st.columns(2)
        with col1:
            save = st.form_submit_button("💾 Save", type="primary", disabled=flow.store.is_busy)
        with col2:
            discard = st.form_submit_button("Cancel")

    if discard:
        st.session_state.editing_id = None
        st.rerun()

    if save:
        try:
            updated = run_async(flow.edit_transaction(tx.id, text, amount))
        except Exception as e:
            show_error(e)
            return

        st.session_state.editing_id = None
        if updated is None:
            st.session_state.flash = "That transaction no longer exists."
        else:
            st.session_state.flash = f'Updated "{updated.text}"'
        st.rerun()


if __name__ == "__main__":
    main()
