"""
Streamlit Frontend for the Expense Assistant

A single-page expense form. Employees can type fields by hand, describe
the expense in a sentence, or upload a receipt photo and let the AI fill
the form in.

DESIGN PRINCIPLES:
1. The form is always editable; AI output is a suggestion, not a commit
2. Fields the AI just filled are marked so the user can review them
3. Clear error messages in simple language
4. Nothing is sent until the user presses Submit

The page holds no state of its own. Every value comes from the session's
ExpenseFormController and every interaction calls one of its methods.
"""

import asyncio
from datetime import date

import streamlit as st

from expense_assistant.agents import InputInvalidError
from expense_assistant.config import get_settings
from expense_assistant.models.expense import (
    CURRENCIES,
    EXPENSE_CATEGORIES,
    SubmissionStatus,
)
from expense_assistant.orchestrator import ExpenseFormController, create_form_controller


# Page configuration
st.set_page_config(
    page_title="Expense Assistant",
    page_icon="🧾",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .error-box {
        padding: 20px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


FIELD_LABELS = {
    "expense_category": "Expense Category",
    "project": "Project / Cost Center",
    "expense_title": "Expense Title",
    "expense_date": "Expense Date",
    "currency": "Currency",
    "amount": "Amount",
    "comment": "Comment",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_controller() -> ExpenseFormController:
    """One controller per browser session."""
    if "controller" not in st.session_state:
        st.session_state.controller = create_form_controller()
    return st.session_state.controller


def widget_key(controller: ExpenseFormController, name: str) -> str:
    # A new revision means the record changed under the widgets
    # (AI merge or reset), so they are rebuilt from the record.
    return f"{name}_{controller.revision}"


def field_label(name: str, highlights: frozenset[str], required: bool = True) -> str:
    label = FIELD_LABELS[name]
    if required:
        label += " *"
    if name in highlights:
        label += " ✨"
    return label


def on_field_change(controller: ExpenseFormController, name: str, key: str) -> None:
    value = st.session_state[key]
    if name == "expense_date":
        value = value.isoformat() if isinstance(value, date) else ""
    try:
        controller.update_field(name, value)
    except InputInvalidError as e:
        st.session_state.field_error = str(e)


def on_description_change(controller: ExpenseFormController, key: str) -> None:
    controller.set_description(st.session_state[key])


def on_receipt_upload(controller: ExpenseFormController, key: str) -> None:
    uploaded_file = st.session_state[key]
    if uploaded_file is None:
        return
    run_async(
        controller.upload_receipt(
            filename=uploaded_file.name,
            content=uploaded_file.getvalue(),
            mime_type=uploaded_file.type or "",
        )
    )
    # Clear the uploader; the attachment is shown from controller state
    st.session_state.uploader_nonce = st.session_state.get("uploader_nonce", 0) + 1


def main():
    """Main application entry point."""
    try:
        controller = get_controller()
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        render_settings_page()
        st.stop()

    st.sidebar.title("🧾 Expense Assistant")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📝 New Expense", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How to use:**
        1. Describe your expense or upload a receipt
        2. Review the fields marked ✨
        3. Fill in anything missing and submit

        **Describe it like:**
        - "Lunch with client at Taj, 1800 rupees, yesterday, project Apollo"
        """
    )

    if page == "📝 New Expense":
        render_expense_page(controller)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_expense_page(controller: ExpenseFormController):
    """Render the expense form."""
    st.title("📝 New Expense")

    render_result_panel(controller)
    render_ai_panel(controller)

    st.markdown("---")
    render_form(controller)


def render_result_panel(controller: ExpenseFormController):
    """The success/error dialog; stays until dismissed."""
    submission = controller.submission
    if not submission.needs_dismissal:
        return

    if submission.status == SubmissionStatus.SUCCESS:
        st.markdown(f"""
        <div class="success-box">
            <h4>✅ Expense Submitted</h4>
            <p>{submission.message}</p>
        </div>
        """, unsafe_allow_html=True)
    else:
        st.markdown(f"""
        <div class="error-box">
            <h4>❌ Submission Failed</h4>
            <p>{submission.message}</p>
        </div>
        """, unsafe_allow_html=True)

    if st.button("Dismiss", key="dismiss_result"):
        controller.dismiss_result()
        st.rerun()


def render_ai_panel(controller: ExpenseFormController):
    """Description box, receipt upload and the AI error banner."""
    st.subheader("✨ Fill with AI")

    if controller.ai_error:
        col1, col2 = st.columns([6, 1])
        with col1:
            st.error(controller.ai_error)
        with col2:
            if st.button("✖", key="dismiss_ai_error"):
                controller.dismiss_ai_error()
                st.rerun()

    max_chars = get_settings().app.max_description_chars
    description_key = widget_key(controller, "description")
    st.text_area(
        "Describe your expense",
        value=controller.description,
        key=description_key,
        max_chars=max_chars,
        placeholder="e.g., Taxi to the airport for 650 rupees on 12 March, project Apollo",
        disabled=controller.is_ai_loading,
        on_change=on_description_change,
        args=(controller, description_key),
    )

    if st.button(
        "✨ Generate from Text",
        type="primary",
        disabled=controller.is_ai_loading or not controller.description.strip(),
    ):
        with st.spinner("Reading your description..."):
            run_async(controller.generate_from_text())
        st.rerun()

    st.markdown("#### Receipt")
    attachment = controller.attachment
    if attachment is None:
        uploader_key = f"receipt_upload_{st.session_state.get('uploader_nonce', 0)}"
        st.file_uploader(
            "Upload a receipt photo",
            type=["jpg", "jpeg", "png", "webp", "gif", "heic"],
            key=uploader_key,
            disabled=controller.is_ai_loading,
            on_change=on_receipt_upload,
            args=(controller, uploader_key),
            help="Images up to the configured size limit",
        )
    else:
        st.image(attachment.preview, width=300, caption=attachment.filename)
        if st.button("🗑️ Remove receipt", disabled=controller.is_ai_loading):
            controller.remove_receipt()
            st.rerun()


def render_form(controller: ExpenseFormController):
    """The editable expense fields."""
    record = controller.record
    highlights = controller.active_highlights()

    if "field_error" in st.session_state:
        st.warning(st.session_state.pop("field_error"))

    st.markdown("### Expense Details")
    st.markdown("*Fields marked ✨ were just filled in by the AI*")

    col1, col2 = st.columns(2)

    with col1:
        st.text_input("Employee Name", value=record.employee_name, disabled=True)

        key = widget_key(controller, "expense_category")
        options = [None] + EXPENSE_CATEGORIES
        st.selectbox(
            field_label("expense_category", highlights),
            options=options,
            index=options.index(record.expense_category.value) if record.expense_category else 0,
            format_func=lambda x: "Select a category" if x is None else x.value,
            key=key,
            on_change=on_field_change,
            args=(controller, "expense_category", key),
        )

        key = widget_key(controller, "expense_title")
        st.text_input(
            field_label("expense_title", highlights),
            value=record.expense_title,
            key=key,
            on_change=on_field_change,
            args=(controller, "expense_title", key),
        )

        key = widget_key(controller, "currency")
        currencies = list(CURRENCIES)
        if record.currency not in currencies:
            currencies.append(record.currency)
        st.selectbox(
            field_label("currency", highlights, required=False),
            options=currencies,
            index=currencies.index(record.currency),
            key=key,
            on_change=on_field_change,
            args=(controller, "currency", key),
        )

    with col2:
        st.text_input("Employee ID", value=record.employee_id, disabled=True)

        key = widget_key(controller, "project")
        st.text_input(
            field_label("project", highlights),
            value=record.project,
            key=key,
            on_change=on_field_change,
            args=(controller, "project", key),
        )

        key = widget_key(controller, "expense_date")
        try:
            date_value = date.fromisoformat(record.expense_date) if record.expense_date else None
        except ValueError:
            date_value = None
        st.date_input(
            field_label("expense_date", highlights),
            value=date_value,
            key=key,
            on_change=on_field_change,
            args=(controller, "expense_date", key),
        )

        key = widget_key(controller, "amount")
        st.number_input(
            field_label("amount", highlights),
            value=record.amount,
            min_value=0.0,
            step=0.01,
            format="%.2f",
            key=key,
            on_change=on_field_change,
            args=(controller, "amount", key),
        )

    key = widget_key(controller, "comment")
    st.text_area(
        field_label("comment", highlights),
        value=record.comment,
        key=key,
        on_change=on_field_change,
        args=(controller, "comment", key),
    )

    if controller.receipt_required and controller.attachment is None:
        st.warning("🧾 A receipt is required for this amount. Please upload one above.")

    st.markdown("---")

    col1, col2 = st.columns([3, 1])
    with col1:
        submission = controller.submission
        blocked = submission.is_in_flight or submission.needs_dismissal
        if st.button("📤 Submit Expense", type="primary", disabled=blocked):
            with st.spinner("Submitting your expense..."):
                run_async(controller.submit())
            st.rerun()
    with col2:
        if st.button("↺ Reset"):
            controller.reset_form()
            st.rerun()


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    from expense_assistant.config import validate_all_settings

    status = validate_all_settings()

    services = [
        ("Gemini (AI)", "gemini"),
        ("Expense Webhook", "webhook"),
        ("Employee Profile", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API key, "
        "webhook URL and employee details. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
