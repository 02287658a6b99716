"""Web chat interface using Streamlit."""

import uuid

import streamlit as st

from faqbot import (
    BuildError,
    ConversationManager,
    ConversationStateMachine,
    EscalationRecorder,
    FAQBotError,
    IndexNotReadyError,
    Intent,
    RAGPipeline,
    get_escalation_store,
)
from faqbot.config import config

config.setup_logging()
logger = config.get_logger(__name__)


@st.cache_resource(show_spinner=False)
def load_conversation_manager() -> ConversationManager:
    """Create the conversation services once per process.

    The corpus index is built on a background thread, so the UI is served
    while indexing runs.

    Returns:
        ConversationManager: Shared by every browser session.
    """
    config.validate()
    pipeline = RAGPipeline()
    recorder = EscalationRecorder(get_escalation_store())
    pipeline.start_build(config.DOCUMENT_PATH)
    logger.info("FAQBot services initialized")
    return ConversationManager(ConversationStateMachine(pipeline, recorder))


class SessionState:
    """Centralized session state management."""

    @staticmethod
    def initialize() -> None:
        """Initialize all session state variables."""
        defaults = {
            "session_id": uuid.uuid4().hex,
            "messages": [],
            "greeted": False,
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

    @staticmethod
    def add_message(role: str, content: str) -> None:
        st.session_state.messages.append({"role": role, "content": content})

    @staticmethod
    def reset_conversation(manager: ConversationManager) -> None:
        """Forget the chat transcript and any pending escalation."""
        manager.clear_session(st.session_state.session_id)
        st.session_state.messages = []
        st.session_state.greeted = False


def send_turn(
    manager: ConversationManager,
    intent: Intent,
    text: str = "",
    parameters: dict[str, str] | None = None,
) -> str:
    """Run one turn for this browser session.

    Returns:
        str: The assistant's reply.
    """
    try:
        result = manager.handle_turn(
            st.session_state.session_id, intent, text, parameters
        )
    except IndexNotReadyError:
        logger.warning("Turn received before the index was ready")
        return "The assistant is still starting up. Please try again shortly."
    except BuildError:
        logger.exception("Turn received after the index build failed")
        return "The assistant is unavailable right now. Please try again later."
    return result.reply


def render_sidebar(manager: ConversationManager) -> None:
    """Render the sidebar with configuration and session status."""
    with st.sidebar:
        st.header("System Status")
        st.write(f"**Document:** {config.DOCUMENT_PATH.name}")
        st.write(f"**Embedding Model:** {config.EMBEDDING_MODEL}")
        st.write(f"**Chat Model:** {config.CHAT_MODEL}")
        st.write(f"**Escalations:** {config.ESCALATION_BACKEND}")

        context = manager.context_for(st.session_state.session_id)
        if context.is_awaiting:
            st.write(f"**Follow-up:** waiting ({context.remaining_turns} turns left)")
        else:
            st.write("**Follow-up:** none pending")

        st.divider()
        if st.button("Clear Conversation", use_container_width=True):
            SessionState.reset_conversation(manager)
            st.rerun()


def render_contact_form(manager: ConversationManager) -> None:
    """Collect name and email while an escalation is pending."""
    context = manager.context_for(st.session_state.session_id)
    if not context.is_awaiting:
        return

    with st.form("contact_info", clear_on_submit=True):
        st.write("Leave your details and we will follow up by email.")
        name = st.text_input("Name")
        email = st.text_input("Email")
        submitted = st.form_submit_button("Send", use_container_width=True)

    if submitted and email.strip():
        SessionState.add_message("user", f"{name} <{email}>")
        reply = send_turn(
            manager,
            Intent.COLLECT_INFO,
            parameters={"name": name, "email": email},
        )
        SessionState.add_message("assistant", reply)
        st.rerun()
    elif submitted:
        st.warning("Please enter an email address.")


def render_chat_interface(manager: ConversationManager) -> None:
    """Render the transcript and the chat input."""
    if not st.session_state.greeted:
        SessionState.add_message("assistant", send_turn(manager, Intent.WELCOME))
        st.session_state.greeted = True

    for message in st.session_state.messages:
        with st.chat_message(message["role"]):
            st.write(message["content"])

    question = st.chat_input("Ask a question...")
    if question and question.strip():
        SessionState.add_message("user", question)
        with st.spinner("Processing..."):
            reply = send_turn(manager, Intent.ANSWERING, question)
        SessionState.add_message("assistant", reply)
        st.rerun()


def main() -> None:
    """Main entry point for the Streamlit web application."""
    st.set_page_config(page_title="FAQBot", layout="centered")
    SessionState.initialize()

    st.title("FAQBot")

    try:
        manager = load_conversation_manager()
    except FAQBotError as e:
        logger.exception("Failed to initialize services")
        st.error(f"Failed to initialize services: {e}")
        return

    render_sidebar(manager)
    render_chat_interface(manager)
    render_contact_form(manager)


if __name__ == "__main__":
    main()
