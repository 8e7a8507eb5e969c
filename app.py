"""Web chat interface using Streamlit."""

import asyncio

import streamlit as st

from faqbot import ConversationManager
from faqbot.config import config
from faqbot.errors import ConfigurationError, FaqbotError, LastThreadError
from faqbot.services import build_query_engine

MAX_SOURCE_PREVIEW_LENGTH = 200

config.setup_logging()
logger = config.get_logger(__name__)


class SessionState:
    """Centralized session state management."""

    @staticmethod
    def initialize() -> None:
        """Initialize all session state variables."""
        if "conversation_manager" not in st.session_state:
            st.session_state.conversation_manager = None

    @staticmethod
    def is_system_ready() -> bool:
        """Check if the conversation manager is initialized.

        Returns:
            bool: True if the conversation manager exists, False otherwise.
        """
        return st.session_state.get("conversation_manager") is not None

    @staticmethod
    def manager() -> ConversationManager:
        return st.session_state.conversation_manager


def initialize_system() -> bool:
    """Build the query engine and an empty conversation manager.

    Returns:
        bool: True if initialization succeeds, False otherwise.
    """
    try:
        with st.spinner("Initializing system..."):
            engine = build_query_engine()
            st.session_state.conversation_manager = ConversationManager(engine)
    except ConfigurationError as e:
        st.error(f"Configuration Error: {e}")
        return False
    except FaqbotError as e:
        logger.exception("Failed to initialize system")
        st.error(f"Failed to initialize system: {e}")
        return False

    logger.info("Chat system initialized successfully")
    return True


def render_sidebar() -> None:
    """Render the thread list with new-chat and delete controls."""
    manager = SessionState.manager()
    with st.sidebar:
        if st.button("New Chat", use_container_width=True):
            manager.create_thread()
            st.rerun()

        st.divider()
        only_thread = len(manager.threads) == 1
        for thread in manager.threads:
            col1, col2 = st.columns([5, 1])
            with col1:
                label = thread.title
                if thread.id == manager.active_thread_id:
                    label = f"**{label}**"
                if st.button(
                    label, key=f"select-{thread.id}", use_container_width=True
                ):
                    manager.select_thread(thread.id)
                    st.rerun()
            with col2:
                if st.button(
                    "✕",
                    key=f"delete-{thread.id}",
                    disabled=only_thread,
                    help="Delete this chat",
                ):
                    try:
                        manager.delete_thread(thread.id)
                    except LastThreadError as e:
                        st.warning(str(e))
                    st.rerun()


def render_thread() -> None:
    """Render the active thread and the message input."""
    manager = SessionState.manager()
    thread = manager.active_thread

    for turn in thread.turns:
        with st.chat_message(turn.role):
            st.write(turn.text)

    if thread.turns and st.button("Clear chat", key=f"clear-{thread.id}"):
        manager.clear_thread(thread.id)
        st.rerun()

    pending = manager.is_pending(thread.id)
    if pending:
        st.caption("Waiting for the previous answer...")
    message = st.chat_input("Ask a question about the FAQ...", disabled=pending)
    if message and message.strip():
        with st.chat_message("user"):
            st.write(message)
        with st.spinner("Thinking..."):
            asyncio.run(manager.submit(thread.id, message))
        st.rerun()

    answer = manager.last_answers.get(thread.id)
    if answer and answer.sources and st.checkbox("Show Retrieved FAQ Entries"):
        for i, source in enumerate(answer.sources):
            preview = source.text
            if len(preview) > MAX_SOURCE_PREVIEW_LENGTH:
                preview = preview[:MAX_SOURCE_PREVIEW_LENGTH] + "..."
            with st.expander(
                f"Source {i + 1} - {source.metadata.get('kind')} - "
                f"Similarity: {source.score:.4f}",
                expanded=False,
            ):
                st.code(preview)


def main() -> None:
    """Main entry point for the Streamlit web application."""
    st.set_page_config(page_title="FAQ Chatbot", layout="wide")

    SessionState.initialize()
    st.title("FAQ Chatbot")

    if not SessionState.is_system_ready() and not initialize_system():
        return

    render_sidebar()
    render_thread()


if __name__ == "__main__":
    main()
