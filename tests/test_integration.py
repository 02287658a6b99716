"""End-to-end tests: document on disk through to conversation replies."""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from faqbot import (
    ConversationContext,
    ConversationManager,
    ConversationState,
    ConversationStateMachine,
    EscalationRecorder,
    Intent,
    RAGPipeline,
    SessionStore,
)
from faqbot.conversation import ACKNOWLEDGEMENT_MESSAGE, CONTACT_REQUEST_MESSAGE
from faqbot.prompts import (
    FOLLOW_UP_SUGGESTION,
    INSUFFICIENT_INFO_ANSWER,
    INSUFFICIENT_INFO_MARKER,
)

FAQ_TEXT = """Office hours are 9-5 Monday to Friday.

Refunds are issued within 14 days of purchase. Keep your receipt.

Shipping is free for orders above 50 dollars."""


def create_test_document(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def faq_pipeline(pipeline_factory, tmp_path):
    pipeline = pipeline_factory(document=None, chunk_size=60, overlap=10)
    pipeline.process_document(create_test_document(tmp_path, "faqs.txt", FAQ_TEXT))
    return pipeline


def test_office_hours_question_is_answered(pipeline_factory):
    pipeline = pipeline_factory("Office hours are 9-5 Monday to Friday.")

    answer = pipeline.answer("What are your office hours?")

    assert "9-5" in answer.text
    assert "Monday to Friday" in answer.text
    assert INSUFFICIENT_INFO_MARKER not in answer.text
    assert not answer.is_insufficient


def test_unmatched_question_escalates(conversation_manager, grounded_chat_client):
    result = conversation_manager.handle_turn(
        "session-1", "PDF_Query_Intent", "Do you sell passport photos?"
    )

    assert grounded_chat_client.chat.completions.create.call_count == 1
    assert result.reply == CONTACT_REQUEST_MESSAGE
    assert result.context.state is ConversationState.AWAITING_CONTACT_INFO
    assert result.context.original_query == "Do you sell passport photos?"


def test_unmatched_answer_is_exact_refusal(pipeline_factory):
    pipeline = pipeline_factory("Office hours are 9-5 Monday to Friday.")

    answer = pipeline.answer("Do you sell passport photos?")

    assert answer.text == f"{INSUFFICIENT_INFO_ANSWER} {FOLLOW_UP_SUGGESTION}"
    assert answer.is_insufficient


def test_contact_details_complete_escalation(pipeline_factory, sqlite_store):
    sessions = SessionStore()
    sessions.put(
        ConversationContext.awaiting(
            "session-1", original_query="refund policy", remaining_turns=2
        )
    )
    manager = ConversationManager(
        ConversationStateMachine(pipeline_factory(), EscalationRecorder(sqlite_store)),
        sessions=sessions,
    )

    result = manager.handle_turn(
        "session-1",
        Intent.COLLECT_INFO,
        parameters={"name": "Ana", "email": "ana@x.com"},
    )

    assert result.reply == ACKNOWLEDGEMENT_MESSAGE
    (record,) = sqlite_store.fetch_all()
    assert record.name == "Ana"
    assert record.email == "ana@x.com"
    assert record.query == "refund policy"
    assert record.timestamp
    assert not manager.context_for("session-1").is_awaiting


def test_full_conversation_over_document_file(
    faq_pipeline, conversation_manager_factory, sqlite_store
):
    manager = conversation_manager_factory(pipeline=faq_pipeline)

    greeting = manager.handle_turn("s1", "Default Welcome Intent")
    answered = manager.handle_turn("s1", "PDF_Query_Intent", "When do refunds happen?")
    refused = manager.handle_turn("s1", "Default Fallback Intent", "Do you repair bikes?")
    recorded = manager.handle_turn(
        "s1", "Collect_User_Info", parameters={"name": "Ana", "email": "ana@x.com"}
    )

    assert greeting.reply.startswith("Hi there!")
    assert "Refunds are issued within 14 days" in answered.reply
    assert refused.reply == CONTACT_REQUEST_MESSAGE
    assert recorded.reply == ACKNOWLEDGEMENT_MESSAGE
    assert [r.query for r in sqlite_store.fetch_all()] == ["Do you repair bikes?"]


def test_document_file_is_chunked_with_provenance(faq_pipeline):
    results = faq_pipeline.retrieve("shipping orders", top_k=10)

    assert len(results) > 1
    assert {chunk.source for chunk, _ in results} == {"faqs.txt"}
    assert "Shipping" in results[0][0].text


def test_pdf_document_pages_are_joined(pipeline_factory, tmp_path):
    pdf_path = tmp_path / "faqs.pdf"
    pdf_path.write_bytes(b"%PDF-1.4 placeholder")
    pages = [
        Mock(extract_text=Mock(return_value="Office hours are 9-5 Monday to Friday.")),
        Mock(extract_text=Mock(return_value=None)),
        Mock(extract_text=Mock(return_value="Gift cards never expire.")),
    ]
    pipeline = pipeline_factory(document=None)

    with patch("faqbot.document_processing.pypdf.PdfReader") as reader_cls:
        reader_cls.return_value.pages = pages
        pipeline.process_document(pdf_path)

    (chunk,) = [chunk for chunk, _ in pipeline.retrieve("gift cards", top_k=10)]
    assert chunk.text == "Office hours are 9-5 Monday to Friday. Gift cards never expire."
    assert chunk.source == "faqs.pdf"


def test_default_collaborators_use_openai(tmp_path):
    with (
        patch("openai.resources.embeddings.Embeddings.create") as embed,
        patch("openai.resources.chat.completions.Completions.create") as complete,
    ):
        embed.side_effect = lambda model, input: Mock(
            data=[Mock(embedding=[1.0, float(len(text) % 3)]) for text in input]
            if isinstance(input, list)
            else [Mock(embedding=[1.0, 0.5])]
        )
        complete.return_value = Mock(
            choices=[Mock(message=Mock(content="Office hours are 9-5."))]
        )
        pipeline = RAGPipeline(openai_api_key="test-key")
        pipeline.process_document(
            create_test_document(tmp_path, "faqs.txt", "Office hours are 9-5.")
        )

        answer = pipeline.answer("What are your office hours?")

    assert answer.text == "Office hours are 9-5."
    assert complete.call_args.kwargs["messages"][0]["role"] == "user"
    assert embed.call_count == 2
