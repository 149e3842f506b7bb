"""Tests for conversation.py - document context and message assembly."""

import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from conversation import (  # noqa: E402
    DOCUMENT_CONTEXT_INTRO,
    DOCUMENT_SEPARATOR,
    TRUNCATION_NOTE,
    build_document_context,
    format_conversation,
    latest_user_message,
    merge_documents,
)
from models import ChatMessage, ContextDocument, Role  # noqa: E402


def doc(doc_id, text, name=None):
    return ContextDocument(id=doc_id, name=name, text=text)


class TestBuildDocumentContext:
    """Tests for the document context block."""

    def test_no_documents(self):
        assert build_document_context([]) is None
        assert build_document_context([doc("1", "   ")]) is None

    def test_sources_joined(self):
        context = build_document_context([doc("1", "Alpha", "lease.txt"), doc("2", "Beta", "nda.txt")])

        assert context.startswith(DOCUMENT_CONTEXT_INTRO)
        assert f"Source: lease.txt\nAlpha{DOCUMENT_SEPARATOR}Source: nda.txt\nBeta" in context

    def test_unnamed_document_label(self):
        context = build_document_context([doc("a", "x"), doc("b", "y")])
        assert "Source: Document 2\ny" in context

    def test_truncation(self):
        context = build_document_context([doc("1", "abcdef", "long")], max_characters=3)
        assert context.endswith("Source: long\nabc" + TRUNCATION_NOTE)

    def test_document_limit(self):
        documents = [doc(str(i), f"text {i}") for i in range(5)]
        context = build_document_context(documents, max_documents=2)

        assert context.count("Source:") == 2


class TestMergeDocuments:
    """Tests for shared/request document merging."""

    def test_request_overrides_shared(self):
        merged = merge_documents(
            [doc("1", "old", "a"), doc("2", "keep", "b")],
            [doc("1", "new", "a"), doc("3", "extra", "c")],
        )

        assert [(d.id, d.text) for d in merged] == [("1", "new"), ("2", "keep"), ("3", "extra")]

    def test_blank_dropped_and_capped(self):
        merged = merge_documents([doc("1", ""), doc("2", "x")], [doc("3", "y"), doc("4", "z")], max_documents=2)
        assert [d.id for d in merged] == ["2", "3"]


class TestFormatConversation:
    """Tests for outgoing message order."""

    def test_order(self):
        history = [ChatMessage(role=Role.USER, content="Question")]

        messages = format_conversation(history, system_prompt="Be precise.", documents=[doc("1", "Facts")])

        assert [m.role for m in messages] == [Role.SYSTEM, Role.SYSTEM, Role.USER]
        assert messages[0].content == "Be precise."
        assert "Facts" in messages[1].content
        assert messages[2] is history[0]

    def test_shared_documents_merged_with_request_documents(self):
        """
        Given: chat-level documents and a request document reusing one id
        When: formatting the conversation
        Then: one context block with the request version and the other shared doc
        """
        history = [ChatMessage(role=Role.USER, content="Question")]

        messages = format_conversation(
            history,
            documents=[doc("1", "Updated clause", name="lease.txt")],
            shared_documents=[doc("1", "Old clause", name="lease.txt"), doc("2", "Tenant letter")],
        )

        assert [m.role for m in messages] == [Role.SYSTEM, Role.USER]
        assert "Updated clause" in messages[0].content
        assert "Old clause" not in messages[0].content
        assert "Tenant letter" in messages[0].content

    def test_history_only(self):
        history = [ChatMessage(role=Role.USER, content="Question")]
        assert format_conversation(history) == history

    def test_latest_user_message(self):
        history = [
            ChatMessage(role=Role.USER, content="first"),
            ChatMessage(role=Role.ASSISTANT, content="reply"),
            ChatMessage(role=Role.USER, content="second"),
        ]
        assert latest_user_message(history) == "second"
        assert latest_user_message([]) == ""
