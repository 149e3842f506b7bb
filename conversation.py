"""
Outgoing message assembly: system prompt, supplementary document context and
chat history, in the order the provider should see them.
"""

from typing import Iterable, List, Optional, Sequence

from models import ChatMessage, ContextDocument, Role

MAX_CONTEXT_DOCUMENTS = 20
MAX_CHARACTERS_PER_DOCUMENT = 50000

DOCUMENT_SEPARATOR = "\n\n---\n\n"
DOCUMENT_CONTEXT_INTRO = (
    "The user has provided the following documents. Use them when they are "
    "relevant to the question and cite the source name where appropriate."
)
TRUNCATION_NOTE = "\n\n[Document truncated]"


def build_document_context(
    documents: Iterable[ContextDocument],
    max_documents: int = MAX_CONTEXT_DOCUMENTS,
    max_characters: int = MAX_CHARACTERS_PER_DOCUMENT,
) -> Optional[str]:
    """Render documents as a single context block, or None when there is nothing to include."""
    sections = []
    for index, document in enumerate(documents, start=1):
        if len(sections) >= max_documents:
            break
        text = (document.text or "").strip()
        if not text:
            continue
        if len(text) > max_characters:
            text = text[:max_characters] + TRUNCATION_NOTE
        label = document.name or f"Document {index}"
        sections.append(f"Source: {label}\n{text}")

    if not sections:
        return None
    return f"{DOCUMENT_CONTEXT_INTRO}\n\n{DOCUMENT_SEPARATOR.join(sections)}"


def merge_documents(
    shared: Iterable[ContextDocument],
    request_documents: Iterable[ContextDocument],
    max_documents: int = MAX_CONTEXT_DOCUMENTS,
) -> List[ContextDocument]:
    """
    Combine chat-level documents with the ones sent for this request.

    Documents are keyed by id; a request document replaces a shared one with
    the same id. Documents without text are dropped. Order is first seen.
    """
    merged = {}
    for document in (*shared, *request_documents):
        if not (document.text or "").strip():
            continue
        merged[document.id] = document
    return list(merged.values())[:max_documents]


def format_conversation(
    history: Sequence[ChatMessage],
    system_prompt: Optional[str] = None,
    documents: Iterable[ContextDocument] = (),
    max_documents: int = MAX_CONTEXT_DOCUMENTS,
    max_characters: int = MAX_CHARACTERS_PER_DOCUMENT,
    shared_documents: Iterable[ContextDocument] = (),
) -> List[ChatMessage]:
    """System prompt, then the merged document context, then the history."""
    messages: List[ChatMessage] = []
    if system_prompt:
        messages.append(ChatMessage(role=Role.SYSTEM, content=system_prompt))

    merged = merge_documents(shared_documents, documents, max_documents)
    context = build_document_context(merged, max_documents, max_characters)
    if context:
        messages.append(ChatMessage(role=Role.SYSTEM, content=context))

    messages.extend(history)
    return messages


def latest_user_message(history: Sequence[ChatMessage]) -> str:
    """Text of the last message in the history ('' when empty)."""
    if not history:
        return ""
    return history[-1].content
