"""
Command line entry point: ask one question and print the AIResponse as JSON.

    python main.py "What is the limitation period for contract claims?"
    python main.py --persona anthropic --document contract.txt "Summarize the risks"
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from config import config
from conversation import format_conversation
from fallback_orchestrator import FallbackOrchestrator, GenerationFailedError
from logging_utils import setup_logging
from models import ChatMessage, ContextDocument, GenerateOptions, Persona, PrimaryModel, Role


class CLIError(Exception):
    """Raised when CLI validation fails."""


def _load_documents(paths: List[str]) -> List[ContextDocument]:
    documents = []
    for raw_path in paths:
        path = Path(raw_path)
        if not path.is_file():
            raise CLIError(f"Document not found: {raw_path}")
        documents.append(
            ContextDocument(id=str(path.resolve()), name=path.name, text=path.read_text(encoding="utf-8"))
        )
    return documents


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ask the completion core a single question")
    parser.add_argument("question", help="User message to answer")
    parser.add_argument(
        "--persona",
        choices=[persona.value for persona in Persona],
        help="Aggregator persona tried before the primary provider chain",
    )
    parser.add_argument(
        "--force-model",
        choices=[model.value for model in PrimaryModel],
        help="Primary model to start the chain with, bypassing the selection heuristic",
    )
    parser.add_argument("--system", dest="system_prompt", help="Optional system prompt")
    parser.add_argument(
        "--document",
        action="append",
        default=[],
        help="Text file added as supplementary context (repeatable)",
    )
    parser.add_argument(
        "--chat-document",
        action="append",
        default=[],
        help="Text file shared by the whole chat; a --document with the same path replaces it (repeatable)",
    )
    parser.add_argument("--simple", action="store_true", help="Single round, no continuation or fallback")
    parser.add_argument("--indent", type=int, default=2, help="JSON indentation (0 for compact output)")
    parser.add_argument(
        "--extra-verbose",
        action="store_true",
        help="Log full prompts and responses (same as EXTRA_VERBOSE=true)",
    )
    return parser


async def run(args: argparse.Namespace) -> int:
    if args.extra_verbose:
        config.EXTRA_VERBOSE = True

    if not config.validate_api_keys()["openai"]:
        raise CLIError("OPENAI_API_KEY must be configured")

    orchestrator = FallbackOrchestrator.from_config(config)
    messages = format_conversation(
        [ChatMessage(role=Role.USER, content=args.question)],
        system_prompt=args.system_prompt,
        documents=_load_documents(args.document),
        shared_documents=_load_documents(args.chat_document),
        max_documents=config.MAX_CONTEXT_DOCUMENTS,
        max_characters=config.MAX_CHARACTERS_PER_DOCUMENT,
    )

    if args.simple:
        print(await orchestrator.generate_simple(messages, args.force_model or PrimaryModel.PRIMARY))
        return 0

    options = GenerateOptions(
        latest_user_message=args.question,
        force_model=args.force_model,
        persona=args.persona,
    )
    try:
        response = await orchestrator.generate(messages, options)
    except GenerationFailedError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    print(response.to_json(indent=args.indent or None))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(config.LOG_LEVEL)
    try:
        return asyncio.run(run(args))
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
