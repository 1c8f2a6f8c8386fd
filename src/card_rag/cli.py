"""CLI interface for the credit card assistant."""

import argparse
import json
import logging
import sys

import uvicorn

from card_rag.config import AppConfig
from card_rag.document_index import DocumentIndex
from card_rag.errors import ExtractionError
from card_rag.ingest import ingest_file
from card_rag.models import RAGResponse
from card_rag.rag_engine import RAGEngine, build_engine


def _setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _prepare_index(
    config: AppConfig,
    files: list[str] | None = None,
) -> DocumentIndex:
    """Build an index holding the seed set (if enabled) and the given files.

    Files that fail extraction are reported and skipped.
    """
    index = DocumentIndex(config.scorer)
    if config.load_seed_documents:
        index.load_seed_documents()

    for path in files or []:
        try:
            document = ingest_file(path, index, config.ingest)
        except ExtractionError as exc:
            print(f"  ❌ {exc}")
            continue
        print(f"  ✅ {document.file_name}: {len(document.chunks)} chunks")
    return index


def _print_response(response: RAGResponse) -> None:
    print(f"\nAssistant [{response.source.value}, {response.confidence}% confidence]:")
    print(f"{response.text}\n")
    for result in response.source_documents:
        label = result.chunk.metadata.card_name or result.chunk.id
        print(f"  - {label} ({round(result.similarity * 100)}% match)")


def ask(question: str, files: list[str] | None = None, config: AppConfig | None = None) -> RAGResponse:
    """Answer a single question and print the response.

    Args:
        question: The user's question.
        files: Extra documents to ingest before answering.
        config: Application configuration. Uses defaults if not provided.

    Returns:
        The engine's response.
    """
    cfg = config or AppConfig()
    engine = build_engine(cfg, _prepare_index(cfg, files))
    try:
        response = engine.ask(question)
    finally:
        engine.close()
    _print_response(response)
    return response


def chat(files: list[str] | None = None, config: AppConfig | None = None) -> None:
    """Start an interactive chat session.

    Builds the document index and enters a REPL loop. Exits on 'quit',
    'exit', 'q', EOF, or KeyboardInterrupt.

    Args:
        files: Extra documents to ingest before chatting.
        config: Application configuration. Uses defaults if not provided.
    """
    cfg = config or AppConfig()
    engine: RAGEngine = build_engine(cfg, _prepare_index(cfg, files))

    print(f"\n💳 Credit card assistant ({len(engine.index)} chunks indexed)")
    print(f"🤖 Fallback model: {cfg.llm.model}")
    print("\nType your question (or 'quit' to exit):\n")

    try:
        while True:
            try:
                query = input("You: ").strip()
            except (EOFError, KeyboardInterrupt):
                print("\nGoodbye!")
                break

            if not query:
                continue
            if query.lower() in ("quit", "exit", "q"):
                print("Goodbye!")
                break

            _print_response(engine.ask(query))
    finally:
        engine.close()


def ingest(files: list[str], config: AppConfig | None = None) -> DocumentIndex:
    """Ingest documents and print the resulting index statistics."""
    cfg = config or AppConfig()
    print(f"\n📂 Ingesting {len(files)} file(s)...")
    index = _prepare_index(cfg, files)
    print(json.dumps(index.get_index_stats().to_dict(), indent=2))
    return index


def stats(config: AppConfig | None = None) -> None:
    """Print statistics for the seed index."""
    cfg = config or AppConfig()
    index = _prepare_index(cfg)
    print(json.dumps(index.get_index_stats().to_dict(), indent=2))


def main() -> None:
    """CLI entry point — parse arguments and dispatch to a subcommand."""
    parser = argparse.ArgumentParser(
        description="Credit card assistant — card API, MITC documents, LLM fallback",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--no-seed", action="store_true", help="Do not load the sample MITC documents"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ask
    ask_p = subparsers.add_parser("ask", help="Answer a single question")
    ask_p.add_argument("question", type=str, help="Question to answer")
    ask_p.add_argument(
        "--file", action="append", default=[], help="Document to ingest first"
    )

    # chat
    chat_p = subparsers.add_parser("chat", help="Start interactive chat")
    chat_p.add_argument(
        "--file", action="append", default=[], help="Document to ingest first"
    )
    chat_p.add_argument("--model", type=str, default=None, help="Ollama model name")

    # ingest
    ingest_p = subparsers.add_parser("ingest", help="Ingest documents and show stats")
    ingest_p.add_argument("files", nargs="+", help="PDF, TXT, or Markdown files")

    # stats
    subparsers.add_parser("stats", help="Show index statistics")

    # serve
    serve_p = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_p.add_argument("--host", type=str, default="127.0.0.1", help="Bind address")
    serve_p.add_argument("--port", type=int, default=8000, help="Bind port")

    args = parser.parse_args()
    _setup_logging(args.verbose)

    cfg = AppConfig(load_seed_documents=not args.no_seed)

    if args.command == "ask":
        if not args.question.strip():
            parser.error("question must not be blank")
        ask(args.question, args.file, cfg)
    elif args.command == "chat":
        if args.model:
            llm = cfg.llm.model_copy(update={"model": args.model})
            cfg = cfg.model_copy(update={"llm": llm})
        chat(args.file, cfg)
    elif args.command == "ingest":
        ingest(args.files, cfg)
    elif args.command == "stats":
        stats(cfg)
    elif args.command == "serve":
        uvicorn.run("card_rag.web:app", host=args.host, port=args.port)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
