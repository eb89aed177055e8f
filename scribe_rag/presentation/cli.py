import asyncio
import json
import logging
import sys
from pathlib import Path

from scribe_rag.config.settings import settings
from scribe_rag.container import Container, configure_container
from scribe_rag.core.exceptions import InvalidQueryError, ScribeRagError
from scribe_rag.core.models.chat import ChatMessage, LectureContext
from scribe_rag.core.models.formatting import TranscriptFormat
from scribe_rag.core.services.answer_composer import APOLOGY_MESSAGE
from scribe_rag.core.services.chat_service import ChatService
from scribe_rag.core.services.format_service import TranscriptFormatter
from scribe_rag.core.services.ingest_service import IngestService
from scribe_rag.core.services.retrieval_service import Retriever
from scribe_rag.infrastructure.database.postgres import PostgresDatabase

logger = logging.getLogger(__name__)

USAGE = """Usage: scribe-rag <command> [args]
Commands:
  ingest [dir] [--force]         index every file in dir (default DOCS_PATH)
  ask "<question>" [mode]        answer a question (mode: gp, school)
  search "<query>" [limit]       show retrieved chunks without answering
  lecture <summary.json> "<q>"   ask about a summarized lecture
  format <format> <file> [mode]  format a transcript file
  delete <document_id>           remove a document and its chunks"""


async def _open(container: Container) -> PostgresDatabase:
    database = container.resolve(PostgresDatabase)
    await database.connect()
    await database.ensure_schema()
    return database


async def cmd_ingest(container: Container, args: list[str]) -> None:
    """Ingest command - index documents only."""
    database = await _open(container)
    try:
        ingest_service = container.resolve(IngestService)
        paths = [a for a in args if not a.startswith("--")]
        count = await ingest_service.ingest_directory(
            paths[0] if paths else None, force="--force" in args
        )
        logger.info(f"Indexed {count} chunks")
    finally:
        await database.disconnect()


async def cmd_ask(container: Container, args: list[str]) -> None:
    if not args:
        print(USAGE)
        sys.exit(1)

    database = await _open(container)
    try:
        chat_service = container.resolve(ChatService)
        answer = await chat_service.ask(args[0], args[1] if len(args) > 1 else None)
    finally:
        await database.disconnect()
    print(json.dumps(answer.to_dict(), indent=2))


async def cmd_search(container: Container, args: list[str]) -> None:
    """Search command - retrieval only, no completion."""
    if not args:
        print(USAGE)
        sys.exit(1)
    try:
        limit = int(args[1]) if len(args) > 1 else None
    except ValueError:
        print(USAGE)
        sys.exit(1)

    database = await _open(container)
    try:
        result = await container.resolve(Retriever).retrieve(args[0], limit)
    finally:
        await database.disconnect()
    print(json.dumps(result.to_dict(), indent=2))


async def cmd_lecture(container: Container, args: list[str]) -> None:
    if len(args) < 2:
        print(USAGE)
        sys.exit(1)

    lecture = LectureContext.from_dict(
        json.loads(Path(args[0]).read_text(encoding="utf-8"))
    )
    chat_service = container.resolve(ChatService)
    answer = await chat_service.ask_about_lecture(
        [ChatMessage(role="user", content=args[1])], lecture
    )
    print(json.dumps(answer.to_dict(), indent=2))


async def cmd_format(container: Container, args: list[str]) -> None:
    if len(args) < 2:
        print(USAGE)
        sys.exit(1)

    text = Path(args[1]).read_text(encoding="utf-8")
    formatter = container.resolve(TranscriptFormatter)
    result = await formatter.format(
        text, TranscriptFormat.parse(args[0]), args[2] if len(args) > 2 else None
    )
    print(result.formatted_text)


async def cmd_delete(container: Container, args: list[str]) -> None:
    if not args:
        print(USAGE)
        sys.exit(1)

    database = await _open(container)
    try:
        existed = await container.resolve(IngestService).delete(args[0])
    finally:
        await database.disconnect()
    if not existed:
        logger.warning(f"Document not found: {args[0]}")


COMMANDS = {
    "ingest": cmd_ingest,
    "ask": cmd_ask,
    "search": cmd_search,
    "lecture": cmd_lecture,
    "format": cmd_format,
    "delete": cmd_delete,
}


def main():
    """CLI entry point."""
    logging.basicConfig(level=settings.log_level, format="%(message)s")

    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(1)

    command = sys.argv[1]
    if command not in COMMANDS:
        print(f"Unknown command: {command}")
        sys.exit(1)

    container = configure_container(settings)
    try:
        asyncio.run(COMMANDS[command](container, sys.argv[2:]))
    except InvalidQueryError as e:
        print(e)
        sys.exit(1)
    except ScribeRagError as e:
        logger.error(f"{command} failed: {e}")
        print(APOLOGY_MESSAGE)
        sys.exit(1)


if __name__ == "__main__":
    main()
