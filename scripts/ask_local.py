"""
Smoke test of the whole flow against a local checkout: ingest, then stream an answer.

Example:
    python -m scripts.ask_local --path ../some-repo --question "how does login work?"
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from codeask.config import Settings, setup_logging
from codeask.container import build_container
from codeask.models.entities import Repository, RepositoryStatus
from codeask.rag.events import DoneEvent, ErrorEvent, TokenEvent


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest a local checkout and ask one question.")
    parser.add_argument("--path", "-p", required=True, help="Path to the repository checkout")
    parser.add_argument("--question", "-q", required=True, help="Question about the code")
    parser.add_argument("--offline", action="store_true", help="Use the offline embedder and provider")
    return parser.parse_args()


async def run(args: argparse.Namespace) -> int:
    overrides = {"source_fetcher": "local", "stream_token_delay_ms": 0}
    if args.offline:
        overrides["ai_provider"] = "offline"
    container = build_container(Settings(**overrides))

    info = await container.fetcher.resolve(args.path)
    repository = await container.storage.create_repository(
        Repository(name=info.name, full_name=info.full_name, url=args.path)
    )
    summary = await container.pipeline.run(repository.id)
    print(
        f"ingestion: status={summary.status.value} files={summary.files_indexed} "
        f"failed={summary.files_failed} chunks={summary.chunks_indexed}"
    )
    if summary.status is not RepositoryStatus.READY:
        print(f"error: {summary.error}")
        return 1

    repository = await container.storage.require_repository(repository.id)
    async for event in container.qa.stream_coordinator().stream(args.question, repository):
        if isinstance(event, TokenEvent):
            print(event.chunk, end="", flush=True)
        elif isinstance(event, DoneEvent):
            print(f"\n\nsources: {', '.join(event.sources) or '<none>'}  confidence: {event.confidence:.2f}")
        elif isinstance(event, ErrorEvent):
            print(f"\nerror: {event.message}")
            return 1
    return 0


def main() -> None:
    setup_logging()
    args = parse_args()
    try:
        code = asyncio.run(run(args))
    except Exception:
        logging.getLogger(__name__).exception("ask_local failed")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
