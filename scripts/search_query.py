"""
Index a local checkout and print the raw similarity hits for a text query.

Example:
    python -m scripts.search_query --path ../some-repo --query "password hashing" --top-k 5
"""

from __future__ import annotations

import argparse
import asyncio

from codeask.config import Settings, setup_logging
from codeask.container import build_container
from codeask.errors import EmbeddingFailure
from codeask.indexing.pipeline import document_id_for
from codeask.models.entities import Repository


async def run(args: argparse.Namespace) -> None:
    container = build_container(Settings(ai_provider="offline" if args.offline else "openai", source_fetcher="local"))
    fetcher = container.fetcher
    info = await fetcher.resolve(args.path)
    repository = Repository(name=info.name, full_name=info.full_name, url=args.path)
    for file in await fetcher.fetch_files(repository):
        try:
            await container.index.add_document(
                document_id_for(repository.id, file.path), file.content, {"path": file.path, "language": file.language}
            )
        except EmbeddingFailure as exc:
            print(f"skipped {file.path}: {exc.message}")

    results = await container.index.search(args.query, limit=args.top_k)
    if not results:
        print("No results")
        return

    for idx, result in enumerate(results, start=1):
        chunk = result.chunk
        snippet = chunk.content[: args.snippet].replace("\n", " ")
        print(
            f"\n#{idx} similarity={result.similarity:.4f} {chunk.path}:"
            f"{chunk.metadata.get('start_line')}-{chunk.metadata.get('end_line')}"
        )
        print("text:", snippet + ("..." if len(chunk.content) > args.snippet else ""))


def main() -> None:
    parser = argparse.ArgumentParser(description="Search indexed chunks of a local checkout by text query.")
    parser.add_argument("--path", "-p", required=True, help="Path to the repository checkout")
    parser.add_argument("--query", "-q", required=True, help="Query text")
    parser.add_argument("--top-k", type=int, default=5, help="How many results to return")
    parser.add_argument("--snippet", type=int, default=300, help="Snippet length")
    parser.add_argument("--offline", action="store_true", help="Use the offline hashing embedder")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
