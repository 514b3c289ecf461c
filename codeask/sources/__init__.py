"""
Source fetchers and their factory.
"""

from codeask.config import Settings, settings
from codeask.sources.base import RepositoryInfo, SourceCommit, SourceFetcher, SourceFile
from codeask.sources.github import GitHubSourceFetcher, parse_repository_url
from codeask.sources.local import LocalSourceFetcher


def get_source_fetcher(config: Settings | None = None):
    config = config or settings
    if config.source_fetcher == "local":
        return LocalSourceFetcher(max_file_size=config.max_file_size_bytes)
    token = config.github_token.get_secret_value() if config.github_token else None
    return GitHubSourceFetcher(token=token, api_url=config.github_api_url, max_file_size=config.max_file_size_bytes)


__all__ = [
    "get_source_fetcher",
    "GitHubSourceFetcher",
    "LocalSourceFetcher",
    "RepositoryInfo",
    "SourceCommit",
    "SourceFetcher",
    "SourceFile",
    "parse_repository_url",
]
