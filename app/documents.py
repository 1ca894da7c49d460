"""
JSON documents on top of the GitHub contents API.

Every update is a read-modify-write: fetch the file and its blob sha, decode,
mutate, re-encode and PUT with the sha as precondition. When another writer
got there first GitHub rejects the PUT and the whole cycle is replayed.
"""
import json
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.config import Settings, settings as default_settings
from app.github_client import GitHubClient, GitHubConflictError, GitHubNotFoundError
from app.logger import get_logger

logger = get_logger(__name__)

Mutator = Callable[[Any], bool]
CommitMessage = Union[str, Callable[[], str]]


@dataclass
class JsonDocument:
    data: Any
    sha: Optional[str] = None


def dumps(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


class DocumentStore:
    """Reads and writes JSON files in GitHub repositories."""

    def __init__(self, client: GitHubClient, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or default_settings

    async def read_json(
        self, owner: str, repo: str, path: str, ref: Optional[str] = None
    ) -> JsonDocument:
        """
        Read and parse a JSON file.

        Raises:
            GitHubNotFoundError: the file does not exist.
            ValueError: the file is not valid JSON.
        """
        file = await self.client.get_file(owner, repo, path, ref=ref)
        return JsonDocument(data=json.loads(file.content), sha=file.sha)

    async def read_json_or_default(
        self,
        owner: str,
        repo: str,
        path: str,
        default: Callable[[], Any],
        ref: Optional[str] = None,
    ) -> JsonDocument:
        try:
            return await self.read_json(owner, repo, path, ref=ref)
        except GitHubNotFoundError:
            logger.debug(f"{owner}/{repo}:{path} does not exist yet")
            return JsonDocument(data=default(), sha=None)

    async def write_json(
        self,
        owner: str,
        repo: str,
        path: str,
        data: Any,
        message: str,
        sha: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> str:
        return await self.client.put_file(
            owner, repo, path, dumps(data), message, sha=sha, branch=branch
        )

    async def update_json(
        self,
        owner: str,
        repo: str,
        path: str,
        mutate: Mutator,
        message: CommitMessage,
        default: Optional[Callable[[], Any]] = None,
        branch: Optional[str] = None,
    ) -> JsonDocument:
        """
        Apply ``mutate`` to the parsed document and commit the result.

        Args:
            mutate: Changes the document in place and returns whether
                anything changed. Unchanged documents are not written.
            default: Factory for the initial document when the file is
                missing. Without it a missing file raises GitHubNotFoundError.
            message: Commit message, or a callable evaluated after the
                mutation has run.

        Returns:
            The document as committed (or as read, when unchanged).
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, self.settings.write_retry_attempts)),
            wait=wait_exponential(
                multiplier=self.settings.write_retry_wait_seconds,
                max=self.settings.write_retry_wait_seconds * 8,
            ),
            retry=retry_if_exception_type(GitHubConflictError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        f"Write conflict on {owner}/{repo}:{path}, "
                        f"retrying (attempt {attempt.retry_state.attempt_number})"
                    )
                return await self._update_once(owner, repo, path, mutate, message, default, branch)
        raise AssertionError("unreachable")

    async def _update_once(
        self,
        owner: str,
        repo: str,
        path: str,
        mutate: Mutator,
        message: CommitMessage,
        default: Optional[Callable[[], Any]],
        branch: Optional[str],
    ) -> JsonDocument:
        if default is None:
            doc = await self.read_json(owner, repo, path, ref=branch)
        else:
            doc = await self.read_json_or_default(owner, repo, path, default, ref=branch)

        if not mutate(doc.data):
            logger.debug(f"{owner}/{repo}:{path} unchanged, skipping write")
            return doc

        commit_message = message() if callable(message) else message
        new_sha = await self.write_json(
            owner, repo, path, doc.data, commit_message, sha=doc.sha, branch=branch
        )
        return JsonDocument(data=doc.data, sha=new_sha)
