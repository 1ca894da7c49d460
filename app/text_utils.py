"""
Helpers for post text and identifiers.
"""
import re
import secrets
import string
import time
from typing import List

_HASHTAG_RE = re.compile(r"#(\w+)")
_MENTION_RE = re.compile(r"@([\w.-]+)")
_GITHUB_USERNAME_RE = re.compile(r"^[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,37}[a-zA-Z0-9])?$")
_BASE36 = string.digits + string.ascii_lowercase


def _unique(items: List[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def extract_hashtags(text: str) -> List[str]:
    """Hashtag names in order of first appearance, without the ``#``."""
    return _unique(_HASHTAG_RE.findall(text or ""))


def extract_mentions(text: str) -> List[str]:
    """
    Mentioned names without the ``@``.
    Handles such as ``@octocat.github.io`` are kept whole; sentence
    punctuation after a mention is dropped.
    """
    mentions = [m.rstrip(".-") for m in _MENTION_RE.findall(text or "")]
    return _unique([m for m in mentions if m])


def generate_post_id() -> str:
    """``post-<epoch ms>-<9 base36 chars>``; lexical order follows creation time."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"post-{int(time.time() * 1000)}-{suffix}"


def validate_github_username(username: str) -> bool:
    """GitHub logins: alphanumerics and inner hyphens, max 39 chars."""
    return bool(_GITHUB_USERNAME_RE.match(username or ""))
