"""GitHub participant source: issue reference parsing and comment paging via httpx."""

import logging
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass

import httpx

from config.config_loader import GithubConfig
from gitwinner.models import Candidate

logger = logging.getLogger(__name__)

_ISSUE_URL_RE = re.compile(r"github\.com/([^/\s]+)/([^/\s]+)/issues/(\d+)")
_ISSUE_SHORT_RE = re.compile(r"^\s*([\w.-]+)/([\w.-]+)#(\d+)\s*$")


class ParticipantSourceError(Exception):
    """Raised when participants cannot be loaded. ``str(exc)`` is shown to the operator."""


class MalformedIssueReferenceError(ParticipantSourceError):
    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(
            "Invalid GitHub Issue URL. Format: https://github.com/owner/repo/issues/123"
        )


class RateLimitedError(ParticipantSourceError):
    def __init__(self) -> None:
        super().__init__("GitHub API Rate Limit Exceeded. Please try again later.")


class IssueNotFoundError(ParticipantSourceError):
    def __init__(self) -> None:
        super().__init__("Issue not found or repository is private.")


class NoEligibleParticipantsError(ParticipantSourceError):
    def __init__(self) -> None:
        super().__init__("No eligible comments found on this issue.")


@dataclass(frozen=True)
class IssueReference:
    owner: str
    repo: str
    number: int

    @property
    def url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}/issues/{self.number}"

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}#{self.number}"


def parse_issue_reference(text: str) -> IssueReference:
    """Parse an issue URL or ``owner/repo#123`` shorthand.

    Raises:
        MalformedIssueReferenceError: If ``text`` matches neither form.
    """
    match = _ISSUE_URL_RE.search(text or "") or _ISSUE_SHORT_RE.match(text or "")
    if not match:
        raise MalformedIssueReferenceError(text)
    owner, repo, number = match.groups()
    return IssueReference(owner=owner, repo=repo, number=int(number))


def extract_candidates(
    comments: Iterable[dict],
    bot_suffix: str = "[bot]",
    exclude: Iterable[str] = (),
) -> list[Candidate]:
    """Unique commenters in first-comment order, without bots or excluded logins."""
    excluded = {login.lower() for login in exclude}
    unique: dict[str, Candidate] = {}
    for comment in comments:
        user = comment.get("user")
        if not isinstance(user, dict):
            continue
        login = user.get("login")
        if not login:
            continue
        if bot_suffix and login.endswith(bot_suffix):
            continue
        if login.lower() in excluded:
            continue
        if login not in unique:
            unique[login] = Candidate(
                id=login,
                display_name=login,
                avatar_ref=user.get("avatar_url", ""),
            )
    return list(unique.values())


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    if response.status_code in (403, 429):
        raise RateLimitedError()
    if response.status_code == 404:
        raise IssueNotFoundError()
    raise ParticipantSourceError(f"GitHub API Error: {response.reason_phrase or response.status_code}")


def _headers(config: GithubConfig) -> dict[str, str]:
    headers = {"Accept": "application/vnd.github+json"}
    token = os.environ.get(config.token_env, "").strip() if config.token_env else ""
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


async def fetch_comments(
    reference: IssueReference,
    config: GithubConfig,
    client: httpx.AsyncClient,
) -> list[dict]:
    """Fetch every comment page until an empty page or ``config.max_pages``."""
    url = f"{config.api_base}/repos/{reference.owner}/{reference.repo}/issues/{reference.number}/comments"
    comments: list[dict] = []
    for page in range(1, config.max_pages + 1):
        try:
            response = await client.get(
                url,
                params={"per_page": config.per_page, "page": page},
                headers=_headers(config),
            )
        except httpx.HTTPError as exc:
            raise ParticipantSourceError(f"GitHub API Error: {exc}") from exc
        _raise_for_status(response)

        try:
            data = response.json()
        except ValueError as exc:
            raise ParticipantSourceError("GitHub API Error: response was not valid JSON") from exc
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise ParticipantSourceError("GitHub API Error: expected a list of comments")
        logger.debug("Fetched %s page %d: %d comments", reference, page, len(data))
        if not data:
            break
        comments.extend(data)
    else:
        logger.warning("Stopped after %d pages of comments on %s", config.max_pages, reference)
    return comments


async def fetch_participants(
    reference: IssueReference | str,
    config: GithubConfig,
    client: httpx.AsyncClient | None = None,
) -> list[Candidate]:
    """Load the deduplicated, bot-free commenters of an issue.

    Args:
        reference: Parsed reference, or a URL/shorthand to parse.
        config: GitHub settings (paging, token env var, bot suffix, exclusions).
        client: Optional shared client; one is created and closed otherwise.

    Raises:
        ParticipantSourceError: One of its subclasses for malformed reference,
            rate limit, missing issue or no eligible participants.
    """
    if isinstance(reference, str):
        reference = parse_issue_reference(reference)

    if client is None:
        async with httpx.AsyncClient(timeout=config.timeout_sec) as own_client:
            comments = await fetch_comments(reference, config, own_client)
    else:
        comments = await fetch_comments(reference, config, client)

    candidates = extract_candidates(comments, config.bot_suffix, config.exclude)
    if not candidates:
        raise NoEligibleParticipantsError()

    logger.info(
        "Loaded %d participants from %d comments on %s",
        len(candidates),
        len(comments),
        reference,
    )
    return candidates
