"""Winner announcements: ask the configured provider, fall back to a canned celebration."""

import logging
import random
import re

from config.config_loader import PromptsConfig
from gitwinner.models import Announcement, Candidate, RoundSpec
from gitwinner.providers.base import AnnouncerProvider, ProviderError

logger = logging.getLogger(__name__)

_DEFAULT_CELEBRATION = "Huge congratulations to @{login}! You won! 🚀"
_PLACEHOLDER_RE = re.compile(r"\{(login|round_name|issue_context)\}")


def build_prompt(
    winner: Candidate,
    round_spec: RoundSpec,
    issue_context: str,
    prompts: PromptsConfig,
) -> str:
    """Fill ``{login}``, ``{round_name}`` and ``{issue_context}``. Any other braces are left as written."""
    values = {
        "login": winner.id,
        "round_name": round_spec.name,
        "issue_context": issue_context,
    }
    return _PLACEHOLDER_RE.sub(lambda match: values[match.group(1)], prompts.announcement)


def celebration_message(
    winner: Candidate,
    prompts: PromptsConfig,
    rng: random.Random | None = None,
) -> Announcement:
    """Pick a canned celebration line for ``winner``."""
    messages = prompts.celebrations or [_DEFAULT_CELEBRATION]
    template = (rng or random).choice(messages)
    return Announcement(
        provider="canned",
        model="",
        winner_id=winner.id,
        content=template.replace("{login}", winner.id),
    )


async def announce(
    winner: Candidate,
    round_spec: RoundSpec,
    issue_context: str,
    provider: AnnouncerProvider | None,
    prompts: PromptsConfig,
    rng: random.Random | None = None,
) -> Announcement:
    """Announce a finalized winner.

    Never raises. A failed or missing provider yields a canned message.
    """
    if provider is None:
        return celebration_message(winner, prompts, rng)

    prompt = build_prompt(winner, round_spec, issue_context, prompts)
    try:
        announcement = await provider.generate(prompt, winner.id)
    except ProviderError as exc:
        logger.warning("Announcer %s failed for %s: %s", provider.name(), winner.id, exc)
        return celebration_message(winner, prompts, rng)

    if not announcement.content:
        logger.warning("Announcer %s returned empty content for %s", provider.name(), winner.id)
        return celebration_message(winner, prompts, rng)
    return announcement
