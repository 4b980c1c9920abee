"""Click CLI: orchestrates config loading, participant fetch, the draw ceremony, and output."""

import asyncio
import dataclasses
import logging
import random
import sys
import time
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.live import Live
from rich.logging import RichHandler

from config.config_loader import AppConfig, RoundConfig, load_config
from gitwinner.announcer import announce
from gitwinner.ceremony import Ceremony
from gitwinner.draw import IndexSource, SecureIndexSource, SeededIndexSource
from gitwinner.engine import run_session, validate_plan
from gitwinner.errors import InvalidRoundPlanError
from gitwinner.healthcheck import find_healthy_announcer
from gitwinner.models import (
    Announcement,
    Candidate,
    RaffleRecord,
    RevealPhase,
    RoundResult,
    RoundSpec,
    SessionState,
)
from gitwinner.output import (
    console,
    print_round_header,
    print_round_summary,
    print_session_summary,
    print_winner,
    render_slot,
    save_to_file,
)
from gitwinner.participants import (
    IssueReference,
    ParticipantSourceError,
    fetch_participants,
    parse_issue_reference,
)
from gitwinner.pool import build_pool
from gitwinner.providers.anthropic import AnthropicProvider
from gitwinner.providers.base import AnnouncerProvider
from gitwinner.providers.gemini import GeminiProvider
from gitwinner.providers.openai_provider import OpenAIProvider
from gitwinner.scheduler import AsyncioScheduler

logger = logging.getLogger(__name__)

# Keyed by the `sdk` field of each model in settings.yaml
PROVIDER_CLASSES: dict[str, type[AnnouncerProvider]] = {
    "google-genai": GeminiProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_all_providers(config: AppConfig) -> dict[str, AnnouncerProvider]:
    """Build all available announcers. Returns dict keyed by name."""
    providers: dict[str, AnnouncerProvider] = {}
    for name in config.available_providers:
        model_cfg = config.models[name]
        provider_cls = PROVIDER_CLASSES.get(model_cfg.sdk)
        if provider_cls is None:
            logging.warning("Announcer '%s' uses unknown sdk '%s', skipping", name, model_cfg.sdk)
            continue
        try:
            providers[name] = provider_cls(model_cfg)
        except Exception as exc:
            logging.warning("Failed to instantiate announcer '%s': %s", name, exc)
    return providers


def _announcer_order(
    all_providers: dict[str, AnnouncerProvider],
    preferred: str | None,
) -> list[AnnouncerProvider]:
    """Preferred announcer first, then the other available ones by name."""
    names = sorted(all_providers)
    if preferred in all_providers:
        names.remove(preferred)
        names.insert(0, preferred)
    return [all_providers[n] for n in names]


def _check_announcers(ordered: list[AnnouncerProvider]) -> AnnouncerProvider | None:
    """Ping announcers in order. If none answers, canned messages are used."""
    selected, failures = asyncio.run(find_healthy_announcer(ordered))
    for name, err in failures.items():
        short_err = err.splitlines()[0][:120] if err else "unknown error"
        console.print(f"  [red]FAIL[/red] announcer {name}: {short_err}")
    if selected is None:
        console.print("[yellow]Using canned celebration messages instead.[/yellow]")
        return None
    console.print(f"  [green]OK  [/green] announcer {selected.name()}")
    return selected


def plan_from_config(rounds: list[RoundConfig]) -> tuple[RoundSpec, ...]:
    return tuple(
        RoundSpec(name=r.name, winners_required=r.winners, grand_finale=r.grand_finale)
        for r in rounds
    )


def _determine_plan(config: AppConfig, rounds_arg: str | None) -> tuple[RoundSpec, ...]:
    """Round plan from config, or from ``--rounds 5,5,1`` (last round is the grand finale).

    Raises:
        InvalidRoundPlanError: If the resulting plan is invalid.
    """
    if not rounds_arg:
        plan = plan_from_config(config.rounds)
        validate_plan(plan)
        return plan

    try:
        counts = [int(part.strip()) for part in rounds_arg.split(",") if part.strip()]
    except ValueError as exc:
        raise InvalidRoundPlanError(f"--rounds must be comma-separated integers, got {rounds_arg!r}") from exc

    plan = tuple(
        RoundSpec(
            name=config.rounds[i].name if i < len(config.rounds) else f"Round {i + 1}",
            winners_required=count,
            grand_finale=(i == len(counts) - 1),
        )
        for i, count in enumerate(counts)
    )
    validate_plan(plan)
    return plan


def _make_sources(seed: str | None) -> tuple[IndexSource, random.Random]:
    """Winner source and cosmetic display rng. A seed makes both deterministic."""
    if seed is None:
        return SecureIndexSource(), random.Random()
    return SeededIndexSource(seed), random.Random(seed)


async def _announce_all(
    winners: list[tuple[Candidate, RoundSpec]],
    issue_context: str,
    announcer: AnnouncerProvider | None,
    config: AppConfig,
    rng: random.Random,
) -> list[Announcement]:
    return list(
        await asyncio.gather(
            *(announce(w, spec, issue_context, announcer, config.prompts, rng) for w, spec in winners)
        )
    )


async def _run_live_ceremony(
    candidates: list[Candidate],
    plan: tuple[RoundSpec, ...],
    config: AppConfig,
    source: IndexSource,
    rng: random.Random,
    announcer: AnnouncerProvider | None,
    issue_context: str,
    pause: bool,
) -> tuple[SessionState, dict[str, str]]:
    """Run every round with the slot-machine reveal. Returns (final_state, announcements)."""
    loop = asyncio.get_running_loop()
    announcements: dict[str, str] = {}
    view: dict = {"live": None, "spec": plan[0], "phase": None, "number": 1}
    round_done: dict[str, asyncio.Future] = {}

    def refresh(candidate: Candidate | None) -> None:
        if view["live"] is not None:
            view["live"].update(render_slot(candidate, view["phase"], view["spec"], view["number"]))

    def on_phase(phase: RevealPhase) -> None:
        view["phase"] = phase

    def on_display(candidate: Candidate, phase: RevealPhase) -> None:
        refresh(candidate)

    def on_winner(winner: Candidate, spec: RoundSpec, number: int) -> None:
        view["number"] = number + 1
        console.print(f"[bold yellow]¡GANADOR #{number}![/bold yellow] {winner.display_name}")

    def on_round_complete(result: RoundResult) -> None:
        future = round_done.get("current")
        if future is not None and not future.done():
            future.set_result(result)

    def on_timer_error(exc: Exception) -> None:
        future = round_done.get("current")
        if future is not None and not future.done():
            future.set_exception(exc)

    ceremony = Ceremony(
        AsyncioScheduler(loop, on_error=on_timer_error),
        config.timing,
        source=source,
        rng=rng,
        on_phase=on_phase,
        on_display=on_display,
        on_winner=on_winner,
        on_round_complete=on_round_complete,
    )
    ceremony.start(plan, candidates)
    completed = False

    try:
        for number, spec in enumerate(plan, start=1):
            if pause:
                await asyncio.to_thread(click.pause, f"Press any key to start {spec.name}...")
            print_round_header(spec, number, len(plan), len(ceremony.state.pool.candidates))
            view.update(spec=spec, phase=None, number=1)
            round_done["current"] = loop.create_future()

            with Live(render_slot(None, None, spec, 1), console=console, refresh_per_second=30) as live:
                view["live"] = live
                ceremony.begin_round()
                result: RoundResult = await round_done["current"]
                view["live"] = None

            made = await _announce_all([(w, spec) for w in result.winners], issue_context, announcer, config, rng)
            for idx, (winner, message) in enumerate(zip(result.winners, made), start=1):
                announcements[winner.id] = message.content
                print_winner(winner, spec, idx, message)
            print_round_summary(result)
        completed = True
    finally:
        if not completed:
            # Cancels any reveal timer still pending so nothing fires after teardown.
            ceremony.reset()

    return ceremony.state, announcements


async def _run_instant(
    candidates: list[Candidate],
    plan: tuple[RoundSpec, ...],
    config: AppConfig,
    source: IndexSource,
    rng: random.Random,
    announcer: AnnouncerProvider | None,
    issue_context: str,
) -> tuple[SessionState, dict[str, str]]:
    """Draw every round at once, without animation."""
    state = run_session(plan, build_pool(candidates), source)
    announcements: dict[str, str] = {}
    remaining = state.original_size
    for number, result in enumerate(state.results, start=1):
        print_round_header(result.round, number, len(plan), remaining)
        remaining -= len(result.winners)
        made = await _announce_all(
            [(w, result.round) for w in result.winners], issue_context, announcer, config, rng
        )
        for idx, (winner, message) in enumerate(zip(result.winners, made), start=1):
            announcements[winner.id] = message.content
            print_winner(winner, result.round, idx, message)
        print_round_summary(result)
    return state, announcements


@click.command()
@click.argument("issue")
@click.option("--rounds", "rounds_arg", default=None,
              help="Comma-separated winners per round, e.g. 5,5,1 (default: from config)")
@click.option("--exclude", multiple=True, help="Login to leave out of the draw (repeatable)")
@click.option("--instant", is_flag=True, help="Skip the slot-machine reveal")
@click.option("--seed", default=None, help="Rehearsal mode: deterministic draw from this seed")
@click.option("--announcer", default=None, help="Which model announces winners (default: from config)")
@click.option("--no-announce", is_flag=True, help="Use canned celebration messages only")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--no-save", is_flag=True, help="Do not write the markdown transcript")
@click.option("--yes", "-y", "no_pause", is_flag=True, help="Start each round without waiting for a key press")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the announcer connectivity check at startup")
def main(
    issue: str,
    rounds_arg: str | None,
    exclude: tuple[str, ...],
    instant: bool,
    seed: str | None,
    announcer: str | None,
    no_announce: bool,
    output_path: str | None,
    no_save: bool,
    no_pause: bool,
    verbose: bool,
    skip_health_check: bool,
) -> None:
    """GitWinner -- raffle among the commenters of a GitHub issue.

    \b
    Examples:
      gitwinner https://github.com/owner/repo/issues/123
      gitwinner owner/repo#123 --rounds 3,1
      gitwinner owner/repo#123 --exclude owner --instant
      gitwinner owner/repo#123 --seed rehearsal-1 --yes --no-save
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, KeyError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    try:
        reference: IssueReference = parse_issue_reference(issue)
        plan = _determine_plan(config, rounds_arg)
    except (ParticipantSourceError, InvalidRoundPlanError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    github_cfg = dataclasses.replace(config.github, exclude=config.github.exclude + list(exclude))

    try:
        with console.status(f"Loading participants from {reference}..."):
            candidates = asyncio.run(fetch_participants(reference, github_cfg))
    except ParticipantSourceError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    needed = sum(spec.winners_required for spec in plan)
    console.print(f"\n[bold cyan]GitWinner[/bold cyan] — {reference.url}")
    console.print(f"{len(candidates)} participantes, {len(plan)} rounds, {needed} winners needed")
    if len(candidates) < needed:
        console.print(
            f"[yellow]Warning:[/yellow] only {len(candidates)} participants for {needed} prizes; "
            "later rounds will come up short."
        )

    selected: AnnouncerProvider | None = None
    if not no_announce:
        ordered = _announcer_order(_build_all_providers(config), announcer or config.defaults.announcer)
        if skip_health_check:
            selected = ordered[0] if ordered else None
        elif ordered:
            selected = _check_announcers(ordered)

    source, rng = _make_sources(seed)
    if seed is not None:
        console.print("[yellow]Rehearsal mode: seeded draw, not valid for a live raffle.[/yellow]")

    pause = config.defaults.pause_between_rounds and not no_pause
    started = time.monotonic()
    if instant:
        final_state, announcements = asyncio.run(
            _run_instant(candidates, plan, config, source, rng, selected, reference.url)
        )
    else:
        final_state, announcements = asyncio.run(
            _run_live_ceremony(candidates, plan, config, source, rng, selected, reference.url, pause)
        )

    print_session_summary(final_state)

    if no_save:
        return
    record = RaffleRecord(
        issue_url=reference.url,
        state=final_state,
        participant_count=len(candidates),
        total_duration_sec=time.monotonic() - started,
        announcements=announcements,
        seeded=seed is not None,
    )
    effective_output = Path(output_path) if output_path else config.defaults.output_dir
    saved_path = save_to_file(record, effective_output)
    console.print(f"\n[dim]Saved to: {saved_path}[/dim]")


if __name__ == "__main__":
    main()
