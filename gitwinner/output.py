"""Rich console output and markdown file save for raffle results."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from gitwinner.engine import all_winners, shortfall
from gitwinner.models import (
    Announcement,
    Candidate,
    RaffleRecord,
    RevealPhase,
    RoundResult,
    RoundSpec,
    SessionState,
)

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_PHASE_STYLE = {
    RevealPhase.SHUFFLE: "dim",
    RevealPhase.DECELERATE: "white",
    RevealPhase.REVEAL: "bold yellow",
    RevealPhase.SETTLE: "bold yellow",
}


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def render_slot(
    candidate: Candidate | None,
    phase: RevealPhase | None,
    round_spec: RoundSpec,
    winner_number: int,
) -> Panel:
    """Build the slot-machine window for the current display tick."""
    if candidate is None:
        body = Text("Listo para sortear", style="dim")
    else:
        style = _PHASE_STYLE.get(phase, "white") if phase else "white"
        body = Text(candidate.display_name, style=style)
        if phase in (RevealPhase.REVEAL, RevealPhase.SETTLE):
            body.append(f"\n★ ¡GANADOR #{winner_number}! ★", style="yellow")

    subtitle = (
        f"Seleccionando ganador {winner_number} de {round_spec.winners_required}..."
        if phase in (RevealPhase.SHUFFLE, RevealPhase.DECELERATE)
        else f"{round_spec.winners_required} ganador{'es' if round_spec.winners_required > 1 else ''} por sortear"
    )
    return Panel(
        Align.center(body, vertical="middle"),
        title=f"[bold]{round_spec.name}[/bold]",
        subtitle=subtitle,
        border_style="yellow" if round_spec.grand_finale else "cyan",
        height=7,
    )


def print_round_header(round_spec: RoundSpec, round_number: int, total_rounds: int, pool_size: int) -> None:
    label = "Grand Finale" if round_spec.grand_finale else f"Round {round_number}/{total_rounds}"
    console.print(Rule(f"[bold cyan]{round_spec.name}[/bold cyan] [dim]({label})[/dim]"))
    console.print(
        f"{round_spec.winners_required} winner(s) to draw from {pool_size} participant(s)",
        style="dim",
    )


def print_winner(winner: Candidate, round_spec: RoundSpec, number: int, announcement: Announcement | None) -> None:
    console.print(
        f"[bold yellow]#{number}[/bold yellow] [bold]{winner.display_name}[/bold] "
        f"[dim]{winner.profile_url}[/dim]"
    )
    if announcement is not None:
        console.print(f"   [italic]\"{announcement.content}\"[/italic]")


def print_round_summary(result: RoundResult) -> None:
    """Print the winners of a finished round, flagging any shortfall."""
    table = Table(title=f"{result.round.name}: winners", show_lines=False)
    table.add_column("#", justify="right", style="yellow")
    table.add_column("Login", style="bold")
    table.add_column("Profile", style="dim")
    for idx, winner in enumerate(result.winners, start=1):
        table.add_row(str(idx), winner.display_name, winner.profile_url)
    console.print(table)

    missing = shortfall(result)
    if missing > 0:
        console.print(
            f"[yellow]Only {len(result.winners)}/{result.round.winners_required} winners: "
            f"not enough participants left.[/yellow]"
        )


def print_session_summary(state: SessionState) -> None:
    winners = all_winners(state)
    console.print(Rule("[bold green]Raffle complete[/bold green]"))
    console.print(
        Text(
            f"Winners: {len(winners)} | "
            f"Rounds: {len(state.results)} | "
            f"Not drawn: {len(state.pool.candidates)} | "
            f"Participants: {state.original_size}",
            style="dim",
        )
    )


def save_to_file(record: RaffleRecord, output_dir: Path, slug_override: str | None = None) -> Path:
    """Save the raffle transcript as a markdown file.

    Args:
        record: The finished RaffleRecord.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the issue URL.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(
        record.issue_url.replace("https://github.com/", "")
    )
    filepath = output_dir / f"{timestamp}_{slug}.md"

    state = record.state
    lines: list[str] = [
        f"# GitWinner Raffle: {record.issue_url}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Participants:** {record.participant_count}",
        f"**Winners:** {len(all_winners(state))}",
        f"**Not drawn:** {len(state.pool.candidates)}",
        f"**Duration:** {record.total_duration_sec:.1f}s",
    ]
    if record.seeded:
        lines.append("**Mode:** rehearsal (seeded, not a live draw)")
    lines += ["", "---", ""]

    for result in state.results:
        lines.append(
            f"## {result.round.name} ({len(result.winners)}/{result.round.winners_required})"
        )
        lines.append("")
        if not result.winners:
            lines.append("*No participants left for this round.*")
            lines.append("")
            continue
        for idx, winner in enumerate(result.winners, start=1):
            lines.append(f"{idx}. [{winner.display_name}]({winner.profile_url})")
            message = record.announcements.get(winner.id)
            if message:
                lines.append(f"   > {message}")
        lines.append("")

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Raffle saved to: %s", filepath)
    return filepath
