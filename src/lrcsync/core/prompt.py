"""Operator prompts used when the matching engine cannot decide on its own."""

from typing import Any, List, Optional, Sequence, Tuple

import click

from ..utils.logging import get_logger

logger = get_logger(__name__)

# Score thresholds for highlighting candidates
GOOD_SCORE = 0.85
FAIR_SCORE = 0.5


def format_candidate(index: int, candidate: Any, score: float) -> str:
    """Render one candidate line, 1-based."""
    return f"{index + 1}. {candidate} (s:{score:.2f})"


def _score_color(score: float) -> Optional[str]:
    if score >= GOOD_SCORE:
        return "green"
    if score >= FAIR_SCORE:
        return "yellow"
    return None


class Prompter:
    """Interface the matching engine talks to. Subclasses answer the questions."""

    def choose(self, target: Any, candidates: Sequence[Tuple[Any, float]]) -> Optional[int]:
        """Pick a candidate for ``target``.

        Args:
            target: the local track or album being matched
            candidates: ``(candidate, score)`` pairs, best first

        Returns:
            0-based index into ``candidates``, or None if none is correct
        """
        raise NotImplementedError

    def ask_catalog_id(self, target: Any) -> Optional[int]:
        """Ask for a catalog ID typed by hand. None means give up."""
        raise NotImplementedError

    def confirm(self, message: str) -> bool:
        """Ask a yes/no question. Unattended prompters answer no."""
        raise NotImplementedError


class NonInteractivePrompter(Prompter):
    """Never picks anything. Used for unattended runs."""

    def choose(self, target, candidates):
        logger.info(f"Skipping {len(candidates)} ambiguous candidate(s) for {target.describe()}")
        return None

    def ask_catalog_id(self, target):
        return None

    def confirm(self, message):
        return False


class ConsolePrompter(Prompter):
    """Asks on the terminal through click."""

    def choose(self, target, candidates):
        if not candidates:
            return None
        click.echo("Enter the number of the matching item, or press Enter if none matches.")
        click.echo(f"Looking for: {target.describe()}")
        for index, (candidate, score) in enumerate(candidates):
            click.echo(click.style(format_candidate(index, candidate, score), fg=_score_color(score)))

        while True:
            answer = click.prompt("Selection", default="", show_default=False).strip()
            if not answer:
                return None
            if answer.isdigit() and 1 <= int(answer) <= len(candidates):
                selected = int(answer) - 1
                click.echo(f"Selected: {candidates[selected][0]}")
                return selected
            click.echo(click.style("Invalid input, try again.", fg="red"))

    def ask_catalog_id(self, target):
        click.echo(f"No candidate selected for {target.describe()}.")
        while True:
            answer = click.prompt(
                "Catalog ID (Enter to skip)", default="", show_default=False
            ).strip()
            if not answer:
                return None
            if answer.isdigit() and int(answer) > 0:
                return int(answer)
            click.echo(click.style("Invalid input, try again.", fg="red"))

    def confirm(self, message):
        return click.confirm(message, default=False)


class ScriptedPrompter(Prompter):
    """Replays prepared answers and records every question asked."""

    def __init__(
        self,
        choices: Optional[List[Optional[int]]] = None,
        catalog_ids: Optional[List[Optional[int]]] = None,
        confirmations: Optional[List[bool]] = None,
    ):
        self.choices = list(choices or [])
        self.catalog_ids = list(catalog_ids or [])
        self.confirmations = list(confirmations or [])
        self.asked: List[Tuple[str, Any]] = []

    def choose(self, target, candidates):
        self.asked.append(("choose", (target, list(candidates))))
        return self.choices.pop(0) if self.choices else None

    def ask_catalog_id(self, target):
        self.asked.append(("ask_catalog_id", target))
        return self.catalog_ids.pop(0) if self.catalog_ids else None

    def confirm(self, message):
        self.asked.append(("confirm", message))
        return self.confirmations.pop(0) if self.confirmations else False
