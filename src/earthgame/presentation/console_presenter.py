from __future__ import annotations

import logging
from typing import Callable

from rich.console import Console
from rich.panel import Panel

from earthgame.application.services.milestone_engine import MilestonePresenter
from earthgame.domain.models.milestone import Milestone, StoryScreen


logger = logging.getLogger(__name__)

_BORDER_STORY = "yellow"
_BORDER_CHOICE = "magenta"
_DISMISS_KEYS = {"q", "quit", "esc", "skip"}


class RichMilestonePresenter(MilestonePresenter):
    """Walks milestone screens in a rich console.

    Choice screens cannot be dismissed and keep asking until a listed option
    is picked. On a dismissable screen, typing ``q`` closes the milestone
    without completing it and reports the id to ``on_dismiss``.
    """

    def __init__(
        self,
        console: Console | None = None,
        read_line: Callable[[str], str] | None = None,
        on_dismiss: Callable[[str], object] | None = None,
    ) -> None:
        self.console = console or Console()
        self._read_line = read_line or (lambda prompt: self.console.input(prompt))
        self.on_dismiss = on_dismiss

    def present(self, milestone: Milestone, on_complete: Callable[[], None]) -> None:
        screens = milestone.screens
        for index, screen in enumerate(screens):
            is_last = index == len(screens) - 1
            if screen.is_choice:
                self._show_choice(milestone, screen)
            elif not self._show_text(milestone, screen):
                logger.info("Milestone dismissed", extra={"milestone_id": milestone.id, "screen": index})
                if self.on_dismiss is not None:
                    self.on_dismiss(milestone.id)
                return
            if screen.on_continue is not None:
                screen.on_continue()
            if is_last:
                on_complete()

    def _panel(self, milestone: Milestone, screen: StoryScreen, body: str, border: str) -> Panel:
        title = screen.title or milestone.title
        return Panel(body, title=f"[bold yellow]{title}[/bold yellow]", border_style=border, expand=False)

    def _show_text(self, milestone: Milestone, screen: StoryScreen) -> bool:
        self.console.print(self._panel(milestone, screen, screen.content, _BORDER_STORY))
        hint = f"[dim]ENTER to {screen.continue_text}"
        hint += ", Q to close[/dim] " if screen.can_dismiss else "[/dim] "
        answer = str(self._read_line(hint) or "").strip().lower()
        return not (screen.can_dismiss and answer in _DISMISS_KEYS)

    def _show_choice(self, milestone: Milestone, screen: StoryScreen) -> None:
        lines = [screen.content, ""]
        for number, choice in enumerate(screen.choices, start=1):
            lines.append(f"[cyan]{number}[/cyan]. {choice.text}")
        self.console.print(self._panel(milestone, screen, "\n".join(lines), _BORDER_CHOICE))

        valid = {str(number): choice for number, choice in enumerate(screen.choices, start=1)}
        while True:
            answer = str(self._read_line(f"[dim]Choose 1-{len(valid)}[/dim] ") or "").strip()
            choice = valid.get(answer)
            if choice is not None:
                break
            self.console.print("[red]Pick one of the listed options.[/red]")
        if choice.effect is not None:
            choice.effect()
