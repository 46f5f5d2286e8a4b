from __future__ import annotations

import argparse
import json
from typing import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from earthgame.application.action_gateway import handle_action_request
from earthgame.application.services.milestone_engine import register_milestone_handlers
from earthgame.bootstrap import create_game_services, create_milestone_engine
from earthgame.infrastructure.inmemory.seed_world import DEMO_WALLET
from earthgame.presentation.console_presenter import RichMilestonePresenter


_BORDER_OK = "green"
_BORDER_FAIL = "red"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="earthgame", description="Earth resource actions and story milestones.")
    commands = parser.add_subparsers(dest="command", required=True)

    mine = commands.add_parser("mine", help="Attempt to mine at a location")
    mine.add_argument("--wallet", default=DEMO_WALLET, help="Wallet address of the acting character")
    mine.add_argument("--location", default=None, help="Location id (defaults to the character's location)")
    mine.add_argument("--player", default=None, help="Player id whose story milestones react to the action")

    commands.add_parser("locations", help="List locations and whether mining is possible there")

    stats = commands.add_parser("stats", help="Show action cost, capacity and success rate")
    stats.add_argument("--wallet", default=DEMO_WALLET)

    story = commands.add_parser("story", help="Trigger a story milestone manually")
    story.add_argument("milestone_id")
    story.add_argument("--player", default=None, help="Player id the completion set belongs to")

    init_db = commands.add_parser("init-db", help="Create the SQL schema")
    init_db.add_argument("--url", default=None)
    init_db.add_argument("--seed", action="store_true", help="Insert the demo world")
    return parser


def _run_mine(args: argparse.Namespace, console: Console) -> int:
    services = create_game_services()
    presenter = RichMilestonePresenter(console=console)
    engine = create_milestone_engine(presenter, player_id=args.player)
    presenter.on_dismiss = engine.dismiss
    detach = register_milestone_handlers(services.event_bus, engine)
    try:
        status, payload = handle_action_request(
            services.resolver,
            {"walletAddress": args.wallet, "locationId": args.location},
        )
    finally:
        detach()
    border = _BORDER_OK if status == 200 else _BORDER_FAIL
    console.print(Panel.fit(str(payload.get("message", "")), title=f"[bold]{status}[/bold]", border_style=border))
    console.print_json(json.dumps(payload, default=str))
    return 0 if status == 200 else 1


def _run_locations(args: argparse.Namespace, console: Console) -> int:
    services = create_game_services()
    table = Table(title="Locations")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Biome")
    table.add_column("Mining", justify="center")
    for location in services.location_repo.list_all():
        table.add_row(location.id, location.name, location.biome or "-", "yes" if location.has_mining else "no")
    console.print(table)
    return 0


def _run_stats(args: argparse.Namespace, console: Console) -> int:
    services = create_game_services()
    view = services.resolver.stats(args.wallet)
    table = Table(title=f"{view.name or view.actor_id} (level {view.level})")
    table.add_column("Stat")
    table.add_column("Value", justify="right")
    table.add_row("Health", f"{view.health} ({view.health_status})")
    table.add_row("Energy", str(view.energy))
    table.add_row("Max energy", str(view.capacity))
    table.add_row("Mining cost", str(view.cost))
    table.add_row("Success rate", f"{view.success_rate_percent}%")
    table.add_row("Experience", str(view.experience))
    console.print(table)
    return 0


def _run_story(args: argparse.Namespace, console: Console) -> int:
    presenter = RichMilestonePresenter(console=console)
    engine = create_milestone_engine(presenter, player_id=args.player)
    presenter.on_dismiss = engine.dismiss
    result = engine.trigger(args.milestone_id)
    if result.fired:
        console.print(f"[green]Milestone '{result.milestone_id}' shown.[/green]")
        return 0
    detail = result.status.value.replace("_", " ")
    if result.missing_prerequisites:
        detail += f" (missing: {', '.join(sorted(result.missing_prerequisites))})"
    console.print(f"[yellow]Milestone '{result.milestone_id}' not shown: {detail}[/yellow]")
    return 1


def _run_init_db(args: argparse.Namespace, console: Console) -> int:
    from earthgame.infrastructure.db.sql import migrate

    argv = ["--seed"] if args.seed else []
    if args.url:
        argv += ["--url", args.url]
    return migrate.main(argv)


_COMMANDS = {
    "mine": _run_mine,
    "locations": _run_locations,
    "stats": _run_stats,
    "story": _run_story,
    "init-db": _run_init_db,
}


def run(argv: Sequence[str] | None = None, console: Console | None = None) -> int:
    args = build_parser().parse_args(argv)
    return _COMMANDS[args.command](args, console or Console())
