"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, List, Optional, Tuple

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ..adapters.yaml_store import YamlGroupStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import GroupSlotError
from ..domain.models import ComputedSlot, SlotColor
from ..domain.time_utils import to_clock, to_date
from ..services.planner import PlannerService
from ..services.shift_import import ShiftImportService

app = typer.Typer(
    name="groupslot",
    help="Find shared meeting slots for a group and import shifts from schedule text",
    add_completion=False
)

console = Console()

COLOR_STYLES = {
    SlotColor.GREEN: "bold green",
    SlotColor.YELLOW: "yellow",
    SlotColor.RED: "red",
}

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
DataOption = Annotated[Optional[Path], typer.Option("--data", "-d", help="Path to the group data file. Defaults to data_file from the config.")]
StartOption = Annotated[Optional[str], typer.Option("--start", help="Planning start date (YYYY-MM-DD)")]
EndOption = Annotated[Optional[str], typer.Option("--end", help="Planning end date (YYYY-MM-DD)")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")]


def _setup_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True
    )


def _load_config(config_file: Optional[Path]) -> Tuple[AppConfig, Path]:
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path), config_path


def _open_store(config: AppConfig, config_path: Path, data_file: Optional[Path]) -> YamlGroupStore:
    return YamlGroupStore(data_file or config.resolve_data_file(config_path))


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    raise typer.Exit(1)


def _slot_table(title: str, slots: List[ComputedSlot], labels: dict) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Date", style="bold")
    table.add_column("Time")
    table.add_column("Available", justify="right")
    table.add_column("Preferred", justify="right")
    table.add_column("Members", style="dim")

    for slot in slots:
        style = COLOR_STYLES[slot.color]
        members = ", ".join(sorted(labels.get(m, m) for m in slot.available_members))
        table.add_row(
            slot.date.format("ddd DD/MM/YYYY", locale="en"),
            f"{to_clock(slot.start_min)} - {to_clock(slot.end_min)}",
            f"[{style}]{slot.pct_available:.0%}[/{style}]",
            str(slot.preferred_count),
            escape(members) or "-"
        )

    return table


@app.command()
def slots(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    start: StartOption = None,
    end: EndOption = None,
    top: Annotated[Optional[int], typer.Option("--top", "-n", help="Number of slots to show. Defaults to top_n from the config.")] = None,
    windows: Annotated[bool, typer.Option("--windows", "-w", help="Merge contiguous slots into meeting windows of at least min_meeting_duration_min.")] = False,
    verbose: VerboseOption = False,
):
    """
    Show the best meeting slots for the group.

    Examples:

        groupslot slots
        groupslot slots --start 2024-01-15 --end 2024-01-21 --top 5
        groupslot slots --windows
    """
    _setup_logging(verbose)

    try:
        config, config_path = _load_config(config_file)
        store = _open_store(config, config_path, data_file)
        planning_start, planning_end = config.resolve_planning_range(start, end)

        service = PlannerService(data_source=store, calculator=config.build_calculator())
        labels = {m.user_id: m.label() for m in store.get_members(store.group_id)}
        top_n = top if top is not None else config.defaults.top_n

        if windows:
            ranked = service.get_meeting_windows(
                group_id=store.group_id,
                planning_start=planning_start,
                planning_end=planning_end,
                min_duration_min=config.defaults.min_meeting_duration_min
            )[:top_n]
            title = f"Meeting windows (min. {config.defaults.min_meeting_duration_min} min)"
        else:
            ranked = service.get_top_slots(
                group_id=store.group_id,
                planning_start=planning_start,
                planning_end=planning_end,
                top_n=top_n
            )
            title = "Best slots"

        console.print(
            f"\n[bold cyan]Group {escape(store.group_id)}[/bold cyan]: "
            f"{planning_start.to_date_string()} - {planning_end.to_date_string()}\n"
        )

        if not ranked:
            console.print("[yellow]No slots found.[/yellow] Try a longer planning range.\n")
            return

        console.print(_slot_table(title, ranked, labels))
        console.print()

    except (FileNotFoundError, ValueError, GroupSlotError) as e:
        _fail(e)


@app.command()
def parse(
    text_file: Annotated[Path, typer.Argument(help="Recognized schedule text", exists=True, dir_okay=False, readable=True)],
    config_file: ConfigOption = None,
    start: StartOption = None,
    end: EndOption = None,
    verbose: VerboseOption = False,
):
    """
    Parse recognized schedule text and show the detected shifts.
    """
    _setup_logging(verbose)

    try:
        config, _ = _load_config(config_file)
        planning_start, planning_end = config.resolve_planning_range(start, end)
        text = text_file.read_text(encoding="utf-8", errors="replace")

        result = config.build_parser().parse(text, planning_start, planning_end)

        table = Table(title="Detected shifts", show_header=True, header_style="bold cyan")
        table.add_column("Date", style="bold")
        table.add_column("Start")
        table.add_column("End")
        table.add_column("Overnight")
        table.add_column("Confidence", justify="right")

        for shift in result.shifts:
            table.add_row(
                shift.date.to_date_string(),
                to_clock(shift.start_min),
                to_clock(shift.end_min),
                "yes" if shift.crosses_midnight else "no",
                f"{shift.confidence:.0%}" if shift.confidence is not None else "-"
            )

        console.print()
        console.print(table)
        _print_issues(result.issues)

    except (FileNotFoundError, ValueError, GroupSlotError) as e:
        _fail(e)


def _print_issues(issues) -> None:
    if not issues:
        console.print("\n[green]✓ No issues[/green]\n")
        return

    console.print(f"\n[yellow]⚠ {len(issues)} issue(s):[/yellow]")
    for issue in issues:
        line = escape(issue.line) if issue.line else "-"
        console.print(f"  [dim]{line}[/dim]: {escape(issue.reason)}")
    console.print()


@app.command()
def import_shifts(
    text_file: Annotated[Path, typer.Argument(help="Recognized schedule text", exists=True, dir_okay=False, readable=True)],
    user: Annotated[str, typer.Option("--user", "-u", help="Member the shifts belong to")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    start: StartOption = None,
    end: EndOption = None,
    today: Annotated[Optional[str], typer.Option("--today", help="Reference date for rejecting past shifts (YYYY-MM-DD)")] = None,
    apply: Annotated[bool, typer.Option("--apply", help="Write the accepted blocks to the group data file.")] = False,
    verbose: VerboseOption = False,
):
    """
    Import shifts from recognized schedule text as WORK blocks.

    Without --apply this is a dry run.
    """
    _setup_logging(verbose)

    try:
        config, config_path = _load_config(config_file)
        store = _open_store(config, config_path, data_file)
        planning_start, planning_end = config.resolve_planning_range(start, end)
        reference = to_date(today) if today else pendulum.today().date()

        if user not in {m.user_id for m in store.get_members(store.group_id)}:
            raise ValueError(f"Unknown member: '{user}'")

        service = ShiftImportService(parser=config.build_parser())
        outcome = service.build_import(
            text=text_file.read_text(encoding="utf-8", errors="replace"),
            group_id=store.group_id,
            user_id=user,
            planning_start=planning_start,
            planning_end=planning_end,
            existing_blocks=store.get_blocks(store.group_id),
            today=reference
        )

        console.print(f"\n[bold green]✓ {len(outcome.blocks)} shift(s) accepted[/bold green]")
        for block in outcome.blocks:
            console.print(f"  {block}")

        if outcome.rejected:
            console.print(f"\n[yellow]⊘ {len(outcome.rejected)} shift(s) rejected:[/yellow]")
            for shift, reason in outcome.rejected:
                console.print(
                    f"  {shift.date.to_date_string()} "
                    f"{to_clock(shift.start_min)}-{to_clock(shift.end_min)}: {reason}"
                )

        _print_issues(outcome.issues)

        if apply and outcome.blocks:
            store.add_blocks(outcome.blocks)
            store.save()
            console.print(f"[green]✓ Saved to {escape(str(store.path))}[/green]\n")
        elif outcome.blocks:
            console.print("[dim]Dry run - use --apply to save the accepted shifts.[/dim]\n")

    except (FileNotFoundError, ValueError, GroupSlotError) as e:
        _fail(e)


@app.command()
def list_members(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    List all members of the group.
    """
    try:
        config, config_path = _load_config(config_file)
        store = _open_store(config, config_path, data_file)
        members = store.get_members(store.group_id)

        if not members:
            console.print("[yellow]No members in the group data file.[/yellow]")
            return

        table = Table(
            title=f"Members of {escape(store.group_id)}",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("User", style="bold yellow")
        table.add_column("Name")
        table.add_column("Role", style="dim")

        for member in members:
            table.add_row(
                escape(member.user_id),
                escape(member.display_name) or "-",
                member.role
            )

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError, GroupSlotError) as e:
        _fail(e)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]groupslot[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
