"""sprintboard CLI — board, sprint and issue views over the board store."""

import asyncio
from typing import Annotated

import tomlkit
import typer
from rich import print as rprint
from rich.table import Table

from sprintboard.logs import configure_logging
from sprintboard.models import ColumnBucket, GroupBy, Issue, IssueType, Priority, Status
from sprintboard.mutations import MutationController
from sprintboard.providers.base import BoardTransport
from sprintboard.providers.http import HttpBoardTransport
from sprintboard.resolver import team_sprints
from sprintboard.settings import CONFIG_PATH, SprintboardSettings, _list_profiles, get_settings
from sprintboard.store import BoardStore

app = typer.Typer(help="sprintboard: project board views (sprints, columns, filters) from the terminal", no_args_is_help=True)

ProfileOpt = Annotated[
    str | None,
    typer.Option("--profile", "-p", help="Profile name from ~/.config/sprintboard/config.toml"),
]
ProjectOpt = Annotated[str | None, typer.Option("--project", help="Project ID (defaults to project_id in the profile)")]
BoardOpt = Annotated[str | None, typer.Option("--board", "-b", help="Board ID (defaults to the project's default board)")]
SearchOpt = Annotated[str, typer.Option("--search", "-s", help="Match title, description or ID")]
AssigneeOpt = Annotated[list[str] | None, typer.Option("--assignee", help="Only these assignees (repeatable)")]
TypeOpt = Annotated[list[IssueType] | None, typer.Option("--type", help="Only these work types (repeatable)")]
LabelOpt = Annotated[list[str] | None, typer.Option("--label", help="Issues carrying any of these labels")]
StatusOpt = Annotated[list[Status] | None, typer.Option("--status", help="Only these statuses (repeatable)")]
PriorityOpt = Annotated[list[Priority] | None, typer.Option("--priority", help="Only these priorities (repeatable)")]
SprintOpt = Annotated[str | None, typer.Option("--sprint", help="Narrow a team board to this sprint")]

_PRIORITY_LABEL = {
    Priority.CRITICAL: "🔴 Critical",
    Priority.HIGH: "🟠 High",
    Priority.MEDIUM: "🟡 Medium",
    Priority.LOW: "🟢 Low",
}


# ---------------------------------------------------------------------------
# Transport factory
# ---------------------------------------------------------------------------


def get_transport(settings: SprintboardSettings) -> BoardTransport:
    return HttpBoardTransport(settings)


def _settings(profile: str | None) -> SprintboardSettings:
    settings = get_settings(profile=profile)
    configure_logging(settings.log_level)
    return settings


def _project_id(project: str | None, settings: SprintboardSettings) -> str:
    project_id = project or settings.project_id
    if not project_id:
        rprint("[red]No project specified. Use --project or set project_id in your config profile.[/red]")
        raise typer.Exit(1)
    return project_id


# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------


async def _open_store(
    transport: BoardTransport, settings: SprintboardSettings, project_id: str, board_id: str | None
) -> BoardStore:
    store = BoardStore(transport, board_cache_ttl=settings.cache_ttl_seconds)
    try:
        await store.open_board(project_id, board_id or settings.board_id)
    finally:
        await transport.aclose()
    return store


def _load(profile: str | None, project: str | None, board: str | None) -> BoardStore:
    settings = _settings(profile)
    project_id = _project_id(project, settings)
    return asyncio.run(_open_store(get_transport(settings), settings, project_id, board))


def _apply_view(
    store: BoardStore,
    search: str,
    assignee: list[str] | None,
    work_type: list[IssueType] | None,
    label: list[str] | None,
    status: list[Status] | None,
    priority: list[Priority] | None,
    sprint: str | None,
) -> None:
    if sprint is not None:
        store.select_sprint(sprint)
    store.set_search(search)
    store.merge_filters(
        assignees=assignee or [],
        work_types=work_type or [],
        labels=label or [],
        statuses=status or [],
        priorities=priority or [],
    )


def _card(issue: Issue) -> str:
    return f"[cyan]{issue.key or issue.id}[/cyan] {issue.title} [dim]{issue.priority.value}[/dim]"


def _bucket_cell(bucket: ColumnBucket) -> str:
    if not bucket.items:
        return "[dim]—[/dim]"
    if bucket.grouped_by is GroupBy.NONE:
        return "\n".join(_card(i) for i in bucket.items)
    lines = []
    for group in bucket.groups:
        lines.append(f"[bold]{group.key}[/bold]")
        lines.extend(f"  {_card(i)}" for i in group.items)
    return "\n".join(lines)


def _board_title(store: BoardStore) -> str:
    name = store.board.name if store.board and store.board.name else "Board"
    return f"{name} — sprint {store.sprint_selection}" if store.sprint_selection else name


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("boards")
def boards_cmd(profile: ProfileOpt = None, project: ProjectOpt = None) -> None:
    """List boards for the project."""
    store = _load(profile, project, None)

    table = Table(title="Boards")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Team")
    table.add_column("Columns", style="dim")

    for b in store.boards:
        marker = " ✓" if store.board and b.id == store.board.id else ""
        columns = ", ".join(c.title for c in sorted(b.columns, key=lambda c: c.position))
        table.add_row(f"{b.id}{marker}", b.name, b.type.value, str(b.team_id or "—"), columns)

    rprint(table)


@app.command("sprints")
def sprints_cmd(profile: ProfileOpt = None, project: ProjectOpt = None, board: BoardOpt = None) -> None:
    """List the board team's sprints, marking the one the board shows."""
    store = _load(profile, project, board)
    sprints = team_sprints(store.board, store.sprints) if store.board and store.board.team_id else store.sprints

    table = Table(title="Sprints")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Team", style="dim")

    for s in sprints:
        marker = " ✓" if s.id == store.sprint_selection else ""
        table.add_row(f"{s.id}{marker}", s.name, s.status.value, str(s.team_id or "—"))

    rprint(table)


@app.command("issues")
def issues_cmd(
    profile: ProfileOpt = None,
    project: ProjectOpt = None,
    board: BoardOpt = None,
    search: SearchOpt = "",
    assignee: AssigneeOpt = None,
    work_type: TypeOpt = None,
    label: LabelOpt = None,
    status: StatusOpt = None,
    priority: PriorityOpt = None,
    sprint: SprintOpt = None,
) -> None:
    """List the issues the board shows, in board order."""
    store = _load(profile, project, board)
    _apply_view(store, search, assignee, work_type, label, status, priority, sprint)

    table = Table(title=_board_title(store))
    table.add_column("ID", style="cyan")
    table.add_column("Status")
    table.add_column("Pri")
    table.add_column("Type")
    table.add_column("Assignee")
    table.add_column("Title")

    for issue in store.visible_issues:
        table.add_row(
            issue.key or issue.id,
            issue.status.value,
            _PRIORITY_LABEL.get(issue.priority, issue.priority.value),
            issue.type.value,
            issue.assignee or "Unassigned",
            issue.title,
        )

    rprint(table)


@app.command("board")
def board_cmd(
    profile: ProfileOpt = None,
    project: ProjectOpt = None,
    board: BoardOpt = None,
    search: SearchOpt = "",
    assignee: AssigneeOpt = None,
    work_type: TypeOpt = None,
    label: LabelOpt = None,
    status: StatusOpt = None,
    priority: PriorityOpt = None,
    sprint: SprintOpt = None,
    group_by: Annotated[GroupBy, typer.Option("--group-by", "-g", help="Arrange cards inside each column")] = GroupBy.NONE,
) -> None:
    """Show the board's columns with their cards."""
    store = _load(profile, project, board)
    _apply_view(store, search, assignee, work_type, label, status, priority, sprint)
    store.set_group_by(group_by)

    buckets = store.buckets
    table = Table(title=_board_title(store), show_lines=True)
    for bucket in buckets:
        table.add_column(f"{bucket.column.title} ({len(bucket.items)})", style=None)
    table.add_row(*(_bucket_cell(b) for b in buckets))

    rprint(table)


async def _move(
    transport: BoardTransport, settings: SprintboardSettings, project_id: str, board_id: str | None, issue_id: str, status_id: int
):
    store = BoardStore(transport, board_cache_ttl=settings.cache_ttl_seconds)
    try:
        await store.open_board(project_id, board_id or settings.board_id)
        return await MutationController(store).update_issue_status_optimistic(issue_id, status_id, project_id)
    finally:
        await transport.aclose()


@app.command("move")
def move_cmd(
    issue_id: Annotated[str, typer.Argument(help="Issue ID")],
    status_id: Annotated[int, typer.Argument(help="Backend status ID of the target column")],
    profile: ProfileOpt = None,
    project: ProjectOpt = None,
    board: BoardOpt = None,
) -> None:
    """Move an issue to another status."""
    settings = _settings(profile)
    project_id = _project_id(project, settings)
    result = asyncio.run(_move(get_transport(settings), settings, project_id, board, issue_id, status_id))

    if not result.ok:
        rprint(f"[red]Could not move {issue_id}: {result.error}[/red]")
        raise typer.Exit(1)
    rprint(f"[green]✓[/green] [bold]{issue_id}[/bold] → {result.issue.status.value} (status {status_id})")


@app.command("set-default")
def set_default(
    profile: Annotated[str, typer.Argument(help="Profile name to set as default")],
) -> None:
    """Set the default profile in ~/.config/sprintboard/config.toml."""
    if CONFIG_PATH.exists():
        doc = tomlkit.parse(CONFIG_PATH.read_text())
        profiles = _list_profiles(doc)
        if profile not in profiles:
            rprint(f"[red]Profile '{profile}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}[/red]")
            raise typer.Exit(1)
    else:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        doc = tomlkit.document()

    doc["default_profile"] = profile
    CONFIG_PATH.write_text(tomlkit.dumps(doc))
    rprint(f'[green]✓[/green] Default profile set to "{profile}" in {CONFIG_PATH}')


@app.command("config-show")
def config_show(profile: ProfileOpt = None) -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings(profile=profile)

    def mask(val: str | None) -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"...{val[-5:]}"

    table = Table(title="sprintboard configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("default_profile", settings.default_profile or "[dim](not set)[/dim]")
    table.add_row("api_url", settings.api_url or "[dim](not set)[/dim]")
    table.add_row("api_token", mask(settings.api_token.get_secret_value() if settings.api_token else None))
    table.add_row("project_id", settings.project_id or "[dim](not set)[/dim]")
    table.add_row("board_id", settings.board_id or "[dim](not set)[/dim]")
    table.add_row("cache_ttl_seconds", str(settings.cache_ttl_seconds))
    table.add_row("log_level", settings.log_level)

    rprint(table)
