"""BarterGuard CLI: moderation tooling for the barter marketplace."""

from contextlib import contextmanager
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from barterguard import __version__
from barterguard.auth.models import Role
from barterguard.config import load_config
from barterguard.errors import BarterGuardError
from barterguard.logging import configure_logging
from barterguard.moderation.models import ReportStatus
from barterguard.service import build_coordinator

console = Console()


@contextmanager
def _errors_to_exit():
    try:
        yield
    except BarterGuardError as e:
        code = getattr(e, "code", None)
        label = f" ({code})" if code else ""
        console.print(f"[red]Error{label}:[/] {escape(str(e))}")
        raise SystemExit(1)


def _fmt_dt(dt) -> str:
    return dt.strftime("%Y-%m-%d %H:%M") if dt else "-"


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default=None, envvar="BARTERGUARD_CONFIG",
              help="YAML file with moderation settings")
@click.option("--home", default=None, type=click.Path(file_okay=False),
              help="Data directory (overrides the config file)")
@click.option("--verbose", "-v", is_flag=True, help="Log moderation decisions")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, home: str | None, verbose: bool):
    """BarterGuard -- moderation for a barter marketplace.

    Classify listings and messages, file reports, ban and unban users,
    and work the admin review queue.
    """
    with _errors_to_exit():
        config = load_config(config_path)
    if verbose:
        configure_logging(overrides=config.log_levels)
    if home:
        config.data_dir = Path(home)
    ctx.obj = build_coordinator(config)


# ── Classify ─────────────────────────────────────────────────────────


@main.command()
@click.argument("title")
@click.argument("body", default="")
@click.pass_obj
def classify(coordinator, title: str, body: str):
    """Classify a TITLE and optional BODY without storing anything."""
    verdict = coordinator.classify(title, body)
    if not verdict.flagged:
        console.print("[green]clean[/]")
        return
    console.print("[yellow]flagged[/]")
    for reason in verdict.reasons:
        console.print(f"  - {escape(reason)}")


# ── Reports, bans, blocks ────────────────────────────────────────────


@main.command()
@click.argument("reporter_id")
@click.argument("reported_id")
@click.option("--reason", "-r", required=True, help="Why the user is being reported")
@click.pass_obj
def report(coordinator, reporter_id: str, reported_id: str, reason: str):
    """Report REPORTED_ID on behalf of REPORTER_ID."""
    with _errors_to_exit():
        rep = coordinator.report_user(reporter_id, reported_id, reason)
        ban = coordinator.active_ban(reported_id)
    console.print(f"Report filed: {rep.id}")
    console.print(f"Reports against {escape(reported_id)}: "
                  f"{coordinator.counters.get_report_count(reported_id)}")
    if ban is not None:
        console.print(f"[red]User is banned until {_fmt_dt(ban.banned_until)}:[/] {escape(ban.reason)}")


@main.command()
@click.argument("user_id")
@click.option("--reason", "-r", required=True, help="Reason shown to the user")
@click.option("--days", "-d", type=int, default=None, help="Ban length in days (default: permanent)")
@click.option("--by", "banned_by", default=None, help="Admin issuing the ban")
@click.pass_obj
def ban(coordinator, user_id: str, reason: str, days: int | None, banned_by: str | None):
    """Ban USER_ID."""
    with _errors_to_exit():
        b = coordinator.ban_user(user_id, reason, banned_by=banned_by, duration_days=days)
    until = _fmt_dt(b.banned_until) if b.banned_until else "permanently"
    console.print(f"[red]Banned[/] {escape(user_id)} ({until})")


@main.command()
@click.argument("user_id")
@click.option("--by", "unbanned_by", default=None, help="Admin lifting the ban")
@click.pass_obj
def unban(coordinator, user_id: str, unbanned_by: str | None):
    """Lift every ban on USER_ID."""
    with _errors_to_exit():
        coordinator.unban_user(user_id, unbanned_by=unbanned_by)
    console.print(f"[green]Unbanned[/] {escape(user_id)}")


@main.command()
@click.argument("user_id")
@click.argument("blocked_user_id")
@click.pass_obj
def block(coordinator, user_id: str, blocked_user_id: str):
    """Stop BLOCKED_USER_ID from messaging USER_ID."""
    with _errors_to_exit():
        coordinator.block_user(user_id, blocked_user_id)
    console.print(f"{escape(user_id)} blocked {escape(blocked_user_id)}")


# ── Admin queue ──────────────────────────────────────────────────────


@main.command()
@click.pass_obj
def queue(coordinator):
    """List pending listing reports."""
    with _errors_to_exit():
        reports = coordinator.moderation_queue()
    if not reports:
        console.print("[green]Queue is empty.[/]")
        return

    table = Table(title=f"Moderation queue ({len(reports)} pending)")
    table.add_column("Report", style="dim")
    table.add_column("Listing", style="cyan")
    table.add_column("Reporter")
    table.add_column("Filed")
    table.add_column("Reason")
    for r in reports:
        table.add_row(r.id[:8], r.listing_id[:8], r.reporter_id, _fmt_dt(r.created_at), escape(r.reason[:50]))
    console.print(table)


@main.command()
@click.argument("report_id")
@click.argument("action", type=click.Choice(["approve", "reject"]))
@click.option("--by", "admin_id", required=True, help="Admin resolving the report")
@click.pass_obj
def resolve(coordinator, report_id: str, action: str, admin_id: str):
    """Approve (remove the listing) or reject a listing report."""
    status = ReportStatus.approved if action == "approve" else ReportStatus.rejected
    with _errors_to_exit():
        rep = coordinator.resolve_report(report_id, status, admin_id)
    console.print(f"Report {rep.id} {rep.status.value}")


@main.command()
@click.pass_obj
def stats(coordinator):
    """Show moderation statistics."""
    with _errors_to_exit():
        data = coordinator.system_stats()
    lines = "\n".join(f"{k.replace('_', ' ')}: {v}" for k, v in data.items())
    console.print(Panel(lines, title="System stats"))


@main.command()
@click.option("--actor", default=None)
@click.option("--action", default=None)
@click.option("--format", "fmt", type=click.Choice(["table", "json", "csv"]), default="table")
@click.option("--limit", default=50, show_default=True)
@click.pass_obj
def audit(coordinator, actor: str | None, action: str | None, fmt: str, limit: int):
    """Show the moderation audit trail."""
    if coordinator.audit is None:
        console.print("[yellow]Audit log is disabled.[/]")
        return
    if fmt != "table":
        click.echo(coordinator.audit.export_events(fmt, actor=actor, action=action, limit=limit))
        return
    events = coordinator.audit.get_events(actor=actor, action=action, limit=limit)
    if not events:
        console.print("[yellow]No audit events.[/]")
        return
    table = Table(title=f"Audit trail ({len(events)} events)")
    table.add_column("When", style="dim")
    table.add_column("Actor")
    table.add_column("Action", style="cyan")
    table.add_column("Subject")
    for e in events:
        table.add_row(e.timestamp[:19], e.actor, e.action, f"{e.subject_type}:{e.subject_id}")
    console.print(table)


# ── Users ────────────────────────────────────────────────────────────


@main.group()
def users():
    """Manage marketplace accounts."""


@users.command(name="create")
@click.argument("username")
@click.option("--email", default="")
@click.option("--role", type=click.Choice([r.value for r in Role]), default=Role.member.value)
@click.pass_obj
def create_user(coordinator, username: str, email: str, role: str):
    """Create an account."""
    with _errors_to_exit():
        user = coordinator.users.create_user(username, email=email, role=Role(role))
    console.print(f"Created {escape(user.username)} ({user.role.value}) id={user.id}")


@users.command(name="list")
@click.option("--role", type=click.Choice([r.value for r in Role]), default=None)
@click.option("--banned/--not-banned", default=None, help="Filter by active ban")
@click.pass_obj
def list_users(coordinator, role: str | None, banned: bool | None):
    """List accounts."""
    with _errors_to_exit():
        found = coordinator.list_users(role=role, banned=banned)
    if not found:
        console.print("[yellow]No users.[/]")
        return
    table = Table(title=f"Users ({len(found)})")
    table.add_column("ID", style="dim")
    table.add_column("Username", style="cyan")
    table.add_column("Role")
    for u in found:
        table.add_row(u.id, escape(u.username), u.role.value)
    console.print(table)


@users.command(name="key")
@click.argument("username")
@click.option("--name", default="cli", help="Label for the key")
@click.option("--days", default=90, show_default=True, help="Days until the key expires")
@click.pass_obj
def create_key(coordinator, username: str, name: str, days: int):
    """Issue an API key for USERNAME. The raw key is shown once."""
    with _errors_to_exit():
        user = coordinator.users.get_user_by_username(username)
        if user is None:
            console.print(f"[red]No such user:[/] {escape(username)}")
            raise SystemExit(1)
        _, raw = coordinator.users.create_api_key(user.id, name, expires_in_days=days)
    click.echo(raw)


if __name__ == "__main__":
    main()
