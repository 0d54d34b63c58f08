"""Command-line interface for TUILog.

Commands cover initializing the database, logging QSOs, listing the logbook,
ADIF export over a time range, and managing operator profiles.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

# Allow running this file directly by ensuring the project root is on sys.path
if __package__ is None or __package__ == "":
    sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import typer
from rich.console import Console
from rich.table import Table

from tuilog.adif import parse_adif
from tuilog.config import get_default_profile_id, set_default_profile_id
from tuilog.errors import TuilogError
from tuilog.log import configure_logging
from tuilog.models import LogEntryBase, OperatorProfileBase
from tuilog.storage import APP_NAME, Logbook

app = typer.Typer(add_completion=False, help=f"{APP_NAME} - Ham radio QSO logger")
profile_app = typer.Typer(help="Manage operator profiles (your station identity)")
app.add_typer(profile_app, name="profile")
console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    configure_logging(verbose)


# Utilities

def _open_logbook() -> Logbook:
    """Open the logbook and make sure its tables exist.

    Raises typer.Exit on database creation failure.
    """
    try:
        book = Logbook()
        book.create_tables()
        return book
    except TuilogError as e:
        console.print(f"[red]Error opening database: {e}[/red]")
        raise typer.Exit(1) from e


def _resolve_profile(book: Logbook, requested: Optional[int]) -> int:
    """Pick the profile for a new QSO: explicit, configured default, then lowest id."""
    if requested is not None:
        return requested
    configured = get_default_profile_id()
    if configured is not None:
        return configured
    profiles = book.list_profiles()
    if not profiles:
        raise TuilogError("No operator profiles exist; create one with 'profile add'")
    return profiles[0].id


def _profile_table(title: str, profiles) -> Table:
    default_id = get_default_profile_id()
    table = Table(title=title)
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Call")
    table.add_column("Grid")
    table.add_column("CQZ")
    table.add_column("ITUZ")
    table.add_column("DXCC")
    table.add_column("Cont")
    for p in profiles:
        marker = " *" if p.id == default_id else ""
        table.add_row(
            f"{p.id}{marker}", p.name, p.call, p.grid, p.cqz, p.ituz, p.dxcc, p.cont
        )
    return table


@app.command()
def init() -> None:
    """Create the database in your user data directory (or TUILOG_DB_PATH)."""
    try:
        with _open_logbook() as book:
            if book.migrate_default_profile():
                console.print("Created default operator profile id=0")
            console.print(f"Database ready at: [bold]{book.db_path}[/bold]")
    except TuilogError as e:
        console.print(f"[red]Error initializing database: {e}[/red]")
        raise typer.Exit(1) from e


@app.command()
def log(
    call: str = typer.Option(..., help="Station callsign, e.g., K1ABC"),
    band: str = typer.Option(..., help="Band, e.g., 20M"),
    freq: str = typer.Option(..., help="Frequency in MHz, e.g., 14.074"),
    mode: str = typer.Option(..., help="Mode, e.g., USB, CW, FT8"),
    rst_sent: str = typer.Option("59", help="Report sent"),
    rst_rcvd: str = typer.Option("59", help="Report received"),
    power: Optional[str] = typer.Option(None, help="Transmit power"),
    comment: Optional[str] = typer.Option(None, help="Comment"),
    profile: Optional[int] = typer.Option(None, help="Operator profile id"),
) -> None:
    """Log a new QSO at the current UTC time."""
    try:
        with _open_logbook() as book:
            entry = LogEntryBase(
                call=call.upper(),
                band=band,
                frequency=freq,
                mode=mode.upper(),
                rsttx=rst_sent,
                rstrx=rst_rcvd,
                power=power,
                comments=comment,
            )
            saved = book.append_log(entry, _resolve_profile(book, profile))
            console.print(
                f"Saved QSO id={saved.id} with {saved.call} at {saved.timestamp}Z"
                f" (profile {saved.profile_id})"
            )
    except TuilogError as e:
        console.print(f"[red]Error logging QSO: {e}[/red]")
        raise typer.Exit(1) from e


@app.command("list")
def list_cmd(
    limit: int = typer.Option(20, min=1, help="Max QSOs to show"),
) -> None:
    """Display the logbook, newest first."""
    try:
        with _open_logbook() as book:
            rows = book.list_logs()[:limit]
            if not rows:
                console.print("No QSOs found.")
                return
            table = Table(title=f"Logbook (DB: {book.db_path})", show_lines=False)
            table.add_column("Timestamp")
            table.add_column("Call")
            table.add_column("RST TX")
            table.add_column("RST RX")
            table.add_column("Band")
            table.add_column("Frequency")
            table.add_column("Mode")
            table.add_column("Comments")
            for q in rows:
                table.add_row(
                    q.timestamp,
                    q.call,
                    q.rsttx,
                    q.rstrx,
                    q.band,
                    q.frequency,
                    q.mode,
                    (q.comments or "")[:40],
                )
            console.print(table)
    except TuilogError as e:
        console.print(f"[red]Error listing QSOs: {e}[/red]")
        raise typer.Exit(1) from e


@app.command()
def export(
    output: Path = typer.Argument(..., dir_okay=False, help="ADIF file to write"),
    start: Optional[str] = typer.Option(
        None, help="Earliest QSO to include, 'YYYY-MM-DD HH:MM:SS' UTC"
    ),
    end: Optional[str] = typer.Option(
        None, help="Latest QSO to include, 'YYYY-MM-DD HH:MM:SS' UTC"
    ),
    show: bool = typer.Option(False, help="Print the exported records"),
) -> None:
    """Write QSOs within an optional UTC time range to an ADIF file."""
    try:
        with _open_logbook() as book:
            result = book.export(output, start=start, end=end)
        console.print(f"Exported {result.count} QSOs to {result.path}")
        if show:
            _, records = parse_adif(result.path.read_text(encoding="utf-8"))
            table = Table(title=f"{result.path.name} ({len(records)})")
            for col in ("QSO_DATE", "TIME_ON", "CALL", "BAND", "MODE", "STATION_CALLSIGN"):
                table.add_column(col)
            for rec in records:
                table.add_row(
                    rec.get("QSO_DATE", ""),
                    rec.get("TIME_ON", ""),
                    rec.get("CALL", ""),
                    rec.get("BAND", ""),
                    rec.get("SUBMODE") or rec.get("MODE", ""),
                    rec.get("STATION_CALLSIGN", ""),
                )
            console.print(table)
    except TuilogError as e:
        console.print(f"[red]Error exporting ADIF: {e}[/red]")
        raise typer.Exit(1) from e


@profile_app.command("add")
def profile_add() -> None:
    """Create a placeholder profile; fill it in with 'profile edit'."""
    try:
        with _open_logbook() as book:
            profile_id = book.create_profile()
        console.print(f"Created operator profile id={profile_id}")
    except TuilogError as e:
        console.print(f"[red]Error creating profile: {e}[/red]")
        raise typer.Exit(1) from e


@profile_app.command("list")
def profile_list() -> None:
    """Show all operator profiles; the default is marked with '*'."""
    try:
        with _open_logbook() as book:
            profiles = book.list_profiles()
        if not profiles:
            console.print("No operator profiles found.")
            return
        console.print(_profile_table("Operator profiles", profiles))
    except TuilogError as e:
        console.print(f"[red]Error listing profiles: {e}[/red]")
        raise typer.Exit(1) from e


@profile_app.command("edit")
def profile_edit(
    profile_id: int = typer.Argument(..., help="Profile ID to edit"),
    name: Optional[str] = typer.Option(None, help="Display name"),
    call: Optional[str] = typer.Option(None, help="Station callsign"),
    grid: Optional[str] = typer.Option(None, help="Maidenhead grid"),
    cqz: Optional[str] = typer.Option(None, help="CQ zone"),
    ituz: Optional[str] = typer.Option(None, help="ITU zone"),
    dxcc: Optional[str] = typer.Option(None, help="DXCC entity code"),
    cont: Optional[str] = typer.Option(None, help="Continent, e.g., NA"),
) -> None:
    """Change profile attributes; options left out keep their current value."""
    try:
        with _open_logbook() as book:
            current = book.get_profile(profile_id)
            attributes = OperatorProfileBase(
                **(current.model_dump(include=set(OperatorProfileBase.model_fields)) if current else {})
            )
            changes = {
                "name": name,
                "call": call.upper() if call else call,
                "grid": grid,
                "cqz": cqz,
                "ituz": ituz,
                "dxcc": dxcc,
                "cont": cont.upper() if cont else cont,
            }
            for key, value in changes.items():
                if value is not None:
                    setattr(attributes, key, value)
            updated = book.update_profile(profile_id, attributes)
        console.print(_profile_table("Updated profile", [updated]))
    except TuilogError as e:
        console.print(f"[red]Error updating profile: {e}[/red]")
        raise typer.Exit(1) from e


@profile_app.command("remove")
def profile_remove(profile_id: int = typer.Argument(..., help="Profile ID to delete")) -> None:
    """Delete a profile. QSOs logged under it stay but drop out of exports."""
    try:
        with _open_logbook() as book:
            removed = book.delete_profile(profile_id)
        if removed:
            console.print(f"Deleted operator profile id={profile_id}")
        else:
            console.print(f"Operator profile id={profile_id} not found")
    except TuilogError as e:
        console.print(f"[red]Error deleting profile: {e}[/red]")
        raise typer.Exit(1) from e


@profile_app.command("default")
def profile_default(
    profile_id: Optional[int] = typer.Argument(None, help="Profile ID to use for new QSOs"),
    clear: bool = typer.Option(False, help="Forget the configured default"),
) -> None:
    """Show or set the profile new QSOs are logged under."""
    try:
        if clear:
            set_default_profile_id(None)
            console.print("Default operator profile cleared")
            return
        if profile_id is None:
            current = get_default_profile_id()
            console.print(
                f"Default operator profile: {current}" if current is not None
                else "No default operator profile configured"
            )
            return
        with _open_logbook() as book:
            if book.get_profile(profile_id) is None:
                console.print(f"[red]Operator profile id={profile_id} not found[/red]")
                raise typer.Exit(1)
        path = set_default_profile_id(profile_id)
        console.print(f"Default operator profile set to {profile_id} ({path})")
    except (TuilogError, OSError) as e:
        console.print(f"[red]Error setting default profile: {e}[/red]")
        raise typer.Exit(1) from e


def main() -> None:  # pragma: no cover - exercised via CLI
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
