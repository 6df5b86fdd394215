from __future__ import annotations
from pathlib import Path
from typing import Optional
import typer
from rich.console import Console
from rich.table import Table
from rich.markdown import Markdown

from .db import init_db
from .errors import ImportFormatError, InvalidQualityError, NoteNotFoundError
from .freshness import freshness, freshness_label
from .log import configure_logging
from .models import Note
from .review import ReviewSession
from .selection import mash as mash_notes, on_this_day as on_this_day_notes, resurface as resurface_notes, search as search_notes
from .services import (
    all_tags, create_note, delete_note, edit_note, get_settings,
    list_notes, open_note, set_memorize, update_settings,
)
from .store import SqlNoteStore
from .transfer import export_data, import_data

app = typer.Typer(help="QuickBrain: notes that fight forgetting")
console = Console()
store = SqlNoteStore()

FRESHNESS_STYLE = {"Fresh": "green", "Fading": "yellow", "Forgotten": "red"}


@app.callback()
def _boot():
    configure_logging()
    init_db()


def _not_found(identifier: str):
    console.print(f"[red]Not found[/]: {identifier}")
    raise typer.Exit(1)


def _fresh_cell(n: Note) -> str:
    label = freshness_label(freshness(n))
    return f"[{FRESHNESS_STYLE[label]}]{label}[/]"


def _notes_table(title: str, notes: list[Note]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Tags", style="magenta")
    table.add_column("Freshness")
    table.add_column("Views", justify="right")
    table.add_column("Updated")
    for n in notes:
        table.add_row(
            n.id[:8], n.title or "Untitled", ", ".join(n.tags),
            _fresh_cell(n), str(n.view_count),
            n.updated_at.isoformat(timespec="minutes"),
        )
    return table


def _resolve(identifier: str) -> str:
    """Accept a full id or a unique id prefix (as printed by `list`)."""
    matches = [n.id for n in store.all() if n.id.startswith(identifier)]
    if len(matches) != 1:
        _not_found(identifier)
    return matches[0]


@app.command()
def add(
    title: str = typer.Option(..., "--title", "-t"),
    content: str = typer.Option("", "--content", "-c"),
    tags: Optional[str] = typer.Option(None, "--tags", "-g", help="comma separated"),
    memorize: bool = typer.Option(False, "--memorize", "-m"),
):
    n = create_note(store, title, content, (tags or "").split(","), memorize=memorize)
    console.print(f"[green]Created[/] {n.id}: {n.title}")


@app.command("list")
def _list(
    tag: Optional[str] = typer.Option(None, "--tag"),
    sort: str = typer.Option("updated", "--sort", help="updated|created|title"),
):
    try:
        notes = list_notes(store, tag=tag, sort=sort)
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)
    console.print(_notes_table("QuickBrain", notes))


@app.command()
def show(identifier: str):
    n = open_note(store, _resolve(identifier))
    if not n:
        _not_found(identifier)
    console.rule(f"{n.title or 'Untitled'}")
    if n.tags:
        console.print(f"[dim]tags:[/] {', '.join(n.tags)}")
    console.print(f"[dim]views:[/] {n.view_count}  [dim]memorize:[/] {'yes' if n.memorize else 'no'}")
    console.print(Markdown(n.content or "_<empty>_"))


@app.command()
def edit(
    identifier: str,
    title: Optional[str] = typer.Option(None, "--title", "-t"),
    content: Optional[str] = typer.Option(None, "--content", "-c"),
    tags: Optional[str] = typer.Option(None, "--tags", "-g"),
    memorize: Optional[bool] = typer.Option(None, "--memorize/--no-memorize"),
):
    try:
        n = edit_note(
            store,
            _resolve(identifier),
            title=title,
            content=content,
            tags=(None if tags is None else tags.split(",")),
            memorize=memorize,
        )
    except NoteNotFoundError:
        _not_found(identifier)
    console.print(f"[green]Updated[/] {n.id}: {n.title}")


@app.command()
def delete(identifier: str):
    try:
        delete_note(store, _resolve(identifier))
    except NoteNotFoundError:
        _not_found(identifier)
    console.print(f"[red]Deleted[/]: {identifier}")


@app.command()
def memorize(identifier: str):
    n = set_memorize(store, _resolve(identifier), True)
    console.print(f"[green]Memorizing[/] {n.id}: {n.title}")


@app.command()
def forget(identifier: str):
    n = set_memorize(store, _resolve(identifier), False)
    console.print(f"[yellow]No longer memorizing[/] {n.id}: {n.title}")


@app.command()
def tags():
    found = all_tags(store)
    console.print(" ".join(f"[magenta]#{t}[/]" for t in found) or "[dim]no tags[/]")


@app.command()
def search(query: str):
    results = search_notes(store, query)
    if not results:
        console.print(f'[dim]No notes found for "{query}"[/]')
        return
    console.print(_notes_table(f'Search: "{query}"', results))


@app.command()
def resurface(limit: Optional[int] = typer.Option(None, "--limit", "-n")):
    if limit is None:
        limit = get_settings(store).resurface_count
    notes = resurface_notes(store, limit)
    if not notes:
        console.print("[dim]Nothing to resurface, you have seen everything this week.[/]")
        return
    console.print(_notes_table("Notes you haven't seen in a while", notes))


@app.command("on-this-day")
def on_this_day():
    periods = on_this_day_notes(store)
    if not periods:
        console.print("[dim]No notes from this day in the past[/]")
        return
    for label, notes in periods:
        console.print(_notes_table(label, notes))


@app.command()
def mash():
    pair = mash_notes(store)
    if pair is None:
        console.print("[yellow]Serendipity needs at least two notes.[/]")
        raise typer.Exit(1)
    for n in pair:
        console.rule(f"{n.title or 'Untitled'} [dim]{n.id[:8]}[/]")
        console.print(Markdown(n.content or "_No content_"))
    console.print("[dim]What connects these two?[/]")


@app.command()
def review():
    session = ReviewSession(store).start()
    if session.current is None:
        console.print("[green]All caught up![/] No notes due for review.")
        return
    while session.current is not None:
        n = session.current
        console.rule(f"{n.title or 'Untitled'} [dim]({session.remaining} left)[/]")
        typer.prompt("Try to recall the content, then press enter", default="", show_default=False)
        try:
            session.reveal()
        except NoteNotFoundError:
            console.print("[yellow]That note was deleted; refreshing the queue.[/]")
            session.start()
            continue
        console.print(Markdown(n.content or "_No content_"))
        while True:
            quality = typer.prompt("How well did you remember? 1=forgot 3=hard 4=good 5=easy", type=int)
            try:
                session.rate(quality)
                break
            except InvalidQualityError as e:
                console.print(f"[red]{e}[/]")
            except NoteNotFoundError:
                console.print("[yellow]That note was deleted; refreshing the queue.[/]")
                session.start()
                break
    console.print("[green]All caught up![/]")


@app.command()
def settings(
    theme: Optional[str] = typer.Option(None, "--theme", help="light|dark"),
    resurface_on_open: Optional[bool] = typer.Option(None, "--resurface-on-open/--no-resurface-on-open"),
    resurface_count: Optional[int] = typer.Option(None, "--resurface-count"),
):
    try:
        s = update_settings(
            store, theme=theme,
            show_resurface_on_open=resurface_on_open,
            resurface_count=resurface_count,
        )
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)
    console.print(f"theme={s.theme} resurface_on_open={s.show_resurface_on_open} resurface_count={s.resurface_count}")


@app.command()
def export(to: Path = typer.Option(..., "--to")):
    payload = export_data(store)
    to.write_text(payload, encoding="utf-8")
    console.print(f"[green]Exported[/] {len(store.all())} notes → {to}")


@app.command("import")
def import_(from_: Path = typer.Option(..., "--from")):
    try:
        result = import_data(store, from_.read_bytes())
    except ImportFormatError as e:
        console.print(f"[red]Import failed[/]: {e}")
        raise typer.Exit(1)
    msg = f"[green]Imported[/] {result.imported} notes"
    if result.errors:
        msg += f" [yellow]({result.errors} errors)[/]"
    console.print(msg)


def main():
    app()

if __name__ == "__main__":
    main()
