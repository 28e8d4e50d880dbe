"""Tagesplan-Scheduler — Haupt-CLI.

Verwendung:
  python main.py init                                  Konfiguration anlegen
  python main.py config show                           Konfiguration anzeigen
  python main.py day show -c 5a -d 2026-10-19          Tagesplan anzeigen
  python main.py day generate -c 5a -d 2026-10-19      Tag aus dem Standardraster erzeugen
  python main.py day copy -c 5a --from D1 --to D2      Tag auf anderes Datum kopieren
  python main.py day validate -c 5a -d 2026-10-19      Tagesplan prüfen
  python main.py week -c 5a -d 2026-10-19              Wochenübersicht
  python main.py slot add -c 5a --start 08:00 --end 08:45 --subject M --teacher MUE
  python main.py slot edit <id> -c 5a --end 09:00      Slot ändern (Nachbarn rücken nach)
  python main.py slot delete <id> -c 5a                Slot löschen
  python main.py slot status <id> done -c 5a           Status setzen
  python main.py taught mark <id> -c 5a                Als unterrichtet markieren
  python main.py taught unmark <id> -c 5a              Markierung entfernen
"""

import logging
import sys
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

from models.slot import BreakSlot, SlotDraft, SlotPatch, SlotStatus
from scheduler.errors import SchedulerError
from store.errors import StoreError

console = Console()
err_console = Console(stderr=True)

_STATUS_STYLE = {
    SlotStatus.PLANNED: "white",
    SlotStatus.DONE: "green",
    SlotStatus.CANCELLED: "red",
}


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_config_or_abort():
    """Lädt die Konfiguration oder bricht mit Fehlermeldung ab."""
    from config.manager import ConfigManager
    mgr = ConfigManager()
    if mgr.first_run_check():
        console.print(
            "[red]Keine Konfiguration gefunden.[/red]\n"
            "Führen Sie zunächst [bold]python main.py init[/bold] aus."
        )
        sys.exit(1)
    try:
        config = mgr.load()
    except ValueError as e:
        console.print(f"[red bold]Konfiguration fehlerhaft:[/red bold]\n{e}")
        sys.exit(1)

    ctx = click.get_current_context(silent=True)
    verbose = bool(ctx and ctx.find_root().obj and ctx.find_root().obj.get("verbose"))
    _setup_logging("DEBUG" if verbose else config.log_level)
    return mgr, config


def _open_scheduler(config):
    """Erzeugt Store und Scheduler passend zur Konfiguration."""
    from config.schema import StoreBackend
    from models.syllabus import SyllabusCatalog
    from scheduler.timetable import TimetableScheduler
    from store.json_store import JsonSlotStore
    from store.memory import InMemorySlotStore

    if config.store.backend == StoreBackend.JSON:
        store = JsonSlotStore(Path(config.store.path))
    else:
        store = InMemorySlotStore()

    catalog = None
    if config.syllabus_path:
        catalog = SyllabusCatalog.load_json(Path(config.syllabus_path))

    ctx = click.get_current_context(silent=True)
    actor = ctx.find_root().obj.get("actor") if ctx and ctx.find_root().obj else None
    return TimetableScheduler.from_config(config, store, catalog=catalog, actor=actor)


@contextmanager
def _abort_on_error():
    """Fach-, Speicher- und Eingabefehler als rote Meldung ausgeben, Exit-Code 1."""
    try:
        yield
    except SchedulerError as e:
        console.print(f"[red bold]Fehler:[/red bold] {e}")
        sys.exit(1)
    except StoreError as e:
        console.print(f"[red bold]Speicherfehler:[/red bold] {e}")
        sys.exit(1)
    except ValidationError as e:
        console.print(f"[red bold]Ungültige Eingabe:[/red bold]\n{e}")
        sys.exit(1)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _scope(config, class_id: str, class_date: Optional[datetime]):
    from models.scope import SlotScope
    day = class_date.date() if class_date else date.today()
    return SlotScope(config.school_code, class_id, day)


def scope_options(f):
    """Gemeinsame Optionen --class / --date."""
    f = click.option("--date", "-d", "class_date", type=click.DateTime(formats=["%Y-%m-%d"]),
                     default=None, help="Datum (YYYY-MM-DD), Standard: heute.")(f)
    f = click.option("--class", "-c", "class_id", required=True, help="Klassen-ID.")(f)
    return f


_TIME = click.DateTime(formats=["%H:%M"])

# slot edit --clear: Optionsname → Slot-Feld
_CLEARABLE_FIELDS = {
    "subject": "subject_id",
    "teacher": "teacher_id",
    "chapter": "syllabus_chapter_id",
    "topic": "syllabus_topic_id",
    "plan": "plan_text",
}


def _slot_content(slot) -> str:
    if isinstance(slot, BreakSlot):
        return f"[dim]{slot.name}[/dim]"
    if not slot.subject_id and not slot.teacher_id:
        return "[dim]–[/dim]"
    parts = [f"[bold]{slot.subject_id or '?'}[/bold]", slot.teacher_id or "?"]
    if slot.syllabus_topic_id:
        parts.append(f"[cyan]{slot.syllabus_chapter_id}/{slot.syllabus_topic_id}[/cyan]")
    return "  ".join(parts)


def _print_day(view) -> None:
    table = Table(
        title=f"Tagesplan {view.scope.class_instance_id} — {view.scope.class_date:%a %d.%m.%Y}",
        box=box.ROUNDED,
    )
    table.add_column("Nr.", justify="right")
    table.add_column("Zeit")
    table.add_column("Typ")
    table.add_column("Inhalt")
    table.add_column("Status")
    table.add_column("✓", justify="center")
    table.add_column("ID", style="dim", overflow="fold")

    for s in view.slots:
        style = _STATUS_STYLE[s.status]
        table.add_row(
            str(s.period_number),
            s.time_label,
            "Pause" if isinstance(s, BreakSlot) else "Stunde",
            _slot_content(s),
            f"[{style}]{s.status.value}[/{style}]",
            "[green]✓[/green]" if view.is_taught(s.id) else "",
            s.id,
        )
    console.print(table)
    console.print(f"{view.period_count} Stunden, {view.break_count} Pausen")


# ─── INIT ─────────────────────────────────────────────────────────────────────

@click.command("init")
@click.option("--school", default=None, help="Kürzel der Schule.")
@click.option("--force", is_flag=True, default=False,
              help="Bestehende Konfiguration ohne Rückfrage überschreiben.")
def cmd_init(school: Optional[str], force: bool):
    """Legt config/scheduler_config.yaml mit dem Standardraster an."""
    from config.defaults import default_scheduler_config
    from config.manager import ConfigManager

    mgr = ConfigManager()
    if not mgr.first_run_check() and not force:
        console.print("[yellow]Eine Konfiguration existiert bereits.[/yellow]")
        if not click.confirm("Überschreiben?", default=False):
            return

    config = default_scheduler_config()
    if school:
        config = config.model_copy(update={"school_code": school})
    mgr.save(config)
    console.print("Weiter mit [bold]python main.py day generate -c <Klasse>[/bold].")


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anzeigen."""


@cmd_config.command("show")
def config_show():
    """Zeigt die aktuelle Konfiguration und das Standardraster an."""
    from models.scope import SlotScope
    from scheduler.generator import build_day_slots

    mgr, config = _load_config_or_abort()

    console.print(Panel(
        f"[bold]{config.school_code}[/bold]  |  "
        f"Speicher: {config.store.backend.value} ({config.store.path})  |  "
        f"Fortschritt: {config.progress.keying.value}",
        title="Scheduler-Konfiguration",
        border_style="cyan",
    ))

    tpl = config.day_template
    with _abort_on_error():
        grid = build_day_slots(SlotScope(config.school_code, "-", date.today()), tpl)
    table = Table(title="Standardraster", box=box.ROUNDED)
    table.add_column("Nr.", justify="right")
    table.add_column("Zeit")
    table.add_column("Typ")
    for s in grid:
        label = s.name if isinstance(s, BreakSlot) else "Stunde"
        table.add_row(str(s.period_number), s.time_label, label)
    console.print(table)
    console.print(
        f"[bold]Notizen:[/bold] max. {config.validation.plan_text_max_length} Zeichen | "
        f"[bold]Lehrplan:[/bold] {config.syllabus_path or '–'} | "
        f"[bold]Log-Level:[/bold] {config.log_level}"
    )


# ─── DAY ──────────────────────────────────────────────────────────────────────

@click.group("day")
def cmd_day():
    """Ganze Tage anzeigen, generieren, kopieren und prüfen."""


@cmd_day.command("show")
@scope_options
def day_show(class_id: str, class_date: Optional[datetime]):
    """Zeigt den Tagesplan einer Klasse."""
    mgr, config = _load_config_or_abort()
    with _abort_on_error():
        scheduler = _open_scheduler(config)
        view = scheduler.get_day(_scope(config, class_id, class_date))
    if not view.slots:
        console.print("[dim]Keine Slots für diesen Tag.[/dim]")
        return
    _print_day(view)


@cmd_day.command("generate")
@scope_options
@click.option("--start", type=_TIME, default=None, help="Beginn der ersten Stunde (HH:MM).")
@click.option("--periods", type=int, default=None, help="Anzahl Unterrichtsstunden.")
@click.option("--duration", type=int, default=None, help="Dauer einer Stunde in Minuten.")
@click.option("--no-breaks", is_flag=True, default=False, help="Ohne Pausen generieren.")
@click.option("--yes", "-y", is_flag=True, default=False, help="Ohne Rückfrage ersetzen.")
def day_generate(class_id, class_date, start, periods, duration, no_breaks, yes):
    """Ersetzt den Tag durch das Standardraster (bestehende Slots gehen verloren)."""
    from config.schema import QuickGenerateSpec

    mgr, config = _load_config_or_abort()
    with _abort_on_error():
        overrides = {}
        if start is not None:
            overrides["start_time"] = start.time()
        if periods is not None:
            overrides["num_periods"] = periods
        if duration is not None:
            overrides["period_duration_min"] = duration
        if no_breaks:
            overrides["breaks"] = []
        spec = QuickGenerateSpec.model_validate(
            {**config.day_template.model_dump(), **overrides})

        scheduler = _open_scheduler(config)
        scope = _scope(config, class_id, class_date)
        existing = scheduler.get_day(scope).slots
        if existing and not yes:
            done = sum(1 for s in existing if s.status == SlotStatus.DONE)
            console.print(
                f"[yellow]{scope} hat bereits {len(existing)} Slots "
                f"({done} davon erledigt). Alle werden gelöscht.[/yellow]"
            )
            click.confirm("Tag neu generieren?", default=False, abort=True)

        scheduler.quick_generate(scope, spec)
        view = scheduler.get_day(scope)
    console.print(f"[green]✓[/green] {len(view.slots)} Slots generiert")
    _print_day(view)


@cmd_day.command("copy")
@click.option("--class", "-c", "class_id", required=True, help="Klassen-ID.")
@click.option("--from", "source_date", type=click.DateTime(formats=["%Y-%m-%d"]),
              required=True, help="Quelldatum (YYYY-MM-DD).")
@click.option("--to", "target_date", type=click.DateTime(formats=["%Y-%m-%d"]),
              required=True, help="Zieldatum (YYYY-MM-DD).")
@click.option("--overwrite", is_flag=True, default=False,
              help="Vorhandene Slots am Zieldatum ersetzen.")
def day_copy(class_id, source_date, target_date, overwrite):
    """Kopiert alle Slots eines Tages auf ein anderes Datum."""
    mgr, config = _load_config_or_abort()
    with _abort_on_error():
        scheduler = _open_scheduler(config)
        source = _scope(config, class_id, source_date)
        copied = scheduler.copy_day(source, target_date.date(), overwrite=overwrite)
    console.print(f"[green]✓[/green] {len(copied)} Slots nach {target_date:%Y-%m-%d} kopiert")


@cmd_day.command("validate")
@scope_options
def day_validate(class_id, class_date):
    """Prüft Nummerierung, Überschneidungen, Lücken und leere Stunden."""
    from analysis.day_validator import DayValidator

    mgr, config = _load_config_or_abort()
    with _abort_on_error():
        scheduler = _open_scheduler(config)
        view = scheduler.get_day(_scope(config, class_id, class_date))
    report = DayValidator().validate(view.slots)
    report.print_rich()
    sys.exit(0 if report.is_valid else 1)


# ─── WEEK ─────────────────────────────────────────────────────────────────────

@click.command("week")
@scope_options
def cmd_week(class_id, class_date):
    """Wochenübersicht (Mo–So) der Woche, in der das Datum liegt."""
    mgr, config = _load_config_or_abort()
    day = class_date.date() if class_date else date.today()
    monday = day - timedelta(days=day.weekday())
    sunday = monday + timedelta(days=6)

    with _abort_on_error():
        scheduler = _open_scheduler(config)
        slots = scheduler.list_range(config.school_code, class_id, monday, sunday)

    table = Table(title=f"Woche {monday:%d.%m.}–{sunday:%d.%m.%Y} | {class_id}", box=box.ROUNDED)
    table.add_column("Tag")
    table.add_column("Nr.", justify="right")
    table.add_column("Zeit")
    table.add_column("Inhalt")
    table.add_column("Status")
    previous_day = None
    for s in slots:
        label = f"{s.class_date:%a %d.%m.}" if s.class_date != previous_day else ""
        previous_day = s.class_date
        style = _STATUS_STYLE[s.status]
        table.add_row(label, str(s.period_number), s.time_label, _slot_content(s),
                      f"[{style}]{s.status.value}[/{style}]")
    console.print(table)
    console.print(f"{len(slots)} Slots an {len({s.class_date for s in slots})} Tagen")


# ─── SLOT ─────────────────────────────────────────────────────────────────────

@click.group("slot")
def cmd_slot():
    """Einzelne Slots anlegen, ändern und löschen."""


@cmd_slot.command("add")
@scope_options
@click.option("--start", type=_TIME, required=True, help="Beginn (HH:MM).")
@click.option("--end", type=_TIME, required=True, help="Ende (HH:MM).")
@click.option("--break", "break_name", default=None, help="Als Pause mit dieser Bezeichnung anlegen.")
@click.option("--subject", default=None, help="Fach-ID.")
@click.option("--teacher", default=None, help="Lehrkraft-ID.")
@click.option("--chapter", default=None, help="Lehrplan-Kapitel.")
@click.option("--topic", default=None, help="Lehrplan-Thema.")
@click.option("--plan", "plan_text", default=None, help="Stundennotiz.")
def slot_add(class_id, class_date, start, end, break_name, subject, teacher, chapter, topic, plan_text):
    """Legt eine Unterrichtsstunde oder (mit --break) eine Pause an."""
    mgr, config = _load_config_or_abort()
    with _abort_on_error():
        draft = SlotDraft(
            slot_type="break" if break_name is not None else "period",
            start_time=start.time(),
            end_time=end.time(),
            name=break_name,
            subject_id=subject,
            teacher_id=teacher,
            syllabus_chapter_id=chapter,
            syllabus_topic_id=topic,
            plan_text=plan_text,
        )
        scheduler = _open_scheduler(config)
        slot = scheduler.create_slot(_scope(config, class_id, class_date), draft)
    console.print(
        f"[green]✓[/green] Slot {slot.period_number} ({slot.time_label}) angelegt: {slot.id}"
    )


@cmd_slot.command("edit")
@click.argument("slot_id")
@scope_options
@click.option("--type", "slot_type", type=click.Choice(["period", "break"]), default=None,
              help="Slot-Typ wechseln.")
@click.option("--start", type=_TIME, default=None, help="Neuer Beginn (HH:MM).")
@click.option("--end", type=_TIME, default=None, help="Neues Ende (HH:MM).")
@click.option("--name", default=None, help="Bezeichnung (nur Pausen).")
@click.option("--subject", default=None, help="Fach-ID.")
@click.option("--teacher", default=None, help="Lehrkraft-ID.")
@click.option("--chapter", default=None, help="Lehrplan-Kapitel.")
@click.option("--topic", default=None, help="Lehrplan-Thema.")
@click.option("--plan", "plan_text", default=None, help="Stundennotiz.")
@click.option("--clear", "clear", multiple=True, type=click.Choice(sorted(_CLEARABLE_FIELDS)),
              help="Feld leeren (mehrfach angebbar).")
def slot_edit(slot_id, class_id, class_date, slot_type, start, end, name,
              subject, teacher, chapter, topic, plan_text, clear):
    """Ändert einen Slot. Geänderte Zeiten ziehen den direkten Nachbarn mit."""
    mgr, config = _load_config_or_abort()
    fields = {
        "slot_type": slot_type,
        "start_time": start.time() if start else None,
        "end_time": end.time() if end else None,
        "name": name,
        "subject_id": subject,
        "teacher_id": teacher,
        "syllabus_chapter_id": chapter,
        "syllabus_topic_id": topic,
        "plan_text": plan_text,
    }
    changes = {k: v for k, v in fields.items() if v is not None}
    for option in clear:
        field = _CLEARABLE_FIELDS[option]
        if field in changes:
            raise click.BadParameter(
                f"{option} kann nicht gleichzeitig gesetzt und geleert werden.",
                param_hint="--clear",
            )
        changes[field] = None
    with _abort_on_error():
        patch = SlotPatch(**changes)
        scheduler = _open_scheduler(config)
        result = scheduler.update_slot(_scope(config, class_id, class_date), slot_id, patch)

    console.print(
        f"[green]✓[/green] Slot {result.slot.period_number} ({result.slot.time_label}) geändert"
    )
    if result.adjusted_neighbor_ids:
        console.print(f"  Angepasste Nachbarn: {', '.join(result.adjusted_neighbor_ids)}")
    for warning in result.warnings:
        console.print(f"  [yellow]⚠ {warning}[/yellow]")


@cmd_slot.command("delete")
@click.argument("slot_id")
@scope_options
@click.option("--yes", "-y", is_flag=True, default=False, help="Ohne Rückfrage löschen.")
def slot_delete(slot_id, class_id, class_date, yes):
    """Löscht einen Slot. Die entstehende Lücke bleibt bestehen."""
    mgr, config = _load_config_or_abort()
    if not yes:
        click.confirm(f"Slot {slot_id} löschen?", default=False, abort=True)
    with _abort_on_error():
        scheduler = _open_scheduler(config)
        scheduler.delete_slot(_scope(config, class_id, class_date), slot_id)
    console.print(f"[green]✓[/green] Slot {slot_id} gelöscht")


@cmd_slot.command("status")
@click.argument("slot_id")
@click.argument("status", type=click.Choice([s.value for s in SlotStatus]))
@scope_options
def slot_status(slot_id, status, class_id, class_date):
    """Setzt den Status (planned / done / cancelled)."""
    mgr, config = _load_config_or_abort()
    with _abort_on_error():
        scheduler = _open_scheduler(config)
        slot = scheduler.update_slot_status(
            _scope(config, class_id, class_date), slot_id, SlotStatus(status))
    console.print(f"[green]✓[/green] Slot {slot.period_number}: {slot.status.value}")


# ─── TAUGHT ───────────────────────────────────────────────────────────────────

@click.group("taught")
def cmd_taught():
    """Stunden als unterrichtet markieren."""


@cmd_taught.command("mark")
@click.argument("slot_id")
@scope_options
def taught_mark(slot_id, class_id, class_date):
    """Legt einen Fortschrittseintrag für die Stunde an."""
    mgr, config = _load_config_or_abort()
    with _abort_on_error():
        scheduler = _open_scheduler(config)
        scheduler.mark_taught(_scope(config, class_id, class_date), slot_id)
    console.print(f"[green]✓[/green] Als unterrichtet markiert: {slot_id}")


@cmd_taught.command("unmark")
@click.argument("slot_id")
@scope_options
def taught_unmark(slot_id, class_id, class_date):
    """Entfernt die Fortschrittseinträge der Stunde."""
    mgr, config = _load_config_or_abort()
    with _abort_on_error():
        scheduler = _open_scheduler(config)
        removed = scheduler.unmark_taught(_scope(config, class_id, class_date), slot_id)
    if removed:
        console.print(f"[green]✓[/green] {removed} Eintrag/Einträge entfernt")
    else:
        console.print("[yellow]Kein passender Fortschrittseintrag gefunden.[/yellow]")


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug-Ausgaben anzeigen.")
@click.option("--actor", default=None, help="Kennung der ändernden Person (created_by).")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, actor: Optional[str]):
    """Tagesplan-Scheduler: Stunden und Pausen einer Klasse pro Tag verwalten.

    Starten Sie mit: python main.py init
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["actor"] = actor
    _setup_logging("DEBUG" if verbose else "WARNING")


def main():
    """Einstiegspunkt. Zeigt beim ersten Aufruf ohne Argumente einen Hinweis."""
    from config.manager import ConfigManager
    mgr = ConfigManager()

    if len(sys.argv) == 1 and mgr.first_run_check():
        console.print(Panel(
            "[bold]Willkommen beim Tagesplan-Scheduler![/bold]\n\n"
            "Keine Konfiguration gefunden.\n"
            "Legen Sie sie mit [bold]python main.py init[/bold] an.",
            border_style="cyan",
        ))
        return

    cli()


# Befehle registrieren
cli.add_command(cmd_init)
cli.add_command(cmd_config)
cli.add_command(cmd_day)
cli.add_command(cmd_week)
cli.add_command(cmd_slot)
cli.add_command(cmd_taught)


if __name__ == "__main__":
    main()
