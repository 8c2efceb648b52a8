import sys
import os
import click
from pathlib import Path
from rich import print
from rich.console import Console
from rich.table import Table

from datetime import date, datetime, timedelta

from daylight import __version__
from daylight.classify import GROUP_ORDER, group_rows, view_rows
from daylight.daylight_env import DaylightEnvironment
from daylight.instances import backfill as backfill_instances
from daylight.instances import materialize_today, skip_instance
from daylight.occurrences import expand
from daylight.record import RecordError, load_directory, load_task_file, save_task_file
from daylight.reschedule import (
    NotAnOccurrence,
    complete_occurrence,
    reschedule_instance,
    reschedule_series,
)
from daylight.recurrence import describe_recurrence
from daylight.rrule_codec import RRuleDecodeError, decode
from daylight.shared import fmt_date

GROUP_COLORS = {
    "Past": "dark_orange",
    "Now": "tomato",
    "Upcoming": "light_sky_blue1",
    "Wrapped": "grey62",
}


class _DateParam(click.ParamType):
    name = "date"

    def convert(self, value, param, ctx):
        if value is None:
            return None
        if isinstance(value, date):
            return value
        s = str(value).strip().lower()
        if s in ("today", "now"):
            return date.today()
        try:
            return datetime.strptime(s, "%Y-%m-%d").date()
        except ValueError:
            self.fail("Expected YYYY-MM-DD or 'today'", param, ctx)


_DATE = _DateParam()


@click.group()
@click.version_option(
    __version__, prog_name="daylight", message="%(prog)s version %(version)s"
)
@click.option(
    "--home",
    help="Override the Daylight workspace directory (equivalent to setting $DAYLIGHT_HOME).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, home, verbose):
    """Daylight – recurring tasks and what needs attention today."""
    if home:
        os.environ["DAYLIGHT_HOME"] = (
            home  # Must be set before DaylightEnvironment is instantiated
        )

    env = DaylightEnvironment()
    env.ensure(init_config=True)
    config = env.load_config()

    ctx.ensure_object(dict)
    ctx.obj["ENV"] = env
    ctx.obj["CONFIG"] = config
    ctx.obj["VERBOSE"] = verbose


def _decode_or_exit(rrule: str, strict: bool):
    try:
        return decode(rrule, strict=strict)
    except RRuleDecodeError as e:
        print(f"[red]✘ Invalid recurrence:[/red] {e}")
        sys.exit(1)


@cli.command()
@click.argument("rrule")
@click.option("--start", "start_opt", type=_DATE, help="Window start. Defaults to today.")
@click.option("--end", "end_opt", type=_DATE, help="Window end. Defaults to start + look_ahead_days.")
@click.pass_context
def occurrences(ctx, rrule, start_opt, end_opt):
    """List the dates on which RRULE fires."""
    config = ctx.obj["CONFIG"]
    rule = _decode_or_exit(rrule, config.engine.strict_rrule)

    start = start_opt or date.today()
    end = end_opt or start + timedelta(days=config.window.look_ahead_days)
    if end < start:
        print("[red]✘ --end must not be before --start[/red]")
        sys.exit(1)

    found = expand(rule, start, end, config.engine.max_iterations)
    print(f"[blue]{describe_recurrence(rule)}[/blue] {fmt_date(start)} – {fmt_date(end)}")
    for d in found.dates:
        print(f"  {d.isoformat()}  {d.strftime('%a')}")
    if found.truncated:
        print(
            f"[yellow]⚠️ Stopped at {fmt_date(found.stopped_at)} after "
            f"{config.engine.max_iterations} days; the list is incomplete.[/yellow]"
        )
    if ctx.obj["VERBOSE"]:
        print(f"[blue]{len(found.dates)} occurrence(s)[/blue]")


@cli.command()
@click.argument("rrule")
@click.pass_context
def describe(ctx, rrule):
    """Describe RRULE in words."""
    rule = _decode_or_exit(rrule, ctx.obj["CONFIG"].engine.strict_rrule)
    print(describe_recurrence(rule))


def _load_or_exit(directory: str):
    files, errors = load_directory(Path(directory))
    for name, message in errors:
        print(f"[yellow]⚠️ Skipping {name}:[/yellow] {message}")
    return files


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--today", "today_opt", type=_DATE, help="Override today's date.")
@click.option(
    "--backfill",
    is_flag=True,
    help="Also add missed occurrences from the last look_behind_days.",
)
@click.option("--dry-run", is_flag=True, help="Report changes without writing files.")
@click.pass_context
def materialize(ctx, directory, today_opt, backfill, dry_run):
    """Record today's instance for every recurring task in DIRECTORY."""
    config = ctx.obj["CONFIG"]
    today = today_opt or date.today()
    files = _load_or_exit(directory)

    records = {name: tf.record for name, tf in files.items()}
    if backfill:
        result = backfill_instances(
            records,
            today,
            look_behind_days=config.window.look_behind_days,
            strict=config.engine.strict_rrule,
            max_iterations=config.engine.max_iterations,
        )
    else:
        result = materialize_today(records, today, strict=config.engine.strict_rrule)

    for name, message in result.errors:
        print(f"[red]✘ {name}:[/red] {message}")
    for name in result.updated:
        if dry_run:
            print(f"[green]would update[/green] {name}")
        else:
            save_task_file(files[name])
            print(f"[green]✔ Updated[/green] {name}")
    if not result.updated:
        print(f"[blue]Nothing to materialize for {today.isoformat()}.[/blue]")
    if result.errors:
        sys.exit(1)


def _task_or_exit(path: str):
    try:
        return load_task_file(Path(path))
    except RecordError as e:
        print(f"[red]✘ {path}:[/red] {e}")
        sys.exit(1)


@cli.command()
@click.argument("task", type=click.Path(exists=True, dir_okay=False))
@click.argument("new_date", type=_DATE)
@click.option(
    "--instance",
    "instance_date",
    type=_DATE,
    help="Move only the occurrence of this original date.",
)
@click.pass_context
def reschedule(ctx, task, new_date, instance_date):
    """Move TASK, or one of its occurrences, to NEW_DATE."""
    task_file = _task_or_exit(task)
    if instance_date is None:
        reschedule_series(task_file.record, new_date)
    else:
        try:
            reschedule_instance(
                task_file.record,
                instance_date,
                new_date,
                strict=ctx.obj["CONFIG"].engine.strict_reschedule,
            )
        except NotAnOccurrence as e:
            print(f"[red]✘ {e}[/red]")
            sys.exit(1)
    save_task_file(task_file)
    print(f"[green]✔ Moved[/green] {task_file.path.name} to {new_date.isoformat()}")


@cli.command()
@click.argument("task", type=click.Path(exists=True, dir_okay=False))
@click.argument("instance_date", type=_DATE)
def done(task, instance_date):
    """Complete TASK for INSTANCE_DATE, its original occurrence date."""
    task_file = _task_or_exit(task)
    if not complete_occurrence(task_file.record, instance_date):
        print(f"[yellow]Nothing to complete for {instance_date.isoformat()}.[/yellow]")
        return
    save_task_file(task_file)
    print(f"[green]✔ Completed[/green] {task_file.path.name} {instance_date.isoformat()}")


@cli.command()
@click.argument("task", type=click.Path(exists=True, dir_okay=False))
@click.argument("instance_date", type=_DATE)
def skip(task, instance_date):
    """Skip the occurrence of TASK on INSTANCE_DATE."""
    task_file = _task_or_exit(task)
    if not skip_instance(task_file.record, instance_date):
        print(f"[yellow]No open instance on {instance_date.isoformat()}.[/yellow]")
        return
    save_task_file(task_file)
    print(f"[green]✔ Skipped[/green] {task_file.path.name} {instance_date.isoformat()}")


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--today", "today_opt", type=_DATE, help="Override today's date.")
@click.pass_context
def classify(ctx, directory, today_opt):
    """Show the tasks in DIRECTORY grouped by what needs attention."""
    today = today_opt or date.today()
    files = _load_or_exit(directory)
    rows, errors = view_rows({name: tf.record for name, tf in files.items()}, today)
    for name, message in errors:
        print(f"[red]✘ {name}:[/red] {message}")

    console = Console()
    grouped = group_rows(rows)
    for attention in GROUP_ORDER:
        bucket = grouped[attention]
        if not bucket:
            continue
        table = Table(
            title=f"{attention.value} ({len(bucket)})",
            title_style=f"bold {GROUP_COLORS[attention.value]}",
            show_header=True,
            expand=False,
        )
        table.add_column("task")
        table.add_column("date")
        table.add_column("instance")
        table.add_column("urgency", justify="right")
        for row in bucket:
            table.add_row(
                row.title,
                fmt_date(row.effective_date),
                fmt_date(row.instance_date),
                str(row.urgency),
            )
        console.print(table)
