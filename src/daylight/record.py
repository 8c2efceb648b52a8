"""
Typed task records and the YAML frontmatter boundary.

A task lives in a markdown file whose frontmatter carries its schedule,
its recurrence string and the instance collections. Field names and the
YYYY-MM-DD date format are shared with other tools that read the same
files, so they are emitted exactly as they are read.

Default-filling rules, applied once when a record is parsed:

- an unknown ``status`` becomes ``open``, an unknown ``priority`` becomes
  ``none`` and an unknown ``recurrence_anchor`` becomes ``scheduled``;
- a date field holding anything but a valid date becomes ``None``;
- entries of the date arrays that are not valid dates are dropped and
  duplicates collapse;
- ``rescheduled_instances`` pairs with an invalid key or value are dropped;
- keys the engine does not know are kept in ``extra`` and written back.
"""

import re
from collections.abc import Mapping
from datetime import date, datetime
from pathlib import Path
from typing import Any, Literal, NamedTuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .shared import DaylightError, coerce_date, log_msg

Status = Literal["open", "done", "cancelled"]
Priority = Literal["none", "low", "normal", "high"]
Anchor = Literal["scheduled", "completion"]

STATUSES = ("open", "done", "cancelled")
PRIORITIES = ("none", "low", "normal", "high")
ANCHORS = ("scheduled", "completion")

FRONTMATTER_RE = re.compile(r"^\s*---\r?\n(.*?)\r?\n---\r?\n?(.*)$", re.DOTALL)

FRONTMATTER_KEYS = {
    "status",
    "priority",
    "scheduled",
    "due",
    "tags",
    "recurrence",
    "recurrence_anchor",
    "active_instances",
    "complete_instances",
    "skipped_instances",
    "rescheduled_instances",
    "isSeriesTemplate",
    "dateModified",
}


class RecordError(DaylightError, ValueError):
    """A task file or frontmatter mapping that cannot become a TaskRecord."""


def _date_set(value) -> set[date]:
    if value is None:
        return set()
    if isinstance(value, (str, date)):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        return set()
    return {d for d in (coerce_date(v) for v in value) if d is not None}


class TaskRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    status: Status = "open"
    priority: Priority = "none"
    scheduled: date | None = None
    due: date | None = None
    tags: list[str] = Field(default_factory=list)

    recurrence: str | None = None
    recurrence_anchor: Anchor = "scheduled"
    is_series_template: bool = Field(False, alias="isSeriesTemplate")

    active_instances: set[date] = Field(default_factory=set)
    complete_instances: set[date] = Field(default_factory=set)
    skipped_instances: set[date] = Field(default_factory=set)
    rescheduled_instances: dict[date, date] = Field(default_factory=dict)

    date_modified: str | None = Field(None, alias="dateModified")
    extra: dict[str, Any] = Field(default_factory=dict)

    # ─── normalization ───────────────────────────────────

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return v if v in STATUSES else "open"

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, v):
        return v if v in PRIORITIES else "none"

    @field_validator("recurrence_anchor", mode="before")
    @classmethod
    def _anchor(cls, v):
        return v if v in ANCHORS else "scheduled"

    @field_validator("scheduled", "due", mode="before")
    @classmethod
    def _date(cls, v):
        return coerce_date(v)

    @field_validator("recurrence", mode="before")
    @classmethod
    def _recurrence(cls, v):
        if isinstance(v, str) and v.strip():
            return v.strip()
        return None

    @field_validator("is_series_template", mode="before")
    @classmethod
    def _flag(cls, v):
        if isinstance(v, str):
            return v.strip().lower() in ("true", "yes", "1")
        return bool(v)

    @field_validator(
        "active_instances", "complete_instances", "skipped_instances", mode="before"
    )
    @classmethod
    def _dates(cls, v):
        return _date_set(v)

    @field_validator("rescheduled_instances", mode="before")
    @classmethod
    def _reschedules(cls, v):
        if not isinstance(v, Mapping):
            return {}
        pairs = ((coerce_date(k), coerce_date(d)) for k, d in v.items())
        return {k: d for k, d in pairs if k is not None and d is not None}

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v):
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple)):
            return []
        return [str(t).strip() for t in v if t is not None and str(t).strip()]

    @field_validator("date_modified", mode="before")
    @classmethod
    def _timestamp(cls, v):
        if isinstance(v, datetime):
            return v.isoformat()
        if isinstance(v, str) and v.strip():
            return v.strip()
        return None

    # ─── derived state ───────────────────────────────────

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence)

    @property
    def is_series(self) -> bool:
        """A series template: holds the recurrence rule itself."""
        return self.is_recurring and self.is_series_template

    def is_open(self, instance_date: date) -> bool:
        return (
            instance_date not in self.complete_instances
            and instance_date not in self.skipped_instances
        )

    def open_instances(self) -> list[date]:
        """Active instances neither completed nor skipped, ascending."""
        return sorted(d for d in self.active_instances if self.is_open(d))

    def touch(self) -> None:
        self.date_modified = datetime.now().astimezone().isoformat(timespec="seconds")

    # ─── frontmatter boundary ────────────────────────────

    @classmethod
    def from_frontmatter(cls, data, title: str = "") -> "TaskRecord":
        if not isinstance(data, Mapping):
            raise RecordError(
                f"frontmatter must be a mapping, not {type(data).__name__}"
            )
        known: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            if key in FRONTMATTER_KEYS:
                known[key] = value
            else:
                extra[str(key)] = value
        try:
            return cls.model_validate({**known, "title": title, "extra": extra})
        except ValidationError as e:
            raise RecordError(str(e)) from e

    def to_frontmatter(self, dates_as_text: bool = True) -> dict[str, Any]:
        """
        Mapping suitable for YAML output. Empty fields are omitted and
        instance arrays are ascending. With dates_as_text=False, dates are
        left as date objects so that a YAML dumper writes them unquoted.
        """

        def out(d: date):
            return d.isoformat() if dates_as_text else d

        result: dict[str, Any] = {
            "status": self.status,
            "priority": self.priority,
        }
        if self.scheduled:
            result["scheduled"] = out(self.scheduled)
        if self.due:
            result["due"] = out(self.due)
        if self.tags:
            result["tags"] = list(self.tags)
        if self.recurrence:
            result["recurrence"] = self.recurrence
            result["recurrence_anchor"] = self.recurrence_anchor
        for key in ("active_instances", "complete_instances", "skipped_instances"):
            values = getattr(self, key)
            if values:
                result[key] = [out(d) for d in sorted(values)]
        if self.rescheduled_instances:
            result["rescheduled_instances"] = {
                out(k): out(self.rescheduled_instances[k])
                for k in sorted(self.rescheduled_instances)
            }
        if self.is_series_template:
            result["isSeriesTemplate"] = True
        if self.date_modified:
            result["dateModified"] = self.date_modified
        for key, value in self.extra.items():
            result.setdefault(key, value)
        return result


# ─── markdown files ──────────────────────────────────────


class TaskFile(NamedTuple):
    path: Path
    record: TaskRecord
    body: str


def parse_markdown(text: str, title: str = "") -> tuple[TaskRecord, str]:
    match = FRONTMATTER_RE.match(text or "")
    if not match:
        raise RecordError("no YAML frontmatter block")
    yaml_text, body = match.groups()
    try:
        data = yaml.safe_load(yaml_text)
    except yaml.YAMLError as e:
        raise RecordError(f"invalid YAML frontmatter: {e}") from e
    return TaskRecord.from_frontmatter(data or {}, title=title), body.strip()


def serialize_markdown(record: TaskRecord, body: str = "") -> str:
    dumped = yaml.safe_dump(
        record.to_frontmatter(dates_as_text=False),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    content = (body or "").strip()
    separator = "\n" if content else ""
    return f"---\n{dumped}---{separator}{content}\n"


def load_task_file(path: Path) -> TaskFile:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise RecordError(f"cannot read {path}: {e}") from e
    record, body = parse_markdown(text, title=path.stem)
    return TaskFile(path, record, body)


def save_task_file(task_file: TaskFile) -> None:
    task_file.path.write_text(
        serialize_markdown(task_file.record, task_file.body), encoding="utf-8"
    )


def load_directory(directory: Path) -> tuple[dict[str, TaskFile], list[tuple[str, str]]]:
    """
    Load every ``*.md`` task file in directory, keyed by filename.

    Files that cannot be parsed are logged and returned in the error
    list; they never stop the rest from loading.
    """
    files: dict[str, TaskFile] = {}
    errors: list[tuple[str, str]] = []
    for path in sorted(Path(directory).glob("*.md")):
        try:
            files[path.name] = load_task_file(path)
        except RecordError as e:
            log_msg(f"skipping {path.name}: {e}")
            errors.append((path.name, str(e)))
    return files, errors
