"""
Tests for task records and the frontmatter boundary.
"""

import pytest
import yaml
from datetime import date

from daylight.record import (
    RecordError,
    TaskRecord,
    load_directory,
    parse_markdown,
    serialize_markdown,
)

TASK_FILE = """\
---
status: open
priority: high
scheduled: 2026-02-01
tags:
  - task
recurrence: DTSTART:20260201;FREQ=DAILY
recurrence_anchor: scheduled
active_instances:
  - 2026-02-03
  - "2026-02-01"
  - not-a-date
complete_instances: [2026-02-01]
rescheduled_instances:
  2026-02-03: 2026-02-06
isSeriesTemplate: true
dateModified: 2026-02-01T08:00:00Z
contexts:
  - home
---
Water the plants.
"""


@pytest.mark.unit
class TestFromFrontmatter:
    def test_defaults(self):
        record = TaskRecord.from_frontmatter({})
        assert record.status == "open"
        assert record.priority == "none"
        assert record.scheduled is None
        assert record.recurrence is None
        assert record.recurrence_anchor == "scheduled"
        assert not record.is_series_template
        assert record.active_instances == set()
        assert record.rescheduled_instances == {}

    def test_invalid_values_fall_back(self):
        record = TaskRecord.from_frontmatter(
            {
                "status": "finished",
                "priority": 7,
                "recurrence_anchor": "whenever",
                "scheduled": "next week",
                "due": "2026-02-30",
                "recurrence": "   ",
            }
        )
        assert record.status == "open"
        assert record.priority == "none"
        assert record.recurrence_anchor == "scheduled"
        assert record.scheduled is None
        assert record.due is None
        assert record.recurrence is None

    def test_date_arrays_are_cleaned(self):
        record = TaskRecord.from_frontmatter(
            {"active_instances": ["2026-02-03", date(2026, 2, 1), "x", None, "2026-02-03"]}
        )
        assert record.active_instances == {date(2026, 2, 1), date(2026, 2, 3)}

    def test_series_flag_from_text(self):
        assert TaskRecord.from_frontmatter({"isSeriesTemplate": "true"}).is_series_template
        assert not TaskRecord.from_frontmatter({"isSeriesTemplate": "false"}).is_series_template

    def test_not_a_mapping(self):
        with pytest.raises(RecordError):
            TaskRecord.from_frontmatter(["status", "open"])

    def test_unknown_keys_survive(self):
        record = TaskRecord.from_frontmatter({"contexts": ["home"], "status": "done"})
        assert record.extra == {"contexts": ["home"]}
        assert record.to_frontmatter()["contexts"] == ["home"]

    def test_construct_by_field_name(self):
        record = TaskRecord(is_series_template=True, recurrence="DTSTART:20260201;FREQ=DAILY")
        assert record.is_series


@pytest.mark.unit
class TestToFrontmatter:
    def test_field_names_and_formats(self):
        record = TaskRecord.from_frontmatter(
            {
                "scheduled": "2026-02-01",
                "recurrence": "DTSTART:20260201;FREQ=DAILY",
                "isSeriesTemplate": True,
                "active_instances": ["2026-02-03", "2026-02-01"],
                "skipped_instances": ["2026-02-02"],
                "rescheduled_instances": {"2026-02-03": "2026-02-06"},
            }
        )
        fm = record.to_frontmatter()
        assert fm["scheduled"] == "2026-02-01"
        assert fm["active_instances"] == ["2026-02-01", "2026-02-03"]
        assert fm["skipped_instances"] == ["2026-02-02"]
        assert fm["rescheduled_instances"] == {"2026-02-03": "2026-02-06"}
        assert fm["recurrence_anchor"] == "scheduled"
        assert fm["isSeriesTemplate"] is True
        assert "complete_instances" not in fm
        assert "due" not in fm

    def test_plain_task_omits_recurrence_fields(self):
        fm = TaskRecord.from_frontmatter({"scheduled": "2026-02-01"}).to_frontmatter()
        assert "recurrence" not in fm
        assert "recurrence_anchor" not in fm
        assert "isSeriesTemplate" not in fm


@pytest.mark.unit
class TestMarkdown:
    def test_parse(self):
        record, body = parse_markdown(TASK_FILE, title="Water plants")
        assert record.title == "Water plants"
        assert record.priority == "high"
        assert record.scheduled == date(2026, 2, 1)
        assert record.active_instances == {date(2026, 2, 1), date(2026, 2, 3)}
        assert record.complete_instances == {date(2026, 2, 1)}
        assert record.rescheduled_instances == {date(2026, 2, 3): date(2026, 2, 6)}
        assert record.is_series
        assert record.date_modified is not None
        assert body == "Water the plants."

    def test_serialize_writes_plain_dates(self):
        record, body = parse_markdown(TASK_FILE)
        text = serialize_markdown(record, body)
        assert text.startswith("---\n")
        assert "scheduled: 2026-02-01\n" in text
        assert "- 2026-02-03\n" in text
        assert "2026-02-03: 2026-02-06" in text
        assert text.endswith("---\nWater the plants.\n")

    def test_serialized_text_reads_back(self):
        record, body = parse_markdown(TASK_FILE)
        again, again_body = parse_markdown(serialize_markdown(record, body))
        assert again.to_frontmatter() == record.to_frontmatter()
        assert again_body == body

    def test_frontmatter_yaml_is_standard(self):
        record, _ = parse_markdown(TASK_FILE)
        block = serialize_markdown(record).split("---\n")[1]
        data = yaml.safe_load(block)
        assert data["recurrence"] == "DTSTART:20260201;FREQ=DAILY"
        assert data["complete_instances"] == [date(2026, 2, 1)]

    def test_missing_frontmatter(self):
        with pytest.raises(RecordError):
            parse_markdown("just a note")

    def test_invalid_yaml(self):
        with pytest.raises(RecordError):
            parse_markdown("---\nstatus: [open\n---\n")

    def test_load_directory_reports_bad_files(self, tmp_path):
        (tmp_path / "good.md").write_text(TASK_FILE, encoding="utf-8")
        (tmp_path / "bad.md").write_text("no frontmatter here", encoding="utf-8")
        (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
        files, errors = load_directory(tmp_path)
        assert list(files) == ["good.md"]
        assert files["good.md"].record.title == "good"
        assert [name for name, _ in errors] == ["bad.md"]
