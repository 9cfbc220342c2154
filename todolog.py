#!/usr/bin/env python3
"""Todo-Log: a terminal work log that turns #projects, @people and [] lines into views."""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
import sys
import tempfile
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Union

import yaml
from prompt_toolkit import Application
from prompt_toolkit.application.current import get_app
from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout.containers import (
    ConditionalContainer, Float, FloatContainer,
    HSplit, Window,
)
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.dimension import Dimension as D
from prompt_toolkit.layout.layout import Layout
from prompt_toolkit.styles import Style as PtStyle
from prompt_toolkit.widgets import Button, Dialog, Label, TextArea

logger = logging.getLogger("todolog")

# ════════════════════════════════════════════════════════════════════════
#  Data Models
# ════════════════════════════════════════════════════════════════════════

TIMESTAMP_DIR_FORMAT = "%Y-%m-%d_%H-%M-%S"
TIMESTAMP_INPUT_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_INPUT_FORMAT = "%Y-%m-%d"
DEFAULT_STATES = ["open", "in-progress", "closed"]
NO_GROUP = "(No group)"


class StorageError(Exception):
    """A note, project, people or config file could not be read or written."""


def _now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class Todo:
    """A checklist line extracted from a log entry."""
    text: str
    completed: bool
    line_number: int    # 0-based line index into the entry's raw text
    projects: list[str] = field(default_factory=list)
    people: list[str] = field(default_factory=list)
    log_path: Path = field(default_factory=Path)

    @property
    def key(self) -> tuple[Path, int]:
        return (self.log_path, self.line_number)


@dataclass
class LogEntry:
    """One dated note. Tags and todos are always derived from content."""
    timestamp: datetime = field(default_factory=_now)
    content: str = ""
    projects: list[str] = field(default_factory=list)
    people: list[str] = field(default_factory=list)
    todos: list[Todo] = field(default_factory=list)
    attachments: list[Path] = field(default_factory=list)
    file_path: Path = field(default_factory=Path)

    def first_line(self) -> str:
        return self.content.split("\n", 1)[0].rstrip("\r")

    def dir_name(self) -> str:
        return self.timestamp.strftime(TIMESTAMP_DIR_FORMAT)

    def year(self) -> int:
        return self.timestamp.year

    def date(self) -> date:
        return self.timestamp.date()


def _optional_str(value) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass
class Project:
    name: str
    jira: Optional[str] = None
    description: Optional[str] = None
    status: str = "open"
    group: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> Project:
        return cls(
            name=str(data["name"]),
            jira=_optional_str(data.get("jira")),
            description=_optional_str(data.get("description")),
            status=str(data.get("status") or "open"),
            group=str(data.get("group") or ""),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "jira": self.jira,
            "description": self.description,
            "status": self.status,
            "group": self.group,
        }

    @classmethod
    def example(cls) -> Project:
        return cls(
            name="new-website",
            jira="https://jira.com/projects/WWW-123",
            description="A project to create a new look on our website",
        )


@dataclass
class Person:
    name: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    tel: Optional[str] = None
    company: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> Person:
        return cls(
            name=str(data["name"]),
            full_name=_optional_str(data.get("full_name")),
            email=_optional_str(data.get("email")),
            tel=_optional_str(data.get("tel")),
            company=_optional_str(data.get("company")),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "full_name": self.full_name,
            "email": self.email,
            "tel": self.tel,
            "company": self.company,
        }

    @classmethod
    def example(cls) -> Person:
        return cls(
            name="john", full_name="John Smith", email="john@example.com",
            tel="555 123 3333", company="foo works",
        )


@dataclass
class Config:
    """Project states and groups offered by the project editor."""
    states: list[str] = field(default_factory=lambda: list(DEFAULT_STATES))
    groups: list[str] = field(default_factory=list)

    def allowed_state_names(self) -> list[str]:
        return list(self.states) if self.states else list(DEFAULT_STATES)

    def allowed_groups(self) -> list[str]:
        return [g for g in self.groups if g]

    @classmethod
    def from_dict(cls, data: dict) -> Config:
        """Build from config.yml; states may be plain names or {name: ...} mappings."""
        states = []
        for item in data.get("states") or []:
            name = item.get("name") if isinstance(item, dict) else item
            if name is not None and str(name) not in states:
                states.append(str(name))
        groups = [str(g) for g in data.get("groups") or [] if g is not None]
        return cls(states=states or list(DEFAULT_STATES), groups=groups)

    def to_dict(self) -> dict:
        return {
            "states": [{"name": s} for s in self.states],
            "groups": list(self.groups),
        }


# ════════════════════════════════════════════════════════════════════════
#  Tag & Todo Parser
# ════════════════════════════════════════════════════════════════════════

PROJECT_MARKER = "#"
PERSON_MARKER = "@"


def _is_tag_char(c: str) -> bool:
    return c.isalnum() or c in "-_"


def _strip_tag(word: str) -> str:
    """Trim characters that are neither alphanumeric, '-' nor '_' from both ends."""
    start, end = 0, len(word)
    while start < end and not _is_tag_char(word[start]):
        start += 1
    while end > start and not _is_tag_char(word[end - 1]):
        end -= 1
    return word[start:end]


def extract_tags(text: str, marker: str) -> list[str]:
    """Return the names tagged with marker, in first-seen order, without duplicates."""
    tags: list[str] = []
    seen: set[str] = set()
    for word in text.split():
        if len(word) <= 1 or not word.startswith(marker):
            continue
        tag = _strip_tag(word[1:])
        if tag and tag not in seen:
            seen.add(tag)
            tags.append(tag)
    return tags


def extract_todos(text: str, projects: list[str], people: list[str],
                  path: Path) -> list[Todo]:
    """Return one Todo per line whose trimmed form starts with [], [x] or [X].

    Every todo carries all of the entry's tags, not just those on its line.
    """
    todos = []
    for line_number, line in enumerate(text.split("\n")):
        trimmed = line.strip()
        if trimmed.startswith("[]"):
            completed, rest = False, trimmed[2:]
        elif trimmed.startswith(("[x]", "[X]")):
            completed, rest = True, trimmed[3:]
        else:
            continue
        todos.append(Todo(
            text=rest.strip(), completed=completed, line_number=line_number,
            projects=list(projects), people=list(people), log_path=path,
        ))
    return todos


def parse_timestamp_dir(name: str) -> Optional[datetime]:
    """Parse a YYYY-MM-DD_HH-MM-SS directory name as local time, or None."""
    try:
        return datetime.strptime(name, TIMESTAMP_DIR_FORMAT).astimezone()
    except (ValueError, OverflowError, OSError):
        return None


def parse_log_entry(text: str, path: Path) -> LogEntry:
    """Build a LogEntry from raw note text. Never fails on any input."""
    entry = LogEntry(content=text, file_path=Path(path))
    stamp = parse_timestamp_dir(entry.file_path.parent.name)
    if stamp is not None:
        entry.timestamp = stamp
    entry.projects = extract_tags(text, PROJECT_MARKER)
    entry.people = extract_tags(text, PERSON_MARKER)
    entry.todos = extract_todos(text, entry.projects, entry.people, entry.file_path)
    return entry


# ════════════════════════════════════════════════════════════════════════
#  Filters
# ════════════════════════════════════════════════════════════════════════


def _any_of(selected: list[str], values: list[str]) -> bool:
    # An empty selection places no constraint.
    if not selected:
        return True
    return any(v in selected for v in values)


@dataclass
class TodoFilter:
    show_completed: bool = False
    projects: list[str] = field(default_factory=list)
    people: list[str] = field(default_factory=list)

    def matches(self, todo: Todo) -> bool:
        if not self.show_completed and todo.completed:
            return False
        return (_any_of(self.projects, todo.projects)
                and _any_of(self.people, todo.people))


@dataclass
class LogFilter:
    projects: list[str] = field(default_factory=list)
    people: list[str] = field(default_factory=list)
    start_date: Optional[date] = None
    end_date: Optional[date] = None     # inclusive

    def matches(self, entry: LogEntry) -> bool:
        if not (_any_of(self.projects, entry.projects)
                and _any_of(self.people, entry.people)):
            return False
        entry_date = entry.date()
        if self.start_date is not None and entry_date < self.start_date:
            return False
        if self.end_date is not None and entry_date > self.end_date:
            return False
        return True


@dataclass
class ProjectFilter:
    groups: list[str] = field(default_factory=list)     # "" selects ungrouped projects

    def matches(self, project: Project) -> bool:
        return not self.groups or project.group in self.groups


def filtered_view(records: list, flt) -> list:
    """Records accepted by flt, in their original order."""
    return [r for r in records if flt.matches(r)]


def toggle_member(values: list[str], value: str) -> None:
    if value in values:
        values.remove(value)
    else:
        values.append(value)


def group_key(label: str) -> str:
    return "" if label == NO_GROUP else label


def parse_filter_date(text: str, current: Optional[date]) -> Optional[date]:
    """Empty text clears the bound; invalid text keeps the current one."""
    text = text.strip()
    if not text:
        return None
    try:
        return datetime.strptime(text, DATE_INPUT_FORMAT).date()
    except ValueError:
        return current


def all_group_names(projects: list[Project]) -> list[str]:
    """Sorted distinct groups, with ungrouped projects listed last as (No group)."""
    groups = sorted({p.group for p in projects})
    if "" in groups:
        groups.remove("")
        groups.append(NO_GROUP)
    return groups


def sort_projects_for_display(projects: list[Project]) -> list[Project]:
    # Stable: projects keep file order within a group.
    return sorted(projects, key=lambda p: (p.group == "", p.group))


# ════════════════════════════════════════════════════════════════════════
#  Text Buffer
# ════════════════════════════════════════════════════════════════════════


class TextBuffer:
    """Entry text with a single cursor, addressed by character offset."""

    def __init__(self, text: str = "", cursor: Optional[int] = None):
        self.text = text
        if cursor is None:
            cursor = len(text)
        self.cursor = max(0, min(cursor, len(text)))

    def insert(self, chars: str) -> None:
        self.text = self.text[:self.cursor] + chars + self.text[self.cursor:]
        self.cursor += len(chars)

    def delete_backward(self) -> bool:
        if self.cursor == 0:
            return False
        self.text = self.text[:self.cursor - 1] + self.text[self.cursor:]
        self.cursor -= 1
        return True

    def move_left(self) -> None:
        if self.cursor > 0:
            self.cursor -= 1

    def move_right(self) -> None:
        if self.cursor < len(self.text):
            self.cursor += 1

    def line_col(self) -> tuple[int, int]:
        """Return the cursor's (line index, column), both 0-based."""
        before = self.text[:self.cursor].split("\n")
        return len(before) - 1, len(before[-1])

    def move_up(self) -> None:
        row, col = self.line_col()
        if row == 0:
            return
        lines = self.text.split("\n")
        # Column is clamped, not remembered across moves.
        target_col = min(col, len(lines[row - 1]))
        self.cursor = sum(len(line) + 1 for line in lines[:row - 1]) + target_col

    def move_down(self) -> None:
        row, col = self.line_col()
        lines = self.text.split("\n")
        if row >= len(lines) - 1:
            return
        target_col = min(col, len(lines[row + 1]))
        self.cursor = sum(len(line) + 1 for line in lines[:row + 1]) + target_col

    def set_start(self) -> None:
        self.cursor = 0

    def set_end(self) -> None:
        self.cursor = len(self.text)

    def word_start(self) -> int:
        """Offset just after the nearest whitespace before the cursor, or 0."""
        i = self.cursor
        while i > 0 and not self.text[i - 1].isspace():
            i -= 1
        return i

    def current_word(self) -> str:
        return self.text[self.word_start():self.cursor]

    def replace(self, start: int, end: int, chars: str) -> None:
        """Replace text[start:end] and leave the cursor after the new text."""
        self.text = self.text[:start] + chars + self.text[end:]
        self.cursor = start + len(chars)


# ════════════════════════════════════════════════════════════════════════
#  Autocomplete
# ════════════════════════════════════════════════════════════════════════

KIND_PROJECT = "project"
KIND_PERSON = "person"
_KIND_FOR_MARKER = {PROJECT_MARKER: KIND_PROJECT, PERSON_MARKER: KIND_PERSON}
_MARKER_FOR_KIND = {KIND_PROJECT: PROJECT_MARKER, KIND_PERSON: PERSON_MARKER}


@dataclass
class Autocomplete:
    active: bool = False
    suggestions: list[str] = field(default_factory=list)
    index: int = 0
    kind: Optional[str] = None

    @property
    def selected(self) -> Optional[str]:
        if not self.active or not self.suggestions:
            return None
        return self.suggestions[min(self.index, len(self.suggestions) - 1)]

    def select_next(self) -> None:
        if self.index < len(self.suggestions) - 1:
            self.index += 1

    def select_previous(self) -> None:
        if self.index > 0:
            self.index -= 1

    def dismiss(self) -> None:
        self.active = False


def compute_autocomplete(buffer: TextBuffer, project_names: list[str],
                         people_names: list[str]) -> Autocomplete:
    """Suggestions for the #tag or @tag being typed at the cursor."""
    word = buffer.current_word()
    if len(word) <= 1 or word[0] not in _KIND_FOR_MARKER:
        return Autocomplete()
    kind = _KIND_FOR_MARKER[word[0]]
    names = project_names if kind == KIND_PROJECT else people_names
    prefix = word[1:].lower()
    suggestions = [n for n in names if n.lower().startswith(prefix)]
    return Autocomplete(active=bool(suggestions), suggestions=suggestions,
                        index=0, kind=kind)


def accept_autocomplete(buffer: TextBuffer, state: Autocomplete) -> bool:
    """Replace the word being typed with the selected name plus a space."""
    name = state.selected
    if name is None or state.kind is None:
        return False
    buffer.replace(buffer.word_start(), buffer.cursor,
                   f"{_MARKER_FOR_KIND[state.kind]}{name} ")
    state.active = False
    state.suggestions = []
    state.index = 0
    return True


# ════════════════════════════════════════════════════════════════════════
#  Log Composer
# ════════════════════════════════════════════════════════════════════════


class LogComposer:
    """The entry being written: buffer, live suggestions, timestamp, attachments."""

    def __init__(self, project_names=(), people_names=(),
                 timestamp: Optional[datetime] = None):
        self.buffer = TextBuffer()
        self.timestamp = timestamp or _now()
        self.attachments: list[Path] = []
        self.project_names = list(project_names)
        self.people_names = list(people_names)
        self.autocomplete = Autocomplete()

    @property
    def content(self) -> str:
        return self.buffer.text

    @property
    def cursor(self) -> int:
        return self.buffer.cursor

    def _refresh(self) -> None:
        self.autocomplete = compute_autocomplete(
            self.buffer, self.project_names, self.people_names)

    def insert_char(self, c: str) -> None:
        self.buffer.insert(c)
        self._refresh()

    def delete_char(self) -> None:
        if self.buffer.delete_backward():
            self._refresh()

    def move_left(self) -> None:
        self.buffer.move_left()
        self._refresh()

    def move_right(self) -> None:
        self.buffer.move_right()
        self._refresh()

    def move_up(self) -> None:
        self.buffer.move_up()
        self._refresh()

    def move_down(self) -> None:
        self.buffer.move_down()
        self._refresh()

    def set_start(self) -> None:
        self.buffer.set_start()
        self._refresh()

    def set_end(self) -> None:
        self.buffer.set_end()
        self._refresh()

    def accept_suggestion(self) -> bool:
        return accept_autocomplete(self.buffer, self.autocomplete)

    def set_timestamp(self, text: str) -> bool:
        try:
            self.timestamp = datetime.strptime(
                text.strip(), TIMESTAMP_INPUT_FORMAT).astimezone()
        except (ValueError, OverflowError, OSError):
            return False
        return True

    def add_attachment(self, path: Path) -> bool:
        path = Path(path).expanduser()
        if not path.is_file() or path in self.attachments:
            return False
        self.attachments.append(path)
        return True

    def remove_attachment(self, index: int) -> Optional[Path]:
        if 0 <= index < len(self.attachments):
            return self.attachments.pop(index)
        return None

    def is_empty(self) -> bool:
        return not self.content.strip()

    def to_entry(self) -> LogEntry:
        entry = parse_log_entry(self.content, Path())
        entry.timestamp = self.timestamp
        entry.attachments = list(self.attachments)
        return entry


# ════════════════════════════════════════════════════════════════════════
#  File helpers
# ════════════════════════════════════════════════════════════════════════


def read_text_file(path: Path) -> str:
    """Read UTF-8 text exactly as stored (no newline translation)."""
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise StorageError(f"Failed to read {path}: {exc}") from exc


def write_text_file(path: Path, text: str) -> None:
    """Replace path's content in one step via a temp file in the same directory."""
    path = Path(path)
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    except OSError as exc:
        raise StorageError(f"Failed to write {path}: {exc}") from exc
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        raise StorageError(f"Failed to write {path}: {exc}") from exc


# ════════════════════════════════════════════════════════════════════════
#  Todo toggling
# ════════════════════════════════════════════════════════════════════════


def _flip_marker(line: str, completed: bool) -> Optional[str]:
    """Return line with its todo marker flipped, or None if it no longer matches."""
    if completed:
        hits = [i for i in (line.find("[x]"), line.find("[X]")) if i >= 0]
        if not hits:
            return None
        i = min(hits)
        return line[:i] + "[]" + line[i + 3:]
    if line.strip().startswith("[]"):
        return line.replace("[]", "[x]", 1)
    return None


def toggle_todo(todo: Todo) -> bool:
    """Flip the todo's marker in its file and, on success, its completed flag.

    The file is re-read first so a stale record never patches the wrong
    line; a line that no longer carries the expected marker is left alone
    and False is returned.
    """
    text = read_text_file(todo.log_path)
    lines = text.split("\n")
    if not 0 <= todo.line_number < len(lines):
        logger.debug("Stale todo %s:%d (file has %d lines)",
                     todo.log_path, todo.line_number, len(lines))
        return False
    new_line = _flip_marker(lines[todo.line_number], todo.completed)
    if new_line is None:
        logger.debug("Stale todo %s:%d, line left unchanged",
                     todo.log_path, todo.line_number)
        return False
    lines[todo.line_number] = new_line
    write_text_file(todo.log_path, "\n".join(lines))
    todo.completed = not todo.completed
    logger.info("Todo %s:%d marked %s", todo.log_path, todo.line_number,
                "done" if todo.completed else "open")
    return True


def sync_todo(todos: list[Todo], toggled: Todo) -> int:
    """Copy toggled's state to other records backed by the same line."""
    count = 0
    for t in todos:
        if t is not toggled and t.key == toggled.key:
            t.completed = toggled.completed
            count += 1
    return count


# ════════════════════════════════════════════════════════════════════════
#  Storage
# ════════════════════════════════════════════════════════════════════════


class LogStorage:
    """Flat files under base_dir: YAML for projects/people/config, one dir per entry."""

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)

    @property
    def projects_file(self) -> Path:
        return self.base_dir / "projects.yml"

    @property
    def people_file(self) -> Path:
        return self.base_dir / "people.yml"

    @property
    def config_file(self) -> Path:
        return self.base_dir / "config.yml"

    @property
    def log_file(self) -> Path:
        return self.base_dir / "todolog.log"

    def initialize(self) -> bool:
        """Create base_dir with example files. Returns False if it already exists."""
        if self.base_dir.exists():
            return False
        try:
            self.base_dir.mkdir(parents=True)
        except OSError as exc:
            raise StorageError(f"Failed to create {self.base_dir}: {exc}") from exc
        self.save_projects([Project.example()])
        self.save_people([Person.example()])
        self._write_yaml(self.config_file, Config().to_dict())
        return True

    # ── YAML ─────────────────────────────────────────────────────────

    def _read_yaml(self, path: Path):
        if not path.exists():
            return None
        text = read_text_file(path)
        if not text.strip():
            return None
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise StorageError(f"Failed to parse {path.name}: {exc}") from exc

    def _write_yaml(self, path: Path, data) -> None:
        text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        write_text_file(path, text)

    def _load_records(self, path: Path, factory) -> list:
        data = self._read_yaml(path)
        if data is None:
            return []
        if not isinstance(data, list) or not all(
                isinstance(d, dict) and "name" in d for d in data):
            raise StorageError(
                f"Failed to parse {path.name}: expected a list of entries with a name")
        return [factory(d) for d in data]

    def load_projects(self) -> list[Project]:
        return self._load_records(self.projects_file, Project.from_dict)

    def save_projects(self, projects: list[Project]) -> None:
        self._write_yaml(self.projects_file, [p.to_dict() for p in projects])
        logger.info("Saved %d projects", len(projects))

    def load_people(self) -> list[Person]:
        return self._load_records(self.people_file, Person.from_dict)

    def save_people(self, people: list[Person]) -> None:
        self._write_yaml(self.people_file, [p.to_dict() for p in people])
        logger.info("Saved %d people", len(people))

    def load_config(self) -> Config:
        data = self._read_yaml(self.config_file)
        if data is None:
            return Config()
        if not isinstance(data, dict):
            raise StorageError(f"Failed to parse {self.config_file.name}: expected a mapping")
        return Config.from_dict(data)

    # ── Log entries ──────────────────────────────────────────────────

    def entry_dir(self, entry: LogEntry) -> Path:
        return self.base_dir / f"log-{entry.year()}" / entry.dir_name()

    def save_log_entry(self, entry: LogEntry, attachments=()) -> Path:
        """Write entry to log-YEAR/TIMESTAMP/log.txt and copy attachments beside it."""
        entry_dir = self.entry_dir(entry)
        try:
            entry_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to create {entry_dir}: {exc}") from exc
        log_file = entry_dir / "log.txt"
        write_text_file(log_file, entry.content)
        for attachment in attachments:
            attachment = Path(attachment)
            if not attachment.exists():
                logger.warning("Attachment %s vanished, not copied", attachment)
                continue
            try:
                shutil.copy2(attachment, entry_dir / attachment.name)
            except OSError as exc:
                raise StorageError(f"Failed to copy attachment {attachment}: {exc}") from exc
        logger.info("Saved log entry %s", log_file)
        return log_file

    def _list_dir(self, path: Path) -> list[Path]:
        try:
            return sorted(path.iterdir())
        except OSError as exc:
            raise StorageError(f"Failed to list {path}: {exc}") from exc

    def iter_log_files(self):
        if not self.base_dir.is_dir():
            return
        for year_dir in self._list_dir(self.base_dir):
            if not year_dir.name.startswith("log-") or not year_dir.is_dir():
                continue
            for entry_dir in self._list_dir(year_dir):
                log_file = entry_dir / "log.txt"
                if log_file.is_file():
                    yield log_file

    def load_all_logs(self) -> list[LogEntry]:
        """Parse every log.txt, newest first. Unreadable files are skipped."""
        entries = []
        for log_file in self.iter_log_files():
            try:
                text = read_text_file(log_file)
            except StorageError as exc:
                logger.warning("Skipping %s", exc)
                continue
            entries.append(parse_log_entry(text, log_file))
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        logger.debug("Loaded %d log entries", len(entries))
        return entries

    def load_all_todos(self) -> list[Todo]:
        return [t for e in self.load_all_logs() for t in e.todos]

    def load_log_by_path(self, path: Path) -> Optional[LogEntry]:
        path = Path(path)
        if not path.exists():
            return None
        return parse_log_entry(read_text_file(path), path)

    def list_attachments(self, log_path: Path) -> list[Path]:
        """Files stored beside log.txt in the entry's directory."""
        try:
            return sorted(p for p in Path(log_path).parent.iterdir()
                          if p.is_file() and p.name != "log.txt")
        except OSError as exc:
            logger.warning("Cannot list attachments of %s: %s", log_path, exc)
            return []



# ════════════════════════════════════════════════════════════════════════
#  Application State
# ════════════════════════════════════════════════════════════════════════


@dataclass
class AppContext:
    """Data shared by every screen."""
    storage: LogStorage
    config: Config = field(default_factory=Config)
    projects: list[Project] = field(default_factory=list)
    people: list[Person] = field(default_factory=list)
    logs: list[LogEntry] = field(default_factory=list)
    todos: list[Todo] = field(default_factory=list)

    def project_names(self) -> list[str]:
        return [p.name for p in self.projects]

    def people_names(self) -> list[str]:
        return [p.name for p in self.people]

    def reload_logs(self) -> None:
        self.logs = self.storage.load_all_logs()
        self.todos = [t for e in self.logs for t in e.todos]

    def reload_projects(self) -> None:
        self.projects = self.storage.load_projects()

    def reload_people(self) -> None:
        self.people = self.storage.load_people()

    def find_project(self, name: str) -> Optional[Project]:
        for p in self.projects:
            if p.name == name:
                return p
        return None

    def find_person(self, name: str) -> Optional[Person]:
        for p in self.people:
            if p.name == name:
                return p
        return None


@dataclass
class EditForm:
    """Text fields plus choice fields cycled with up/down."""
    labels: list[str]
    values: list[str]
    choices: dict[int, list[str]] = field(default_factory=dict)
    current: int = 0

    def value(self, label: str) -> str:
        return self.values[self.labels.index(label)]

    def next_field(self) -> None:
        self.current = (self.current + 1) % len(self.labels)

    def previous_field(self) -> None:
        self.current = (self.current - 1) % len(self.labels)

    def is_choice(self) -> bool:
        return self.current in self.choices

    def type_text(self, text: str) -> None:
        if not self.is_choice():
            self.values[self.current] += text

    def backspace(self) -> None:
        if not self.is_choice():
            self.values[self.current] = self.values[self.current][:-1]

    def cycle_choice(self, step: int) -> None:
        options = self.choices.get(self.current)
        if not options:
            return
        value = self.values[self.current]
        idx = options.index(value) if value in options else 0
        idx = max(0, min(idx + step, len(options) - 1))
        self.values[self.current] = options[idx]


PROJECT_FIELDS = ["Name", "Description", "Jira", "Status", "Group"]
PERSON_FIELDS = ["Name", "Full name", "Email", "Tel", "Company"]


def project_form(project: Optional[Project], config: Config) -> EditForm:
    states = config.allowed_state_names()
    groups = [""] + config.allowed_groups()
    if project is None:
        project = Project(name="", status=states[0])
    if project.group not in groups:
        groups.append(project.group)
    if project.status not in states:
        states.append(project.status)
    return EditForm(
        labels=list(PROJECT_FIELDS),
        values=[project.name, project.description or "", project.jira or "",
                project.status, project.group],
        choices={3: states, 4: groups},
    )


def person_form(person: Optional[Person]) -> EditForm:
    if person is None:
        person = Person(name="")
    return EditForm(
        labels=list(PERSON_FIELDS),
        values=[person.name, person.full_name or "", person.email or "",
                person.tel or "", person.company or ""],
    )


# ── Screens ──────────────────────────────────────────────────────────

MENU_ITEMS = [
    ("c", "Create a new log entry"),
    ("d", "List current todos"),
    ("s", "Show logs by project/person"),
    ("p", "View projects"),
    ("o", "View people"),
    ("q", "Quit"),
]


@dataclass
class _ListScreen:
    selected: int = 0

    def items(self, ctx: AppContext) -> list:
        return []

    def move(self, step: int, ctx: AppContext) -> None:
        count = len(self.items(ctx))
        self.selected = max(0, min(self.selected + step, count - 1))

    def clamp(self, ctx: AppContext) -> None:
        self.move(0, ctx)

    def current(self, ctx: AppContext):
        items = self.items(ctx)
        if 0 <= self.selected < len(items):
            return items[self.selected]
        return None


@dataclass
class MenuScreen(_ListScreen):
    def items(self, ctx):
        return MENU_ITEMS


@dataclass
class LogEntryScreen:
    composer: LogComposer = field(default_factory=LogComposer)


@dataclass
class TodoListScreen(_ListScreen):
    filter: TodoFilter = field(default_factory=TodoFilter)

    def items(self, ctx):
        return filtered_view(ctx.todos, self.filter)


@dataclass
class LogListScreen(_ListScreen):
    filter: LogFilter = field(default_factory=LogFilter)

    def items(self, ctx):
        return filtered_view(ctx.logs, self.filter)


@dataclass
class ViewLogScreen:
    path: Path = field(default_factory=Path)
    entry: Optional[LogEntry] = None
    scroll: int = 0

    def scroll_by(self, step: int) -> None:
        lines = self.entry.content.count("\n") if self.entry else 0
        self.scroll = max(0, min(self.scroll + step, lines))


@dataclass
class ProjectListScreen(_ListScreen):
    filter: ProjectFilter = field(default_factory=ProjectFilter)

    def items(self, ctx):
        return sort_projects_for_display(filtered_view(ctx.projects, self.filter))


@dataclass
class ProjectDetailsScreen(_ListScreen):
    name: str = ""

    def items(self, ctx):
        return [log for log in ctx.logs if self.name in log.projects]


@dataclass
class ProjectEditScreen:
    original_name: Optional[str] = None     # None while creating
    form: EditForm = field(default_factory=lambda: project_form(None, Config()))


@dataclass
class PeopleListScreen(_ListScreen):
    def items(self, ctx):
        return ctx.people


@dataclass
class PersonDetailsScreen(_ListScreen):
    name: str = ""

    def items(self, ctx):
        return [log for log in ctx.logs if self.name in log.people]


@dataclass
class PersonEditScreen:
    original_name: Optional[str] = None
    form: EditForm = field(default_factory=lambda: person_form(None))


Screen = Union[
    MenuScreen, LogEntryScreen, TodoListScreen, LogListScreen, ViewLogScreen,
    ProjectListScreen, ProjectDetailsScreen, ProjectEditScreen,
    PeopleListScreen, PersonDetailsScreen, PersonEditScreen,
]


class AppState:
    """The active screen, the screens behind it, and the shared context."""

    def __init__(self, storage: LogStorage):
        self.ctx = AppContext(storage=storage)
        self.screen: Screen = MenuScreen()
        self.history: list[Screen] = []
        self.notification = ""
        self.notification_task = None
        self.quit_pending = 0.0
        self.escape_pending = 0.0
        self.root_container = None
        self.dialogs = []

    def load(self) -> list[str]:
        """Load config, projects and people; return messages for what failed."""
        errors = []
        for name, loader in (("config", self.ctx.storage.load_config),
                             ("projects", self.ctx.storage.load_projects),
                             ("people", self.ctx.storage.load_people)):
            try:
                setattr(self.ctx, name, loader())
            except StorageError as exc:
                logger.error("%s", exc)
                errors.append(str(exc))
        return errors

    def notify(self, message: str) -> None:
        self.notification = message

    def expire_notification(self, message: str) -> bool:
        """Clear the status message if it is still message; a newer one stays."""
        if self.notification != message:
            return False
        self.notification = ""
        return True

    # ── Navigation ───────────────────────────────────────────────────

    def go_to(self, screen: Screen) -> None:
        self.history.append(self.screen)
        self.screen = screen

    def go_back(self) -> None:
        self.screen = self.history.pop() if self.history else MenuScreen()

    def go_home(self) -> None:
        self.history.clear()
        self.screen = MenuScreen()

    # ── Log entry ────────────────────────────────────────────────────

    def start_new_log(self) -> None:
        self.go_to(LogEntryScreen(LogComposer(
            self.ctx.project_names(), self.ctx.people_names())))

    def save_log(self) -> str:
        """Persist the entry being composed. An empty entry is rejected."""
        if not isinstance(self.screen, LogEntryScreen):
            return ""
        composer = self.screen.composer
        if composer.is_empty():
            return "Cannot save empty log entry"
        path = self.ctx.storage.save_log_entry(composer.to_entry(), composer.attachments)
        self.go_home()
        return f"Log saved to {path}"

    # ── Lists ────────────────────────────────────────────────────────

    def show_todos(self) -> None:
        self.ctx.reload_logs()
        self.go_to(TodoListScreen())

    def show_logs(self) -> None:
        self.ctx.reload_logs()
        self.go_to(LogListScreen())

    def show_projects(self) -> None:
        self.ctx.reload_projects()
        self.go_to(ProjectListScreen())

    def show_people(self) -> None:
        self.ctx.reload_people()
        self.go_to(PeopleListScreen())

    def toggle_selected_todo(self) -> bool:
        screen = self.screen
        if not isinstance(screen, TodoListScreen):
            return False
        todo = screen.current(self.ctx)
        if todo is None or not toggle_todo(todo):
            return False
        sync_todo(self.ctx.todos, todo)
        screen.clamp(self.ctx)
        return True

    def open_log(self, path: Path) -> str:
        entry = self.ctx.storage.load_log_by_path(path)
        if entry is None:
            return f"Log file not found: {path}"
        entry.attachments = self.ctx.storage.list_attachments(path)
        self.go_to(ViewLogScreen(path=Path(path), entry=entry))
        return ""

    def view_selected_log(self) -> str:
        """Open the log behind the selected todo or log line."""
        screen = self.screen
        if not isinstance(screen, _ListScreen):
            return ""
        item = screen.current(self.ctx)
        if isinstance(item, Todo):
            return self.open_log(item.log_path)
        if isinstance(item, LogEntry):
            return self.open_log(item.file_path)
        return ""

    # ── Projects ─────────────────────────────────────────────────────

    def show_project_details(self) -> None:
        screen = self.screen
        if not isinstance(screen, ProjectListScreen):
            return
        project = screen.current(self.ctx)
        if project is not None:
            self.ctx.reload_logs()
            self.go_to(ProjectDetailsScreen(name=project.name))

    def start_edit_project(self, name: Optional[str] = None) -> None:
        project = self.ctx.find_project(name) if name is not None else None
        self.go_to(ProjectEditScreen(
            original_name=project.name if project else None,
            form=project_form(project, self.ctx.config)))

    def save_edited_project(self) -> str:
        screen = self.screen
        if not isinstance(screen, ProjectEditScreen):
            return ""
        form = screen.form
        name = form.value("Name").strip()
        if not name:
            return "Project name cannot be empty"
        project = Project(
            name=name,
            description=form.value("Description") or None,
            jira=form.value("Jira") or None,
            status=form.value("Status"),
            group=form.value("Group"),
        )
        projects = list(self.ctx.projects)
        names = [p.name for p in projects]
        if screen.original_name in names:
            projects[names.index(screen.original_name)] = project
            message = "Project saved"
        else:
            projects.append(project)
            message = "Project created"
        self.ctx.storage.save_projects(projects)
        self.ctx.reload_projects()
        self.go_back()
        if isinstance(self.screen, ProjectDetailsScreen):
            self.screen.name = name
        return message

    # ── People ───────────────────────────────────────────────────────

    def show_person_details(self) -> None:
        screen = self.screen
        if not isinstance(screen, PeopleListScreen):
            return
        person = screen.current(self.ctx)
        if person is not None:
            self.ctx.reload_logs()
            self.go_to(PersonDetailsScreen(name=person.name))

    def start_edit_person(self, name: Optional[str] = None) -> None:
        person = self.ctx.find_person(name) if name is not None else None
        self.go_to(PersonEditScreen(
            original_name=person.name if person else None,
            form=person_form(person)))

    def save_edited_person(self) -> str:
        screen = self.screen
        if not isinstance(screen, PersonEditScreen):
            return ""
        form = screen.form
        name = form.value("Name").strip()
        if not name:
            return "Name cannot be empty"
        person = Person(
            name=name,
            full_name=form.value("Full name") or None,
            email=form.value("Email") or None,
            tel=form.value("Tel") or None,
            company=form.value("Company") or None,
        )
        people = list(self.ctx.people)
        names = [p.name for p in people]
        if screen.original_name in names:
            people[names.index(screen.original_name)] = person
            message = "Person saved"
        else:
            people.append(person)
            message = "Person created"
        self.ctx.storage.save_people(people)
        self.ctx.reload_people()
        self.go_back()
        if isinstance(self.screen, PersonDetailsScreen):
            self.screen.name = name
        return message


# ════════════════════════════════════════════════════════════════════════
#  Helpers
# ════════════════════════════════════════════════════════════════════════


def format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    for unit in ("KB", "MB", "GB"):
        size /= 1024
        if size < 1024 or unit == "GB":
            return f"{size:.1f} {unit}"


def _file_size(path: Path) -> str:
    try:
        return format_size(path.stat().st_size)
    except OSError:
        return "?"


def log_summary(entry: LogEntry) -> str:
    """One list line: timestamp, first 50 chars of the first line, project tags."""
    tags = " #" + (" #".join(entry.projects) if entry.projects else "-")
    return f"{entry.timestamp:%Y-%m-%d %H:%M} | {entry.first_line()[:50]}{tags}"


def todo_summary(todo: Todo) -> str:
    mark = "[x]" if todo.completed else "[ ]"
    tags = "".join(f" #{p}" for p in todo.projects)
    tags += "".join(f" @{p}" for p in todo.people)
    return f"{mark} {todo.text}{tags}"


_TOKEN_RE = re.compile(r"\s+|\S+")


def _token_style(token: str) -> str:
    if len(token) > 1 and token[0] == PROJECT_MARKER:
        return "class:tag.project"
    if len(token) > 1 and token[0] == PERSON_MARKER:
        return "class:tag.person"
    if token.startswith("[]"):
        return "class:todo.open"
    if token.startswith(("[x]", "[X]")):
        return "class:todo.done"
    return ""


def tag_fragments(text: str, cursor: Optional[int] = None) -> list:
    """Formatted text for note content, with tags and todo markers styled."""
    fragments = []
    for m in _TOKEN_RE.finditer(text):
        token, style = m.group(), _token_style(m.group())
        start, end = m.span()
        if cursor is not None and start <= cursor < end:
            split = cursor - start
            if split:
                fragments.append((style, token[:split]))
            fragments.append(("[SetCursorPosition]", ""))
            fragments.append((style, token[split:]))
        else:
            fragments.append((style, token))
    if cursor is not None and cursor >= len(text):
        fragments.append(("[SetCursorPosition]", ""))
    return fragments


def list_fragments(labels: list, selected: int, empty: str = "(empty)") -> list:
    if not labels:
        return [("class:select-list.empty", f"  {empty}\n")]
    result = []
    for i, label in enumerate(labels):
        if i == selected:
            result.append(("[SetCursorPosition]", ""))
            result.append(("class:select-list.selected", f"  {label}\n"))
        else:
            result.append(("", f"  {label}\n"))
    return result


def show_notification(state, message, duration=3.0):
    """Put message in the status bar until duration passes or another replaces it."""
    if state.notification_task:
        state.notification_task.cancel()
    state.notify(message)
    app = get_app()
    app.invalidate()

    async def _expire():
        await asyncio.sleep(duration)
        if state.expire_notification(message):
            app.invalidate()

    state.notification_task = app.create_background_task(_expire())


async def show_dialog_as_float(state, dialog):
    """Show a modal dialog as a float and await its result."""
    float_ = Float(content=dialog, transparent=False)
    state.root_container.floats.append(float_)
    state.dialogs.append(dialog)
    app = get_app()
    focused_before = app.layout.current_window
    app.layout.focus(dialog)
    try:
        result = await dialog.future
    finally:
        if float_ in state.root_container.floats:
            state.root_container.floats.remove(float_)
        if dialog in state.dialogs:
            state.dialogs.remove(dialog)
    try:
        app.layout.focus(focused_before)
    except ValueError:
        pass
    app.invalidate()
    return result


def configure_logging(log_file: Path, level: str = "INFO") -> None:
    """Log to a file; the full-screen UI owns the terminal."""
    logging.basicConfig(
        filename=str(log_file),
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


# ════════════════════════════════════════════════════════════════════════
#  Dialogs
# ════════════════════════════════════════════════════════════════════════


class InputDialog:
    """Single-line text input. Resolves to the stripped text, or None on cancel."""

    def __init__(self, title="", label_text="", initial="", ok_text="OK"):
        self.future = asyncio.Future()
        self.text_area = TextArea(
            text=initial, multiline=False, width=D(preferred=40),
        )
        self.text_area.buffer.cursor_position = len(initial)

        def accept(_buf=None):
            if not self.future.done():
                self.future.set_result(self.text_area.text.strip())

        self.text_area.buffer.accept_handler = accept
        ok_btn = Button(text=ok_text, handler=accept)
        cancel_btn = Button(text="Cancel", handler=self.cancel)
        self.dialog = Dialog(
            title=title,
            body=HSplit([Label(text=label_text), self.text_area]),
            buttons=[ok_btn, cancel_btn],
            modal=True,
        )

    def cancel(self):
        if not self.future.done():
            self.future.set_result(None)

    def __pt_container__(self):
        return self.dialog


class ChecklistDialog:
    """Multi-select filter picker. x or space toggles; selection is edited in place."""

    def __init__(self, title, options, selected):
        self.future = asyncio.Future()
        self.options = options
        self.selected = selected
        self.index = 0
        kb = KeyBindings()
        dlg = self

        @kb.add("up")
        def _up(event):
            if dlg.index > 0:
                dlg.index -= 1

        @kb.add("down")
        def _down(event):
            if dlg.index < len(dlg.options) - 1:
                dlg.index += 1

        @kb.add("x")
        @kb.add("space")
        def _toggle(event):
            if dlg.options:
                toggle_member(dlg.selected, dlg.options[dlg.index])

        @kb.add("enter")
        def _done(event):
            dlg.close()

        self.control = FormattedTextControl(
            self._get_text, focusable=True, key_bindings=kb,
        )
        self.dialog = Dialog(
            title=title,
            body=Window(content=self.control, height=D(max=12)),
            buttons=[Button(text="Done", handler=self.close)],
            modal=True,
            width=D(preferred=50),
        )

    def _get_text(self):
        labels = [
            f"{'[x]' if name in self.selected else '[ ]'} {name}"
            for name in self.options
        ]
        return list_fragments(labels, self.index, empty="(nothing to filter by)")

    def close(self):
        if not self.future.done():
            self.future.set_result(self.selected)

    def cancel(self):
        self.close()

    def __pt_container__(self):
        return self.dialog


# ════════════════════════════════════════════════════════════════════════
#  Application
# ════════════════════════════════════════════════════════════════════════

_HINTS = {
    MenuScreen: "(↑↓) navigate (enter) select (^q) quit",
    LogEntryScreen: "(^s) save (^t) timestamp (^a) attach (^r) remove attachment "
                    "(tab) complete (esc) back",
    TodoListScreen: "(x) toggle (l) view log (c) completed (p) projects (h) people (esc) back",
    LogListScreen: "(enter/l) view (s) start date (e) end date (p) projects (h) people (esc) back",
    ViewLogScreen: "(↑↓) scroll (esc) back",
    ProjectListScreen: "(enter) details (n) new (e) edit (g) groups (esc) back",
    ProjectDetailsScreen: "(enter) view log (e) edit (esc) back",
    ProjectEditScreen: "(tab/↑↓) field (←→) choose (^s) save (esc) cancel",
    PeopleListScreen: "(enter) details (n) new (e) edit (esc) back",
    PersonDetailsScreen: "(enter) view log (e) edit (esc) back",
    PersonEditScreen: "(tab/↑↓) field (^s) save (esc) cancel",
}


def create_app(storage):
    """Build and return the prompt_toolkit Application."""
    state = AppState(storage)
    ctx = state.ctx
    load_errors = state.load()

    def run(action, *args):
        """Call an AppState action; report its message or a storage failure."""
        try:
            message = action(*args)
        except StorageError as exc:
            logger.error("%s", exc)
            show_notification(state, str(exc), duration=5.0)
            return
        if message:
            show_notification(state, message)
        get_app().invalidate()

    # ── Rendering ────────────────────────────────────────────────────

    def get_title_text():
        screen = state.screen
        if isinstance(screen, LogEntryScreen):
            stamp = screen.composer.timestamp.strftime(TIMESTAMP_INPUT_FORMAT)
            return [("class:title bold", " New log entry"), ("class:hint", f"  {stamp}")]
        if isinstance(screen, TodoListScreen):
            flt = screen.filter
            parts = [("class:title bold", f" Todos ({len(screen.items(ctx))} items)")]
            parts.append(("class:hint", "  all" if flt.show_completed else "  open only"))
            if flt.projects:
                parts.append(("class:tag.project", f"  [p] {', '.join(flt.projects)}"))
            if flt.people:
                parts.append(("class:tag.person", f"  [h] {', '.join(flt.people)}"))
            return parts
        if isinstance(screen, LogListScreen):
            flt = screen.filter
            parts = [("class:title bold", f" Logs ({len(screen.items(ctx))})")]
            if flt.start_date or flt.end_date:
                start = flt.start_date.isoformat() if flt.start_date else "…"
                end = flt.end_date.isoformat() if flt.end_date else "…"
                parts.append(("class:hint", f"  {start} to {end}"))
            if flt.projects:
                parts.append(("class:tag.project", f"  [p] {', '.join(flt.projects)}"))
            if flt.people:
                parts.append(("class:tag.person", f"  [h] {', '.join(flt.people)}"))
            return parts
        if isinstance(screen, ViewLogScreen):
            title = screen.entry.timestamp.strftime(TIMESTAMP_INPUT_FORMAT) if screen.entry else ""
            return [("class:title bold", f" Log {title}")]
        if isinstance(screen, ProjectListScreen):
            parts = [("class:title bold", " Projects")]
            if screen.filter.groups:
                labels = [g or NO_GROUP for g in screen.filter.groups]
                parts.append(("class:hint", f"  [g] {', '.join(labels)}"))
            return parts
        if isinstance(screen, ProjectDetailsScreen):
            return [("class:title bold", f" Project #{screen.name}")]
        if isinstance(screen, ProjectEditScreen):
            verb = "Edit" if screen.original_name else "New"
            return [("class:title bold", f" {verb} project")]
        if isinstance(screen, PeopleListScreen):
            return [("class:title bold", " People")]
        if isinstance(screen, PersonDetailsScreen):
            return [("class:title bold", f" Person @{screen.name}")]
        if isinstance(screen, PersonEditScreen):
            verb = "Edit" if screen.original_name else "New"
            return [("class:title bold", f" {verb} person")]
        return [("class:title bold", " Todo-Log")]

    def get_hints_text():
        return [("class:hint", " " + _HINTS.get(type(state.screen), ""))]

    def get_status_text():
        if state.notification:
            return [("class:status", f" {state.notification}")]
        return [("class:status", f" {storage.base_dir}")]

    def _details_fragments(pairs, logs, selected):
        result = []
        for label, value in pairs:
            result.append(("class:form-label", f"  {label:<12}"))
            result.append(("", f"{value or '-'}\n"))
        result.append(("", "\n"))
        result.append(("class:title bold", f"  Logs ({len(logs)})\n"))
        return result + list_fragments(
            [log_summary(log) for log in logs], selected, empty="No logs yet.")

    def _form_fragments(form):
        result = []
        for i, (label, value) in enumerate(zip(form.labels, form.values)):
            current = i == form.current
            result.append(("class:form-label", f"  {label:<12} "))
            if i in form.choices:
                shown = value or "(none)"
                style = "class:select-list.selected" if current else "class:accent"
                result.append((style, f"< {shown} >"))
            else:
                result.append(("class:input", value))
                if current:
                    result.append(("[SetCursorPosition]", ""))
            result.append(("", "\n"))
        return result

    def get_body_text():
        screen = state.screen
        if isinstance(screen, MenuScreen):
            return list_fragments(
                [f"[{key}] {label}" for key, label in MENU_ITEMS], screen.selected)
        if isinstance(screen, LogEntryScreen):
            return tag_fragments(screen.composer.content, screen.composer.cursor)
        if isinstance(screen, TodoListScreen):
            return list_fragments(
                [todo_summary(t) for t in screen.items(ctx)], screen.selected,
                empty="No todos match.")
        if isinstance(screen, LogListScreen):
            return list_fragments(
                [log_summary(e) for e in screen.items(ctx)], screen.selected,
                empty="No logs match.")
        if isinstance(screen, ViewLogScreen):
            if screen.entry is None:
                return []
            lines = screen.entry.content.split("\n")[screen.scroll:]
            result = tag_fragments("\n".join(lines))
            if screen.entry.attachments:
                result.append(("class:title bold", "\n\n  Attachments\n"))
                for path in screen.entry.attachments:
                    result.append(("", f"  {path.name}  ({_file_size(path)})\n"))
            return result
        if isinstance(screen, ProjectListScreen):
            result = []
            group = None
            projects = screen.items(ctx)
            if not projects:
                return list_fragments([], 0, empty="No projects.")
            for i, project in enumerate(projects):
                if project.group != group:
                    group = project.group
                    result.append(("class:accent bold", f"▼ {group or NO_GROUP}\n"))
                label = f"{project.name:<20} {project.status:<12} {project.description or ''}"
                if i == screen.selected:
                    result.append(("[SetCursorPosition]", ""))
                    result.append(("class:select-list.selected", f"  {label}\n"))
                else:
                    result.append(("", f"  {label}\n"))
            return result
        if isinstance(screen, ProjectDetailsScreen):
            project = ctx.find_project(screen.name) or Project(name=screen.name)
            return _details_fragments(
                [("Description", project.description), ("Jira", project.jira),
                 ("Status", project.status), ("Group", project.group)],
                screen.items(ctx), screen.selected)
        if isinstance(screen, PeopleListScreen):
            return list_fragments(
                [f"{p.name:<15} {p.full_name or '':<25} {p.company or ''}"
                 for p in screen.items(ctx)],
                screen.selected, empty="No people.")
        if isinstance(screen, PersonDetailsScreen):
            person = ctx.find_person(screen.name) or Person(name=screen.name)
            return _details_fragments(
                [("Full name", person.full_name), ("Email", person.email),
                 ("Tel", person.tel), ("Company", person.company)],
                screen.items(ctx), screen.selected)
        if isinstance(screen, (ProjectEditScreen, PersonEditScreen)):
            return _form_fragments(screen.form)
        return []

    def get_suggestions_text():
        ac = state.screen.composer.autocomplete
        marker = _MARKER_FOR_KIND.get(ac.kind, "")
        result = []
        for i, name in enumerate(ac.suggestions):
            style = "class:completion.selected" if i == ac.index else "class:completion"
            result.append((style, f" {marker}{name} \n"))
        return result

    def get_attachments_text():
        result = [("class:title bold", " Attachments\n")]
        for path in state.screen.composer.attachments:
            result.append(("", f"  {path.name}  ({_file_size(path)})\n"))
        return result

    # ── Layout ───────────────────────────────────────────────────────

    is_log_entry = Condition(lambda: isinstance(state.screen, LogEntryScreen))
    is_typing = Condition(lambda: isinstance(
        state.screen, (LogEntryScreen, ProjectEditScreen, PersonEditScreen)))
    suggestions_visible = Condition(
        lambda: isinstance(state.screen, LogEntryScreen)
        and state.screen.composer.autocomplete.active)
    has_attachments = Condition(
        lambda: isinstance(state.screen, LogEntryScreen)
        and bool(state.screen.composer.attachments))

    body_window = Window(
        content=FormattedTextControl(get_body_text, focusable=True),
        wrap_lines=True,
        always_hide_cursor=~is_typing,
    )
    body = FloatContainer(
        content=body_window,
        floats=[Float(
            content=ConditionalContainer(
                Window(FormattedTextControl(get_suggestions_text),
                       width=D(max=40), height=D(max=8)),
                filter=suggestions_visible,
            ),
            xcursor=True, ycursor=True,
        )],
    )

    root = FloatContainer(
        content=HSplit([
            Window(FormattedTextControl(get_title_text), height=1),
            body,
            ConditionalContainer(
                Window(FormattedTextControl(get_attachments_text),
                       height=D(max=6), style="class:attachments"),
                filter=has_attachments,
            ),
            Window(FormattedTextControl(get_hints_text), height=1),
            Window(FormattedTextControl(get_status_text), height=1,
                   style="class:status"),
        ]),
        floats=[],
    )
    state.root_container = root

    # ── Dialog-backed actions ────────────────────────────────────────

    def ask(dialog, then):
        async def _do():
            result = await show_dialog_as_float(state, dialog)
            then(result)
            get_app().invalidate()

        asyncio.ensure_future(_do())

    def pick_tags(title, options, values):
        def _then(_result):
            if isinstance(state.screen, _ListScreen):
                state.screen.clamp(ctx)

        ask(ChecklistDialog(title, options, values), _then)

    def pick_date(flt, attr, title):
        current = getattr(flt, attr)
        initial = current.isoformat() if current else ""

        def _then(text):
            if text is None:
                return
            new = parse_filter_date(text, None)
            if text and new is None:
                show_notification(state, "Invalid date, expected YYYY-MM-DD")
                return
            setattr(flt, attr, new)
            if isinstance(state.screen, _ListScreen):
                state.screen.clamp(ctx)

        ask(InputDialog(title=title, label_text="YYYY-MM-DD (empty clears):",
                        initial=initial, ok_text="Set"), _then)

    # ── Key bindings ─────────────────────────────────────────────────

    kb = KeyBindings()

    def on(screen_type):
        return Condition(lambda: isinstance(state.screen, screen_type))

    no_float = Condition(lambda: not state.dialogs)
    is_menu = on(MenuScreen) & no_float
    is_todos = on(TodoListScreen) & no_float
    is_logs = on(LogListScreen) & no_float
    is_view = on(ViewLogScreen) & no_float
    is_projects = on(ProjectListScreen) & no_float
    is_project_details = on(ProjectDetailsScreen) & no_float
    is_people = on(PeopleListScreen) & no_float
    is_person_details = on(PersonDetailsScreen) & no_float
    is_form = on((ProjectEditScreen, PersonEditScreen)) & no_float
    is_list = on(_ListScreen) & no_float
    is_editor = is_log_entry & no_float

    # -- Global --
    @kb.add("escape", eager=True)
    def _(event):
        if state.dialogs:
            state.dialogs[-1].cancel()
            return
        screen = state.screen
        if isinstance(screen, MenuScreen):
            return
        if isinstance(screen, LogEntryScreen):
            composer = screen.composer
            if composer.autocomplete.active:
                composer.autocomplete.dismiss()
                return
            if not composer.is_empty():
                now = time.monotonic()
                if now - state.escape_pending >= 2.0:
                    state.escape_pending = now
                    show_notification(state, "Press Esc again to discard this entry.",
                                      duration=2.0)
                    return
                state.escape_pending = 0.0
                logger.info("Discarded unsaved log entry")
        state.go_back()

    @kb.add("c-q")
    def _(event):
        if state.dialogs:
            return
        now = time.monotonic()
        if now - state.quit_pending < 2.0:
            event.app.exit()
        else:
            state.quit_pending = now
            show_notification(state, "Press Ctrl+Q again to quit.", duration=2.0)

    # -- Menu --
    menu_actions = {
        "c": state.start_new_log,
        "d": state.show_todos,
        "s": state.show_logs,
        "p": state.show_projects,
        "o": state.show_people,
        "q": lambda: get_app().exit(),
    }

    for key, action in menu_actions.items():
        kb.add(key, filter=is_menu)(lambda event, action=action: run(action))

    @kb.add("enter", filter=is_menu)
    def _(event):
        key = MENU_ITEMS[state.screen.selected][0]
        run(menu_actions[key])

    # -- Lists --
    @kb.add("up", filter=is_list)
    def _(event):
        state.screen.move(-1, ctx)

    @kb.add("down", filter=is_list)
    def _(event):
        state.screen.move(1, ctx)

    @kb.add("pageup", filter=is_list)
    def _(event):
        state.screen.move(-10, ctx)

    @kb.add("pagedown", filter=is_list)
    def _(event):
        state.screen.move(10, ctx)

    @kb.add("home", filter=is_list)
    def _(event):
        state.screen.selected = 0

    @kb.add("end", filter=is_list)
    def _(event):
        state.screen.move(len(state.screen.items(ctx)), ctx)

    # -- Todo list --
    @kb.add("x", filter=is_todos)
    def _(event):
        if state.screen.current(ctx) is None:
            return

        def _toggle():
            if not state.toggle_selected_todo():
                return "Todo line changed on disk; reload to refresh."
            return ""

        run(_toggle)

    @kb.add("l", filter=is_todos)
    @kb.add("enter", filter=is_todos)
    def _(event):
        run(state.view_selected_log)

    @kb.add("c", filter=is_todos)
    def _(event):
        flt = state.screen.filter
        flt.show_completed = not flt.show_completed
        state.screen.clamp(ctx)

    @kb.add("p", filter=is_todos | is_logs)
    def _(event):
        pick_tags("Filter by project", ctx.project_names(), state.screen.filter.projects)

    @kb.add("h", filter=is_todos | is_logs)
    def _(event):
        pick_tags("Filter by person", ctx.people_names(), state.screen.filter.people)

    # -- Log list --
    @kb.add("l", filter=is_logs)
    @kb.add("enter", filter=is_logs)
    def _(event):
        run(state.view_selected_log)

    @kb.add("s", filter=is_logs)
    def _(event):
        pick_date(state.screen.filter, "start_date", "Start date")

    @kb.add("e", filter=is_logs)
    def _(event):
        pick_date(state.screen.filter, "end_date", "End date")

    # -- View log --
    @kb.add("up", filter=is_view)
    def _(event):
        state.screen.scroll_by(-1)

    @kb.add("down", filter=is_view)
    def _(event):
        state.screen.scroll_by(1)

    @kb.add("pageup", filter=is_view)
    def _(event):
        state.screen.scroll_by(-10)

    @kb.add("pagedown", filter=is_view)
    def _(event):
        state.screen.scroll_by(10)

    # -- Projects --
    @kb.add("enter", filter=is_projects)
    def _(event):
        run(state.show_project_details)

    @kb.add("n", filter=is_projects)
    def _(event):
        state.start_edit_project()

    @kb.add("e", filter=is_projects)
    def _(event):
        project = state.screen.current(ctx)
        if project is not None:
            state.start_edit_project(project.name)

    @kb.add("g", filter=is_projects)
    def _(event):
        flt = state.screen.filter
        labels = [g or NO_GROUP for g in flt.groups]

        def _then(selected):
            flt.groups = [group_key(label) for label in selected]
            state.screen.clamp(ctx)

        ask(ChecklistDialog("Filter by group", all_group_names(ctx.projects), labels),
            _then)

    @kb.add("enter", filter=is_project_details | is_person_details)
    def _(event):
        run(state.view_selected_log)

    @kb.add("e", filter=is_project_details)
    def _(event):
        state.start_edit_project(state.screen.name)

    # -- People --
    @kb.add("enter", filter=is_people)
    def _(event):
        run(state.show_person_details)

    @kb.add("n", filter=is_people)
    def _(event):
        state.start_edit_person()

    @kb.add("e", filter=is_people)
    def _(event):
        person = state.screen.current(ctx)
        if person is not None:
            state.start_edit_person(person.name)

    @kb.add("e", filter=is_person_details)
    def _(event):
        state.start_edit_person(state.screen.name)

    # -- Edit forms --
    @kb.add("tab", filter=is_form)
    @kb.add("down", filter=is_form)
    @kb.add("enter", filter=is_form)
    def _(event):
        state.screen.form.next_field()

    @kb.add("s-tab", filter=is_form)
    @kb.add("up", filter=is_form)
    def _(event):
        state.screen.form.previous_field()

    @kb.add("left", filter=is_form)
    def _(event):
        state.screen.form.cycle_choice(-1)

    @kb.add("right", filter=is_form)
    def _(event):
        state.screen.form.cycle_choice(1)

    @kb.add("backspace", filter=is_form)
    def _(event):
        state.screen.form.backspace()

    @kb.add("c-s", filter=is_form)
    def _(event):
        if isinstance(state.screen, ProjectEditScreen):
            run(state.save_edited_project)
        else:
            run(state.save_edited_person)

    # -- Log entry --
    @kb.add(Keys.Any, filter=is_typing & no_float)
    def _(event):
        data = event.data
        if len(data) != 1 or not data.isprintable():
            return
        if isinstance(state.screen, LogEntryScreen):
            state.screen.composer.insert_char(data)
        else:
            state.screen.form.type_text(data)

    @kb.add(Keys.BracketedPaste, filter=is_editor)
    def _(event):
        composer = state.screen.composer
        for c in event.data.replace("\r\n", "\n").replace("\r", "\n"):
            composer.insert_char(c)

    @kb.add("enter", filter=is_editor)
    def _(event):
        composer = state.screen.composer
        if not composer.accept_suggestion():
            composer.insert_char("\n")

    @kb.add("tab", filter=is_editor)
    def _(event):
        state.screen.composer.accept_suggestion()

    @kb.add("backspace", filter=is_editor)
    def _(event):
        state.screen.composer.delete_char()

    @kb.add("left", filter=is_editor)
    def _(event):
        state.screen.composer.move_left()

    @kb.add("right", filter=is_editor)
    def _(event):
        state.screen.composer.move_right()

    @kb.add("up", filter=is_editor)
    def _(event):
        composer = state.screen.composer
        if composer.autocomplete.active:
            composer.autocomplete.select_previous()
        else:
            composer.move_up()

    @kb.add("down", filter=is_editor)
    def _(event):
        composer = state.screen.composer
        if composer.autocomplete.active:
            composer.autocomplete.select_next()
        else:
            composer.move_down()

    @kb.add("home", filter=is_editor)
    def _(event):
        state.screen.composer.set_start()

    @kb.add("end", filter=is_editor)
    def _(event):
        state.screen.composer.set_end()

    @kb.add("c-s", filter=is_editor)
    def _(event):
        run(state.save_log)

    @kb.add("c-t", filter=is_editor)
    def _(event):
        composer = state.screen.composer

        def _then(text):
            if text is None:
                return
            if not composer.set_timestamp(text):
                show_notification(state, "Invalid timestamp, expected YYYY-MM-DD HH:MM:SS")

        ask(InputDialog(title="Timestamp", label_text="YYYY-MM-DD HH:MM:SS",
                        initial=composer.timestamp.strftime(TIMESTAMP_INPUT_FORMAT),
                        ok_text="Set"), _then)

    @kb.add("c-a", filter=is_editor)
    def _(event):
        composer = state.screen.composer

        def _then(text):
            if not text:
                return
            if composer.add_attachment(Path(text)):
                show_notification(state, f"Attached {Path(text).name}")
            else:
                show_notification(state, f"Not a file or already attached: {text}")

        ask(InputDialog(title="Attach file", label_text="Path:", ok_text="Attach"),
            _then)

    @kb.add("c-r", filter=is_editor)
    def _(event):
        composer = state.screen.composer
        removed = composer.remove_attachment(len(composer.attachments) - 1)
        if removed is not None:
            show_notification(state, f"Removed {removed.name}")

    # ── Style ────────────────────────────────────────────────────────

    style = PtStyle.from_dict({
        "": "#e0e0e0 bg:#2a2a2a",
        "title": "#e0e0e0",
        "status": "#8a8a8a bg:#333333",
        "hint": "#777777",
        "accent": "#e0af68",
        "input": "#e0e0e0",
        "select-list.selected": "bg:#444444",
        "select-list.empty": "#777777",
        "form-label": "#aaaaaa",
        "attachments": "bg:#303030",
        "completion": "#e0e0e0 bg:#3b3b3b",
        "completion.selected": "#2a2a2a bg:#e0af68",
        "tag.project": "#9ece6a",
        "tag.person": "#7aa2f7",
        "todo.open": "#e0af68 bold",
        "todo.done": "#666666",
        "dialog": "#e0e0e0 bg:#2a2a2a",
        "dialog.body": "#e0e0e0 bg:#2a2a2a",
        "dialog text-area": "#e0e0e0 bg:#333333",
        "dialog frame.label": "#e0e0e0 bold",
        "dialog shadow": "bg:#111111",
        "button": "#e0e0e0 bg:#555555",
        "button.focused": "#e0e0e0 bg:#777777",
        "label": "#e0e0e0",
    })

    # ── Build Application ────────────────────────────────────────────

    layout = Layout(root, focused_element=body_window)

    app = Application(
        layout=layout,
        key_bindings=kb,
        style=style,
        full_screen=True,
        mouse_support=False,
    )
    app.ttimeoutlen = 0.05

    if load_errors:
        state.notify(load_errors[0])

    return app


# ════════════════════════════════════════════════════════════════════════
#  Entry point
# ════════════════════════════════════════════════════════════════════════


def main() -> None:
    if os.environ.get("TODOLOG_DIR"):
        data_dir = Path(os.environ["TODOLOG_DIR"]).expanduser()
    else:
        data_dir = Path.home() / "todo-log"

    storage = LogStorage(data_dir)
    try:
        created = storage.initialize()
    except StorageError as exc:
        print(f"todolog: {exc}", file=sys.stderr)
        sys.exit(1)
    configure_logging(storage.log_file, os.environ.get("TODOLOG_LOG_LEVEL", "INFO"))
    if created:
        logger.info("Created %s with example project and person", data_dir)

    app = create_app(storage)
    app.run()


if __name__ == "__main__":
    main()
