#!/usr/bin/env python3
"""
Tests for note parsing, filters, the entry buffer, todo toggling and storage.
"""

import tempfile
from datetime import date, datetime
from pathlib import Path
from unittest import mock

# Add source paths for imports
import sys
sys.path.insert(0, str(Path(__file__).parent))

from todolog import (
    NO_GROUP, AppState, Autocomplete, Config, EditForm, LogComposer, LogEntry,
    LogEntryScreen, LogFilter, LogListScreen, LogStorage, MenuScreen, Person, Project,
    ProjectEditScreen, ProjectFilter, ProjectListScreen, StorageError, TextBuffer,
    Todo, TodoFilter, TodoListScreen, ViewLogScreen, accept_autocomplete,
    all_group_names, compute_autocomplete, extract_tags, filtered_view,
    format_size, log_summary, parse_filter_date, parse_log_entry,
    parse_timestamp_dir, read_text_file, sort_projects_for_display, sync_todo,
    tag_fragments, toggle_member, toggle_todo, write_text_file,
)


def _stamp(*args):
    return datetime(*args).astimezone()


# ── Parser ───────────────────────────────────────────────────────────


def test_extract_tags():
    assert extract_tags("#a #b #a", "#") == ["a", "b"]
    assert extract_tags("see #foo, then #", "#") == ["foo"]
    assert extract_tags("#bar) #... #x_y-z!", "#") == ["bar", "x_y-z"]
    # Only tokens that begin with the marker count
    assert extract_tags("(#bar)", "#") == []
    assert extract_tags("mail a@b.com and @ann.", "@") == ["ann"]
    # Markers of the other kind are ignored
    assert extract_tags("#web @ann", "@") == ["ann"]
    print("  extract_tags OK")


def test_parse_todos():
    text = "Plan #web @ann\n  [] write docs\n[x] ship\n[X] review\nnot [] a todo\n[]\n[ ] spaced\n"
    entry = parse_log_entry(text, Path("/tmp/log-2024/2024-03-05_14-30-00/log.txt"))
    todos = entry.todos
    assert [(t.text, t.completed, t.line_number) for t in todos] == [
        ("write docs", False, 1),
        ("ship", True, 2),
        ("review", True, 3),
        ("", False, 5),
    ]
    # Every todo inherits all of the entry's tags
    assert all(t.projects == ["web"] and t.people == ["ann"] for t in todos)
    assert all(t.log_path == entry.file_path for t in todos)

    simple = parse_log_entry("[] buy milk\n[x] call bob\n", Path("log.txt"))
    assert [(t.text, t.completed, t.line_number) for t in simple.todos] == [
        ("buy milk", False, 0), ("call bob", True, 1)]
    print("  todo extraction OK")


def test_parse_is_idempotent():
    text = "#b #a @z [] one\n[x] two #c\n@y"
    path = Path("/tmp/log-2024/2024-01-01_00-00-00/log.txt")
    first, second = parse_log_entry(text, path), parse_log_entry(text, path)
    assert first.projects == second.projects == ["b", "a", "c"]
    assert first.people == second.people == ["z", "y"]
    assert first.todos == second.todos
    print("  parse idempotence OK")


def test_parse_timestamp_dir():
    entry = parse_log_entry("hi", Path("/x/log-2024/2024-03-05_14-30-07/log.txt"))
    assert (entry.timestamp.year, entry.timestamp.month, entry.timestamp.day) == (2024, 3, 5)
    assert (entry.timestamp.hour, entry.timestamp.minute, entry.timestamp.second) == (14, 30, 7)
    assert entry.dir_name() == "2024-03-05_14-30-07"

    # Malformed names fall back to the current time
    assert parse_timestamp_dir("notes") is None
    assert parse_timestamp_dir("2024-13-45_99-00-00") is None
    before = datetime.now().astimezone()
    odd = parse_log_entry("hi", Path("/x/misc/log.txt"))
    assert abs((odd.timestamp - before).total_seconds()) < 60
    print("  timestamp directories OK")


def test_parse_never_fails():
    for text in ["", "\n\n", "#", "@", "[", "[x", "\x00� #é @ü", "[]" * 50]:
        entry = parse_log_entry(text, Path("log.txt"))
        assert entry.content == text
    assert parse_log_entry("#é-1", Path("log.txt")).projects == ["é-1"]
    print("  parser totality OK")


# ── Filters ──────────────────────────────────────────────────────────


def _todo(completed=False, projects=(), people=()):
    return Todo(text="t", completed=completed, line_number=0,
                projects=list(projects), people=list(people), log_path=Path("log.txt"))


def test_todo_filter():
    open_a = _todo(projects=["a"], people=["x"])
    done_b = _todo(completed=True, projects=["b"])
    untagged = _todo()

    flt = TodoFilter()
    assert filtered_view([open_a, done_b, untagged], flt) == [open_a, untagged]
    flt.show_completed = True
    assert filtered_view([open_a, done_b, untagged], flt) == [open_a, done_b, untagged]

    # Any-of within a dimension
    flt.projects = ["a", "b"]
    assert filtered_view([open_a, done_b, untagged], flt) == [open_a, done_b]
    # AND across dimensions
    flt.people = ["x"]
    assert filtered_view([open_a, done_b, untagged], flt) == [open_a]
    flt.people = ["nobody"]
    assert filtered_view([open_a, done_b, untagged], flt) == []
    print("  TodoFilter OK")


def test_log_filter_dates():
    entry = LogEntry(timestamp=_stamp(2024, 3, 5, 23, 59), content="#a", projects=["a"])
    assert LogFilter().matches(entry)
    assert LogFilter(start_date=date(2024, 3, 5), end_date=date(2024, 3, 5)).matches(entry)
    assert LogFilter(end_date=date(2024, 3, 5)).matches(entry)
    assert not LogFilter(start_date=date(2024, 3, 6)).matches(entry)
    assert not LogFilter(end_date=date(2024, 3, 4)).matches(entry)
    assert LogFilter(projects=["a", "z"], start_date=date(2024, 1, 1)).matches(entry)
    assert not LogFilter(projects=["z"]).matches(entry)
    assert not LogFilter(people=["ann"]).matches(entry)
    print("  LogFilter OK")


def test_project_groups():
    projects = [
        Project(name="a", group="work"),
        Project(name="b"),
        Project(name="c", group="home"),
        Project(name="d", group="work"),
    ]
    assert all_group_names(projects) == ["home", "work", NO_GROUP]
    assert [p.name for p in sort_projects_for_display(projects)] == ["c", "a", "d", "b"]
    assert filtered_view(projects, ProjectFilter(groups=[""])) == [projects[1]]
    assert [p.name for p in filtered_view(projects, ProjectFilter(groups=["work"]))] == ["a", "d"]
    assert filtered_view(projects, ProjectFilter()) == projects
    print("  project groups OK")


def test_filter_helpers():
    values = ["a"]
    toggle_member(values, "b")
    toggle_member(values, "a")
    assert values == ["b"]

    current = date(2024, 1, 1)
    assert parse_filter_date("2024-02-01", current) == date(2024, 2, 1)
    assert parse_filter_date("", current) is None
    assert parse_filter_date("  ", current) is None
    assert parse_filter_date("2024-02-30", current) == current
    assert parse_filter_date("yesterday", None) is None
    print("  filter helpers OK")


# ── Text buffer & autocomplete ───────────────────────────────────────


def test_text_buffer_vertical_moves():
    buf = TextBuffer("abcdef\nxy", 6)
    buf.move_down()
    assert buf.cursor == 9
    buf.move_down()
    assert buf.cursor == 9
    buf.move_up()
    assert buf.cursor == 2
    buf.move_up()
    assert buf.cursor == 2

    # The column is clamped per move, not remembered
    buf = TextBuffer("abcdef\nxy\nabcdef", 6)
    buf.move_down()
    buf.move_down()
    assert buf.cursor == 12
    assert buf.line_col() == (2, 2)

    # Offsets count characters, not bytes
    buf = TextBuffer("h\u00e9llo\n\u00fc", 5)
    buf.move_down()
    assert buf.cursor == 7
    buf.move_up()
    assert buf.cursor == 1
    print("  vertical cursor moves OK")


def test_text_buffer_edits():
    buf = TextBuffer("abc", 0)
    assert buf.delete_backward() is False
    assert (buf.text, buf.cursor) == ("abc", 0)
    buf.move_left()
    assert buf.cursor == 0

    buf.set_end()
    buf.move_right()
    assert buf.cursor == 3
    buf.insert("é")
    assert (buf.text, buf.cursor) == ("abcé", 4)
    buf.move_left()
    buf.move_left()
    assert buf.delete_backward() is True
    assert (buf.text, buf.cursor) == ("acé", 1)
    buf.insert("\n")
    assert buf.line_col() == (1, 0)
    buf.set_start()
    assert buf.cursor == 0

    assert TextBuffer("hello #pr").current_word() == "#pr"
    assert TextBuffer("a\n#x", 4).word_start() == 2
    assert TextBuffer("abc", 99).cursor == 3
    print("  buffer edits OK")


def test_autocomplete_accept():
    buf = TextBuffer("hello #pr")
    state = compute_autocomplete(buf, ["other", "project-x"], ["pr-person"])
    assert state.active and state.kind == "project"
    assert state.suggestions == ["project-x"]
    assert accept_autocomplete(buf, state)
    assert buf.text == "hello #project-x "
    assert buf.cursor == 17 == len(buf.text)
    assert not state.active
    assert accept_autocomplete(buf, state) is False
    print("  autocomplete accept OK")


def test_autocomplete_rules():
    people = ["john", "Jane", "bob"]
    assert compute_autocomplete(TextBuffer("@j"), [], people).suggestions == ["john", "Jane"]
    assert compute_autocomplete(TextBuffer("#PR"), ["project-x"], []).suggestions == ["project-x"]
    assert not compute_autocomplete(TextBuffer("#"), ["a"], []).active
    assert not compute_autocomplete(TextBuffer("hello"), ["hello"], []).active
    assert not compute_autocomplete(TextBuffer("#zz"), ["a"], []).active

    # Replacement text may be shorter than what was typed
    buf = TextBuffer("x #Pro")
    accept_autocomplete(buf, compute_autocomplete(buf, ["pro"], []))
    assert (buf.text, buf.cursor) == ("x #pro ", 7)

    # Accepting in the middle of text inserts rather than overwrites
    buf = TextBuffer("see #p later", 6)
    accept_autocomplete(buf, compute_autocomplete(buf, ["project-x"], []))
    assert (buf.text, buf.cursor) == ("see #project-x  later", 15)

    ac = Autocomplete(active=True, suggestions=["a", "b"])
    ac.select_previous()
    assert ac.index == 0
    ac.select_next()
    ac.select_next()
    assert ac.selected == "b"
    ac.dismiss()
    assert ac.selected is None
    print("  autocomplete rules OK")


def test_log_composer():
    with tempfile.TemporaryDirectory() as tmpdir:
        composer = LogComposer(["web", "ops"], ["ann"])
        for c in "Deploy #w":
            composer.insert_char(c)
        assert composer.autocomplete.suggestions == ["web"]
        assert composer.accept_suggestion()
        for c in "with @":
            composer.insert_char(c)
        assert not composer.autocomplete.active
        composer.insert_char("a")
        assert composer.autocomplete.active
        composer.move_left()
        assert not composer.autocomplete.active
        composer.set_end()
        composer.accept_suggestion()
        assert composer.content == "Deploy #web with @ann "

        assert composer.set_timestamp("2024-03-05 09:15:00")
        assert not composer.set_timestamp("tomorrow")
        assert composer.timestamp.hour == 9

        attachment = Path(tmpdir) / "plan.txt"
        attachment.write_text("plan")
        assert not composer.add_attachment(Path(tmpdir) / "missing.txt")
        assert composer.add_attachment(attachment)
        assert not composer.add_attachment(attachment)
        entry = composer.to_entry()
        assert entry.projects == ["web"] and entry.people == ["ann"]
        assert entry.attachments == [attachment]
        assert entry.dir_name() == "2024-03-05_09-15-00"
        assert composer.remove_attachment(0) == attachment
        assert composer.remove_attachment(0) is None

        assert LogComposer().is_empty()
        blank = LogComposer()
        blank.insert_char(" ")
        blank.insert_char("\n")
        assert blank.is_empty()
    print("  LogComposer OK")


# ── Toggle ───────────────────────────────────────────────────────────


def _write_log(tmpdir, text):
    path = Path(tmpdir) / "log-2024" / "2024-03-05_14-30-00" / "log.txt"
    path.parent.mkdir(parents=True)
    write_text_file(path, text)
    return path


def test_toggle_round_trip():
    with tempfile.TemporaryDirectory() as tmpdir:
        original = "Plan #web\n[] a\n  [x] b\n"
        path = _write_log(tmpdir, original)
        todos = parse_log_entry(read_text_file(path), path).todos

        assert toggle_todo(todos[0])
        assert todos[0].completed
        assert read_text_file(path) == "Plan #web\n[x] a\n  [x] b\n"
        assert toggle_todo(todos[0])
        assert path.read_bytes() == original.encode()

        assert toggle_todo(todos[1])
        assert read_text_file(path) == "Plan #web\n[] a\n  [] b\n"
        assert toggle_todo(todos[1])
        assert path.read_bytes() == original.encode()
    print("  toggle round trip OK")


def test_toggle_crlf_and_case():
    with tempfile.TemporaryDirectory() as tmpdir:
        original = "[] a\r\n[X] b\r\nend"
        path = _write_log(tmpdir, original)
        todos = parse_log_entry(read_text_file(path), path).todos
        assert [t.text for t in todos] == ["a", "b"]

        toggle_todo(todos[0])
        toggle_todo(todos[0])
        assert path.read_bytes() == original.encode()

        # An upper-case marker reopens to [] and closes again as [x]
        toggle_todo(todos[1])
        toggle_todo(todos[1])
        assert read_text_file(path) == "[] a\r\n[x] b\r\nend"
    print("  toggle CRLF OK")


def test_toggle_stale_record():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_log(tmpdir, "[] a\nb\n")
        todo = parse_log_entry(read_text_file(path), path).todos[0]

        write_text_file(path, "[x] a\nb\n")
        assert toggle_todo(todo) is False
        assert todo.completed is False
        assert read_text_file(path) == "[x] a\nb\n"

        far = Todo(text="a", completed=False, line_number=40, log_path=path)
        assert toggle_todo(far) is False

        missing = Todo(text="a", completed=False, line_number=0,
                       log_path=Path(tmpdir) / "nope" / "log.txt")
        try:
            toggle_todo(missing)
        except StorageError:
            pass
        else:
            raise AssertionError("expected StorageError")
        assert missing.completed is False
    print("  stale toggles OK")


def test_sync_todo():
    path = Path("/tmp/log.txt")
    first = Todo(text="a", completed=True, line_number=2, log_path=path)
    copy = Todo(text="a", completed=False, line_number=2, log_path=path)
    other = Todo(text="b", completed=False, line_number=3, log_path=path)
    assert sync_todo([first, copy, other], first) == 1
    assert copy.completed and not other.completed
    print("  sync_todo OK")


# ── Storage ──────────────────────────────────────────────────────────


def test_storage_initialize():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = LogStorage(Path(tmpdir) / "todo-log")
        assert storage.initialize() is True
        assert storage.initialize() is False
        assert storage.load_projects() == [Project.example()]
        assert storage.load_people() == [Person.example()]
        assert storage.load_config() == Config()
        assert storage.load_all_logs() == []
    print("  LogStorage.initialize OK")


def test_storage_yaml():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = LogStorage(Path(tmpdir))
        assert storage.load_projects() == []
        storage.projects_file.write_text("")
        assert storage.load_projects() == []

        projects = [Project(name="web", jira=None, description="Site", status="closed",
                            group="work")]
        storage.save_projects(projects)
        assert storage.load_projects() == projects

        storage.config_file.write_text(
            "states:\n  - name: todo\n  - doing\ngroups:\n  - work\n")
        config = storage.load_config()
        assert config.allowed_state_names() == ["todo", "doing"]
        assert config.allowed_groups() == ["work"]

        for bad in ("- name: [unclosed\n", "name: web\n", "- jira: x\n"):
            storage.projects_file.write_text(bad)
            try:
                storage.load_projects()
            except StorageError as exc:
                assert "projects.yml" in str(exc)
            else:
                raise AssertionError(f"expected StorageError for {bad!r}")
    print("  YAML storage OK")


def test_storage_log_entries():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = LogStorage(Path(tmpdir) / "data")
        storage.initialize()
        attachment = Path(tmpdir) / "diagram.png"
        attachment.write_bytes(b"\x89PNG")

        entry = LogEntry(timestamp=_stamp(2024, 3, 5, 14, 30), content="[] one #web")
        path = storage.save_log_entry(entry, [attachment])
        assert path == storage.base_dir / "log-2024" / "2024-03-05_14-30-00" / "log.txt"
        assert read_text_file(path) == "[] one #web"
        assert (path.parent / "diagram.png").read_bytes() == b"\x89PNG"
        assert storage.list_attachments(path) == [path.parent / "diagram.png"]

        storage.save_log_entry(LogEntry(timestamp=_stamp(2024, 6, 1, 8, 0), content="later"))
        storage.save_log_entry(LogEntry(timestamp=_stamp(2023, 12, 31, 23, 0), content="[x] old"))
        logs = storage.load_all_logs()
        assert [log.content for log in logs] == ["later", "[] one #web", "[x] old"]
        assert logs[1].projects == ["web"]
        assert logs[1].timestamp == _stamp(2024, 3, 5, 14, 30)

        todos = storage.load_all_todos()
        assert [(t.text, t.completed) for t in todos] == [("one #web", False), ("old", True)]

        assert storage.load_log_by_path(path).content == "[] one #web"
        assert storage.load_log_by_path(path.parent / "gone.txt") is None
    print("  log entry storage OK")


# ── Application state ────────────────────────────────────────────────


def test_app_state_log_flow():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = LogStorage(Path(tmpdir) / "data")
        storage.initialize()
        state = AppState(storage)
        assert state.load() == []

        state.start_new_log()
        assert state.save_log() == "Cannot save empty log entry"
        assert not list(storage.base_dir.glob("log-*"))

        composer = state.screen.composer
        assert composer.project_names == ["new-website"]
        for c in "[] ship it #new-website":
            composer.insert_char(c)
        message = state.save_log()
        assert message.startswith("Log saved to ")
        assert isinstance(state.screen, MenuScreen) and state.history == []

        state.show_todos()
        assert isinstance(state.screen, TodoListScreen)
        assert len(state.screen.items(state.ctx)) == 1
        assert state.toggle_selected_todo()
        assert state.screen.items(state.ctx) == []
        assert state.ctx.todos[0].completed
        assert "[x] ship it" in read_text_file(state.ctx.todos[0].log_path)

        state.go_back()
        state.show_logs()
        assert isinstance(state.screen, LogListScreen)
        assert state.view_selected_log() == ""
        assert isinstance(state.screen, ViewLogScreen)
        assert state.screen.entry.projects == ["new-website"]
        state.go_back()
        state.go_back()
        assert isinstance(state.screen, MenuScreen)
        state.go_back()
        assert isinstance(state.screen, MenuScreen)
    print("  AppState log flow OK")


def test_app_state_projects_and_people():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = LogStorage(Path(tmpdir) / "data")
        storage.initialize()
        state = AppState(storage)
        state.load()

        state.show_projects()
        state.start_edit_project()
        assert isinstance(state.screen, ProjectEditScreen)
        assert state.save_edited_project() == "Project name cannot be empty"
        state.screen.form.type_text("apollo")
        assert state.save_edited_project() == "Project created"
        assert isinstance(state.screen, ProjectListScreen)
        assert [p.name for p in storage.load_projects()] == ["new-website", "apollo"]

        state.start_edit_project("new-website")
        form = state.screen.form
        form.current = form.labels.index("Status")
        form.type_text("ignored")
        form.cycle_choice(1)
        assert state.save_edited_project() == "Project saved"
        saved = storage.load_projects()[0]
        assert saved.status == "in-progress"
        assert saved.jira == "https://jira.com/projects/WWW-123"

        state.show_people()
        state.start_edit_person()
        state.screen.form.type_text("ann")
        state.screen.form.next_field()
        state.screen.form.type_text("Ann Lee")
        assert state.save_edited_person() == "Person created"
        assert storage.load_people()[-1] == Person(name="ann", full_name="Ann Lee")
    print("  AppState projects/people OK")


def test_unlistable_year_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = LogStorage(Path(tmpdir) / "data")
        storage.initialize()
        storage.save_log_entry(LogEntry(timestamp=_stamp(2024, 3, 5, 14, 30), content="[] a"))
        state = AppState(storage)
        real_iterdir = Path.iterdir

        def iterdir(path):
            if path.name == "log-2024":
                raise PermissionError(13, "Permission denied", str(path))
            return real_iterdir(path)

        with mock.patch.object(Path, "iterdir", iterdir):
            try:
                state.show_todos()
            except StorageError as exc:
                assert "log-2024" in str(exc)
            else:
                raise AssertionError("expected StorageError")
        assert isinstance(state.screen, MenuScreen)

        # A missing data directory simply has no logs
        assert LogStorage(Path(tmpdir) / "absent").load_all_logs() == []
    print("  unlistable log directory OK")


def test_failed_save_keeps_draft():
    with tempfile.TemporaryDirectory() as tmpdir:
        blocker = Path(tmpdir) / "blocker"
        blocker.write_text("not a directory")
        state = AppState(LogStorage(blocker / "data"))
        state.load()
        state.start_new_log()
        composer = state.screen.composer
        for c in "[] keep me":
            composer.insert_char(c)

        try:
            state.save_log()
        except StorageError:
            pass
        else:
            raise AssertionError("expected StorageError")
        assert isinstance(state.screen, LogEntryScreen)
        assert state.screen.composer is composer
        assert composer.content == "[] keep me"
    print("  failed save keeps draft OK")


def test_notification_expiry():
    with tempfile.TemporaryDirectory() as tmpdir:
        state = AppState(LogStorage(Path(tmpdir)))
        state.notify("Saved")
        state.notify("Project saved")
        # An older message expiring leaves the newer one in place
        assert state.expire_notification("Saved") is False
        assert state.notification == "Project saved"
        assert state.expire_notification("Project saved") is True
        assert state.notification == ""
    print("  notification expiry OK")


def test_edit_form():
    form = EditForm(labels=["Name", "Status"], values=["x", "open"],
                    choices={1: ["open", "closed"]})
    form.backspace()
    form.type_text("yz")
    assert form.value("Name") == "yz"
    form.next_field()
    form.cycle_choice(-1)
    assert form.value("Status") == "open"
    form.cycle_choice(1)
    form.cycle_choice(1)
    assert form.value("Status") == "closed"
    form.next_field()
    assert form.current == 0
    form.previous_field()
    assert form.current == 1
    print("  EditForm OK")


# ── Display helpers ──────────────────────────────────────────────────


def test_display_helpers():
    assert format_size(500) == "500 B"
    assert format_size(1536) == "1.5 KB"
    assert format_size(3 * 1024 ** 2) == "3.0 MB"
    assert format_size(5 * 1024 ** 3) == "5.0 GB"

    entry = parse_log_entry("Standup #web #ops\nmore",
                            Path("/x/log-2024/2024-03-05_14-30-00/log.txt"))
    assert log_summary(entry) == "2024-03-05 14:30 | Standup #web #ops #web #ops"
    untagged = parse_log_entry("x" * 80, Path("/x/log-2024/2024-03-05_14-30-00/log.txt"))
    assert log_summary(untagged) == "2024-03-05 14:30 | " + "x" * 50 + " #-"

    assert tag_fragments("hi #a", 3) == [
        ("", "hi"), ("", " "), ("[SetCursorPosition]", ""), ("class:tag.project", "#a")]
    assert tag_fragments("[] x @b")[0] == ("class:todo.open", "[]")
    assert tag_fragments("ab", 2)[-1] == ("[SetCursorPosition]", "")
    assert tag_fragments("ab", 1) == [("", "a"), ("[SetCursorPosition]", ""), ("", "b")]
    print("  display helpers OK")


if __name__ == "__main__":
    print("Testing parser...")
    test_extract_tags()
    test_parse_todos()
    test_parse_is_idempotent()
    test_parse_timestamp_dir()
    test_parse_never_fails()

    print("Testing filters...")
    test_todo_filter()
    test_log_filter_dates()
    test_project_groups()
    test_filter_helpers()

    print("Testing text buffer...")
    test_text_buffer_vertical_moves()
    test_text_buffer_edits()
    test_autocomplete_accept()
    test_autocomplete_rules()
    test_log_composer()

    print("Testing todo toggling...")
    test_toggle_round_trip()
    test_toggle_crlf_and_case()
    test_toggle_stale_record()
    test_sync_todo()

    print("Testing storage...")
    test_storage_initialize()
    test_storage_yaml()
    test_storage_log_entries()

    print("Testing application state...")
    test_app_state_log_flow()
    test_app_state_projects_and_people()
    test_unlistable_year_dir()
    test_failed_save_keeps_draft()
    test_notification_expiry()
    test_edit_form()
    test_display_helpers()

    print("\nAll tests passed!")
