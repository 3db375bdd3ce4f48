"""Tests for the REPL: parsing, command dispatch, and autocomplete."""

import sqlite3

from prompt_toolkit.document import Document

from nextup.core import service
from nextup.repl.completer import create_completer
from nextup.repl.main import REPLContext, execute_command, get_bottom_toolbar
from nextup.repl.parser import parse_command

from conftest import NOW, OTHER_OWNER, OWNER


def completions(completer, text):
    doc = Document(text, cursor_position=len(text))
    return [c.text for c in completer.get_completions(doc, None)]


# --- Parser ---


def test_parse_quoted_name_and_flags():
    result = parse_command('add "Call the bank" --list next --json')

    assert result.command == "add"
    assert result.args == ["Call the bank"]
    assert result.flags == {"list": "next", "json": True}
    assert result.argv == ["add", "Call the bank", "--list", "next", "--json"]


def test_parse_lowercases_command_only():
    result = parse_command("MV 3,5 Next")

    assert result.command == "mv"
    assert result.args == ["3,5", "Next"]
    assert result.argv[0] == "mv"


def test_parse_empty_input():
    assert parse_command("   ").command == ""


def test_parse_unclosed_quote_falls_back_to_split():
    result = parse_command('add "unfinished task')

    assert result.command == "add"
    assert result.args == ['"unfinished', "task"]


# --- Dispatch ---


def test_exit_and_quit_stop_the_loop(store):
    context = REPLContext(owner=OWNER, store=store)

    assert execute_command(parse_command("exit"), context) is False
    assert execute_command(parse_command("quit"), context) is False
    assert execute_command(parse_command(""), context) is True


def test_commands_run_for_session_user(store, capsys):
    context = REPLContext(owner=OTHER_OWNER, store=store)

    assert execute_command(parse_command('add "From the REPL" --list next'), context) is True

    tasks = service.list_tasks(store, OTHER_OWNER, "next").tasks
    assert [t.name for t in tasks] == ["From the REPL"]
    assert service.list_tasks(store, OWNER).total_count == 0
    assert "Created task" in capsys.readouterr().out


def test_user_command_switches_owner(store):
    context = REPLContext(owner=OWNER, store=store)

    execute_command(parse_command("user bob"), context)
    execute_command(parse_command('add "Bob task"'), context)

    assert context.owner == "bob"
    assert context.get_prompt() == "nextup:[bob]> "
    assert service.list_tasks(store, "bob").total_count == 1


def test_command_error_keeps_repl_running(store, capsys):
    context = REPLContext(owner=OWNER, store=store)

    assert execute_command(parse_command("done 999"), context) is True
    assert execute_command(parse_command("add"), context) is True
    assert execute_command(parse_command("nonsense"), context) is True

    captured = capsys.readouterr()
    assert "not found" in (captured.out + captured.err).lower()


def test_unexpected_error_keeps_repl_running(store, capsys, monkeypatch):
    def locked(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(service, "list_tasks", locked)
    context = REPLContext(owner=OWNER, store=store)

    assert execute_command(parse_command("inbox"), context) is True

    captured = capsys.readouterr()
    assert "Unexpected error" in captured.out
    assert "database is locked" in captured.out


def test_toolbar_counts(store):
    service.create_task(store, OWNER, "A", now=NOW)
    service.create_task(store, OWNER, "B", system_list="next", now=NOW)

    toolbar = get_bottom_toolbar(REPLContext(owner=OWNER, store=store))

    assert "1 inbox | 1 next | 0 someday" in toolbar.value


# --- Completer ---


def test_command_completion(store):
    completer = create_completer(REPLContext(owner=OWNER, store=store))

    assert "reorder" in completions(completer, "re")
    assert "reopen" in completions(completer, "re")
    assert "upcoming" in completions(completer, "up")


def test_subcommand_completion(store):
    completer = create_completer(REPLContext(owner=OWNER, store=store))

    assert completions(completer, "project ") == ["add", "ls", "rename", "rm"]
    assert completions(completer, "label a") == ["add", "attach"]
    assert completions(completer, "label r") == ["rename", "rm"]


def test_list_name_completion(store):
    completer = create_completer(REPLContext(owner=OWNER, store=store))

    assert completions(completer, "mv 3 ") == ["inbox", "next", "someday"]
    assert "upcoming" in completions(completer, "ls --list ")
    assert "upcoming" not in completions(completer, "add x --list ")
    assert completions(completer, "reorder s") == ["someday"]


def test_project_and_label_completion(store):
    service.create_project(store, OWNER, "Home Office", now=NOW)
    service.create_label(store, OWNER, "urgent", now=NOW)
    service.create_project(store, OTHER_OWNER, "Hidden", now=NOW)
    completer = create_completer(REPLContext(owner=OWNER, store=store))

    assert completions(completer, "ls --project ") == ['"Home Office"']
    assert completions(completer, "ls --label u") == ["urgent"]
    assert completions(completer, "label attach 3 ") == ["urgent"]
    assert completions(completer, "label rm ") == ["urgent"]
    assert completions(completer, "project rename H") == ['"Home Office"']


def test_flag_completion(store):
    completer = create_completer(REPLContext(owner=OWNER, store=store))

    flags = completions(completer, "ls --")
    assert "--archived" in flags
    assert "--status" in flags


def test_task_id_completion(store):
    task = service.create_task(store, OWNER, "Complete me", now=NOW)
    service.create_task(store, OTHER_OWNER, "Not mine", now=NOW)
    completer = create_completer(REPLContext(owner=OWNER, store=store))

    assert completions(completer, "done ") == [str(task.id)]
