"""
FILE: nextup/repl/parser.py
PURPOSE: Parse user input into commands and arguments for REPL
EXPORTS:
  - ParseResult (dataclass for parsed commands)
  - parse_command(input_str) -> ParseResult
DEPENDENCIES:
  - shlex (for shell-like parsing with quotes)
NOTES:
  - Handles quoted strings: add "task with spaces"
  - Supports flags: --json, --list next
  - argv keeps every token in order so the line can be handed to the CLI app
  - Case-insensitive command names
"""

import shlex
from dataclasses import dataclass, field
from typing import Dict, List, Union


@dataclass
class ParseResult:
    """
    Result of parsing a REPL command.

    Attributes:
        command: The command name (e.g., "add", "ls", "done")
        args: Positional arguments (e.g., ["task name", "123"])
        flags: Long flags as dict (e.g., {"list": "next", "json": True})
        argv: All tokens, command first, in their original order
        raw_input: Original input string
    """
    command: str
    args: List[str] = field(default_factory=list)
    flags: Dict[str, Union[str, bool]] = field(default_factory=dict)
    argv: List[str] = field(default_factory=list)
    raw_input: str = ""


def parse_command(input_str: str) -> ParseResult:
    """
    Parse REPL input into command, args, and flags.

    Examples:
        >>> parse_command('add "Task with spaces" --list next')
        ParseResult(command="add", args=["Task with spaces"], flags={"list": "next"}, ...)

        >>> parse_command("done 3,5")
        ParseResult(command="done", args=["3,5"], flags={}, ...)

    Notes:
        - Command is always the first token (case-insensitive)
        - Boolean flags don't need values (--json sets json=True)
        - Value flags take the next token unless it is another flag
        - Short options (-l next) stay in args; argv is what gets executed
        - Empty input returns command="" with no args/flags
    """
    input_str = input_str.strip()
    if not input_str:
        return ParseResult(command="", raw_input=input_str)

    try:
        tokens = shlex.split(input_str)
    except ValueError:
        # Unclosed quote: fall back to plain whitespace split
        tokens = input_str.split()

    if not tokens:
        return ParseResult(command="", raw_input=input_str)

    command = tokens[0].lower()
    args = []
    flags = {}
    i = 1
    while i < len(tokens):
        token = tokens[i]
        if token.startswith("--"):
            flag_name = token[2:]
            if i + 1 < len(tokens) and not tokens[i + 1].startswith("--"):
                flags[flag_name] = tokens[i + 1]
                i += 2
            else:
                flags[flag_name] = True
                i += 1
        else:
            args.append(token)
            i += 1

    return ParseResult(
        command=command,
        args=args,
        flags=flags,
        argv=[command] + tokens[1:],
        raw_input=input_str,
    )
