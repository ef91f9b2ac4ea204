#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Paul Tiffany
# Project: clip - Clipboard history for the command line

"""
clip - Keep a deduplicated history of copied text on the command line.

A single-file, zero-dependency tool. Text is added from an argument or a pipe,
pasted back by recency (0 is the newest entry, -1 the oldest), listed, and
deleted. Re-adding or pasting an entry moves it to the front of the history.
"""

import argparse
import base64
import hashlib
import json
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, TextIO

# Project metadata
__version__ = "0.1.0"
__license__ = "MIT"

# --- Configuration ---
TOOL_NAME = "clip"
DATA_FILE_NAME = "data.json"
DATA_FILE_ENV = "CLIP_DATA_FILE"

# Keys of the persisted document: {"i": [{"d": text, "h": digest}, ...]}
ITEMS_KEY = "i"
DATA_KEY = "d"
HASH_KEY = "h"

USAGE_EXAMPLES = """\
positional argument:
  text: the text to add to the clipboard; without text (and without piped
        input) the latest item is pasted.

examples:
  clip 'Hello, World!'         # adds 'Hello, World!' to the clipboard
  clip -s 'Hello, World!'      # adds it without echoing it back
  clip                         # pastes the latest item
  echo 'Hello, World!' | clip  # adds piped text to the clipboard
  clip -p=1                    # pastes the item at index 1
  clip -p=-1                   # pastes the oldest item
  clip -d=2,0                  # deletes the items at index 2 and 0
  clip -D                      # deletes all items
  clip -l | fzf | clip -p      # pastes the item picked from the listing
  clip -v                      # prints version information
"""


# --- Errors ---


class ClipError(Exception):
    """Base exception for clip operations."""


class EmptyInputError(ClipError):
    """Nothing to add."""


class IndexOutOfBoundsError(ClipError):
    """A relative index or absolute position falls outside the history."""


class ConflictingArgumentsError(ClipError):
    """Piped content lookup combined with an explicit paste index."""


class MalformedArgumentsError(ClipError):
    """Too many positional arguments or list values."""


class UnimplementedError(ClipError):
    """The requested form of an operation is not supported yet."""


class PersistenceError(ClipError):
    """The history file could not be read, decoded or written."""


# --- History Store ---


def content_hash(text: str) -> str:
    """Digest of the trimmed text: unpadded URL-safe base64 of its SHA-1."""
    digest = hashlib.sha1(text.strip().encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def unescape_newlines(text: str) -> str:
    """Turn the two-character sequence ``\\n`` back into newlines."""
    return text.replace("\\n", "\n")


def escape_newlines(text: str) -> str:
    return text.replace("\n", "\\n")


def is_blank(text: str) -> bool:
    """True if text is empty after trimming, with or without unescaping."""
    return not text.strip() or not unescape_newlines(text).strip()


@dataclass(frozen=True)
class Entry:
    """One stored clipboard snippet."""

    data: str
    hash: str

    @classmethod
    def from_text(cls, text: str) -> "Entry":
        data = text.strip()
        return cls(data, content_hash(data))


class History:
    """Ordered clipboard history, oldest first and newest last.

    No two entries share a hash. ``_index`` maps each hash to the entry's
    position and is derived from ``_entries``: a removal rebuilds it with
    ``reindex()``, an append sets only the new key.
    """

    def __init__(self, entries: Optional[list[Entry]] = None) -> None:
        self._entries: list[Entry] = []
        self._index: dict[str, int] = {}
        for entry in entries or []:
            self.add(entry.data)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    @property
    def entries(self) -> tuple[Entry, ...]:
        return tuple(self._entries)

    @property
    def index(self) -> dict[str, int]:
        return dict(self._index)

    @property
    def newest(self) -> Optional[Entry]:
        return self._entries[-1] if self._entries else None

    def add(self, text: str) -> Entry:
        """Append text as the newest entry, promoting an existing copy."""
        entry = Entry.from_text(text)
        position = self._index.get(entry.hash)
        if position is not None:
            if position == len(self._entries) - 1:
                return self._entries[position]
            self.remove(position)
        self._entries.append(entry)
        self._index[entry.hash] = len(self._entries) - 1
        return entry

    def get(self, position: int) -> Entry:
        if position < 0 or position >= len(self._entries):
            raise IndexOutOfBoundsError(
                f"position {position} out of bounds for length {len(self._entries)}"
            )
        return self._entries[position]

    def remove(self, position: int) -> Entry:
        """Remove the entry at an absolute position and return it."""
        entry = self.get(position)
        if len(self._entries) == 1:
            self.clear()
            return entry
        # Every position after the removed one shifts down by one.
        del self._entries[position]
        self.reindex()
        return entry

    def clear(self) -> None:
        self._entries = []
        self._index = {}

    def reindex(self) -> None:
        self._index = {entry.hash: i for i, entry in enumerate(self._entries)}

    def lookup(self, digest: str) -> Optional[int]:
        return self._index.get(digest)

    def find(self, text: str) -> Optional[int]:
        """Absolute position of the entry whose content matches text."""
        return self.lookup(content_hash(text))

    # --- Serialization ---

    def to_document(self) -> dict[str, Any]:
        return {ITEMS_KEY: [{DATA_KEY: e.data, HASH_KEY: e.hash} for e in self._entries]}

    @classmethod
    def from_document(cls, doc: Any) -> "History":
        """Build a history from a decoded document.

        Digests are recomputed from the text and entries are replayed oldest
        first, so a hand-edited file with duplicates still loads deduplicated.
        """
        if not isinstance(doc, dict):
            raise PersistenceError("history document must be a JSON object")
        items = doc.get(ITEMS_KEY) or []
        if not isinstance(items, list):
            raise PersistenceError(f"'{ITEMS_KEY}' must be a list of entries")

        history = cls()
        for item in items:
            if not isinstance(item, dict) or not isinstance(item.get(DATA_KEY, ""), str):
                raise PersistenceError(f"invalid history entry: {item!r}")
            data = item.get(DATA_KEY, "")
            if data.strip():
                history.add(data)
        return history


# --- Index Resolver ---


def resolve_index(user_index: int, length: int) -> int:
    """Map a relative index to an absolute position.

    0 is the newest entry and larger indices are older; -1 is the oldest entry
    and smaller indices are newer.
    """
    if user_index < 0:
        position = -user_index - 1
    else:
        position = length - user_index - 1

    if position < 0 or position >= length:
        raise IndexOutOfBoundsError(f"index {user_index} out of bounds for length {length}")
    return position


def to_relative_index(position: int, length: int) -> int:
    """Inverse of resolve_index for non-negative relative indices."""
    return length - position - 1


# --- Command Interpreter ---


class Op(Enum):
    HELP = "help"
    VERSION = "version"
    ADD = "add"
    PASTE = "paste"
    DELETE = "delete"
    DELETE_ALL = "delete-all"
    LIST = "list"


@dataclass
class Command:
    """A single resolved operation and its parameters."""

    op: Op
    text: str = ""
    silent: bool = False
    paste_index: int = 0
    delete_indices: list[int] = field(default_factory=lambda: [0])
    list_args: tuple[int, int] = (0, 0)


def read_piped_input(stream: Optional[TextIO]) -> str:
    """Return piped stdin content, or "" for a terminal or blank input."""
    if stream is None or stream.isatty():
        return ""
    try:
        data = stream.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ClipError(f"error reading piped input: {e}") from e
    if is_blank(data):
        return ""
    return data


def _lookup_piped(piped: str, history: History) -> Optional[int]:
    # Listings escape newlines, so the unescaped form is tried first.
    unescaped = unescape_newlines(piped)
    position = history.find(unescaped)
    if position is None and unescaped != piped:
        position = history.find(piped)
    return position


def _version_command(
    args: argparse.Namespace, history: History, stdin: Optional[TextIO]
) -> Command:
    return Command(Op.VERSION)


def _delete_all_command(
    args: argparse.Namespace, history: History, stdin: Optional[TextIO]
) -> Command:
    return Command(Op.DELETE_ALL)


def _delete_command(args: argparse.Namespace, history: History, stdin: Optional[TextIO]) -> Command:
    return Command(Op.DELETE, delete_indices=list(args.delete) or [0])


def _list_command(args: argparse.Namespace, history: History, stdin: Optional[TextIO]) -> Command:
    values = list(args.list)
    if len(values) > 2:
        raise MalformedArgumentsError(
            f"list takes at most two values (limit or start,end), got {len(values)}"
        )
    if not values:
        return Command(Op.LIST)
    if len(values) == 1:
        return Command(Op.LIST, list_args=(values[0], 0))
    return Command(Op.LIST, list_args=(values[0], values[1]))


def _paste_command(args: argparse.Namespace, history: History, stdin: Optional[TextIO]) -> Command:
    index = args.paste
    piped = read_piped_input(stdin)
    if not piped:
        return Command(Op.PASTE, paste_index=index)

    position = _lookup_piped(piped, history)
    if position is None:
        return Command(Op.HELP)
    if index != 0:
        raise ConflictingArgumentsError("piped input cannot be used when pasting an item by index")
    return Command(Op.PASTE, paste_index=to_relative_index(position, len(history)))


# Checked top to bottom; the first flag present on the command line wins.
FLAG_DISPATCH: tuple[tuple[str, Callable[..., Command]], ...] = (
    ("version", _version_command),
    ("delete_all", _delete_all_command),
    ("delete", _delete_command),
    ("list", _list_command),
    ("paste", _paste_command),
)


def selected_flag(args: argparse.Namespace) -> Optional[str]:
    """Name of the highest-priority operation flag present, if any."""
    for name, _ in FLAG_DISPATCH:
        value = getattr(args, name, None)
        if value is not None and value is not False:
            return name
    return None


def interpret(args: argparse.Namespace, history: History, stdin: Optional[TextIO]) -> Command:
    """Decide which single operation the parsed arguments and stdin imply."""
    flag = selected_flag(args)
    if flag is not None:
        builder = dict(FLAG_DISPATCH)[flag]
        return builder(args, history, stdin)

    texts = args.text or []
    if len(texts) == 1 and not is_blank(texts[0]):
        return Command(Op.ADD, text=texts[0], silent=args.silent)
    if len(texts) > 1:
        raise MalformedArgumentsError(f"expected at most one text argument, got {len(texts)}")

    piped = read_piped_input(stdin)
    if piped:
        return Command(Op.ADD, text=piped, silent=args.silent)
    return Command(Op.PASTE)


# --- Operation Executor ---


def _run_help(command: Command, history: History, out: TextIO, err: TextIO) -> None:
    err.write(create_parser().format_help())


def _run_version(command: Command, history: History, out: TextIO, err: TextIO) -> None:
    print(__version__, file=out)


def _run_add(command: Command, history: History, out: TextIO, err: TextIO) -> None:
    if not command.text.strip():
        raise EmptyInputError("no text provided to add to the clipboard")
    history.add(command.text)
    if not command.silent:
        print(command.text, end="", file=out)


def _run_paste(command: Command, history: History, out: TextIO, err: TextIO) -> None:
    if not len(history):
        return
    position = resolve_index(command.paste_index, len(history))
    entry = history.get(position)
    if position != len(history) - 1:
        history.remove(position)
        history.add(entry.data)
    print(entry.data, end="", file=out)


def _run_delete_all(command: Command, history: History, out: TextIO, err: TextIO) -> None:
    history.clear()


def _run_delete(command: Command, history: History, out: TextIO, err: TextIO) -> None:
    indices = command.delete_indices or [0]
    # Resolve everything before removing anything: one bad index aborts all.
    positions = {resolve_index(i, len(history)) for i in indices}
    for position in sorted(positions, reverse=True):
        history.remove(position)


def _run_list(command: Command, history: History, out: TextIO, err: TextIO) -> None:
    if not len(history):
        return
    start, end = command.list_args
    if start != 0 or end != 0:
        raise UnimplementedError("limit and range listing is not supported yet")
    for entry in reversed(history.entries):
        print(escape_newlines(entry.data), file=out)


HANDLERS: dict[Op, Callable[[Command, History, TextIO, TextIO], None]] = {
    Op.HELP: _run_help,
    Op.VERSION: _run_version,
    Op.ADD: _run_add,
    Op.PASTE: _run_paste,
    Op.DELETE_ALL: _run_delete_all,
    Op.DELETE: _run_delete,
    Op.LIST: _run_list,
}


def execute(
    command: Command,
    history: History,
    out: Optional[TextIO] = None,
    err: Optional[TextIO] = None,
) -> None:
    """Apply a resolved command to the history, writing payload to out."""
    handler = HANDLERS.get(command.op)
    if handler is None:
        raise ClipError(f"unknown operation: {command.op}")
    handler(
        command,
        history,
        sys.stdout if out is None else out,
        sys.stderr if err is None else err,
    )


# --- Persistence ---


def data_dir() -> Path:
    """Platform data directory for clip."""
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        base = Path(xdg)
    elif sys.platform == "win32":
        base = Path(os.environ.get("APPDATA") or Path.home() / "AppData" / "Roaming")
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path.home() / ".local" / "share"
    return base / TOOL_NAME


def data_file() -> Path:
    """History file location; CLIP_DATA_FILE overrides the platform default."""
    explicit = os.environ.get(DATA_FILE_ENV)
    if explicit:
        return Path(explicit).expanduser()
    return data_dir() / DATA_FILE_NAME


def load_history(path: Path) -> History:
    """Read the whole history; a missing or empty file is an empty history."""
    if not path.is_file():
        return History()
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PersistenceError(f"Error reading {path}: {e}") from e
    if not raw.strip():
        return History()
    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PersistenceError(f"Failed to decode {path}: {e}") from e
    return History.from_document(doc)


def save_history(path: Path, history: History) -> None:
    """Overwrite the history file with the whole history."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(history.to_document(), ensure_ascii=False)
        path.write_text(content + "\n", encoding="utf-8")
    except (OSError, PermissionError) as e:
        raise PersistenceError(f"Error writing {path}: {e}") from e


# --- CLI and Main Execution ---


def int_list(value: str) -> list[int]:
    """Parse a comma-separated list of integers (``2,0,-1``)."""
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid index list: '{value}'") from e


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog=TOOL_NAME,
        usage="%(prog)s [options|text]",
        description="Clipboard history for the command line",
        epilog=USAGE_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("text", nargs="*", help=argparse.SUPPRESS)
    parser.add_argument(
        "-s", "--silent", action="store_true", help=argparse.SUPPRESS
    )
    parser.add_argument(
        "-p",
        "--paste",
        nargs="?",
        const=0,
        type=int,
        metavar="N",
        help="Paste the Nth latest item (default 0); negative values count from the oldest",
    )
    parser.add_argument(
        "-d",
        "--delete",
        nargs="?",
        const=[0],
        type=int_list,
        metavar="N,...",
        help="Delete items by index (default 0, the latest); negative values count from the oldest",
    )
    parser.add_argument(
        "-D", "--delete-all", action="store_true", help="Delete all items from the clipboard"
    )
    parser.add_argument(
        "-l",
        "--list",
        nargs="?",
        const=[],
        type=int_list,
        metavar="LIMIT|START,END",
        help="List items, newest first; limit and range forms are reserved",
    )
    parser.add_argument("-v", "--version", action="store_true", help="Print version information")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Run the main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    path = data_file()

    try:
        # --- Load ---
        try:
            history = load_history(path)
        except PersistenceError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        # --- Interpret & Execute ---
        command = interpret(args, history, sys.stdin)
        try:
            execute(command, history)
        finally:
            try:
                save_history(path, history)
            except PersistenceError as e:
                print(f"Warning: {e}", file=sys.stderr)
        return 0

    except ClipError as e:
        print(f"Error: {e}", file=sys.stderr)
        parser.print_help(sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nCancelled by user", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        return 1


def cli_entrypoint() -> None:
    """Console entry point (kept tiny so tests can patch sys.exit)."""
    sys.exit(main())


if __name__ == "__main__":
    cli_entrypoint()
