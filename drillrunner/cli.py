"""Command-line entry point: argument parsing, watch mode and dispatch."""

from __future__ import annotations

import argparse
import os
import queue
import subprocess
import sys
import threading
from collections.abc import Sequence
from enum import Enum
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .commands import (
    DEFAULT_RESULT_PATH,
    ExerciseNotFound,
    cicv_verify,
    find_exercise,
    list_exercises,
)
from .exercise import Exercise, load_exercises
from .project import RustAnalyzerProject
from .run import RunFailed, reset, run
from .verify import VerificationFailed, verify

VERSION = "5.5.1"
INFO_FILE = "info.toml"
EXERCISES_DIR = "./exercises"

WELCOME = """       welcome to...
  ====================================
  ||          drillrunner           ||
  ====================================
"""

DEFAULT_OUT = """Thanks for installing!

Is this your first time? Don't worry, these exercises are made for beginners.
Here are a few notes about how things work:

1. You solve exercises. Each exercise usually contains a compile error or a
   logic error, and it is your job to find and fix it. Once it is fixed, the
   exercise compiles (and its tests pass) and you can move on to the next one.
2. In watch mode (recommended) the first exercise is checked straight away.
   An error message right at the start is part of the exercise: open the file
   in your editor and start your detective work!
3. If you are stuck, type 'hint' in watch mode, or run `hint <exercise_name>`.
4. To get editor support for the exercises, run the `lsp` command.

Got all that? Great! Run the `watch` command to get the first exercise.
Make sure to have your editor open!"""

FINISH_LINE = """+----------------------------------------------------+
|          You made it to the Fe-nish line!          |
+----------------------------------------------------+

We hope you enjoyed learning about the various aspects of Rust!
You can also contribute your own exercises to help the greater community!"""

WATCH_HELP = """Commands available to you in watch mode:
  hint   - prints the current exercise's hint
  clear  - clears the screen
  quit   - quits watch mode
  !<cmd> - executes a command, like `!rustc --explain E0381`
  help   - displays this help message

Watch mode automatically re-evaluates the current exercise
when you edit a file's contents."""


class WatchStatus(Enum):
    """How watch mode ended."""

    FINISHED = "finished"
    UNFINISHED = "unfinished"


class _UsageError(Exception):
    pass


class _Parser(argparse.ArgumentParser):
    def error(self, message: str):
        raise _UsageError(f"{self.prog}: error: {message}")


def _build_parser() -> _Parser:
    parser = _Parser(
        prog="drillrunner",
        description="A collection of small exercises to get you used to "
        "writing and reading Rust code",
    )
    parser.add_argument(
        "--nocapture", action="store_true", help="show outputs from the test exercises"
    )
    parser.add_argument(
        "-v", "--version", action="store_true", help="show the executable version"
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("verify", help="verifies all exercises according to the recommended order")

    watch_parser = sub.add_parser("watch", help="reruns `verify` when files were edited")
    watch_parser.add_argument(
        "--success-hints", action="store_true", help="show hints on success"
    )

    for name, text in (
        ("run", "runs/tests a single exercise"),
        ("reset", 'resets a single exercise using "git stash -- <filename>"'),
        ("hint", "returns a hint for the given exercise"),
    ):
        cmd = sub.add_parser(name, help=text)
        cmd.add_argument("name", help="the name of the exercise")

    list_parser = sub.add_parser("list", help="lists the available exercises")
    list_parser.add_argument(
        "-p", "--paths", action="store_true", help="show only the paths of the exercises"
    )
    list_parser.add_argument(
        "-n", "--names", action="store_true", help="show only the names of the exercises"
    )
    list_parser.add_argument(
        "-f",
        "--filter",
        default=None,
        help="a string to match exercise names; comma separated patterns are accepted",
    )
    list_parser.add_argument(
        "-u", "--unsolved", action="store_true", help="display only exercises not yet solved"
    )
    list_parser.add_argument(
        "-s", "--solved", action="store_true", help="display only exercises that have been solved"
    )

    sub.add_parser("lsp", help="enable rust-analyzer for exercises")
    sub.add_parser("cicvverify", help="grade every exercise and write a JSON report")
    return parser


def rustc_exists() -> bool:
    """Whether `rustc --version` can be run successfully."""
    try:
        proc = subprocess.run(["rustc", "--version"], stdout=subprocess.DEVNULL)
    except OSError:
        return False
    return proc.returncode == 0


def _clear_screen() -> None:
    print("\x1bc")


def _path_ends_with(path: Path, suffix: Path) -> bool:
    if suffix.is_absolute():
        return path == suffix
    parts = suffix.parts
    return len(parts) <= len(path.parts) and path.parts[len(path.parts) - len(parts):] == parts


class _WatchShell:
    """Interactive commands accepted on standard input during watch mode."""

    def __init__(self, hint: str) -> None:
        self._lock = threading.Lock()
        self._hint = hint
        self.should_quit = threading.Event()

    @property
    def hint(self) -> str:
        with self._lock:
            return self._hint

    @hint.setter
    def hint(self, value: str) -> None:
        with self._lock:
            self._hint = value

    def handle(self, line: str) -> None:
        command = line.strip()
        if command == "hint":
            print(self.hint)
        elif command == "clear":
            print("\x1b[2J\x1b[1;1H")
        elif command == "quit":
            self.should_quit.set()
            print("Bye!")
        elif command == "help":
            print(WATCH_HELP)
        elif command.startswith("!"):
            cmd = command[1:]
            parts = cmd.split()
            if not parts:
                print("no command provided")
                return
            try:
                subprocess.run(parts)
            except OSError as exc:
                print(f"failed to execute command `{cmd}`: {exc}")
        else:
            print(f"unknown command: {command}")

    def _loop(self) -> None:
        try:
            for line in sys.stdin:
                self.handle(line)
        except (OSError, ValueError) as exc:
            print(f"error reading command: {exc}")

    def start(self) -> None:
        print(
            "Welcome to watch mode! You can type 'help' to get an overview "
            "of the commands you can use here."
        )
        threading.Thread(target=self._loop, daemon=True).start()


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, events: "queue.Queue[Path]") -> None:
        super().__init__()
        self._events = events

    def on_any_event(self, event) -> None:
        if event.is_directory or event.event_type not in ("created", "modified"):
            return
        self._events.put(Path(os.fsdecode(event.src_path)))


def _next_paths(events: "queue.Queue[Path]") -> list[Path]:
    """Wait up to a second for changes and return the distinct changed paths."""
    try:
        first = events.get(timeout=1)
    except queue.Empty:
        return []
    paths = [first]
    while True:
        try:
            path = events.get_nowait()
        except queue.Empty:
            break
        if path not in paths:
            paths.append(path)
    return paths


def watch(
    exercises: Sequence[Exercise], verbose: bool = False, success_hints: bool = False
) -> WatchStatus:
    """Verify the exercises, then re-verify whenever an exercise file changes.

    Raises OSError when the exercises directory cannot be watched.
    """
    root = Path(EXERCISES_DIR)
    if not root.is_dir():
        raise FileNotFoundError(f"no such directory: {root}")

    events: queue.Queue[Path] = queue.Queue()
    observer = Observer()
    observer.schedule(_ChangeHandler(events), str(root), recursive=True)
    observer.start()
    try:
        _clear_screen()
        try:
            verify(exercises, (0, len(exercises)), verbose, success_hints)
            return WatchStatus.FINISHED
        except VerificationFailed as failure:
            shell = _WatchShell(failure.exercise.hint)

        shell.start()
        while not shell.should_quit.is_set():
            for changed in _next_paths(events):
                if changed.suffix != ".rs" or not changed.exists():
                    continue
                filepath = changed.resolve()
                current = [e for e in exercises if _path_ends_with(filepath, e.path)][:1]
                pending = current + [
                    e
                    for e in exercises
                    if not e.looks_done() and not _path_ends_with(filepath, e.path)
                ]
                num_done = sum(1 for e in exercises if e.looks_done())
                _clear_screen()
                try:
                    verify(pending, (num_done, len(exercises)), verbose, success_hints)
                    return WatchStatus.FINISHED
                except VerificationFailed as failure:
                    shell.hint = failure.exercise.hint
        return WatchStatus.UNFINISHED
    finally:
        observer.stop()
        observer.join()


def _lsp() -> int:
    project = RustAnalyzerProject()
    try:
        project.get_sysroot_src()
    except OSError:
        print("Couldn't find toolchain path, do you have `rustc` installed?")
        return 1
    project.exercises_to_json(EXERCISES_DIR)

    if not project.crates:
        print("Failed find any exercises, make sure you're in the exercises folder")
        return 0
    try:
        project.write_to_disk()
    except OSError:
        print("Failed to write rust-project.json to disk for rust-analyzer")
        return 0
    print("Successfully generated rust-project.json")
    print("rust-analyzer will now parse exercises, restart your language server or editor")
    return 0


def _watch_command(exercises: Sequence[Exercise], verbose: bool, success_hints: bool) -> int:
    try:
        status = watch(exercises, verbose, success_hints)
    except OSError as exc:
        print(f"Error: Could not watch your progress. Error message was {exc!r}.")
        print(
            "Most likely you've run out of disk space or your "
            "'inotify limit' has been reached."
        )
        return 1
    if status is WatchStatus.FINISHED:
        emoji = "★" if "NO_EMOJI" in os.environ else "🎉"
        print(f"{emoji} All exercises completed! {emoji}")
        print(f"\n{FINISH_LINE}\n")
    else:
        print("We hope you're enjoying learning about Rust!")
        print(
            "If you want to continue working on the exercises at a later point, "
            "you can simply run `watch` again"
        )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; returns the process exit code."""
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except _UsageError as exc:
        parser.print_usage(sys.stderr)
        print(exc, file=sys.stderr)
        return 1
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 0

    if args.version:
        print(f"v{VERSION}")
        return 0

    if args.command is None:
        print(f"\n{WELCOME}\n")

    if not Path(INFO_FILE).exists():
        print(f"{sys.argv[0]} must be run from the exercises directory")
        print(f"Try `cd` into the directory holding {INFO_FILE}!")
        return 1

    if not rustc_exists():
        print("We cannot find `rustc`.")
        print("Try running `rustc --version` to diagnose your problem.")
        print("For instructions on how to install Rust, check the README.")
        return 1

    exercises = load_exercises(INFO_FILE)
    verbose = args.nocapture

    match args.command:
        case None:
            print(f"{DEFAULT_OUT}\n")
            return 0
        case "list":
            try:
                list_exercises(
                    exercises,
                    paths=args.paths,
                    names=args.names,
                    filter=args.filter,
                    unsolved=args.unsolved,
                    solved=args.solved,
                )
            except BrokenPipeError:
                return 0
            return 0
        case "run" | "reset" | "hint":
            try:
                exercise = find_exercise(args.name, exercises)
            except ExerciseNotFound as exc:
                print(exc)
                return 1
            if args.command == "hint":
                print(exercise.hint)
                return 0
            try:
                if args.command == "run":
                    run(exercise, verbose)
                else:
                    reset(exercise)
            except RunFailed:
                return 1
            return 0
        case "verify":
            try:
                verify(exercises, (0, len(exercises)), verbose, False)
            except VerificationFailed:
                return 1
            return 0
        case "cicvverify":
            result_path = Path(DEFAULT_RESULT_PATH)
            result_path.parent.mkdir(parents=True, exist_ok=True)
            cicv_verify(exercises, verbose, result_path)
            return 0
        case "lsp":
            return _lsp()
        case "watch":
            return _watch_command(exercises, verbose, args.success_hints)
    return 1


if __name__ == "__main__":
    sys.exit(main())