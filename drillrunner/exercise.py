"""Exercise definitions, their compilation and their completion state."""

from __future__ import annotations

import os
import re
import subprocess
import threading
import tomllib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

RUSTC_COLOR_ARGS = ("--color", "always")
RUSTC_EDITION_ARGS = ("--edition", "2021")
I_AM_DONE_REGEX = re.compile(r"^\s*///?\s*I\s+AM\s+NOT\s+DONE", re.MULTILINE)
CONTEXT = 2
CLIPPY_CARGO_TOML_PATH = "./exercises/clippy/Cargo.toml"
BUILD_SCRIPT_CARGO_TOML_PATH = "./exercises/tests/Cargo.toml"


def _temp_file() -> str:
    """A temporary binary name unique to this process and thread."""
    return f"./temp_{os.getpid()}_{threading.get_ident()}"


def _clean(binary: str) -> None:
    try:
        os.remove(binary)
    except OSError:
        pass


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")


def _execute(args: list[str], error: str) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(args, capture_output=True)
    except OSError as exc:
        raise RuntimeError(error) from exc


def _lines(text: str) -> list[str]:
    parts = text.split("\n")
    if parts and parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


class Mode(Enum):
    """How an exercise is checked."""

    COMPILE = "compile"
    TEST = "test"
    CLIPPY = "clippy"
    BUILD_SCRIPT = "buildscript"


@dataclass(frozen=True)
class ContextLine:
    """A source line shown around the pending marker."""

    line: str
    number: int
    important: bool


@dataclass(frozen=True)
class State:
    """Completion state; pending exercises carry the marker's context."""

    context: tuple[ContextLine, ...] = ()

    @property
    def done(self) -> bool:
        return not self.context


@dataclass(frozen=True)
class ExerciseOutput:
    """Captured output of a command."""

    stdout: str
    stderr: str
    success: bool = True


class CompilationError(Exception):
    """Raised when an exercise fails to compile."""

    def __init__(self, exercise: "Exercise", output: ExerciseOutput) -> None:
        super().__init__(f"compilation of {exercise} failed")
        self.exercise = exercise
        self.output = output


class CompiledExercise:
    """A successfully compiled exercise; removes its binary when closed."""

    def __init__(self, exercise: "Exercise", binary: str) -> None:
        self.exercise = exercise
        self.binary = binary

    def run(self) -> ExerciseOutput:
        """Run the compiled binary; the output's success flag tells the outcome."""
        return self.exercise._run(self.binary)

    def close(self) -> None:
        _clean(self.binary)

    def __enter__(self) -> "CompiledExercise":
        return self

    def __exit__(self, *args) -> None:
        self.close()


@dataclass
class Exercise:
    """One exercise as listed in the exercise list."""

    name: str
    path: Path
    mode: Mode
    hint: str = ""

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self.mode = Mode(self.mode)

    def __str__(self) -> str:
        return str(self.path)

    def _cargo_toml(self) -> str:
        return (
            "[package]\n"
            f'name = "{self.name}"\n'
            'version = "0.0.1"\n'
            'edition = "2021"\n'
            "[[bin]]\n"
            f'name = "{self.name}"\n'
            f'path = "{self.name}.rs"'
        )

    def _write_manifest(self, manifest: str) -> None:
        if "NO_EMOJI" in os.environ:
            error = "Failed to write Clippy Cargo.toml file."
        else:
            error = "Failed to write 📎 Clippy 📎 Cargo.toml file."
        try:
            Path(manifest).write_text(self._cargo_toml(), encoding="utf-8")
        except OSError as exc:
            raise RuntimeError(error) from exc

    def compile(self) -> CompiledExercise:
        """Compile (or lint, or build) the exercise.

        Raises CompilationError carrying the tool's output on failure.
        """
        binary = _temp_file()
        source = str(self.path)
        failure = "Failed to run 'compile' command."
        rustc = ["rustc", source, "-o", binary, *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS]

        match self.mode:
            case Mode.COMPILE:
                proc = _execute(rustc, failure)
            case Mode.TEST:
                proc = _execute(
                    ["rustc", "--test", source, "-o", binary,
                     *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS],
                    failure,
                )
            case Mode.CLIPPY:
                self._write_manifest(CLIPPY_CARGO_TOML_PATH)
                # Build an executable as well so the exercise can be run.
                _execute(rustc, "Failed to compile!")
                # A clean is required for clippy to report every lint.
                _execute(
                    ["cargo", "clean", "--manifest-path", CLIPPY_CARGO_TOML_PATH,
                     *RUSTC_COLOR_ARGS],
                    "Failed to run 'cargo clean'",
                )
                proc = _execute(
                    ["cargo", "clippy", "--manifest-path", CLIPPY_CARGO_TOML_PATH,
                     *RUSTC_COLOR_ARGS, "--", "-D", "warnings", "-D", "clippy::float_cmp"],
                    failure,
                )
            case Mode.BUILD_SCRIPT:
                self._write_manifest(BUILD_SCRIPT_CARGO_TOML_PATH)
                proc = _execute(
                    ["cargo", "test", "--manifest-path", BUILD_SCRIPT_CARGO_TOML_PATH],
                    failure,
                )

        if proc.returncode == 0:
            return CompiledExercise(self, binary)
        _clean(binary)
        raise CompilationError(
            self,
            ExerciseOutput(_decode(proc.stdout), _decode(proc.stderr), success=False),
        )

    def _run(self, binary: str) -> ExerciseOutput:
        if self.mode is Mode.BUILD_SCRIPT:
            return ExerciseOutput("", "")
        arg = "--show-output" if self.mode is Mode.TEST else ""
        proc = _execute([binary, arg], "Failed to run 'run' command")
        return ExerciseOutput(
            _decode(proc.stdout), _decode(proc.stderr), success=proc.returncode == 0
        )

    def state(self) -> State:
        """Inspect the source for the pending marker and its surroundings."""
        source = self.path.read_text(encoding="utf-8")
        if not I_AM_DONE_REGEX.search(source):
            return State()

        lines = _lines(source)
        matched = next(
            (i for i, line in enumerate(lines) if I_AM_DONE_REGEX.search(line)), None
        )
        if matched is None:
            raise RuntimeError("This should not happen at all")

        first = max(matched - CONTEXT, 0)
        last = matched + CONTEXT
        return State(
            tuple(
                ContextLine(line=line, number=i + 1, important=i == matched)
                for i, line in enumerate(lines)
                if first <= i <= last
            )
        )

    def looks_done(self) -> bool:
        """Whether the pending marker has been removed."""
        return self.state().done


def parse_exercises(text: str) -> list[Exercise]:
    """Parse an exercise list in TOML form."""
    data = tomllib.loads(text)
    try:
        return [
            Exercise(
                name=entry["name"],
                path=Path(entry["path"]),
                mode=Mode(entry["mode"]),
                hint=entry["hint"],
            )
            for entry in data["exercises"]
        ]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"invalid exercise list: {exc}") from exc


def load_exercises(path: str | os.PathLike) -> list[Exercise]:
    """Read and parse an exercise list file."""
    return parse_exercises(Path(path).read_text(encoding="utf-8"))