"""Running a single exercise and resetting its source."""

from __future__ import annotations

import subprocess

from .exercise import CompilationError, Exercise, Mode
from .ui import success, warn
from .verify import VerificationFailed, test


class RunFailed(Exception):
    """Raised when an exercise fails to build or run."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(f"running {exercise} failed")
        self.exercise = exercise


def _compile_and_run(exercise: Exercise) -> None:
    try:
        compiled = exercise.compile()
    except CompilationError as err:
        warn(f"Compilation of {exercise} failed!, Compiler error message:\n")
        print(err.output.stderr)
        raise RunFailed(exercise) from err

    with compiled:
        output = compiled.run()

    if output.success:
        print(output.stdout)
        success(f"Successfully ran {exercise}")
        return
    print(output.stdout)
    print(output.stderr)
    warn(f"Ran {exercise} with errors")
    raise RunFailed(exercise)


def run(exercise: Exercise, verbose: bool = False) -> None:
    """Build the exercise and run it, or run its tests.

    Raises RunFailed on any failure. The pending marker is not consulted.
    """
    match exercise.mode:
        case Mode.TEST | Mode.BUILD_SCRIPT:
            try:
                test(exercise, verbose)
            except VerificationFailed as err:
                raise RunFailed(exercise) from err
        case Mode.COMPILE | Mode.CLIPPY:
            _compile_and_run(exercise)


def reset(exercise: Exercise) -> subprocess.Popen:
    """Start stashing the local changes to the exercise's source with git."""
    try:
        return subprocess.Popen(["git", "stash", "--", str(exercise.path)])
    except OSError as err:
        raise RunFailed(exercise) from err