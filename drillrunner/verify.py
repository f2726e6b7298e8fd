"""Checking exercises in order, stopping at the first one that needs work."""

from __future__ import annotations

import os
from collections.abc import Iterable

from termcolor import colored
from tqdm import tqdm

from .exercise import CompilationError, CompiledExercise, Exercise, Mode
from .ui import success, warn

_BAR_FORMAT = "Progress: [{bar:60}] {n_fmt}/{total_fmt}{postfix}"


class VerificationFailed(Exception):
    """Raised when an exercise fails to build, fails to run or is still pending."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(f"verification of {exercise} failed")
        self.exercise = exercise


def _bold(text: str) -> str:
    return colored(text, attrs=["bold"])


def _separator() -> str:
    return _bold("=" * 20)


def _compile(exercise: Exercise) -> CompiledExercise:
    try:
        return exercise.compile()
    except CompilationError as err:
        warn(f"Compiling of {exercise} failed! Please try again. Here's the output:")
        print(err.output.stderr)
        raise VerificationFailed(exercise) from err


def _prompt_for_completion(
    exercise: Exercise, output: str | None, success_hints: bool
) -> bool:
    state = exercise.state()
    if state.done:
        return True

    verb = {
        Mode.COMPILE: "ran",
        Mode.TEST: "tested",
        Mode.CLIPPY: "compiled",
        Mode.BUILD_SCRIPT: "compiled",
    }[exercise.mode]
    success(f"Successfully {verb} {exercise}!")

    no_emoji = "NO_EMOJI" in os.environ
    if no_emoji:
        clippy_message = "The code is compiling, and Clippy is happy!"
    else:
        clippy_message = "The code is compiling, and 📎 Clippy 📎 is happy!"
    message = {
        Mode.COMPILE: "The code is compiling!",
        Mode.TEST: "The code is compiling, and the tests pass!",
        Mode.CLIPPY: clippy_message,
        Mode.BUILD_SCRIPT: "Build script works!",
    }[exercise.mode]

    print()
    print(f"~*~ {message} ~*~" if no_emoji else f"🎉 🎉  {message} 🎉 🎉")
    print()

    if output is not None:
        print("Output:")
        print(_separator())
        print(output)
        print(_separator())
        print()
    if success_hints:
        print("Hints:")
        print(_separator())
        print(exercise.hint)
        print(_separator())
        print()

    print("You can keep working on this exercise,")
    print(
        "or jump into the next one by removing the "
        f"{_bold('`I AM NOT DONE`')} comment:"
    )
    print()
    for context_line in state.context:
        text = _bold(context_line.line) if context_line.important else context_line.line
        number = colored(f"{context_line.number:>2}", "blue", attrs=["bold"])
        bar = colored("|", "blue")
        print(f"{number} {bar}  {text}")

    return False


def _compile_only(exercise: Exercise, success_hints: bool) -> bool:
    with _compile(exercise):
        pass
    return _prompt_for_completion(exercise, None, success_hints)


def _compile_and_run_interactively(exercise: Exercise, success_hints: bool) -> bool:
    with _compile(exercise) as compiled:
        output = compiled.run()
    if not output.success:
        warn(f"Ran {exercise} with errors")
        print(output.stdout)
        print(output.stderr)
        raise VerificationFailed(exercise)
    return _prompt_for_completion(exercise, output.stdout, success_hints)


def _compile_and_test(
    exercise: Exercise, interactive: bool, verbose: bool, success_hints: bool
) -> bool:
    with _compile(exercise) as compiled:
        output = compiled.run()
    if not output.success:
        warn(f"Testing of {exercise} failed! Please try again. Here's the output:")
        print(output.stdout)
        raise VerificationFailed(exercise)
    if verbose:
        print(output.stdout)
    if interactive:
        return _prompt_for_completion(exercise, None, success_hints)
    return True


def _check(exercise: Exercise, verbose: bool, success_hints: bool) -> bool:
    match exercise.mode:
        case Mode.TEST | Mode.BUILD_SCRIPT:
            return _compile_and_test(exercise, True, verbose, success_hints)
        case Mode.COMPILE:
            return _compile_and_run_interactively(exercise, success_hints)
        case Mode.CLIPPY:
            return _compile_only(exercise, success_hints)
    raise ValueError(f"unknown mode {exercise.mode!r}")


def verify(
    exercises: Iterable[Exercise],
    progress: tuple[int, int],
    verbose: bool = False,
    success_hints: bool = False,
) -> None:
    """Check each exercise in turn.

    Raises VerificationFailed carrying the first exercise that fails or is
    still marked as pending.
    """
    num_done, total = progress
    step = 100.0 / total if total else 0.0
    percentage = num_done * step
    with tqdm(total=total, initial=num_done, bar_format=_BAR_FORMAT, ascii="-#") as bar:
        bar.set_postfix_str(f"({percentage:.1f} %)")
        for exercise in exercises:
            if not _check(exercise, verbose, success_hints):
                raise VerificationFailed(exercise)
            percentage += step
            bar.update(1)
            bar.set_postfix_str(f"({percentage:.1f} %)")


def test(exercise: Exercise, verbose: bool = False) -> None:
    """Build and run an exercise's tests without prompting.

    Raises VerificationFailed when building or testing fails.
    """
    _compile_and_test(exercise, False, verbose, False)