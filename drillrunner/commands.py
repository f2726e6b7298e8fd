"""Commands working on the whole exercise list: lookup, listing and batch grading."""

from __future__ import annotations

import json
import os
import sys
import threading
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import TextIO

from .exercise import Exercise
from .run import RunFailed, run

DEFAULT_RESULT_PATH = ".github/result/check_result.json"


class ExerciseNotFound(LookupError):
    """Raised when no exercise matches the requested name."""

    def __init__(self, name: str) -> None:
        if name == "next":
            message = (
                "🎉 Congratulations! You have done all the exercises!\n"
                "🔚 There are no more exercises to do next!"
            )
        else:
            message = f"No exercise found for '{name}'!"
        super().__init__(message)
        self.name = name

    def __str__(self) -> str:
        return self.args[0]


@dataclass
class ExerciseResult:
    """Outcome of grading one exercise."""

    name: str
    result: bool


@dataclass
class ExerciseStatistics:
    """Totals over a grading run; times are in whole seconds."""

    total_exercations: int
    total_succeeds: int = 0
    total_failures: int = 0
    total_time: int = 0


@dataclass
class ExerciseCheckList:
    """The report written after grading every exercise."""

    statistics: ExerciseStatistics
    exercises: list[ExerciseResult] = field(default_factory=list)
    user_name: str | None = None

    def to_dict(self) -> dict:
        return {
            "exercises": [asdict(result) for result in self.exercises],
            "user_name": self.user_name,
            "statistics": asdict(self.statistics),
        }

    def to_json(self) -> str:
        """The report as indented JSON."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


def find_exercise(name: str, exercises: Sequence[Exercise]) -> Exercise:
    """Find an exercise by name; "next" selects the first pending one."""
    if name == "next":
        found = next((e for e in exercises if not e.looks_done()), None)
    else:
        found = next((e for e in exercises if e.name == name), None)
    if found is None:
        raise ExerciseNotFound(name)
    return found


def list_exercises(
    exercises: Sequence[Exercise],
    paths: bool = False,
    names: bool = False,
    filter: str | None = None,
    unsolved: bool = False,
    solved: bool = False,
    out: TextIO | None = None,
) -> int:
    """Write a table (or bare names or paths) of exercises and a progress line.

    Returns the number of exercises that look done.
    """
    out = sys.stdout if out is None else out
    if not paths and not names:
        out.write(f"{'Name':<17}\t{'Path':<46}\t{'Status':<7}\n")

    patterns = [p for p in (filter or "").lower().split(",") if p.strip()]
    done_count = 0
    for exercise in exercises:
        fname = str(exercise.path)
        matches = any(p in exercise.name or p in fname for p in patterns)
        done = exercise.looks_done()
        if done:
            done_count += 1
        status = "Done" if done else "Pending"
        wanted = (done and solved) or (not done and unsolved) or (not solved and not unsolved)
        if wanted and (matches or filter is None):
            if paths:
                line = f"{fname}\n"
            elif names:
                line = f"{exercise.name}\n"
            else:
                line = f"{exercise.name:<17}\t{fname:<46}\t{status:<7}\n"
            out.write(line)

    total = len(exercises)
    percentage = done_count / total * 100.0 if total else float("nan")
    shown = "NaN" if percentage != percentage else f"{percentage:.1f}"
    out.write(
        f"Progress: You completed {done_count} / {total} exercises ({shown} %).\n"
    )
    return done_count


def cicv_verify(
    exercises: Sequence[Exercise],
    verbose: bool = True,
    result_path: str | os.PathLike = DEFAULT_RESULT_PATH,
) -> ExerciseCheckList:
    """Run every exercise concurrently, print progress and write a JSON report."""
    started = int(time.time())
    total = len(exercises)
    lock = threading.Lock()
    rights = 0
    checklist = ExerciseCheckList(statistics=ExerciseStatistics(total_exercations=total))

    def grade(exercise: Exercise, task_start: int) -> None:
        nonlocal rights
        try:
            run(exercise, verbose)
            ok = True
        except RunFailed:
            ok = False
        with lock:
            if ok:
                rights += 1
            print(f"{exercise.name}{'执行成功' if ok else '执行失败'}")
            print(f"总的题目数: {total}")
            print(f"当前做正确的题目数: {rights}")
            print(f"当前修改试卷耗时: {int(time.time()) - task_start} s")
            checklist.exercises.append(ExerciseResult(name=exercise.name, result=ok))
            if ok:
                checklist.statistics.total_succeeds += 1
            else:
                checklist.statistics.total_failures += 1

    with ThreadPoolExecutor() as pool:
        futures = [
            pool.submit(grade, exercise, int(time.time())) for exercise in exercises
        ]
        for future in futures:
            future.result()

    total_time = int(time.time()) - started
    print(
        "===============================试卷批改完成,总耗时: "
        f"{total_time} s; =================================="
    )
    checklist.statistics.total_time = total_time
    Path(result_path).write_text(checklist.to_json(), encoding="utf-8")
    return checklist