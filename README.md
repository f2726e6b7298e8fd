# drillrunner

drillrunner drives a directory of small programming exercises. Each one is
compiled and run, compiled as a test harness and run, linted, or built and
tested through cargo. It tells you which exercise to work on next, and in watch
mode it re-checks your work whenever you save a file.

An exercise counts as pending while its source file holds a line comment
`// I AM NOT DONE`. Once that line is gone and the exercise compiles and passes,
drillrunner moves on to the next one.

## Requirements

- Python 3.11 or later
- `rustc` on your `PATH`. Every command checks for it with `rustc --version`
  and stops with exit code 1 if it cannot be run. `cargo` is also needed for
  the `clippy` and `buildscript` exercises.
- An `info.toml` file in the working directory that lists the exercises.
  Without it every command except `--version` stops with exit code 1.

## Installing

    pip install drillrunner

## The exercise list

`info.toml` holds one `[[exercises]]` table for each exercise, in the order
they should be done. Every key is required:

    [[exercises]]
    name = "intro1"
    path = "exercises/intro/intro1.rs"
    mode = "compile"
    hint = "No hints this time ;)"

`mode` takes one of these values:

| mode          | what happens                                                        |
|---------------|---------------------------------------------------------------------|
| `compile`     | compiled with `rustc` and run                                       |
| `test`        | compiled with `rustc --test` and run with `--show-output`           |
| `clippy`      | writes `exercises/clippy/Cargo.toml`, compiles, then runs `cargo clippy` with warnings denied |
| `buildscript` | writes `exercises/tests/Cargo.toml` and runs `cargo test`           |

## Commands

Run these from the directory that holds `info.toml`:

    drillrunner                     # welcome text and a short introduction
    drillrunner watch               # verify, then re-verify whenever a file changes
    drillrunner watch --success-hints
    drillrunner verify              # check every exercise in order, stop at the first failure
    drillrunner run intro1          # compile and run (or test) a single exercise
    drillrunner run next            # the first exercise that is not done yet
    drillrunner hint intro1         # print an exercise's hint
    drillrunner reset intro1        # start `git stash -- <path>` for the exercise
    drillrunner list                # table of names, paths and status, then a progress line
    drillrunner list --unsolved --filter variables,if
    drillrunner lsp                 # write rust-project.json for rust-analyzer
    drillrunner cicvverify          # grade every exercise and write a JSON report
    drillrunner --version

`list` also takes `--paths`/`-p` and `--names`/`-n` to print only paths or
names, and `--solved`/`-s` to show only finished exercises. `--filter`/`-f`
takes comma separated patterns that are matched against names and paths.

Add `--nocapture` before a subcommand to see the output of test exercises.
Set the environment variable `NO_EMOJI` to get plain-text markers.

`run` does not look at the `I AM NOT DONE` marker; `verify` and `watch` stop at
an exercise that still carries it and show the lines around it. A failing
`run` or `verify`, or an unknown exercise name, gives exit code 1.

### Watch mode

`watch` needs an `./exercises` directory to watch. It takes these commands on
standard input:

- `hint`: print the hint for the exercise that is failing now
- `clear`: clear the screen
- `quit`: leave watch mode
- `!<cmd>`: run a program with arguments, for example `!rustc --explain E0381`
- `help`: list these commands

### Grading report

`cicvverify` runs every exercise concurrently, prints progress as each one
finishes, and writes `.github/result/check_result.json` (creating the directory
if needed). The report holds each exercise's name and result, and statistics
with the total count, the numbers of successes and failures, and the time
taken in whole seconds.

## Using it from Python

    from drillrunner.exercise import load_exercises
    from drillrunner.commands import find_exercise
    from drillrunner.run import run, RunFailed

    exercises = load_exercises("info.toml")
    exercise = find_exercise("next", exercises)
    try:
        run(exercise, verbose=True)
    except RunFailed:
        print(exercise.hint)

`find_exercise` raises `ExerciseNotFound` when no exercise matches.
`drillrunner.verify.verify` raises `VerificationFailed`, which carries the
exercise that stopped it, and `drillrunner.commands.list_exercises` writes its
table to any text stream.

## What it does not do

drillrunner ships no exercises and no `info.toml`; it only runs the ones you
give it. It does not compile anything itself: all building, testing and
linting is left to `rustc` and `cargo`.