import subprocess
from pathlib import Path

import pytest

from drillrunner.exercise import (
    CompilationError,
    CompiledExercise,
    ContextLine,
    Exercise,
    ExerciseOutput,
    Mode,
    State,
    load_exercises,
    parse_exercises,
)

PENDING = "// fake_exercise\n\n// I AM NOT DONE\n\nfn main() {\n\n}\n"
FINISHED = "// fake_exercise\n\nfn main() {\n\n}\n"


def completed(returncode=0, stdout=b"", stderr=b""):
    return subprocess.CompletedProcess(
        args=[], returncode=returncode, stdout=stdout, stderr=stderr
    )


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_pending_state(tmp_path):
    path = tmp_path / "pending_exercise.rs"
    path.write_text(PENDING)
    exercise = Exercise("pending_exercise", path, Mode.COMPILE, "")
    expected = (
        ContextLine("// fake_exercise", 1, False),
        ContextLine("", 2, False),
        ContextLine("// I AM NOT DONE", 3, True),
        ContextLine("", 4, False),
        ContextLine("fn main() {", 5, False),
    )
    assert exercise.state() == State(expected)
    assert exercise.looks_done() is False


def test_finished_exercise(tmp_path):
    path = tmp_path / "finished_exercise.rs"
    path.write_text(FINISHED)
    exercise = Exercise("finished_exercise", path, Mode.COMPILE, "")
    assert exercise.state() == State()
    assert exercise.state().done is True
    assert exercise.looks_done() is True


def test_state_context_clamped_at_start(tmp_path):
    path = tmp_path / "ex.rs"
    path.write_text("  /// I  AM   NOT DONE\nfn a() {}\nfn b() {}\nfn c() {}\n")
    state = Exercise("ex", path, Mode.TEST).state()
    assert [c.number for c in state.context] == [1, 2, 3]
    assert state.context[0].important is True
    assert state.context[0].line == "  /// I  AM   NOT DONE"


def test_state_ignores_other_markers(tmp_path):
    path = tmp_path / "ex.rs"
    path.write_text("// I AM DONE\nlet x = 1; // I AM NOT DONE\n")
    assert Exercise("ex", path, Mode.COMPILE).looks_done() is True


def test_clean(workdir, mocker):
    mocker.patch("subprocess.run", return_value=completed())
    exercise = Exercise("example", Path("pending_exercise.rs"), Mode.COMPILE, "")
    compiled = exercise.compile()
    Path(compiled.binary).write_text("")
    compiled.close()
    assert not Path(compiled.binary).exists()


def test_context_manager_cleans(workdir, mocker):
    mocker.patch("subprocess.run", return_value=completed())
    exercise = Exercise("example", Path("ex.rs"), Mode.COMPILE)
    with exercise.compile() as compiled:
        Path(compiled.binary).write_text("")
        assert isinstance(compiled, CompiledExercise)
    assert not Path(compiled.binary).exists()


def test_compile_command_for_compile_mode(workdir, mocker):
    run = mocker.patch("subprocess.run", return_value=completed())
    compiled = Exercise("ex", Path("ex.rs"), Mode.COMPILE).compile()
    args = run.call_args.args[0]
    assert args == [
        "rustc", "ex.rs", "-o", compiled.binary,
        "--color", "always", "--edition", "2021",
    ]


def test_compile_command_for_test_mode(workdir, mocker):
    run = mocker.patch("subprocess.run", return_value=completed())
    compiled = Exercise("ex", Path("ex.rs"), Mode.TEST).compile()
    assert run.call_args.args[0][:5] == ["rustc", "--test", "ex.rs", "-o", compiled.binary]


def test_exercise_with_output(workdir, mocker):
    run = mocker.patch(
        "subprocess.run",
        side_effect=[completed(), completed(stdout=b"THIS TEST TOO SHALL PASS\n")],
    )
    exercise = Exercise("exercise_with_output", Path("testSuccess.rs"), Mode.TEST)
    compiled = exercise.compile()
    out = compiled.run()
    assert "THIS TEST TOO SHALL PASS" in out.stdout
    assert out.success is True
    assert run.call_args.args[0] == [compiled.binary, "--show-output"]


def test_run_failure_is_reported(workdir, mocker):
    mocker.patch(
        "subprocess.run",
        side_effect=[completed(), completed(returncode=101, stdout=b"\xff", stderr=b"panic")],
    )
    out = Exercise("ex", Path("ex.rs"), Mode.COMPILE).compile().run()
    assert out == ExerciseOutput("\ufffd", "panic", success=False)


def test_compile_failure(workdir, mocker):
    mocker.patch("subprocess.run", return_value=completed(returncode=1, stderr=b"boom"))
    exercise = Exercise("compFailure", Path("compFailure.rs"), Mode.COMPILE)
    with pytest.raises(CompilationError) as info:
        exercise.compile()
    assert info.value.output.stderr == "boom"
    assert info.value.output.success is False
    assert info.value.exercise is exercise


def test_missing_compiler(workdir, mocker):
    mocker.patch("subprocess.run", side_effect=FileNotFoundError("rustc"))
    with pytest.raises(RuntimeError, match="Failed to run 'compile' command."):
        Exercise("ex", Path("ex.rs"), Mode.COMPILE).compile()


def test_clippy_mode(workdir, mocker):
    (workdir / "exercises" / "clippy").mkdir(parents=True)
    run = mocker.patch("subprocess.run", return_value=completed())
    compiled = Exercise("clippy1", Path("exercises/clippy/clippy1.rs"), Mode.CLIPPY).compile()
    commands = [call.args[0] for call in run.call_args_list]
    assert [c[0] for c in commands] == ["rustc", "cargo", "cargo"]
    assert commands[0][2:4] == ["-o", compiled.binary]
    assert commands[1][1] == "clean"
    assert commands[2][1] == "clippy"
    assert commands[2][-5:] == ["--", "-D", "warnings", "-D", "clippy::float_cmp"]
    manifest = (workdir / "exercises" / "clippy" / "Cargo.toml").read_text()
    assert 'name = "clippy1"' in manifest
    assert 'path = "clippy1.rs"' in manifest


def test_clippy_manifest_write_failure(workdir, monkeypatch):
    monkeypatch.setenv("NO_EMOJI", "1")
    with pytest.raises(RuntimeError, match="Failed to write Clippy Cargo.toml file."):
        Exercise("clippy1", Path("clippy1.rs"), Mode.CLIPPY).compile()


def test_build_script_mode(workdir, mocker):
    (workdir / "exercises" / "tests").mkdir(parents=True)
    run = mocker.patch("subprocess.run", return_value=completed())
    compiled = Exercise("build", Path("build.rs"), Mode.BUILD_SCRIPT).compile()
    assert run.call_args.args[0] == [
        "cargo", "test", "--manifest-path", "./exercises/tests/Cargo.toml"
    ]
    assert compiled.run() == ExerciseOutput("", "")
    assert run.call_count == 1


def test_str_is_path():
    assert str(Exercise("ex", Path("exercises/if/if1.rs"), Mode.TEST)) == str(
        Path("exercises/if/if1.rs")
    )


def test_parse_exercises():
    text = (
        '[[exercises]]\nname = "intro1"\npath = "exercises/intro/intro1.rs"\n'
        'mode = "compile"\nhint = "No hints"\n\n'
        '[[exercises]]\nname = "b"\npath = "b.rs"\nmode = "buildscript"\nhint = ""\n'
    )
    exercises = parse_exercises(text)
    assert [e.name for e in exercises] == ["intro1", "b"]
    assert exercises[0].mode is Mode.COMPILE
    assert exercises[0].path == Path("exercises/intro/intro1.rs")
    assert exercises[0].hint == "No hints"
    assert exercises[1].mode is Mode.BUILD_SCRIPT


def test_parse_rejects_unknown_mode():
    with pytest.raises(ValueError):
        parse_exercises('[[exercises]]\nname = "a"\npath = "a.rs"\nmode = "x"\nhint = ""\n')


def test_parse_rejects_missing_field():
    with pytest.raises(ValueError):
        parse_exercises('[[exercises]]\nname = "a"\nmode = "test"\nhint = ""\n')


def test_load_exercises(tmp_path):
    info = tmp_path / "info.toml"
    info.write_text('[[exercises]]\nname = "a"\npath = "a.rs"\nmode = "clippy"\nhint = "h"\n')
    exercises = load_exercises(info)
    assert len(exercises) == 1
    assert exercises[0].mode is Mode.CLIPPY