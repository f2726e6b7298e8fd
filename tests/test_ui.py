import pytest

from drillrunner.ui import success, warn


@pytest.fixture
def no_emoji(monkeypatch):
    monkeypatch.setenv("NO_EMOJI", "1")


@pytest.fixture
def with_emoji(monkeypatch):
    monkeypatch.delenv("NO_EMOJI", raising=False)


def test_warn_without_emoji(no_emoji, capsys):
    warn("Ran ex.rs with errors")
    out = capsys.readouterr().out
    assert "Ran ex.rs with errors" in out
    assert "!" in out
    assert "⚠️" not in out
    assert out.endswith("\n")


def test_warn_with_emoji(with_emoji, capsys):
    warn("Compiling failed")
    out = capsys.readouterr().out
    assert "⚠️" in out
    assert "Compiling failed" in out


def test_success_without_emoji(no_emoji, capsys):
    success("Successfully ran ex.rs")
    out = capsys.readouterr().out
    assert "✓" in out
    assert "✅" not in out
    assert "Successfully ran ex.rs" in out


def test_success_with_emoji(with_emoji, capsys):
    success("all good")
    out = capsys.readouterr().out
    assert "✅" in out
    assert "all good" in out
    assert out.count("\n") == 1


def test_prefix_precedes_message(no_emoji, capsys):
    warn("message body")
    out = capsys.readouterr().out
    assert out.index("!") < out.index("message body")