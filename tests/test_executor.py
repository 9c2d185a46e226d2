import os

import pytest

from minish.builtins import ExitRequest
from minish.environment import Environment
from minish.executor import (
    CommandError,
    RedirectError,
    execute,
    open_redirects,
    read_heredocs,
    resolve_command,
    status_from_returncode,
)
from minish.lexer import lex
from minish.parser import Command, Redirect, RedirectKind, parse


def _env(**extra):
    strings = [f"PATH={os.environ.get('PATH', os.defpath)}"]
    strings += [f"{name}={value}" for name, value in extra.items()]
    return Environment.from_strings(strings, os.getcwd())


def _commands(line, env):
    return parse(lex(line), env)


def _lines(*lines):
    items = iter(lines)
    return lambda prompt: next(items, None)


def _no_input(prompt):
    raise AssertionError("unexpected read")


@pytest.mark.parametrize("code, status", [(0, 0), (1, 1), (-2, 130), (-3, 131)])
def test_status_from_returncode(code, status):
    assert status_from_returncode(code) == status


def test_resolve_empty_name():
    with pytest.raises(CommandError) as info:
        resolve_command("", _env())
    assert info.value.status == 127
    assert "command not found" in str(info.value)


def test_resolve_dot():
    with pytest.raises(CommandError) as info:
        resolve_command(".", _env())
    assert info.value.status == 2


def test_resolve_missing_path(tmp_path):
    with pytest.raises(CommandError) as info:
        resolve_command(str(tmp_path / "missing"), _env())
    assert info.value.status == 127
    assert "No such file or directory" in str(info.value)


def test_resolve_directory(tmp_path):
    with pytest.raises(CommandError) as info:
        resolve_command(str(tmp_path), _env())
    assert info.value.status == 126


def test_resolve_not_executable(tmp_path):
    script = tmp_path / "script"
    script.write_text("x")
    script.chmod(0o644)
    with pytest.raises(CommandError) as info:
        resolve_command(str(script), _env())
    assert info.value.status == 126
    assert "Permission denied" in str(info.value)


def test_resolve_found_in_path():
    path = resolve_command("sh", _env())
    assert os.path.basename(path) == "sh"
    assert os.access(path, os.X_OK)


def test_resolve_without_path_looks_in_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(CommandError) as info:
        resolve_command("nothing_here", Environment())
    assert info.value.status == 127


def test_output_redirect_truncates(tmp_path):
    target = tmp_path / "out"
    target.write_text("old content")
    command = Command(["cat"], [Redirect(RedirectKind.OUT, str(target))])
    with open_redirects(command, []) as streams:
        streams.stdout.write(b"new")
    assert target.read_text() == "new"


def test_append_redirect(tmp_path):
    target = tmp_path / "out"
    target.write_text("a")
    command = Command(["cat"], [Redirect(RedirectKind.APPEND, str(target))])
    with open_redirects(command, []) as streams:
        streams.stdout.write(b"b")
    assert target.read_text() == "ab"


def test_missing_input_raises(tmp_path):
    missing = str(tmp_path / "missing")
    command = Command(["cat"], [Redirect(RedirectKind.IN, missing)])
    with pytest.raises(RedirectError) as info:
        open_redirects(command, [])
    assert missing in str(info.value)


def test_ambiguous_redirect_raises():
    command = Command(["cat"], [Redirect(RedirectKind.OUT, "$X", ambiguous=True)])
    with pytest.raises(RedirectError) as info:
        open_redirects(command, [])
    assert "ambiguous redirect" in str(info.value)
    assert info.value.to_stdout


def test_heredoc_then_input_last_wins(tmp_path):
    source = tmp_path / "in"
    source.write_text("file body")
    heredoc = Command(["cat"], [Redirect(RedirectKind.HEREDOC, "EOF")])
    with open_redirects(heredoc, ["doc body\n"]) as streams:
        assert streams.stdin.read() == b"doc body\n"
    both = Command(
        ["cat"],
        [Redirect(RedirectKind.HEREDOC, "EOF"), Redirect(RedirectKind.IN, str(source))],
    )
    with open_redirects(both, ["doc body\n"]) as streams:
        assert streams.stdin.read() == b"file body"


def test_read_heredocs_expands():
    env = _env(HOME="/h")
    bodies = read_heredocs(_commands("cat << EOF", env), env, _lines("a $HOME", "EOF"))
    assert bodies == [["a /h\n"]]


def test_read_heredocs_quoted_delimiter_keeps_text():
    env = _env(HOME="/h")
    commands = _commands("cat << 'EOF'", env)
    bodies = read_heredocs(commands, env, _lines("a $HOME", "EOF"))
    assert bodies == [["a $HOME\n"]]


def test_read_heredocs_end_of_input(capsys):
    env = _env()
    bodies = read_heredocs(_commands("cat << EOF", env), env, _lines("x"))
    assert bodies == [["x\n"]]
    assert "wanted`EOF'" in capsys.readouterr().out


def test_too_many_heredocs(capsys):
    env = _env()
    commands = _commands("cat" + " << E" * 17, env)
    with pytest.raises(ExitRequest) as info:
        read_heredocs(commands, env, _no_input)
    assert info.value.status == 2
    assert "maximum here-document count exceeded" in capsys.readouterr().out


def test_external_with_redirects(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "in").write_text("data\n")
    env = _env()
    assert execute(_commands("cat < in > out", env), env, _no_input) == 0
    assert (tmp_path / "out").read_text() == "data\n"


def test_builtin_output_redirect(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    env = _env()
    assert execute(_commands("echo hello > out", env), env, _no_input) == 0
    assert (tmp_path / "out").read_text() == "hello\n"


def test_builtin_in_pipeline(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    env = _env()
    assert execute(_commands("echo piped | cat > out", env), env, _no_input) == 0
    assert (tmp_path / "out").read_text() == "piped\n"


def test_pipeline_round_trip(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "in").write_text("one\ntwo\n")
    env = _env()
    status = execute(_commands("cat in | cat | cat > out", env), env, _no_input)
    assert status == 0
    assert (tmp_path / "out").read_text() == (tmp_path / "in").read_text()


def test_exit_status_recorded():
    env = _env()
    assert execute(_commands("sh -c 'exit 3'", env), env, _no_input) == 3
    assert env.exit_status == 3


def test_command_not_found():
    env = _env()
    assert execute(_commands("nosuchcmd_zz", env), env, _no_input) == 127


def test_missing_input_file_status(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    env = _env()
    assert execute(_commands("cat < missing", env), env, _no_input) == 1


def test_export_in_pipeline_is_isolated():
    env = _env()
    assert execute(_commands("export XVAR=1 | cat", env), env, _no_input) == 0
    assert env.get("XVAR") is None
    execute(_commands("export XVAR=1", env), env, _no_input)
    assert env.get("XVAR") == "1"


def test_redirect_without_command(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    env = _env()
    env.exit_status = 5
    assert execute(_commands("> out", env), env, _no_input) == 5
    assert (tmp_path / "out").exists()


def test_exit_alone_raises(capsys):
    env = _env()
    with pytest.raises(ExitRequest) as info:
        execute(_commands("exit 4", env), env, _no_input)
    assert info.value.status == 4
    assert capsys.readouterr().out == "exit\n"


def test_exit_in_pipeline_returns_status(capsys):
    env = _env()
    assert execute(_commands("cat /dev/null | exit 4", env), env, _no_input) == 4
    assert "exit" not in capsys.readouterr().out


def test_heredoc_feeds_command(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    env = _env()
    status = execute(_commands("cat << EOF > out", env), env, _lines("one", "EOF"))
    assert status == 0
    assert (tmp_path / "out").read_text() == "one\n"