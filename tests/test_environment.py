from minish.environment import DEFAULT_PATH, Environment


def test_set_and_get():
    env = Environment()
    env.set("FOO=bar")
    assert env.get("FOO") == "bar"
    assert "FOO" in env


def test_get_missing_and_none():
    env = Environment()
    assert env.get("NOPE") is None
    assert env.get(None) is None


def test_declaration_without_value():
    env = Environment()
    env.set("X")
    assert env.get("X") is None
    assert env.to_envp() == []
    assert env.export_lines() == ["declare -x X"]


def test_declaration_does_not_clobber_value():
    env = Environment()
    env.set("X=1")
    env.set("X")
    assert env.get("X") == "1"


def test_empty_value_reads_as_none_but_is_exported():
    env = Environment()
    env.set("A=")
    assert env.get("A") is None
    assert env.to_envp() == ["A="]


def test_append_to_existing():
    env = Environment()
    env.set("A=x")
    env.append("A+=y")
    assert env.get("A") == "x" + "y"


def test_append_creates_variable():
    env = Environment()
    env.append("B+=z")
    assert env.get("B") == "z"


def test_append_to_declared_variable():
    env = Environment()
    env.set("C")
    env.append("C+=v")
    assert env.get("C") == "v"


def test_unset():
    env = Environment()
    env.set("A=1")
    assert env.unset("A") is True
    assert env.get("A") is None
    assert env.unset("A") is False


def test_order_kept_and_reset_moves_to_end():
    env = Environment()
    env.set("A=1")
    env.set("B=2")
    assert env.env_lines() == ["A=1", "B=2"]
    env.unset("A")
    env.set("A=1")
    assert env.env_lines() == ["B=2", "A=1"]


def test_export_lines_sorted_and_formatted():
    env = Environment()
    for assignment in ["Z=1", "A=1", "M=1", "_=skip"]:
        env.set(assignment)
    lines = env.export_lines()
    assert lines == sorted(lines)
    assert 'declare -x A="1"' in lines
    assert all("declare -x _" not in line for line in lines)


def test_from_strings_empty_environment():
    env = Environment.from_strings([], "/some/dir")
    assert env.get("PWD") == "/some/dir"
    assert env.get("SHLVL") == "1"
    assert env.get("_") == "/usr/bin/env"
    assert env.get("PATH") == DEFAULT_PATH
    assert "declare -x OLDPWD" in env.export_lines()
    assert all(not line.startswith("PATH=") for line in env.env_lines())
    assert "PATH=" + DEFAULT_PATH in env.to_envp()
    assert all("PATH" not in line for line in env.export_lines())


def test_from_strings_bumps_shell_level():
    env = Environment.from_strings(["A=1", "SHLVL=4"], "/tmp")
    assert env.get("A") == "1"
    assert env.get("SHLVL") == "5"


def test_from_strings_adds_missing_shell_level():
    env = Environment.from_strings(["A=1"], "/tmp")
    assert env.get("SHLVL") == "1"


def test_shell_level_too_high(capsys):
    env = Environment.from_strings(["SHLVL=999"], "/tmp")
    assert env.get("SHLVL") == "1"
    assert "shell level (1000) too high" in capsys.readouterr().out


def test_exit_status_default():
    env = Environment()
    assert env.exit_status == 0
    assert env.pwd is None