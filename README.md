# minish

`minish` is a small interactive shell. It reads command lines, splits them
into words and operators, expands variables, and runs the result as a single
command or as a pipeline of programs.

## Features

- Pipelines: `ls | grep py | wc -l`
- Redirections: `<`, `>`, `>>` and here-documents with `<<`; when a command
  has several of one direction, the last one wins
- Single and double quotes, with `$NAME` and `$?` expansion; unquoted
  expansions are split into separate words (except in the arguments of
  `export` after a `=`)
- Here-document lines are expanded unless the delimiter was quoted
- Builtins: `echo` (with `-n`), `cd`, `pwd`, `env`, `export`, `unset`, `exit`
- Programs are looked up along `PATH`; names containing `/` are run directly
- `SHLVL` is raised by one at start-up; when the shell is started with an
  empty environment it sets `PATH`, `PWD`, `SHLVL`, `OLDPWD` and `_` itself
- At most 16 here-documents per line; more ends the shell with status 2
- Ctrl-C at the prompt starts a fresh line and sets `$?` to 130

## Installing

```
pip install .
```

## Running

```
minish
```

The shell takes no arguments. It prints a prompt and runs each line you type.
End of input (Ctrl-D) prints `exit` and leaves the shell with the status of
the last command; `exit [n]` leaves with status `n`.

```
minshell $ export GREETING="hello world"
minshell $ echo $GREETING | tr a-z A-Z
HELLO WORLD
minshell $ cat << END > notes.txt
> first line
> END
minshell $ exit 3
```

## Using it from Python

```python
from minish.builtins import ExitRequest
from minish.shell import Shell

shell = Shell(environ={"PATH": "/usr/bin:/bin"})
status = shell.run_line("echo hi > out.txt")
try:
    shell.run_line("exit 4")
except ExitRequest as request:
    print(request.status)  # 4
```

`Shell(environ, cwd)` builds its variables from `environ` (by default
`os.environ`); `cwd` is only used for `PWD` when `environ` is empty.
`Shell.run_line` returns the line's status, and a lone `exit` raises
`minish.builtins.ExitRequest`. `Shell.repl` runs the interactive loop.

The parts can also be used on their own:

- `minish.lexer.lex(line)` turns a line into `Token`s, raising
  `ShellSyntaxError` for unbalanced quotes or misplaced operators
- `minish.parser.parse(tokens, env)` turns tokens into `Command` objects with
  `argv` and `redirects`
- `minish.executor.execute(commands, env, reader)` runs them against a
  `minish.environment.Environment`; `reader(prompt)` supplies here-document
  lines and returns `None` at end of input
- `minish.expansion.expand_word`, `expand_heredoc_line` and `remove_quotes`
  perform expansion and quote removal

## What it does not do

`minish` has no `;`, `&&` or `||`, no background jobs, no subshells (a `(` or
`)` outside quotes is a syntax error), no globbing, no backslash escapes and
no variable assignment except through `export`. Builtins that are part of a
pipeline run on a copy of the shell's variables, so `cd` or `export` there
does not change the shell. History is kept only through Python's `readline`
module when it is available.

## Running the tests

```
pip install .[test]
pytest
```