"""Shell integration scripts printed by ``wtree init``.

The ``wtree`` executable cannot change its parent shell's directory, so the
integration defines a ``wtree`` shell function that runs the real command and
``cd``s into the path printed by ``jump`` and ``back``. Tab completion comes
from click's own completion scripts.
"""

from __future__ import annotations

import click

SHELLS = ("bash", "zsh", "fish")

_POSIX_TEMPLATE = """\
# wtree shell integration for {shell}
# Add to ~/.{rc}:  eval "$(wtree init {shell})"

wtree() {{
    case "$1" in
        jump|back)
            local result
            result="$(command wtree "$@")" || return $?
            if [ -n "$result" ]; then
                cd "$result" || return 1
            fi
            ;;
        *)
            command wtree "$@"
            ;;
    esac
}}

eval "$(_WTREE_COMPLETE={shell}_source command wtree)"
"""

_FISH_TEMPLATE = """\
# wtree shell integration for fish
# Add to ~/.config/fish/config.fish:  wtree init fish | source

function wtree
    switch $argv[1]
        case jump back
            set -l result (command wtree $argv)
            or return $status
            if test -n "$result"
                cd $result
            end
        case '*'
            command wtree $argv
    end
end

env _WTREE_COMPLETE=fish_source wtree | source
"""


def shell_script(shell: str) -> str:
    if shell == "fish":
        return _FISH_TEMPLATE
    if shell == "bash":
        return _POSIX_TEMPLATE.format(shell="bash", rc="bashrc")
    if shell == "zsh":
        return _POSIX_TEMPLATE.format(shell="zsh", rc="zshrc")
    raise ValueError(f"Unsupported shell: {shell}")


def run_init(shell: str) -> None:
    click.echo(shell_script(shell), nl=False)
