"""Shell integration snippets that cd into the worktree chosen by `wtls select`."""

from __future__ import annotations

BASH = r'''wtls() {
  if [ "$1" != "select" ]; then
    command wtls "$@"
    return $?
  fi
  local tmp dest
  tmp="$(mktemp)" || return $?
  WTLS_OUTPUT_FILE="$tmp" command wtls "$@" </dev/tty >/dev/tty
  dest="$(cat "$tmp" 2>/dev/null)"
  rm -f "$tmp"
  if [ -n "$dest" ] && [ -d "$dest" ]; then
    cd "$dest" || return $?
  fi
}
'''

FISH = r'''function wtls
  if test "$argv[1]" != "select"
    command wtls $argv
    return $status
  end
  set -l tmp (mktemp)
  if test -z "$tmp"
    return 1
  end
  env WTLS_OUTPUT_FILE=$tmp command wtls $argv </dev/tty >/dev/tty
  set -l dest (cat $tmp 2>/dev/null)
  rm -f $tmp
  if test -n "$dest"; and test -d "$dest"
    cd "$dest"
  end
end
'''

SHELLS = {
    "bash": BASH,
    "zsh": BASH,
    "fish": FISH,
}


def shell_init(shell: str) -> str:
    """Integration snippet for shell; raises KeyError for an unknown shell."""
    return f"# wtls integration for {shell}\n" + SHELLS[shell]
