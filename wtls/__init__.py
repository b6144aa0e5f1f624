"""wtls: list git worktrees with live status."""
