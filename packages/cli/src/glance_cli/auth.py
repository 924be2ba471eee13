"""GitHub token resolution and gh CLI diagnostics.

Resolution order (stops at first success):
  1. GITHUB_TOKEN environment variable (CI / explicit override)
  2. `gh auth token` (GitHub CLI session, works after `gh auth login`)

The default lookup backend runs `gh` itself, so a token is only strictly
required for `lookup: api`; `glance check` reports both either way.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class GhStatus:
    installed: bool
    authenticated: bool
    output: str = ""


def resolve_github_token() -> str | None:
    """Return a GitHub token or None if no valid source is available.

    Never raises. Callers should check for None and emit a UsageError.
    """
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            gh_token = result.stdout.strip()
            if gh_token:
                logger.debug("Resolved GitHub token via gh CLI session.")
                return gh_token
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # gh is not installed or timed out.
        pass

    return None


def gh_auth_status() -> GhStatus:
    """Run `gh auth status` and report whether gh is installed and logged in."""
    try:
        result = subprocess.run(
            ["gh", "auth", "status"],
            capture_output=True,
            text=True,
            stdin=subprocess.DEVNULL,
            timeout=10,
        )
    except FileNotFoundError:
        return GhStatus(installed=False, authenticated=False)
    except subprocess.TimeoutExpired:
        return GhStatus(installed=True, authenticated=False, output="gh auth status timed out")
    output = f"{result.stdout} {result.stderr}".strip()
    return GhStatus(installed=True, authenticated=result.returncode == 0, output=output)
