"""GitHub repository reference helpers."""

import re

_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def normalize_target(target: str) -> str:
    """Return the canonical ``owner/repo`` form of a repository target.

    Accepts ``owner/repo`` as well as HTTPS and SSH GitHub URLs.
    Raises ValueError if the target cannot be parsed.
    """
    result = _extract_owner_repo(target)
    if result is None:
        raise ValueError(f"cannot parse GitHub repository target: {target!r}")
    return result


def _extract_owner_repo(target: str) -> str | None:
    """Extract 'owner/repo' from a target string.

    Handles:
      - owner/repo
      - https://github.com/owner/repo
      - https://github.com/owner/repo.git
      - git@github.com:owner/repo.git
    """
    target = target.strip().rstrip("/")
    if target.endswith(".git"):
        target = target[:-4]
    if not target:
        return None

    # SSH format: git@github.com:owner/repo
    if target.startswith("git@"):
        colon_idx = target.find(":")
        if colon_idx == -1:
            return None
        target = target[colon_idx + 1 :]
    elif "://" in target:
        target = target.split("://", 1)[1]
        # drop the host
        if "/" not in target:
            return None
        target = target.split("/", 1)[1]

    parts = target.split("/")
    if len(parts) == 2 and all(_NAME_RE.match(p) for p in parts):
        return f"{parts[0]}/{parts[1]}"
    return None
