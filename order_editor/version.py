"""
Version information for the FBR order editor.

Single source of truth: pyproject.toml, read at runtime through
importlib.metadata.
"""

import os
import sys
from datetime import datetime, timezone
from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version
from typing import Any, Dict, Optional

DISTRIBUTION_NAME = "fbr-order-editor"

# Used when running from a source tree that is not installed
_FALLBACK_VERSION = "0.1.0"


def get_version() -> str:
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return _FALLBACK_VERSION


VERSION = get_version()


@lru_cache(maxsize=1)
def get_build_info() -> Dict[str, Optional[str]]:
    """
    Build metadata injected by the container build.

    Returns:
        dict with git commit, branch, build date and build number
    """
    commit = os.environ.get("GIT_COMMIT")
    return {
        "git_commit": commit[:8] if commit else None,
        "git_branch": os.environ.get("GIT_BRANCH"),
        "build_date": os.environ.get("BUILD_DATE"),
        "build_number": os.environ.get("BUILD_NUMBER"),
    }


def version_info() -> Dict[str, Any]:
    """
    Version information served by ``/version``.

    Returns:
        dict with version, python version and build info
    """
    build = get_build_info()
    return {
        "version": VERSION,
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        **build,
        "build_date": build.get("build_date") or datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    }


def version_string() -> str:
    """Display string such as ``v0.1.0 (abc1234)``."""
    info = version_info()
    parts = [f"v{info['version']}"]
    if info.get("git_commit"):
        parts.append(f"({info['git_commit']})")
    return " ".join(parts)
