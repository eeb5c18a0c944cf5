"""Version lookup for aws-role-identity, from BUILD_VERSION or pyproject.toml."""

import os
import tomllib
from pathlib import Path


def get_version() -> str:
    """
    Read version from BUILD_VERSION environment variable or pyproject.toml.

    Priority:
    1. BUILD_VERSION environment variable (set by release builds from the git tag)
    2. pyproject.toml project.version
    3. "unknown" as fallback

    Returns:
        str: Version string (e.g., "0.3.0")
    """
    if build_version := os.getenv("BUILD_VERSION"):
        return build_version

    try:
        pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
            return data.get("project", {}).get("version", "unknown")
    except (OSError, tomllib.TOMLDecodeError):
        return "unknown"


__version__ = get_version()
