"""Version management for the GameDesk API.

Provides version information using importlib.metadata with fallback to
the repository's pyproject.toml when running from a source checkout.
"""

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

DISTRIBUTION_NAME = "gamedesk-api"


def get_version() -> str:
    """Get the application version.

    Returns:
        Version string (e.g., "0.1.0"), or "0.0.0+unknown" when neither the
        installed metadata nor pyproject.toml is available
    """
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        pyproject_path = Path(__file__).resolve().parents[3] / "pyproject.toml"
        if not pyproject_path.exists():
            return "0.0.0+unknown"

        with open(pyproject_path, "rb") as f:
            pyproject_data = tomllib.load(f)

        return pyproject_data["project"]["version"]


__version__ = get_version()
