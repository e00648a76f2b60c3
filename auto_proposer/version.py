"""Application version.

Taken from the installed distribution's metadata; a source checkout that was
never installed reads it from pyproject.toml instead.
"""

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

DISTRIBUTION_NAME = "auto-proposer"
PYPROJECT_PATH = Path(__file__).resolve().parent.parent / "pyproject.toml"


def get_version() -> str:
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        with PYPROJECT_PATH.open("rb") as f:
            return tomllib.load(f)["project"]["version"]


__version__: str = get_version()
