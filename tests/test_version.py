import tomllib
from importlib.metadata import PackageNotFoundError
from unittest.mock import patch

from auto_proposer import version as version_module


def test_uses_installed_distribution_version():
    with patch.object(version_module, "version", return_value="9.9.9") as lookup:
        assert version_module.get_version() == "9.9.9"

    lookup.assert_called_once_with("auto-proposer")


def test_falls_back_to_pyproject_when_not_installed():
    with version_module.PYPROJECT_PATH.open("rb") as f:
        expected = tomllib.load(f)["project"]["version"]

    with patch.object(
        version_module, "version", side_effect=PackageNotFoundError("auto-proposer")
    ):
        assert version_module.get_version() == expected
