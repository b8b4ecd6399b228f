"""Tests for shared.build_info module."""

import importlib
from importlib import metadata
from unittest.mock import patch

import shared.build_info as build_info_module


class TestInstalledVersion:
    def test_returns_distribution_version(self):
        with patch("importlib.metadata.version", return_value="0.4.2") as mock_version:
            assert build_info_module._installed_version() == "0.4.2"
        mock_version.assert_called_once_with("puzzle-tracker")

    def test_returns_dev_when_not_installed(self):
        with patch("importlib.metadata.version", side_effect=metadata.PackageNotFoundError):
            assert build_info_module._installed_version() == "dev"


class TestModuleLevelConstants:
    def test_app_version_reads_from_env(self):
        with patch.dict("os.environ", {"APP_VERSION": "1.2.3"}):
            importlib.reload(build_info_module)
            assert build_info_module.APP_VERSION == "1.2.3"
        # Restore
        importlib.reload(build_info_module)

    def test_git_commit_reads_from_env(self):
        with patch.dict("os.environ", {"GIT_COMMIT": "abc1234"}):
            importlib.reload(build_info_module)
            assert build_info_module.GIT_COMMIT == "abc1234"
        # Restore
        importlib.reload(build_info_module)

    def test_git_commit_defaults_to_dev(self):
        with patch.dict("os.environ", {}, clear=True):
            importlib.reload(build_info_module)
            assert build_info_module.GIT_COMMIT == "dev"
        # Restore
        importlib.reload(build_info_module)
