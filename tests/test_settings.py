"""Tests for FormSettings loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from jobform.settings import FormSettings, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate from JOBFORM_ variables and .env files of the machine."""
    import os

    for name in list(os.environ):
        if name.startswith("JOBFORM_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


class TestFormSettings:
    """Tests for FormSettings."""

    def test_defaults(self, tmp_path: Path) -> None:
        settings = FormSettings.load(tmp_path)

        assert settings.lookup_timeout is None
        assert settings.log_format == "console"
        assert settings.disabled_types == []
        assert settings.api_token is None

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JOBFORM_LOOKUP_TIMEOUT", "5")
        monkeypatch.setenv("JOBFORM_API_TOKEN", "secret")

        settings = FormSettings()

        assert settings.lookup_timeout == 5.0
        assert settings.api_token == "secret"

    def test_project_file(self, tmp_path: Path) -> None:
        (tmp_path / ".jobform.yaml").write_text(
            """
jobform:
  api_base_url: http://scheduler:12345/dolphinscheduler
  lookup_timeout: 10
  disabled_types: [oracle, db2]
  unknown_setting: ignored
""",
            encoding="utf-8",
        )

        settings = FormSettings.load(tmp_path)

        assert settings.api_base_url == "http://scheduler:12345/dolphinscheduler"
        assert settings.lookup_timeout == 10.0
        assert settings.disabled_types == ["ORACLE", "DB2"]

    def test_environment_wins_over_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / ".jobform.yaml").write_text(
            "jobform:\n  lookup_timeout: 10\n  log_format: json\n", encoding="utf-8"
        )
        monkeypatch.setenv("JOBFORM_LOOKUP_TIMEOUT", "3")

        settings = FormSettings.load(tmp_path)

        assert settings.lookup_timeout == 3.0
        assert settings.log_format == "json"

    def test_malformed_file_ignored(self, tmp_path: Path) -> None:
        (tmp_path / ".jobform.yaml").write_text("jobform: [unclosed", encoding="utf-8")

        settings = FormSettings.load(tmp_path)

        assert settings.lookup_timeout is None

    def test_file_without_section(self, tmp_path: Path) -> None:
        (tmp_path / ".jobform.yaml").write_text("other: {}\n", encoding="utf-8")

        assert FormSettings.load(tmp_path).log_level == "INFO"

    def test_invalid_log_format(self) -> None:
        with pytest.raises(PydanticValidationError):
            FormSettings(log_format="xml")

    def test_log_level_normalised(self) -> None:
        assert FormSettings(log_level="debug").log_level == "DEBUG"

        with pytest.raises(PydanticValidationError):
            FormSettings(log_level="chatty")

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(PydanticValidationError):
            FormSettings(lookup_timeout=0)


class TestGetSettings:
    """Tests for the global settings accessor."""

    def test_cached_until_reload(self, monkeypatch: pytest.MonkeyPatch) -> None:
        first = get_settings(reload=True)
        assert get_settings() is first

        monkeypatch.setenv("JOBFORM_LOG_LEVEL", "DEBUG")
        assert get_settings().log_level == first.log_level
        assert get_settings(reload=True).log_level == "DEBUG"
