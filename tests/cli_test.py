"""Tests for the pyrotator command-line interface."""

import json

import pytest
from click.testing import CliRunner

from pyrotator.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


class TestRender:
    """Test the render command."""

    def test_render_at_instant(self, runner):
        result = runner.invoke(
            cli, ["render", "%%%d{yyyy}", "--at", "2020-06-01T00:00:00", "--locale", "en_US"]
        )
        assert result.exit_code == 0
        assert result.output == "%2020\n"

    def test_render_invalid_pattern(self, runner):
        result = runner.invoke(cli, ["render", "app.log"])
        assert result.exit_code == 1
        assert "missing date time directive" in result.output


class TestBoundaries:
    """Test the boundaries command."""

    def test_boundaries_at_instant(self, runner):
        result = runner.invoke(cli, ["boundaries", "--at", "2017-12-25T06:00:00"])
        assert result.exit_code == 0
        assert "2017-12-26T00:00:00+00:00" in result.output
        assert "2018-01-01T00:00:00+00:00" in result.output

    def test_boundaries_invalid_instant(self, runner):
        result = runner.invoke(cli, ["boundaries", "--at", "yesterday"])
        assert result.exit_code == 1


class TestTee:
    """Test copying standard input into a rotating file."""

    def test_tee_writes_lines(self, runner, tmp_path):
        settings = tmp_path / "settings.json"
        settings.write_text(
            json.dumps(
                {
                    "file": str(tmp_path / "out.log"),
                    "file_pattern": str(tmp_path / "out-%d{yyyyMMdd-HHmmss.SSS}.log"),
                    "locale": "en_US",
                    "policies": [{"type": "size", "max_byte_count": 1024}, {"type": "daily"}],
                }
            )
        )

        result = runner.invoke(cli, ["tee", str(settings)], input="a\nb\n")

        assert result.exit_code == 0, result.output
        assert (tmp_path / "out.log").read_bytes() == b"a\nb\n"

    def test_tee_invalid_settings(self, runner, tmp_path):
        settings = tmp_path / "settings.json"
        settings.write_text(json.dumps({"file": "x"}))

        result = runner.invoke(cli, ["tee", str(settings)])

        assert result.exit_code == 1
        assert "invalid settings" in result.output
