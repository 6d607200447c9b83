"""Tests for resas_downloader.cli."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner, Result

from resas_downloader.cli import cli
from resas_downloader.client import ResasClient
from resas_downloader.errors import ResasStatusError, RetryExhaustedError
from resas_downloader.models import City, CityTable, Prefecture


class TestPrefecturesCommand:
    def test_prefectures_help(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["prefectures", "--help"])
        assert result.exit_code == 0
        assert "--format" in result.output

    def test_prefectures_json(self) -> None:
        prefectures = [Prefecture(pref_code=13, pref_name="東京都")]
        runner = CliRunner()
        with patch.object(
            ResasClient, "get_prefectures", new_callable=AsyncMock, return_value=prefectures
        ):
            result = runner.invoke(cli, ["--token", "k", "prefectures", "--format", "json"])
        assert result.exit_code == 0
        assert json.loads(result.output) == [{"pref_code": 13, "pref_name": "東京都"}]

    def test_prefectures_table(self) -> None:
        prefectures = [Prefecture(pref_code=1, pref_name="北海道")]
        runner = CliRunner()
        with patch.object(
            ResasClient, "get_prefectures", new_callable=AsyncMock, return_value=prefectures
        ):
            result = runner.invoke(cli, ["--token", "k", "prefectures"])
        assert result.exit_code == 0
        assert "北海道" in result.output

    def test_prefectures_api_error(self) -> None:
        runner = CliRunner()
        with patch.object(
            ResasClient,
            "get_prefectures",
            new_callable=AsyncMock,
            side_effect=ResasStatusError("403 Forbidden.", status_code=403),
        ):
            result = runner.invoke(cli, ["--token", "k", "prefectures"])
        assert result.exit_code == 1
        assert "403 Forbidden." in result.output


class TestCitiesCommand:
    def test_cities_table(self) -> None:
        cities = [City(pref_code=13, city_code="13101", city_name="千代田区", big_city_flag="3")]
        runner = CliRunner()
        with patch.object(
            ResasClient, "get_cities", new_callable=AsyncMock, return_value=cities
        ) as mock_get_cities:
            result = runner.invoke(cli, ["--token", "k", "cities", "13"])
        assert result.exit_code == 0
        assert "13101" in result.output
        mock_get_cities.assert_awaited_once_with(13)

    def test_cities_empty(self) -> None:
        runner = CliRunner()
        with patch.object(ResasClient, "get_cities", new_callable=AsyncMock, return_value=[]):
            result = runner.invoke(cli, ["--token", "k", "cities", "99"])
        assert result.exit_code == 0
        assert "No cities found" in result.output


class TestGetCommand:
    def test_get_help(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["get", "--help"])
        assert result.exit_code == 0
        assert "--param" in result.output
        assert "--no-retry" in result.output

    def test_get_passes_params_and_retry_flag(self) -> None:
        runner = CliRunner()
        with patch.object(
            ResasClient, "get_json", new_callable=AsyncMock, return_value={"result": []}
        ) as mock_get_json:
            result = runner.invoke(
                cli,
                ["--token", "k", "get", "api/v1/cities", "-p", "prefCode=13", "--no-retry"],
            )
        assert result.exit_code == 0
        assert json.loads(result.output) == {"result": []}
        mock_get_json.assert_awaited_once_with(
            "api/v1/cities", {"prefCode": "13"}, with_retry=False
        )

    def test_get_bad_param(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["--token", "k", "get", "api/v1/cities", "-p", "prefCode"])
        assert result.exit_code == 2
        assert "KEY=VALUE" in result.output

    def test_get_retry_exhausted(self) -> None:
        runner = CliRunner()
        with patch.object(
            ResasClient,
            "get_json",
            new_callable=AsyncMock,
            side_effect=RetryExhaustedError("Retried 3 times", attempts=3),
        ):
            result = runner.invoke(cli, ["--token", "k", "get", "api/v1/prefectures"])
        assert result.exit_code == 1
        assert "Retried 3 times" in result.output


class TestDownloadCommand:
    def test_download_help(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["download", "--help"])
        assert result.exit_code == 0
        assert "OUTPUT_PATH" in result.output

    def _invoke_download(self, output: str) -> Result:
        prefectures = [Prefecture(pref_code=13, pref_name="東京都")]
        cities = [City(pref_code=13, city_code="13101", city_name="千代田区", big_city_flag="3")]
        runner = CliRunner()
        with (
            patch.object(
                ResasClient, "get_prefectures", new_callable=AsyncMock, return_value=prefectures
            ),
            patch.object(ResasClient, "get_cities", new_callable=AsyncMock, return_value=cities),
        ):
            return runner.invoke(cli, ["--token", "k", "download", output])

    def test_download_without_polars(self) -> None:
        error = ImportError("polars is required for to_polars()")
        with patch.object(CityTable, "to_polars", side_effect=error):
            result = self._invoke_download("cities.parquet")
        assert result.exit_code == 1
        assert "Error: polars is required" in result.output

    def test_download_unwritable_path(self) -> None:
        error = PermissionError("Permission denied: '/root/cities.parquet'")
        with patch.object(CityTable, "write_parquet", side_effect=error):
            result = self._invoke_download("/root/cities.parquet")
        assert result.exit_code == 1
        assert "Error: Permission denied" in result.output


class TestTestCommand:
    def test_test_help(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["test", "--help"])
        assert result.exit_code == 0
        assert "api" in result.output.lower() or "connectivity" in result.output.lower()

    def test_test_without_token(self) -> None:
        runner = CliRunner(env={"RESAS_API_KEY": ""})
        result = runner.invoke(cli, ["test"])
        assert result.exit_code == 1
        assert "RESAS_API_KEY is not set" in result.output


class TestVersionCommand:
    def test_version(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "resas-downloader" in result.output
        assert "0.1.0" in result.output


class TestServeCommand:
    def test_serve_help(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["serve", "--help"])
        assert result.exit_code == 0
        assert "--transport" in result.output


class TestCLI:
    def test_cli_help(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("prefectures", "cities", "get", "download", "test", "serve"):
            assert command in result.output
        assert "--token" in result.output
        assert "--attempts" in result.output

    def test_cli_verbose(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["--verbose", "version"])
        assert result.exit_code == 0
