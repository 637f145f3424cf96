from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest
from click.testing import CliRunner

from metalpro.anaf.cache import TTLCache
from metalpro.anaf.service import ANAFService
from metalpro.catalog.store import BUNDLED_CATALOG_PATH
from metalpro.cli import main as cli_main
from metalpro.cli.main import cli

FIXTURES_DIR = Path(__file__).resolve().parent.parent / "bom" / "fixtures"


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def test_cli_help(runner) -> None:
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "bom" in result.stdout
    assert "anaf" in result.stdout


def test_bom_parse_json(runner) -> None:
    result = runner.invoke(
        cli,
        ["bom", "parse", str(FIXTURES_DIR / "ro_headers.csv"), "--catalog", str(BUNDLED_CATALOG_PATH)],
        catch_exceptions=False,
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["result"]["total_rows"] == 4
    assert payload["result"]["rows"][2]["matched_product_id"] == "prod-pipe-rect-40x20x2"
    assert payload["stats"]["match_rate"] == 100.0


def test_bom_parse_without_headers(runner) -> None:
    result = runner.invoke(cli, ["bom", "parse", str(FIXTURES_DIR / "unlabeled.csv"), "--no-headers"])

    assert result.exit_code == 0
    rows = json.loads(result.stdout)["result"]["rows"]
    assert [row["matched_product_id"] for row in rows] == ["prod-unp-200-s235jr", "prod-plate-304-2mm"]


def test_bom_parse_csv_output(runner) -> None:
    result = runner.invoke(cli, ["bom", "parse", str(FIXTURES_DIR / "en_headers_offset.csv"), "--csv"])

    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert lines[0].startswith("Familie,Standard,Grad")
    assert len(lines) == 3


def test_bom_parse_empty_file_fails(runner, tmp_path) -> None:
    empty = tmp_path / "empty.csv"
    empty.write_bytes(b"")

    result = runner.invoke(cli, ["bom", "parse", str(empty)])

    assert result.exit_code == 1
    assert json.loads(result.stdout)["result"]["parse_errors"] == ["Fișierul este gol"]


def test_bom_template(runner) -> None:
    csv_result = runner.invoke(cli, ["bom", "template"])
    assert csv_result.exit_code == 0
    assert csv_result.stdout.splitlines()[0].startswith("Familie,")

    json_result = runner.invoke(cli, ["bom", "template", "--json"])
    template = json.loads(json_result.stdout)
    assert len(template["sample_rows"]) == 3


def test_anaf_validate(runner, monkeypatch, fake_anaf) -> None:
    def _service() -> ANAFService:
        return ANAFService(
            api_url="https://anaf.test",
            cache=TTLCache(),
            client=httpx.Client(transport=httpx.MockTransport(fake_anaf)),
        )

    monkeypatch.setattr(cli_main, "ANAFService", _service)

    found = runner.invoke(cli, ["anaf", "validate", "RO14399840"])
    assert found.exit_code == 0
    assert json.loads(found.stdout)["county"] == "Cluj"

    missing = runner.invoke(cli, ["anaf", "validate", "99999"])
    assert missing.exit_code == 1
    assert json.loads(missing.stdout)["valid"] is False
