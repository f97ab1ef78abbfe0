"""
Tests for deployment-file loading, the simulation harness and the CLI.
"""

import json
import logging

import pytest
import yaml
from click.testing import CliRunner
from pydantic import ValidationError

from partnership.cli.main import cli, format_units
from partnership.core.exceptions import DuplicatePartner
from partnership.schemas import load_deployment, parse_duration
from partnership.simulation import Simulation
from partnership_scenario import ALLOCATIONS, DAY, DEPOSITOR, PARTNERS, RWD, USDC


def deployment_dict(**overrides):
    data = {
        "reward_asset": {"symbol": "RWD", "decimals": 18},
        "exchange_asset": {"symbol": "USDC", "decimals": 6},
        "exchange_rate": 2000,
        "rate_decimals": 2,
        "funding_window": "14d",
        "cliff": "183d",
        "vesting": "183d",
        "depositor": DEPOSITOR,
        "partners": [
            {"address": address, "allocation": amount}
            for address, amount in zip(PARTNERS, ALLOCATIONS)
        ],
        "start_time": 1_700_000_000,
    }
    data.update(overrides)
    return data


@pytest.fixture(autouse=True)
def reset_cli_logging():
    yield
    # the CLI attaches handlers bound to CliRunner streams
    cli_logger = logging.getLogger("partnership")
    cli_logger.handlers = []
    cli_logger.setLevel(logging.NOTSET)


@pytest.fixture
def deployment_file(tmp_path):
    path = tmp_path / "deployment.yaml"
    path.write_text(yaml.safe_dump(deployment_dict()))
    return path


def test_parse_duration():
    assert parse_duration(90) == 90
    assert parse_duration("90") == 90
    assert parse_duration("14d") == 14 * DAY
    assert parse_duration("12h") == 12 * 3600
    assert parse_duration("2w") == 14 * DAY
    for bad in ("-1d", "soon", True, -5):
        with pytest.raises(ValueError):
            parse_duration(bad)


def test_load_yaml_and_json(tmp_path, deployment_file):
    spec = load_deployment(deployment_file)
    assert spec.funding_window == 14 * DAY
    assert spec.allocations == ALLOCATIONS
    config = spec.to_config()
    assert config.cliff_duration == 183 * DAY
    assert config.reward_asset == "RWD"

    json_path = tmp_path / "deployment.json"
    json_path.write_text(json.dumps(deployment_dict(cliff=60)))
    assert load_deployment(json_path).cliff == 60


def test_schema_rejects_bad_shapes(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump(deployment_dict(partners=[])))
    with pytest.raises(ValidationError):
        load_deployment(path)

    path.write_text(yaml.safe_dump(deployment_dict(cliff="forever")))
    with pytest.raises(ValidationError):
        load_deployment(path)

    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_deployment(path)


def test_domain_errors_come_from_the_engine(tmp_path):
    path = tmp_path / "dup.yaml"
    partners = [{"address": "0xa", "allocation": 1}, {"address": "0xA", "allocation": 2}]
    path.write_text(yaml.safe_dump(deployment_dict(partners=partners)))
    with pytest.raises(DuplicatePartner):
        Simulation(load_deployment(path))


def test_simulation_reference_scenario(deployment_file):
    sim = Simulation(load_deployment(deployment_file))
    report = sim.run(skip=PARTNERS[8:], claim_days=[183, 366])
    assert len(report.funded) == 8
    assert report.skipped == PARTNERS[8:]
    assert report.sweep.reward_amount_returned == 10_000 * RWD
    assert report.sweep.exchange_amount == 19_800_000 * USDC
    assert report.total_claimed == 990_000 * RWD
    assert report.payouts[PARTNERS[0]] == 500_000 * RWD
    assert all(claim.code is None for claim in report.claims)


def test_format_units():
    assert format_units(1_234_567 * RWD + RWD // 2, 18) == "1,234,567.5000"
    assert format_units(15, 0) == "15"
    assert format_units(1, 6, places=6) == "0.000001"


def test_cli_simulate_json(deployment_file):
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["--json-output", "simulate", str(deployment_file), "--skip", PARTNERS[9], "--claim-day", "400"],
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["reward_returned"] == 5_000 * RWD
    assert payload["skipped"] == [PARTNERS[9]]
    assert sum(payload["payouts"].values()) == 995_000 * RWD


def test_cli_schedule_table_and_json(deployment_file):
    runner = CliRunner()
    table = runner.invoke(cli, ["schedule", str(deployment_file)])
    assert table.exit_code == 0, table.output
    assert "Total Allocation" in table.output

    result = runner.invoke(cli, ["--json-output", "schedule", str(deployment_file), "--at", "183"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["days"] == [183]
    assert payload["claimable"][PARTNERS[0]] == [250_000 * RWD]


def test_cli_reports_errors(tmp_path):
    path = tmp_path / "zero.yaml"
    path.write_text(yaml.safe_dump(deployment_dict(exchange_rate=0)))
    result = CliRunner().invoke(cli, ["simulate", str(path)])
    assert result.exit_code == 1
    assert "Exchange rate cannot be zero" in result.output
