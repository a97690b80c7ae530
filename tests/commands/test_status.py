"""Tests for the status CLI command."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from phasectl.cli import cli
from phasectl.domain.catalog import PILOT_WORKSTATIONS
from phasectl.domain.errors import SiteConnectionError
from phasectl.domain.types import ObjectKind
from tests.conftest import FakeSite


@pytest.mark.usefixtures("_isolated_workspace")
class TestStatusCommand:
    def test_empty_site(self, cli_runner: CliRunner, cli_site: FakeSite) -> None:
        result = cli_runner.invoke(cli, ["--json", "status"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["op"] == "status"
        assert data["data"]["present"] == 0
        assert data["data"]["absent"] == 10

    def test_after_provision(self, cli_runner: CliRunner, cli_site: FakeSite) -> None:
        cli_runner.invoke(cli, ["--json", "provision"])
        cli_site.blockers[PILOT_WORKSTATIONS] = ["Office (DEP00001)"]
        result = cli_runner.invoke(cli, ["--json", "status"])
        data = json.loads(result.stdout)
        assert data["data"]["present"] == 10
        pilot = next(o for o in data["data"]["objects"] if o["name"] == PILOT_WORKSTATIONS)
        assert pilot["associations"] == 1

    def test_read_only(self, cli_runner: CliRunner, cli_site: FakeSite) -> None:
        cli_site.add(ObjectKind.GROUPING, PILOT_WORKSTATIONS)
        cli_runner.invoke(cli, ["status"])
        assert cli_site.mutations() == []

    def test_human_output(self, cli_runner: CliRunner, cli_site: FakeSite) -> None:
        result = cli_runner.invoke(cli, ["status"])
        assert result.exit_code == 0
        assert "absent: 10" in result.output
        assert PILOT_WORKSTATIONS in result.output

    def test_unreachable_site(self, cli_runner: CliRunner, cli_site: FakeSite) -> None:
        def unreachable(kind, name):  # type: ignore[no-untyped-def]
            raise SiteConnectionError("Cannot reach management endpoint")

        cli_site.get = unreachable  # type: ignore[method-assign]
        result = cli_runner.invoke(cli, ["status"])
        assert result.exit_code == 1
        assert "could not be checked" in result.output
