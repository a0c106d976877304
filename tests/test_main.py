"""
Tests for the command-line interface.
"""

import csv
import json

import click
import pytest
from click.testing import CliRunner

from finance_calc.data_models import PrepaymentStrategy
from finance_calc.main import cli, parse_amount, parse_prepayment_strings

LOAN = ["-p", "200k", "-r", "5", "-t", "360"]


@pytest.fixture
def runner():
    return CliRunner()


class TestParsing:
    def test_amount_suffixes(self):
        assert parse_amount("500k") == 500000
        assert parse_amount("1.5m") == 1500000
        assert parse_amount("1,250.50") == parse_amount("1250.50")

    def test_invalid_amount(self):
        with pytest.raises(click.BadParameter):
            parse_amount("lots")

    def test_prepayment_strings(self):
        (prepayment,) = parse_prepayment_strings(["12:10k:reduce-payment"])
        assert prepayment.month == 12
        assert prepayment.amount == 10000
        assert prepayment.strategy is PrepaymentStrategy.REDUCE_PAYMENT


class TestScheduleCommand:
    def test_prints_summary(self, runner):
        result = runner.invoke(cli, ["schedule", *LOAN])
        assert result.exit_code == 0
        assert "1073.64" in result.output
        assert "Schedule has 360 rows" in result.output

    def test_csv_export(self, runner, tmp_path):
        path = tmp_path / "schedule.csv"
        result = runner.invoke(cli, ["schedule", *LOAN, "--output", str(path)])
        assert result.exit_code == 0
        with path.open(newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert len(rows) == 361
        assert rows[1][1] == "1073.64"
        assert rows[-1][-1] == "0.00"

    def test_json_export(self, runner, tmp_path):
        path = tmp_path / "schedule.json"
        result = runner.invoke(cli, ["schedule", *LOAN, "--output", str(path)])
        assert result.exit_code == 0
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["fixed_payment"] == 1073.64
        assert len(data["entries"]) == 360

    def test_unsupported_output(self, runner, tmp_path):
        result = runner.invoke(cli, ["schedule", *LOAN, "--output", str(tmp_path / "schedule.txt")])
        assert result.exit_code == 2

    def test_invalid_terms(self, runner):
        result = runner.invoke(cli, ["schedule", "-p", "200k", "-r", "5", "-t", "700"])
        assert result.exit_code == 2
        assert "term_months" in result.output


class TestPrepayCommand:
    def test_reduce_term(self, runner):
        result = runner.invoke(cli, ["prepay", *LOAN, "--prepayment", "12:10k:reduce-term"])
        assert result.exit_code == 0
        assert "Term reduction" in result.output

    def test_reduce_payment_with_schedule(self, runner):
        result = runner.invoke(
            cli, ["prepay", *LOAN, "--prepayment", "12:10k:reduce-payment", "--show-schedule"]
        )
        assert result.exit_code == 0
        assert "New payment" in result.output
        assert "Extra" in result.output

    def test_amount_above_balance(self, runner):
        result = runner.invoke(cli, ["prepay", *LOAN, "--prepayment", "12:999999:reduce-term"])
        assert result.exit_code == 2
        assert "prepayments[0].amount" in result.output

    def test_malformed_prepayment(self, runner):
        result = runner.invoke(cli, ["prepay", *LOAN, "--prepayment", "12:1000"])
        assert result.exit_code == 2


class TestInvestCommand:
    def test_annual_compounding(self, runner):
        result = runner.invoke(
            cli,
            ["invest", "--initial", "10000", "--months", "60", "--rate", "7.5", "--compounding", "annually"],
        )
        assert result.exit_code == 0
        assert "14356.29" in result.output

    def test_json_export(self, runner, tmp_path):
        path = tmp_path / "investment.json"
        result = runner.invoke(
            cli,
            ["invest", "--initial", "10000", "--contribution", "500", "--months", "30", "--rate", "7", "--output", str(path)],
        )
        assert result.exit_code == 0
        data = json.loads(path.read_text(encoding="utf-8"))
        assert [p["month"] for p in data["periods"]] == [12, 24, 30]


class TestTaxCommand:
    def test_prints_breakdown(self, runner):
        result = runner.invoke(cli, ["tax", "--salary", "20000000"])
        assert result.exit_code == 0
        assert "3,443,600.30" in result.output
        assert "Net pay" in result.output

    def test_json_export(self, runner, tmp_path):
        path = tmp_path / "tax.json"
        result = runner.invoke(
            cli, ["tax", "--salary", "24m", "--periodicity", "annual", "--output", str(path)]
        )
        assert result.exit_code == 0
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["base_salary"] == 2000000.0
        assert data["line_items"][0]["concept"] == "base_salary"

    def test_unknown_year(self, runner):
        result = runner.invoke(cli, ["tax", "--salary", "2000000", "--year", "1999"])
        assert result.exit_code == 1
        assert "No tax table for 1999" in result.output
