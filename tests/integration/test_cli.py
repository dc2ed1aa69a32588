"""
Integration tests for the sipms command line.
"""

import json
import pytest

from openpyxl import load_workbook

from sipms.cli.main import build_parser, main


class TestFundsCommand:

    def test_lists_catalog(self, capsys):
        assert main(["funds"]) == 0

        out = capsys.readouterr().out
        assert "HDFC Flexi Cap Fund" in out
        assert "Rs. 150.50" in out
        assert "6 fund(s)" in out

    def test_category_filter(self, capsys):
        assert main(["funds", "--category", "DEBT"]) == 0

        out = capsys.readouterr().out
        assert "SBI Debt Fund" in out
        assert "HDFC Corporate Bond" in out
        assert "Kotak Small Cap Fund" not in out
        assert "2 fund(s)" in out

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage:" in capsys.readouterr().out


class TestSimulateCommand:

    def test_three_months(self, capsys):
        code = main([
            "simulate", "--name", "Asha", "--email", "asha@example.com",
            "--fund", "FUND_000001", "--amount", "1000", "--periods", "3",
        ])

        assert code == 0
        out = capsys.readouterr().out
        assert "Period   3 [2024-03-01]" in out
        assert "installments 3, next due 2024-04-01" in out
        assert "Total Invested: Rs. 3,000.00" in out
        assert "1 active, 0 paused, 0 stopped" in out

    def test_report_written(self, tmp_path, capsys):
        report_path = tmp_path / "portfolio.xlsx"

        code = main([
            "simulate", "--name", "Asha", "--email", "asha@example.com",
            "--fund", "FUND_000003", "--amount", "500", "--frequency", "WEEKLY",
            "--periods", "4", "--step-up", "5", "--market-move", "0.01",
            "--report", str(report_path),
        ])

        assert code == 0
        assert report_path.exists()
        assert load_workbook(report_path).sheetnames == ["Summary", "Holdings", "Transactions"]

    def test_unknown_fund_fails(self, capsys):
        code = main([
            "simulate", "--name", "Asha", "--email", "asha@example.com",
            "--fund", "FUND_404", "--amount", "1000",
        ])

        assert code == 1
        assert "Error: " in capsys.readouterr().out

    def test_invalid_amount_rejected_by_parser(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([
                "simulate", "--name", "A", "--email", "a@example.com",
                "--fund", "FUND_000001", "--amount", "lots",
            ])


class TestConfigFile:

    def test_sqlite_backend_from_config(self, tmp_path, db_manager, capsys):
        config_path = tmp_path / "sipms.json"
        config_path.write_text(json.dumps({
            "storage": {"backend": "sqlite", "db_path": str(tmp_path / "sipms.db")},
            "display": {"currency_symbol": "INR "},
        }))

        code = main([
            "--config", str(config_path), "simulate", "--name", "Asha",
            "--email", "asha@example.com", "--fund", "FUND_000002",
            "--amount", "2000", "--frequency", "QUARTERLY", "--periods", "2",
        ])

        assert code == 0
        assert "Total Invested: INR 4,000.00" in capsys.readouterr().out
        assert (tmp_path / "sipms.db").exists()

    def test_repeated_runs_share_database(self, tmp_path, db_manager, capsys):
        config_path = tmp_path / "sipms.json"
        config_path.write_text(json.dumps({
            "storage": {"backend": "sqlite", "db_path": str(tmp_path / "sipms.db")},
        }))

        for name, email in [("Asha", "asha@example.com"), ("Ravi", "ravi@example.com")]:
            code = main([
                "--config", str(config_path), "simulate", "--name", name,
                "--email", email, "--fund", "FUND_000001", "--amount", "1000", "--periods", "1",
            ])
            assert code == 0

        out = capsys.readouterr().out
        assert "Created SIP_000002 for Asha" in out
        assert "Created SIP_000008 for Ravi" in out
        assert out.count("Total Invested: Rs. 1,000.00") == 2

    def test_missing_config_file(self, tmp_path, capsys):
        code = main(["--config", str(tmp_path / "missing.json"), "funds"])

        assert code == 1
        assert "Configuration error" in capsys.readouterr().out

    def test_invalid_config_value(self, tmp_path, capsys):
        config_path = tmp_path / "bad.json"
        config_path.write_text(json.dumps({"scheduler": {"max_workers": 0}}))

        assert main(["--config", str(config_path), "funds"]) == 1
