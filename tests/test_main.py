"""
Tests for CLI argument handling.
"""

from datetime import date

import pytest

from availability_agent.main import parse_args, resolve_start_date


class TestParseArgs:
    def test_defaults(self):
        args = parse_args([])
        assert (args.mode, args.months, args.offset, args.start_date, args.serve) == ("calendar", 2, 0, None, False)

    def test_valid_bounds(self):
        args = parse_args(["--mode", "check", "--months", "1", "--offset", "0"])
        assert (args.mode, args.months, args.offset) == ("check", 1, 0)

    @pytest.mark.parametrize(
        "argv",
        [
            ["--months", "0"],
            ["--months", "-2"],
            ["--offset", "-1"],
            ["--months", "two"],
        ],
    )
    def test_out_of_range_values_are_rejected(self, argv, capsys):
        with pytest.raises(SystemExit) as excinfo:
            parse_args(argv)

        assert excinfo.value.code == 2
        err = capsys.readouterr().err
        assert "must be >=" in err or "invalid integer" in err


class TestResolveStartDate:
    def test_iso_date(self):
        assert resolve_start_date("2026-11-01") == date(2026, 11, 1)

    def test_missing_means_default(self):
        assert resolve_start_date(None) is None

    def test_bad_value_exits(self):
        with pytest.raises(SystemExit, match="Invalid --start-date"):
            resolve_start_date("01/11/2026")
