from __future__ import annotations

from decimal import Decimal

import pytest

from ledger_analytics import cli

CSV = """Order Date,Product Name,Category,Region,Quantity,Sales,Profit
2023-01-05,Laptop,Electronics,North,2,1000.00,200.00
2023-02-11,Printer,Office,West,6,300.00,30.00
2024-03-15,Printer,Office,West,2,200.00,-10.00
"""


@pytest.fixture
def csv_path(tmp_path):
    path = tmp_path / "sales.csv"
    path.write_text(CSV, encoding="utf-8")
    return path


def test_parser_report_options() -> None:
    args = cli.build_parser().parse_args(["report", "--dry-run", "--margin-floor", "0.2"])
    assert args.cmd == "report"
    assert args.dry_run is True
    assert args.margin_floor == Decimal("0.2")
    assert args.csv is None


def test_report_dry_run_from_csv(csv_path, monkeypatch) -> None:
    def _no_db(_):
        raise AssertionError("dry run must not open MongoDB")

    monkeypatch.setattr(cli, "_open_db", _no_db)
    args = cli.build_parser().parse_args(["report", "--csv", str(csv_path), "--dry-run"])
    cli.cmd_report(args)


def test_ingest_then_report_writes_sections(csv_path, fake_db, monkeypatch) -> None:
    monkeypatch.setattr(cli, "_open_db", lambda _: fake_db)
    args = cli.build_parser().parse_args(["all", "--csv", str(csv_path), "--replace"])
    cli.cmd_all(args)

    assert len(fake_db["transactions"].docs) == 3
    assert len(fake_db["report_product_breakdown"].bulk_ops) == 2


def test_report_on_empty_store_fails(fake_db, monkeypatch) -> None:
    monkeypatch.setattr(cli, "_open_db", lambda _: fake_db)
    args = cli.build_parser().parse_args(["report"])
    with pytest.raises(RuntimeError):
        cli.cmd_report(args)


def test_margin_percentile_out_of_range_rejected(csv_path) -> None:
    args = cli.build_parser().parse_args(
        ["report", "--csv", str(csv_path), "--dry-run", "--margin-percentile", "2"]
    )
    with pytest.raises(SystemExit):
        cli.cmd_report(args)


@pytest.mark.parametrize("option", ["--margin-floor", "--margin-percentile"])
@pytest.mark.parametrize("value", ["nan", "Infinity"])
def test_non_finite_threshold_options_rejected(csv_path, option, value) -> None:
    args = cli.build_parser().parse_args(["report", "--csv", str(csv_path), "--dry-run", option, value])
    with pytest.raises(SystemExit):
        cli.cmd_report(args)


def test_all_dry_run_writes_nothing(csv_path, fake_db, monkeypatch) -> None:
    monkeypatch.setattr(cli, "_open_db", lambda _: fake_db)
    args = cli.build_parser().parse_args(["all", "--csv", str(csv_path), "--dry-run"])
    cli.cmd_all(args)

    assert fake_db["transactions"].docs == []
    assert not any(name.startswith("report_") for name in fake_db)
