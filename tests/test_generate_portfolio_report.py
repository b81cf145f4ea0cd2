"""
Command-line entry point tests.
"""

import json

import pytest
from openpyxl import load_workbook

import generate_portfolio_report as cli
import portfolio_parser
import settings
from errors import InstrumentLookupError
from invest_client import PROD_ENDPOINT, SANDBOX_ENDPOINT
from portfolio_parser import WORKBOOK_NAME, Position


POSITIONS = [
    Position("AAPL", 600.0, "Technology", "share"),
    Position("VOO", 960.0, "", "etf"),
]


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    monkeypatch.delenv('INVEST_TOKEN', raising=False)
    monkeypatch.delenv('INVEST_ACCOUNT_ID', raising=False)
    monkeypatch.setattr(settings, 'DEFAULT_CONFIG_PATH', tmp_path / 'absent.json')


def test_file_source_report(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(cli.holdings_file, 'get_positions', lambda path: POSITIONS)

    code = cli.main(['--source', 'file', '--holdings', 'h.json', '--out', str(tmp_path), '--csv'])

    assert code == 0
    wb = load_workbook(tmp_path / WORKBOOK_NAME)
    assert wb.sheetnames == ['Акции', 'Фонды', 'Портфель']
    assert (tmp_path / 'positions.csv').exists()
    assert 'created successfully' in capsys.readouterr().out


def test_missing_output_folder(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(cli.holdings_file, 'get_positions', lambda path: POSITIONS)

    code = cli.main(['--source', 'file', '--holdings', 'h.json', '--out', str(tmp_path / 'nope')])

    assert code == 1
    assert 'ERROR' in capsys.readouterr().out


def test_lookup_failure_reported(tmp_path, monkeypatch, capsys):
    def failing(path):
        raise InstrumentLookupError('XYZ', 'no price data available')

    monkeypatch.setattr(cli.holdings_file, 'get_positions', failing)

    code = cli.main(['--source', 'file', '--holdings', 'h.json', '--out', str(tmp_path)])

    assert code == 1
    assert 'XYZ' in capsys.readouterr().out
    assert not (tmp_path / WORKBOOK_NAME).exists()


def test_broker_source_requires_token(tmp_path, capsys):
    code = cli.main(['--out', str(tmp_path)])
    assert code == 1
    assert 'token' in capsys.readouterr().out


def test_holdings_required_for_file_source():
    with pytest.raises(SystemExit):
        cli.parse_arguments(['--source', 'file'])


def test_get_endpoint():
    assert cli.get_endpoint({'endpoint': None, 'sandbox': False}) == PROD_ENDPOINT
    assert cli.get_endpoint({'endpoint': None, 'sandbox': False}, sandbox=True) == SANDBOX_ENDPOINT
    assert cli.get_endpoint({'endpoint': 'https://proxy/rest', 'sandbox': True}) == 'https://proxy/rest'


def test_clashing_sheet_names_reported(tmp_path, monkeypatch, capsys):
    config_path = tmp_path / 'config.json'
    config_path.write_text(
        json.dumps({'instrument_type_names': {'share': 'Stocks', 'etf': 'STOCKS'}}),
        encoding='utf-8',
    )
    monkeypatch.setattr(cli.holdings_file, 'get_positions', lambda path: POSITIONS)

    code = cli.main(['--config', str(config_path), '--source', 'file',
                     '--holdings', 'h.json', '--out', str(tmp_path)])

    assert code == 1
    assert 'Duplicate sheet name' in capsys.readouterr().out
    assert not (tmp_path / WORKBOOK_NAME).exists()


def test_output_write_error_reported(tmp_path, monkeypatch, capsys):
    def failing_open(*args, **kwargs):
        raise PermissionError("permission denied")

    monkeypatch.setattr(cli.holdings_file, 'get_positions', lambda path: POSITIONS)
    monkeypatch.setattr(portfolio_parser, 'open', failing_open, raising=False)

    code = cli.main(['--source', 'file', '--holdings', 'h.json', '--out', str(tmp_path)])

    assert code == 1
    assert 'permission denied' in capsys.readouterr().out
