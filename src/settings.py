""" Configuration loading for the portfolio report. """
import json
import os
from pathlib import Path

from errors import ConfigError


PROJECT_PATH = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = PROJECT_PATH / "config" / "config.json"

INSTRUMENT_TYPE_NAMES = {
    'share': 'Акции',
    'bond': 'Облигации',
    'etf': 'Фонды',
    'currency': 'Валюта',
    'futures': 'Фьючерсы',
    'option': 'Опционы',
    'gold': 'Золото',
}

DEFAULTS = {
    'token': '',
    'account_id': '',
    'endpoint': None,
    'sandbox': False,
    'output_folder': 'results',
    'request_timeout': 10,
    'portfolio_sheet_name': 'Портфель',
}


def load_config(config_path=None):
    """
    Load the JSON config file and apply environment overrides.

    A missing file is only an error when it was requested explicitly; the
    default location is optional so the file source works without a config.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    data = {}
    if path.exists():
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Error loading config from {path}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"Config {path} must contain a JSON object")
    elif config_path:
        raise ConfigError(f"Config file not found at: {path}")

    config = {**DEFAULTS, **data}
    config['instrument_type_names'] = {
        **INSTRUMENT_TYPE_NAMES,
        **data.get('instrument_type_names', {}),
    }

    if os.environ.get('INVEST_TOKEN'):
        config['token'] = os.environ['INVEST_TOKEN']
    if os.environ.get('INVEST_ACCOUNT_ID'):
        config['account_id'] = os.environ['INVEST_ACCOUNT_ID']

    return config
