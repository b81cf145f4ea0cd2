""" Build report positions from a local holdings JSON file priced with yfinance. """
import json
import logging

import yfinance as yf

from errors import ConfigError, InstrumentLookupError
from portfolio_parser import Position


logger = logging.getLogger(__name__)

QUOTE_TYPES = {
    'EQUITY': 'share',
    'ETF': 'etf',
    'FUTURE': 'futures',
    'OPTION': 'option',
    'CURRENCY': 'currency',
}


def load_holdings(filename):
    """Load the holdings list from a JSON file"""
    try:
        with open(filename, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Holdings file not found at: {filename}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Error loading holdings from {filename}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Holdings file {filename} must contain a JSON object")

    holdings = data.get('holdings', [])
    if not isinstance(holdings, list):
        raise ConfigError(f"'holdings' in {filename} must be a list")
    for i, holding in enumerate(holdings, 1):
        if not isinstance(holding, dict) or 'symbol' not in holding or 'shares' not in holding:
            raise ConfigError(f"Holding #{i} in {filename} needs 'symbol' and 'shares'")
    return holdings


def get_quote(symbol):
    """Get the last close price, sector and quote type of a symbol"""
    try:
        stock = yf.Ticker(symbol)
        info = stock.info
        hist = stock.history(period="5d")
    except Exception as e:
        raise InstrumentLookupError(symbol, f"yfinance lookup failed: {e}") from e

    if hist.empty:
        raise InstrumentLookupError(symbol, "no price data available")

    return {
        'current_price': float(hist['Close'].iloc[-1]),
        'sector': info.get('sector') or '',
        'quote_type': info.get('quoteType', ''),
    }


def get_instrument_type(quote_type):
    return QUOTE_TYPES.get(quote_type, quote_type.lower() or 'unknown')


def get_positions(filename):
    """Resolve every holding of the file into a report position"""
    holdings = load_holdings(filename)
    logger.info(f"Fetching market data for {len(holdings)} holdings")

    positions = []
    for i, holding in enumerate(holdings, 1):
        symbol = holding['symbol']
        logger.debug(f"[{i}/{len(holdings)}] Fetching {symbol}")
        quote = get_quote(symbol)

        instrument_type = holding.get('instrument_type') or get_instrument_type(quote['quote_type'])
        # Funds carry the sectors of their constituents, not their own
        sector = '' if instrument_type == 'etf' else quote['sector']

        positions.append(Position(
            ticker=symbol,
            total_price=quote['current_price'] * holding['shares'],
            sector=sector,
            instrument_type=instrument_type,
        ))
    return positions
