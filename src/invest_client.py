"""
T-Invest API client

Fetches the account portfolio through the REST gateway of the T-Invest API
and converts its positions into report positions, resolving each FIGI to a
ticker and sector.
"""

import logging

import requests

from errors import InstrumentLookupError, InvestApiError
from portfolio_parser import Position


logger = logging.getLogger(__name__)

PROD_ENDPOINT = "https://invest-public-api.tinkoff.ru/rest"
SANDBOX_ENDPOINT = "https://sandbox-invest-public-api.tinkoff.ru/rest"
CONTRACT = "tinkoff.public.invest.api.contract.v1"

# Instrument service method per instrument type
LOOKUP_METHODS = {
    'share': 'ShareBy',
    'bond': 'BondBy',
    'currency': 'CurrencyBy',
    'futures': 'FutureBy',
    'etf': 'EtfBy',
}

GOLD_TICKERS = {'TGLD'}


def to_float(quotation):
    """Convert a Quotation/MoneyValue ({units, nano}) to float"""
    if not quotation:
        return 0.0
    units = int(quotation.get('units', 0))
    nano = int(quotation.get('nano', 0))
    return units + nano / 1e9


class InvestClient:
    def __init__(self, token, account_id, endpoint=PROD_ENDPOINT, timeout=10, session=None):
        self.account_id = account_id
        self.endpoint = endpoint.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {token}',
            'Accept': 'application/json',
        })

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _call(self, service, method, payload):
        url = f"{self.endpoint}/{CONTRACT}.{service}/{method}"
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise InvestApiError(f"{service}/{method} request failed: {e}") from e

        if response.status_code != 200:
            raise InvestApiError(
                f"{service}/{method} returned {response.status_code}: {response.text}"
            )
        return response.json()

    def get_portfolio(self, currency="RUB"):
        """Return the raw positions of the configured account"""
        data = self._call('OperationsService', 'GetPortfolio', {
            'accountId': self.account_id,
            'currency': currency,
        })
        positions = data.get('positions', [])
        logger.info(f"Fetched {len(positions)} positions for account {self.account_id}")
        return positions

    def get_ticker_and_sector(self, figi, instrument_type):
        """Resolve a FIGI to (ticker, sector); unsupported types resolve to empty strings"""
        method = LOOKUP_METHODS.get(instrument_type)
        if method is None:
            logger.debug(f"No lookup for instrument type '{instrument_type}' ({figi})")
            return "", ""

        try:
            data = self._call('InstrumentsService', method, {
                'idType': 'INSTRUMENT_ID_TYPE_FIGI',
                'id': figi,
            })
        except InvestApiError as e:
            raise InstrumentLookupError(figi, str(e)) from e

        instrument = data.get('instrument', {})
        ticker = instrument.get('ticker', '')
        # Currencies have no sector
        sector = '' if instrument_type == 'currency' else instrument.get('sector', '')
        return ticker, sector

    def get_positions(self, currency="RUB"):
        """Fetch the portfolio and convert it to report positions"""
        positions = []
        for raw in self.get_portfolio(currency):
            figi = raw.get('figi', '')
            instrument_type = raw.get('instrumentType', '')
            ticker, sector = self.get_ticker_and_sector(figi, instrument_type)

            quantity = to_float(raw.get('quantity'))
            total_price = to_float(raw.get('currentPrice')) * quantity
            if instrument_type == 'bond':
                # Accrued coupon income is part of the bond value
                total_price += to_float(raw.get('currentNkd')) * quantity

            if ticker in GOLD_TICKERS:
                instrument_type = 'gold'

            positions.append(Position(
                ticker=ticker,
                total_price=total_price,
                sector=sector,
                instrument_type=instrument_type,
            ))
        return positions
