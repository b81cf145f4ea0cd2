""" Exceptions raised while collecting portfolio data. """


class ConfigError(Exception):
    """Invalid or missing configuration"""


class InvestApiError(Exception):
    """The brokerage API request failed"""


class InstrumentLookupError(Exception):
    """An instrument could not be resolved to its ticker and sector"""

    def __init__(self, instrument_id, message):
        super().__init__(f"{instrument_id}: {message}")
        self.instrument_id = instrument_id
