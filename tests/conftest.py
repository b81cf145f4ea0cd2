"""
Shared fixtures for portfolio report tests.
"""

import re

import pytest

from portfolio_parser import Position


SUM_RE = re.compile(r"^=SUM\(([A-Z])(\d+):([A-Z])(\d+)\)$")


def evaluate_sum(sheet, formula):
    """Evaluate a '=SUM(X2:Xn)' formula against literal cells of the sheet"""
    match = SUM_RE.match(formula)
    assert match, f"not a SUM formula: {formula}"
    column, first, _, last = match.groups()
    return sum(sheet[f"{column}{row}"].value for row in range(int(first), int(last) + 1))


@pytest.fixture
def mixed_positions():
    return [
        Position("SBER", 1000.0, "financial", "share"),
        Position("SU26238", 500.0, "government", "bond"),
        Position("GAZP", 300.0, "energy", "share"),
        Position("USD000UTSTOM", 200.0, "", "currency"),
        Position("VTBR", 700.0, "financial", "share"),
        Position("LKOH", 0.0, "", "share"),
        Position("RU000A0JX0J2", 250.0, "financial", "bond"),
    ]


@pytest.fixture
def type_names():
    return {'share': 'Акции', 'bond': 'Облигации', 'currency': 'Валюта'}
