"""
Portfolio Parser

Builds the investments workbook from a flat list of portfolio positions:
- one sheet per instrument type with position values, % of type total
  and a sector breakdown
- one portfolio sheet rolling up every instrument sheet total through
  cross-sheet formulas

All totals and percentages are written as Excel formulas, so the workbook
stays consistent if a value cell is edited later.
"""

import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import quote_sheetname


logger = logging.getLogger(__name__)

WORKBOOK_NAME = "investments.xlsx"
TOTAL_LABEL = "Total"
PERCENT_FORMAT = '0.00%'
FIRST_DATA_ROW = 2


class ReportIntegrityError(Exception):
    """Raised when the output file could not be closed cleanly"""


@dataclass(frozen=True)
class Position:
    ticker: str
    total_price: float
    sector: str
    instrument_type: str


@dataclass
class SectorAggregate:
    row: int
    total: float = 0.0


class InstrumentGroup:
    """Positions of one instrument type with their sheet rows and running totals"""

    def __init__(self, instrument_type):
        self.instrument_type = instrument_type
        self.positions = []  # [(row, Position), ...]
        self.total = 0.0
        self.sectors = {}  # sector -> SectorAggregate, first-seen order
        self._next_row = FIRST_DATA_ROW
        self._next_sector_row = FIRST_DATA_ROW

    def add(self, position):
        self.positions.append((self._next_row, position))
        self._next_row += 1
        self.total += position.total_price

        if not position.sector:
            return

        aggregate = self.sectors.get(position.sector)
        if aggregate is None:
            aggregate = SectorAggregate(row=self._next_sector_row)
            self.sectors[position.sector] = aggregate
            self._next_sector_row += 1
        aggregate.total += position.total_price

    @property
    def last_row(self):
        return FIRST_DATA_ROW + len(self.positions) - 1

    @property
    def last_sector_row(self):
        return FIRST_DATA_ROW + len(self.sectors) - 1


def aggregate_positions(positions):
    """Group positions by instrument type, keeping first-seen order of types and sectors"""
    groups = {}
    for position in positions:
        group = groups.get(position.instrument_type)
        if group is None:
            group = InstrumentGroup(position.instrument_type)
            groups[position.instrument_type] = group
        group.add(position)
    return groups


def ratio_formula(column, row):
    """Share of the row value in the sheet total held in B1"""
    return f"={column}{row}/B1"


def sum_formula(column, first_row, last_row):
    return f"=SUM({column}{first_row}:{column}{last_row})"


def apply_number_format(sheet, column, first_row, last_row, number_format):
    for row in range(first_row, last_row + 1):
        sheet[f"{column}{row}"].number_format = number_format


def write_instrument_sheet(workbook, group, sheet_name):
    """Create the sheet for one instrument type"""
    sheet = workbook.create_sheet(sheet_name)

    for row, position in group.positions:
        sheet[f"A{row}"] = position.ticker
        sheet[f"B{row}"] = position.total_price
        sheet[f"C{row}"] = ratio_formula("B", row)

    # Sector block: E = sector, F = sector subtotal, G = % of type total
    for sector, aggregate in group.sectors.items():
        sheet[f"E{aggregate.row}"] = sector
        sheet[f"F{aggregate.row}"] = aggregate.total
        sheet[f"G{aggregate.row}"] = ratio_formula("F", aggregate.row)

    sheet["A1"] = TOTAL_LABEL
    sheet["A1"].font = Font(bold=True)
    sheet["B1"] = sum_formula("B", FIRST_DATA_ROW, group.last_row)
    sheet["B1"].font = Font(bold=True)

    apply_number_format(sheet, "C", FIRST_DATA_ROW, group.last_row, PERCENT_FORMAT)
    if group.sectors:
        apply_number_format(sheet, "G", FIRST_DATA_ROW, group.last_sector_row, PERCENT_FORMAT)

    return sheet


def write_portfolio_sheet(workbook, sheet_names, sheet_name):
    """Create the roll-up sheet referencing the total of every instrument sheet"""
    sheet = workbook.create_sheet(sheet_name)
    sheet["A1"] = TOTAL_LABEL
    sheet["A1"].font = Font(bold=True)

    row = FIRST_DATA_ROW
    for name in sheet_names:
        sheet[f"A{row}"] = name
        sheet[f"B{row}"] = f"={quote_sheetname(name)}!B1"
        sheet[f"C{row}"] = ratio_formula("B", row)
        row += 1

    last_row = row - 1
    sheet["B1"] = sum_formula("B", FIRST_DATA_ROW, last_row)
    sheet["B1"].font = Font(bold=True)
    apply_number_format(sheet, "C", FIRST_DATA_ROW, last_row, PERCENT_FORMAT)

    return sheet


class PortfolioParser:
    """Writes the investments workbook for a list of positions"""

    def __init__(self, positions, instrument_type_names=None, portfolio_sheet_name="Portfolio"):
        positions = list(positions)
        for index, position in enumerate(positions):
            if position is None:
                raise ValueError(f"Position #{index} is missing")

        self.positions = positions
        self.instrument_type_names = dict(instrument_type_names or {})
        self.portfolio_sheet_name = portfolio_sheet_name

    def sheet_name(self, instrument_type):
        # Unknown instrument types keep their raw tag as sheet name
        return self.instrument_type_names.get(instrument_type, instrument_type)

    def build_workbook(self, workbook=None):
        """Build the workbook in memory"""
        if workbook is None:
            workbook = Workbook()
        # openpyxl renames clashing titles, so the default sheet must go first
        workbook.remove(workbook.active)

        groups = aggregate_positions(self.positions)
        sheet_names = []
        # Excel sheet names are case-insensitive
        taken = {self.portfolio_sheet_name.casefold()}
        for instrument_type, group in groups.items():
            name = self.sheet_name(instrument_type)
            if name.casefold() in taken:
                raise ValueError(f"Duplicate sheet name '{name}' for instrument type '{instrument_type}'")
            write_instrument_sheet(workbook, group, name)
            sheet_names.append(name)
            taken.add(name.casefold())
            logger.debug(f"Sheet '{name}': {len(group.positions)} positions, "
                         f"{len(group.sectors)} sectors, total {group.total:.2f}")

        if sheet_names:
            write_portfolio_sheet(workbook, sheet_names, self.portfolio_sheet_name)
        else:
            # A workbook needs at least one sheet to be saved
            workbook.create_sheet()
            logger.warning("No positions to report, workbook left empty")

        return workbook

    def parse(self, out_folder):
        """
        Write the workbook into out_folder and return the file path.

        Nothing is written to disk when building the workbook fails.
        """
        out_folder = Path(out_folder)
        if not out_folder.exists():
            raise FileNotFoundError(f"Output folder not found: {out_folder}")
        if not out_folder.is_dir():
            raise NotADirectoryError(f"Output folder must be a directory, not a file: {out_folder}")

        workbook = Workbook()
        try:
            self.build_workbook(workbook)
            buffer = BytesIO()
            workbook.save(buffer)
        finally:
            workbook.close()

        output_path = out_folder / WORKBOOK_NAME
        f = open(output_path, "wb")
        try:
            f.write(buffer.getvalue())
        except OSError:
            f.close()
            output_path.unlink(missing_ok=True)
            raise

        try:
            f.close()
        except OSError as e:
            output_path.unlink(missing_ok=True)
            raise ReportIntegrityError(f"Could not close {output_path}: {e}") from e

        logger.info(f"Workbook written to {output_path}")
        return output_path
