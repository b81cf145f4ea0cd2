""" Export the resolved portfolio positions to a CSV file. """
from pathlib import Path

import pandas as pd


CSV_NAME = "positions.csv"


def export_positions_csv(positions, out_folder):
    out_folder = Path(out_folder)
    if not out_folder.is_dir():
        raise NotADirectoryError(f"Output folder must be an existing directory: {out_folder}")

    rows = []
    for position in positions:
        rows.append({
            "Ticker": position.ticker,
            "Instrument Type": position.instrument_type,
            "Sector": position.sector,
            "Total Price": position.total_price,
        })

    df = pd.DataFrame(rows, columns=["Ticker", "Instrument Type", "Sector", "Total Price"])
    output_path = out_folder / CSV_NAME
    df.to_csv(output_path, index=False)
    return output_path
