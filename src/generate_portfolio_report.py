"""
Generate Portfolio Report

Fetches the brokerage portfolio (or prices a local holdings file) and writes
the investments workbook: one sheet per instrument type plus a portfolio
sheet with the share of every instrument type.
"""

import argparse
import sys
from pathlib import Path

import csv_export
import holdings_file
from errors import ConfigError, InstrumentLookupError, InvestApiError
from invest_client import PROD_ENDPOINT, SANDBOX_ENDPOINT, InvestClient
from logger_config import setup_logging
from portfolio_parser import PortfolioParser
from settings import load_config


def parse_arguments(argv=None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        description='Generate investment portfolio Excel report by instrument type and sector'
    )
    parser.add_argument(
        '--config',
        help='Path to the JSON config file (default: config/config.json)'
    )
    parser.add_argument(
        '--source',
        choices=['broker', 'file'],
        default='broker',
        help='Read positions from the T-Invest API or from a holdings file (default: broker)'
    )
    parser.add_argument(
        '--holdings',
        help='Holdings JSON file, required with --source file'
    )
    parser.add_argument(
        '--out',
        help='Output folder for the workbook (overrides output_folder from the config)'
    )
    parser.add_argument(
        '--sandbox',
        action='store_true',
        help='Use the T-Invest sandbox endpoint'
    )
    parser.add_argument(
        '--csv',
        action='store_true',
        help='Also export the positions to positions.csv'
    )
    parser.add_argument(
        '--log-level',
        help='Logging level (DEBUG, INFO, WARNING, ERROR)'
    )
    args = parser.parse_args(argv)
    if args.source == 'file' and not args.holdings:
        parser.error('--holdings is required with --source file')
    return args


def get_endpoint(config, sandbox=False):
    if config.get('endpoint'):
        return config['endpoint']
    if sandbox or config.get('sandbox'):
        return SANDBOX_ENDPOINT
    return PROD_ENDPOINT


def fetch_positions(args, config):
    """Collect the positions from the selected source"""
    if args.source == 'file':
        print(f"\n📂 Loading holdings from: {args.holdings}")
        return holdings_file.get_positions(args.holdings)

    if not config['token']:
        raise ConfigError("API token is not configured (set 'token' or INVEST_TOKEN)")
    if not config['account_id']:
        raise ConfigError("Account id is not configured (set 'account_id' or INVEST_ACCOUNT_ID)")

    endpoint = get_endpoint(config, args.sandbox)
    print(f"\n🔄 Fetching portfolio from {endpoint}...")
    with InvestClient(config['token'], config['account_id'], endpoint,
                      timeout=config['request_timeout']) as client:
        return client.get_positions()


def main(argv=None):
    """Main function to generate the portfolio report"""
    args = parse_arguments(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args.config)
        positions = fetch_positions(args, config)
        print(f"✅ {len(positions)} positions loaded")

        out_folder = Path(args.out or config['output_folder'])
        parser = PortfolioParser(
            positions,
            instrument_type_names=config['instrument_type_names'],
            portfolio_sheet_name=config['portfolio_sheet_name'],
        )

        print("\n📊 Creating Excel report...")
        output_path = parser.parse(out_folder)
        print(f"✅ Investment report has been created successfully!")
        print(f"📁 Location: {output_path}")

        if args.csv:
            csv_path = csv_export.export_positions_csv(positions, out_folder)
            print(f"📁 Positions CSV: {csv_path}")
    except InstrumentLookupError as e:
        print(f"\n❌ ERROR: Could not resolve instrument {e.instrument_id}")
        print(f"   {e}")
        return 1
    except (ConfigError, InvestApiError, OSError) as e:
        print(f"\n❌ ERROR: {e}")
        return 1
    except ValueError as e:
        # Sheet names come from the instrument_type_names config
        print(f"\n❌ ERROR: Invalid sheet configuration: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
