"""
BDR Reporting Hub: Entry Point
=================================

Run: python main.py [--input ...] [--output ...] [--now ...] [--config ...]
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

from scripts.lib.logger import setup_logger

logger = setup_logger("bdr-reporting-hub")

if __name__ == "__main__":
    from scripts.crm_reporting_analyzer import main

    logger.info("=" * 60)
    logger.info("  BDR REPORTING HUB: Call & KPI Analytics")
    logger.info("=" * 60)
    logger.info(f"  Environment : {os.getenv('ENVIRONMENT', 'development')}")
    logger.info(f"  Config      : {os.getenv('REPORTING_CONFIG_PATH', 'configs/reporting.yaml')}")
    logger.info("=" * 60)

    sys.exit(main())
