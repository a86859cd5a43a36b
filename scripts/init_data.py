#!/usr/bin/env python3
"""
Store Initialization Script - Write the starting records the dashboard reads
Usage: python scripts/init_data.py [--plots N] [--reading TYPE=VALUE ...]

Safe to run repeatedly: every record is overwritten in place.
"""

import os
import sys
import argparse
import logging
from dotenv import load_dotenv

from mushroom_dashboard.app.cloud.firebase import create_firebase_store
from mushroom_dashboard.app.cloud.sync import RigSync
from mushroom_dashboard.app.core.seed import DEFAULT_PLOT_COUNT, initialize_rig_data
from mushroom_dashboard.app.database.models import SENSOR_TYPES

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Load environment
load_dotenv(os.path.join(os.path.dirname(__file__), '..', 'mushroom_dashboard', 'config', '.env'))


def parse_reading(text):
    sensor_type, _, value = text.partition('=')
    if sensor_type not in SENSOR_TYPES:
        raise argparse.ArgumentTypeError(f"unknown sensor '{sensor_type}'")
    try:
        return sensor_type, float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid value '{value}'")


def main():
    parser = argparse.ArgumentParser(description="Initialize the mushroom rig store")
    parser.add_argument('--plots', type=int, default=DEFAULT_PLOT_COUNT, help="number of plots to create")
    parser.add_argument('--reading', type=parse_reading, action='append', default=[],
                        metavar='TYPE=VALUE', help="also record a sensor reading, e.g. temperature=24.5")
    args = parser.parse_args()

    store = create_firebase_store(
        config_path=os.getenv('FIREBASE_CONFIG_PATH', 'config/firebase_config.json'),
        db_url=os.getenv('FIREBASE_DATABASE_URL')
    )
    if not store.is_initialized:
        logger.error("❌ Firebase not initialized - check FIREBASE_CONFIG_PATH and FIREBASE_DATABASE_URL")
        return 1

    sync = RigSync(store)
    if not initialize_rig_data(sync, plot_count=args.plots):
        logger.error("❌ Some records failed to write")
        return 1

    for sensor_type, value in args.reading:
        if sync.write_sensor_reading(sensor_type, value):
            logger.info(f"Recorded {sensor_type} = {value}")

    logger.info("✅ Store initialized")
    return 0


if __name__ == '__main__':
    sys.exit(main())
