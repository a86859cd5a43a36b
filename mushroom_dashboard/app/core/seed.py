"""
Mushroom Rig Dashboard - Initial Store Data

Writes the fixed starting records for every path the dashboard reads.
Every write is a full overwrite, so running it again with the same clock
leaves the store in exactly the same state.
"""

import logging
from datetime import datetime
from typing import Optional

from mushroom_dashboard.app.cloud.sync import RigSync
from mushroom_dashboard.app.database.models import (
    COMMANDS_PATH,
    LIGHT_CONTROL_PATH,
    ML_MODEL_PATH,
    ROBOT_ARM_PATH,
    SENSORS_CURRENT_PATH,
    CurrentSensorValues,
    LightControl,
    MLModelInfo,
    build_plots,
    now_ms,
)

logger = logging.getLogger(__name__)

DEFAULT_PLOT_COUNT = 6
INACTIVE_PLOTS = (5,)

INITIAL_SENSOR_VALUES = CurrentSensorValues(
    ph=6.5,
    moisture=72.8,
    co2=820,
    humidity=85.2,
    temperature=24.5
)

INITIAL_MODEL = MLModelInfo(
    name='Mushroom Fruiting Predictor',
    version='2.1.0',
    accuracy=94.5,
    last_trained_date='2025-11-20T10:30:00Z',
    status='active',
    predictions={
        'fruitingReadiness': 78,
        'estimatedHarvestDate': '2025-12-05',
        'healthScore': 92
    },
    features=['Temperature', 'Humidity', 'CO2', 'Moisture', 'pH', 'Light Intensity'],
    description='CNN-based model for predicting optimal fruiting conditions '
                'and disease detection in mushroom cultivation.'
)


def initial_plots(count: int = DEFAULT_PLOT_COUNT, visited_at: Optional[str] = None):
    """Starting plot records keyed plot_1..plot_N."""
    return build_plots(count, INACTIVE_PLOTS, visited_at)


def initialize_rig_data(sync: RigSync, timestamp_ms: Optional[int] = None,
                        timestamp_iso: Optional[str] = None,
                        plot_count: int = DEFAULT_PLOT_COUNT) -> bool:
    """
    Populate the store with starting records.

    Args:
        sync: RigSync bound to the target store
        timestamp_ms: Epoch milliseconds stamped on records (defaults to now)
        timestamp_iso: ISO time used for plot lastVisited (defaults to now)
        plot_count: Number of plots to create

    Returns:
        True when every write succeeded
    """
    timestamp_ms = timestamp_ms if timestamp_ms is not None else now_ms()
    timestamp_iso = timestamp_iso or datetime.now().isoformat()
    store = sync.store

    writes = [
        (SENSORS_CURRENT_PATH, INITIAL_SENSOR_VALUES.to_dict()),
        (ML_MODEL_PATH, INITIAL_MODEL.to_dict()),
        (ROBOT_ARM_PATH, {
            'currentPlot': 1,
            'targetPlot': 1,
            'status': 'idle',
            'lastAction': 'System initialized',
            'commandTimestamp': timestamp_ms
        }),
        (LIGHT_CONTROL_PATH, LightControl(intensity=75, is_auto=True, status='on').to_dict()),
        (COMMANDS_PATH, {
            'sensors': {},
            'robotArm': {
                'lastCommand': 'none',
                'timestamp': timestamp_ms
            }
        }),
    ]

    ok = True
    for path, value in writes:
        if not store.set(path, value):
            logger.error(f"[SEED] Failed to initialize '{path}'")
            ok = False

    if not sync.initialize_plots(plot_count, INACTIVE_PLOTS, timestamp_iso):
        logger.error("[SEED] Failed to initialize 'plots'")
        ok = False

    if ok:
        logger.info("[SEED] Store data initialized successfully")
    return ok
