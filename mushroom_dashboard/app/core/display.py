# Mushroom Rig Dashboard - Display Logic
# Formatting, range clamping and optimal-band classification for sensor cards

import logging
import math
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

STATUS_OPTIMAL = 'Optimal'
STATUS_WARNING = 'Warning'

COLOR_OK = '#4caf50'
COLOR_WARNING = '#ff9800'
COLOR_INFO = '#2196f3'
COLOR_UNKNOWN = '#9e9e9e'

# Defaults for each sensor card; config.yaml 'sensors' section overrides any field
DEFAULT_SENSOR_DISPLAY = {
    'temperature': {'title': 'Temperature', 'unit': '°C', 'min': 10, 'max': 40,
                    'optimal_min': 20, 'optimal_max': 28},
    'humidity': {'title': 'Humidity', 'unit': '%', 'min': 0, 'max': 100,
                 'optimal_min': 80, 'optimal_max': 95},
    'co2': {'title': 'CO2 Level', 'unit': 'ppm', 'min': 0, 'max': 2000,
            'optimal_min': 500, 'optimal_max': 1000},
    'moisture': {'title': 'Moisture', 'unit': '%', 'min': 0, 'max': 100,
                 'optimal_min': 65, 'optimal_max': 85},
    'ph': {'title': 'pH Level', 'unit': 'pH', 'min': 0, 'max': 14,
           'optimal_min': 6.0, 'optimal_max': 7.0},
}

ROBOT_STATUS_COLORS = {
    'idle': COLOR_OK,
    'moving': COLOR_WARNING,
    'operating': COLOR_INFO,
}

MODEL_STATUS_COLORS = {
    'active': COLOR_OK,
    'inactive': COLOR_UNKNOWN,
    'training': COLOR_WARNING,
}


def format_value(value: Optional[float], unit: str = '') -> str:
    """Render a reading with one decimal place, e.g. 24.5 + '°C' -> '24.5°C'."""
    if value is None:
        return '--'
    try:
        number = float(value)
    except (TypeError, ValueError):
        return '--'
    if not math.isfinite(number):
        return '--'
    return f"{number:.1f}{unit}"


def progress_percent(value: Optional[float], min_value: float = 0, max_value: float = 100) -> float:
    """Position of `value` within [min_value, max_value] as a percentage clamped to [0, 100]."""
    if value is None or max_value == min_value:
        return 0.0
    try:
        progress = (float(value) - min_value) / (max_value - min_value) * 100
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(progress):
        return 0.0
    return min(max(progress, 0.0), 100.0)


def is_optimal(value: Optional[float], optimal_min: Optional[float], optimal_max: Optional[float]) -> bool:
    # Without a band there is nothing to warn about
    if optimal_min is None or optimal_max is None:
        return True
    try:
        return optimal_min <= float(value) <= optimal_max
    except (TypeError, ValueError):
        return False


def classify(value: Optional[float], optimal_min: Optional[float] = None,
             optimal_max: Optional[float] = None):
    """
    Classify a reading against its optimal band.
    Returns: ('Optimal'|'Warning', color)
    """
    if is_optimal(value, optimal_min, optimal_max):
        return STATUS_OPTIMAL, COLOR_OK
    return STATUS_WARNING, COLOR_WARNING


def robot_status_color(status: Optional[str]) -> str:
    return ROBOT_STATUS_COLORS.get(status, COLOR_UNKNOWN)


def model_status_color(status: Optional[str]) -> str:
    return MODEL_STATUS_COLORS.get(status, COLOR_UNKNOWN)


def sensor_display_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Dict[str, Any]]:
    """Merge per-sensor overrides from config over the built-in defaults."""
    merged = {name: dict(meta) for name, meta in DEFAULT_SENSOR_DISPLAY.items()}
    for name, meta in (overrides or {}).items():
        if name not in merged:
            logger.warning(f"[DISPLAY] Ignoring display config for unknown sensor '{name}'")
            continue
        if isinstance(meta, dict):
            merged[name].update(meta)
    return merged


def build_sensor_card(sensor_type: str, value: Optional[float], meta: Dict[str, Any]) -> Dict[str, Any]:
    """Everything a sensor card needs to render one reading."""
    status, color = classify(value, meta.get('optimal_min'), meta.get('optimal_max'))
    return {
        'type': sensor_type,
        'title': meta.get('title', sensor_type),
        'unit': meta.get('unit', ''),
        'value': value,
        'display': format_value(value, meta.get('unit', '')),
        'progress': progress_percent(value, meta.get('min', 0), meta.get('max', 100)),
        'range': [meta.get('min', 0), meta.get('max', 100)],
        'optimal_range': [meta.get('optimal_min'), meta.get('optimal_max')],
        'status': status,
        'status_color': color,
    }
