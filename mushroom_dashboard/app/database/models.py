# Mushroom Rig Dashboard - Data Models
# Flat records stored at fixed paths in the Firebase Realtime Database

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

# Remote store paths
SENSORS_CURRENT_PATH = 'sensors/current'
SENSOR_HISTORY_PATH = 'sensors/{sensor_type}/history'
ML_MODEL_PATH = 'mlModel'
ROBOT_ARM_PATH = 'robotArm'
PLOTS_PATH = 'plots'
LIGHT_CONTROL_PATH = 'lightControl'
ALERTS_PATH = 'alerts'
COMMANDS_PATH = 'commands'
SENSOR_COMMANDS_PATH = 'commands/sensors'

SENSOR_TYPES = ('temperature', 'humidity', 'co2', 'moisture', 'ph')
HISTORY_LIMIT = 50

ROBOT_STATUSES = ('idle', 'moving', 'operating')
MODEL_STATUSES = ('active', 'inactive', 'training')
ALERT_TYPES = ('warning', 'error', 'info', 'success')
SENSOR_ACTIONS = ('read', 'calibrate')


def now_ms() -> int:
    """Current time as epoch milliseconds (the store's timestamp format)."""
    return int(datetime.now().timestamp() * 1000)


def history_path(sensor_type: str) -> str:
    return SENSOR_HISTORY_PATH.format(sensor_type=sensor_type)


def as_number(value: Any) -> Optional[float]:
    """Numeric store value, or None for anything that is not a finite number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value if math.isfinite(value) else None


class SensorReading:
    def __init__(self, value: float, timestamp: Optional[int] = None):
        self.value = value
        self.timestamp = timestamp if timestamp is not None else now_ms()

    def to_dict(self):
        return {
            'timestamp': self.timestamp,
            'value': self.value
        }


class CurrentSensorValues:
    def __init__(self, ph: float = 0, moisture: float = 0, co2: float = 0,
                 humidity: float = 0, temperature: float = 0):
        self.ph = ph
        self.moisture = moisture
        self.co2 = co2
        self.humidity = humidity
        self.temperature = temperature

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'CurrentSensorValues':
        """
        Build from a store snapshot; an absent snapshot means all zeros.
        Fields holding something other than a number are treated as absent (None).
        """
        if not data:
            return cls()
        return cls(**{key: as_number(data.get(key, 0)) for key in SENSOR_TYPES})

    def get(self, sensor_type: str) -> Optional[float]:
        return getattr(self, sensor_type, 0)

    def to_dict(self):
        return {key: getattr(self, key) for key in SENSOR_TYPES}


class MLModelInfo:
    """Single mutable record describing the (simulated) prediction model."""

    def __init__(self, name: str, version: str, accuracy: float,
                 last_trained_date: str, status: str = 'active',
                 predictions: Optional[Dict[str, Any]] = None,
                 features: Optional[List[str]] = None, description: str = ''):
        self.name = name
        self.version = version
        self.accuracy = accuracy
        self.last_trained_date = last_trained_date
        self.status = status
        self.predictions = predictions or {
            'fruitingReadiness': 0,
            'estimatedHarvestDate': '',
            'healthScore': 0
        }
        self.features = features or []
        self.description = description

    def to_dict(self):
        return {
            'name': self.name,
            'version': self.version,
            'accuracy': self.accuracy,
            'lastTrainedDate': self.last_trained_date,
            'status': self.status,
            'predictions': dict(self.predictions),
            'features': list(self.features),
            'description': self.description
        }


class RobotArmPosition:
    def __init__(self, current_plot: int = 1, status: str = 'idle',
                 last_action: str = 'Waiting for data...'):
        self.current_plot = current_plot
        self.status = status
        self.last_action = last_action

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RobotArmPosition':
        # Falsy fields fall back the same way the dashboard always has
        return cls(
            current_plot=data.get('currentPlot') or 1,
            status=data.get('status') or 'idle',
            last_action=data.get('lastAction') or 'System ready'
        )

    def to_dict(self):
        return {
            'currentPlot': self.current_plot,
            'status': self.status,
            'lastAction': self.last_action
        }


class Plot:
    def __init__(self, plot_id: int, name: Optional[str] = None,
                 status: str = 'active', last_visited: Optional[str] = None):
        self.id = plot_id
        self.name = name or f"Plot {plot_id}"
        self.status = status
        self.last_visited = last_visited or datetime.now().isoformat()

    @property
    def key(self) -> str:
        return f"plot_{self.id}"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'status': self.status,
            'lastVisited': self.last_visited
        }


class LightControl:
    def __init__(self, intensity: int = 75, is_auto: bool = True, status: str = 'on'):
        self.intensity = intensity
        self.is_auto = is_auto
        self.status = status

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LightControl':
        return cls(
            intensity=data.get('intensity', 75),
            is_auto=data.get('isAuto', True),
            status=data.get('status', 'on')
        )

    def to_dict(self):
        return {
            'intensity': self.intensity,
            'isAuto': self.is_auto,
            'status': self.status
        }


class Alert:
    def __init__(self, alert_type: str, message: str, timestamp: Optional[int] = None,
                 acknowledged: bool = False):
        self.type = alert_type
        self.message = message
        self.timestamp = timestamp if timestamp is not None else now_ms()
        self.acknowledged = acknowledged

    def to_dict(self):
        """Stored form; the id is the store key and is not written."""
        return {
            'type': self.type,
            'message': self.message,
            'timestamp': self.timestamp,
            'acknowledged': self.acknowledged
        }


class SensorCommand:
    def __init__(self, sensor_type: str, action: str = 'read', timestamp: Optional[int] = None):
        self.sensor_type = sensor_type
        self.action = action
        self.timestamp = timestamp if timestamp is not None else now_ms()

    def to_dict(self):
        return {
            'sensorType': self.sensor_type,
            'action': self.action,
            'timestamp': self.timestamp
        }


def build_plots(count: int, inactive_plots=(), visited_at: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
    """Plot records keyed plot_1..plot_N; ids in `inactive_plots` start inactive."""
    plots = {}
    for i in range(1, count + 1):
        plot = Plot(i, status='inactive' if i in inactive_plots else 'active', last_visited=visited_at)
        plots[plot.key] = plot.to_dict()
    return plots
