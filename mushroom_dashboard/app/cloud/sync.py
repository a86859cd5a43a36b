# Mushroom Rig Dashboard - Realtime Sync Helpers
# Entity-level subscribe/write calls on top of FirebaseStore.
# Direct pass-through: no buffering, reconciliation, retry or ordering.

import logging
from typing import Any, Callable, Dict, List, Optional

from mushroom_dashboard.app.cloud.firebase import FirebaseStore, Unsubscribe
from mushroom_dashboard.app.database.models import (
    ALERT_TYPES,
    ALERTS_PATH,
    HISTORY_LIMIT,
    LIGHT_CONTROL_PATH,
    ML_MODEL_PATH,
    MODEL_STATUSES,
    PLOTS_PATH,
    ROBOT_ARM_PATH,
    ROBOT_STATUSES,
    SENSOR_ACTIONS,
    SENSOR_COMMANDS_PATH,
    SENSORS_CURRENT_PATH,
    Alert,
    CurrentSensorValues,
    SensorCommand,
    SensorReading,
    build_plots,
    history_path,
    now_ms,
)

logger = logging.getLogger(__name__)


def _children(data: Any) -> List[Any]:
    """Child values of a store node in key order ([] when absent)."""
    if not data:
        return []
    if isinstance(data, list):
        # The REST layer turns integer-keyed nodes into sparse lists
        return [item for item in data if item is not None]
    return list(data.values())


class RigSync:
    """
    Realtime data synchronization for the cultivation rig.

    Every subscribe_* call returns an unsubscribe callable; every write
    returns True/False (or the generated key) and never raises.
    """

    def __init__(self, store: FirebaseStore, history_limit: int = HISTORY_LIMIT):
        self.store = store
        self.history_limit = history_limit

    # ==================== SENSORS ====================
    def subscribe_sensor_data(self, sensor_type: str,
                              callback: Callable[[List[Dict[str, Any]]], None]) -> Unsubscribe:
        """Deliver the most recent readings (at most `history_limit`) for one sensor."""
        def on_value(data):
            readings = _children(data)
            callback(readings[-self.history_limit:])

        return self.store.subscribe(history_path(sensor_type), on_value)

    def subscribe_current_sensor_values(self, callback: Callable[[Dict[str, Any]], None]) -> Unsubscribe:
        """Deliver the latest snapshot; all zeros when nothing is stored yet."""
        def on_value(data):
            if data:
                callback(data)
            else:
                callback(CurrentSensorValues().to_dict())

        return self.store.subscribe(SENSORS_CURRENT_PATH, on_value)

    def write_sensor_reading(self, sensor_type: str, value: float) -> bool:
        """Append a reading to the sensor history, then overwrite the current value."""
        reading = SensorReading(value=value)
        key = self.store.push(history_path(sensor_type), reading.to_dict())
        if key is None:
            logger.error(f"[SYNC] Failed to append {sensor_type} reading")
            return False
        return self.store.set(f"{SENSORS_CURRENT_PATH}/{sensor_type}", value)

    # ==================== ML MODEL ====================
    def subscribe_ml_model_info(self, callback: Callable[[Optional[Dict[str, Any]]], None]) -> Unsubscribe:
        return self.store.subscribe(ML_MODEL_PATH, callback)

    def update_ml_model_status(self, status: str) -> bool:
        if status not in MODEL_STATUSES:
            logger.warning(f"[SYNC] Ignoring unknown model status '{status}'")
            return False
        return self.store.set(f"{ML_MODEL_PATH}/status", status)

    def update_ml_model_predictions(self, predictions: Dict[str, Any]) -> bool:
        return self.store.set(f"{ML_MODEL_PATH}/predictions", predictions)

    # ==================== ROBOT ARM ====================
    def subscribe_robot_arm_position(self, callback: Callable[[Optional[Dict[str, Any]]], None]) -> Unsubscribe:
        return self.store.subscribe(ROBOT_ARM_PATH, callback)

    def move_robot_to_plot(self, plot_id: int) -> bool:
        return self.store.update(ROBOT_ARM_PATH, {
            'targetPlot': plot_id,
            'status': 'moving',
            'lastAction': f"Moving to plot {plot_id}",
            'commandTimestamp': now_ms()
        })

    def update_robot_status(self, status: str) -> bool:
        if status not in ROBOT_STATUSES:
            logger.warning(f"[SYNC] Ignoring unknown robot status '{status}'")
            return False
        return self.store.set(f"{ROBOT_ARM_PATH}/status", status)

    # ==================== PLOTS ====================
    def subscribe_plots(self, callback: Callable[[List[Dict[str, Any]]], None]) -> Unsubscribe:
        def on_value(data):
            callback(_children(data))

        return self.store.subscribe(PLOTS_PATH, on_value)

    def initialize_plots(self, number_of_plots: int, inactive_plots=(), visited_at: Optional[str] = None) -> bool:
        """Overwrite the plot set with plots 1..N, active unless listed in `inactive_plots`."""
        return self.store.set(PLOTS_PATH, build_plots(number_of_plots, inactive_plots, visited_at))

    # ==================== SENSOR COMMANDS ====================
    def send_sensor_command(self, command: SensorCommand) -> Optional[str]:
        if command.action not in SENSOR_ACTIONS:
            logger.warning(f"[SYNC] Ignoring unknown sensor action '{command.action}'")
            return None
        # The command is stamped at send time, not at construction time
        payload = command.to_dict()
        payload['timestamp'] = now_ms()
        return self.store.push(SENSOR_COMMANDS_PATH, payload)

    def trigger_sensor_reading(self, sensor_type: str) -> Optional[str]:
        return self.send_sensor_command(SensorCommand(sensor_type, 'read'))

    def calibrate_sensor(self, sensor_type: str) -> Optional[str]:
        logger.info(f"[SYNC] Calibrating {sensor_type} sensor")
        return self.send_sensor_command(SensorCommand(sensor_type, 'calibrate'))

    # ==================== LIGHT ====================
    def subscribe_light_control(self, callback: Callable[[Optional[Dict[str, Any]]], None]) -> Unsubscribe:
        return self.store.subscribe(LIGHT_CONTROL_PATH, callback)

    def update_light_control(self, control: Dict[str, Any]) -> bool:
        """Partial update, e.g. {'intensity': 60} or {'status': 'off'}."""
        return self.store.update(LIGHT_CONTROL_PATH, control)

    # ==================== ALERTS ====================
    def subscribe_alerts(self, callback: Callable[[List[Dict[str, Any]]], None]) -> Unsubscribe:
        def on_value(data):
            if not data:
                callback([])
                return
            alerts = []
            for key, alert in data.items():
                entry = dict(alert)
                entry['id'] = key
                alerts.append(entry)
            callback(alerts)

        return self.store.subscribe(ALERTS_PATH, on_value)

    def acknowledge_alert(self, alert_id: str) -> bool:
        return self.store.set(f"{ALERTS_PATH}/{alert_id}/acknowledged", True)

    def create_alert(self, alert_type: str, message: str) -> Optional[str]:
        if alert_type not in ALERT_TYPES:
            logger.warning(f"[SYNC] Ignoring alert with unknown type '{alert_type}'")
            return None
        alert = Alert(alert_type, message, timestamp=now_ms(), acknowledged=False)
        return self.store.push(ALERTS_PATH, alert.to_dict())
