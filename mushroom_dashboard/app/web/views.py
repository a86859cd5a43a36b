# Mushroom Rig Dashboard - View Modules
# Each view owns its local state, subscribes to store paths on mount and
# detaches on teardown. Routes read state() and call the action methods.

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from mushroom_dashboard.app.cloud.sync import RigSync
from mushroom_dashboard.app.core import display
from mushroom_dashboard.app.core.seed import DEFAULT_PLOT_COUNT, initial_plots, initialize_rig_data
from mushroom_dashboard.app.core.version import VERSION
from mushroom_dashboard.app.database.models import (
    SENSOR_TYPES,
    CurrentSensorValues,
    LightControl,
    RobotArmPosition,
)

logger = logging.getLogger(__name__)

LOADING_TIMEOUT = 3.0
MOVE_DURATION = 3.0
RETURN_HOME_DURATION = 2.0
SENSOR_READ_DURATION = 2.0
VIDEO_CONNECT_DURATION = 2.0
HOME_PLOT = 1


class BaseView:
    """Lifecycle shared by every view: subscriptions plus client-local timers."""

    name = 'base'

    def __init__(self, sync: RigSync, config: Optional[Dict[str, Any]] = None,
                 timer_factory: Callable[..., Any] = threading.Timer):
        self.sync = sync
        self.config = config or {}
        self.mounted = False
        self._timer_factory = timer_factory
        self._unsubscribers: List[Callable[[], None]] = []
        self._timers: List[Any] = []

    def mount(self):
        if self.mounted:
            return
        self.mounted = True
        self._subscribe()
        logger.info(f"[VIEW] Mounted {self.name}")

    def unmount(self):
        for unsubscribe in self._unsubscribers:
            try:
                unsubscribe()
            except Exception as e:
                logger.warning(f"[VIEW] {self.name} unsubscribe failed: {e}")
        self._unsubscribers = []
        for timer in self._timers:
            timer.cancel()
        self._timers = []
        self.mounted = False
        logger.info(f"[VIEW] Unmounted {self.name}")

    def _subscribe(self):
        """Attach store subscriptions. Views without any leave this empty."""

    def _watch(self, unsubscribe: Callable[[], None]):
        self._unsubscribers.append(unsubscribe)

    def _schedule(self, delay: float, callback: Callable[[], None]):
        """Run `callback` once after `delay` seconds on a daemon timer."""
        self._timers = [t for t in self._timers if t.is_alive()]
        timer = self._timer_factory(delay, callback)
        timer.daemon = True
        self._timers.append(timer)
        timer.start()
        return timer

    def state(self) -> Dict[str, Any]:
        raise NotImplementedError


class DashboardView(BaseView):
    """Current readings, the per-sensor history charts and the alert list."""

    name = 'dashboard'

    def __init__(self, sync, config=None, timer_factory=threading.Timer):
        super().__init__(sync, config, timer_factory)
        self.sensor_meta = display.sensor_display_config(self.config.get('sensors'))
        self.history: Dict[str, List[Dict[str, Any]]] = {sensor: [] for sensor in SENSOR_TYPES}
        self.current = CurrentSensorValues()
        self.alerts: List[Dict[str, Any]] = []
        self.loading = True
        self.data_initialized = False
        self.stream_url = (self.config.get('video') or {}).get('stream_url') or None
        self.video_connected = False
        self.video_connecting = False
        self.video_error: Optional[str] = 'No video stream available'

    def _subscribe(self):
        for sensor_type in SENSOR_TYPES:
            self._watch(self.sync.subscribe_sensor_data(sensor_type, self._history_handler(sensor_type)))
        self._watch(self.sync.subscribe_current_sensor_values(self._on_current))
        self._watch(self.sync.subscribe_alerts(self._on_alerts))
        self._schedule(LOADING_TIMEOUT, self._stop_loading)
        if self.stream_url:
            self.video_connecting = False
            self.retry_video()

    def _history_handler(self, sensor_type):
        def on_history(readings):
            self.history[sensor_type] = readings
            self.loading = False
        return on_history

    def _on_current(self, data):
        self.current = CurrentSensorValues.from_dict(data)
        if (self.current.temperature or 0) > 0:
            self.data_initialized = True

    def _on_alerts(self, alerts):
        self.alerts = sorted(alerts, key=lambda a: a.get('timestamp', 0), reverse=True)

    def _stop_loading(self):
        self.loading = False

    def initialize_data(self) -> bool:
        """Write the starting records for every dashboard path."""
        self.loading = True
        ok = False
        try:
            plot_count = self.config.get('robot', {}).get('plot_count', DEFAULT_PLOT_COUNT)
            ok = initialize_rig_data(self.sync, plot_count=plot_count)
            if ok:
                self.data_initialized = True
        except Exception as e:
            logger.error(f"[VIEW] Error initializing store data: {e}")
        self.loading = False
        return ok

    def acknowledge_alert(self, alert_id: str) -> bool:
        return self.sync.acknowledge_alert(alert_id)

    def retry_video(self) -> bool:
        """Attempt to (re)connect the camera feed; the outcome is known after a fixed delay."""
        if self.video_connecting:
            return False
        self.video_connecting = True
        self.video_error = None
        self._schedule(VIDEO_CONNECT_DURATION, self._finish_video_connect)
        return True

    def _finish_video_connect(self):
        if self.stream_url:
            self.video_connected = True
            self.video_error = None
        else:
            self.video_connected = False
            self.video_error = 'Connection failed - No stream URL configured'
            logger.warning("[VIEW] Camera feed has no stream URL configured")
        self.video_connecting = False

    def state(self):
        cards = [
            display.build_sensor_card(sensor, self.current.get(sensor), self.sensor_meta[sensor])
            for sensor in SENSOR_TYPES
        ]
        charts = {
            sensor: {
                'title': self.sensor_meta[sensor]['title'],
                'unit': self.sensor_meta[sensor]['unit'],
                'range': [self.sensor_meta[sensor]['min'], self.sensor_meta[sensor]['max']],
                'data': self.history[sensor],
            }
            for sensor in SENSOR_TYPES
        }
        return {
            'loading': self.loading,
            'data_initialized': self.data_initialized,
            'current': self.current.to_dict(),
            'cards': cards,
            'charts': charts,
            'alerts': self.alerts,
            'unacknowledged_alerts': sum(1 for a in self.alerts if not a.get('acknowledged')),
            'video': {
                'stream_url': self.stream_url,
                'connected': self.video_connected,
                'connecting': self.video_connecting,
                'error': self.video_error,
            },
        }


class MLModelView(BaseView):
    name = 'ml-model'

    def __init__(self, sync, config=None, timer_factory=threading.Timer):
        super().__init__(sync, config, timer_factory)
        self.model: Optional[Dict[str, Any]] = None
        self.loading = True

    def _subscribe(self):
        self._watch(self.sync.subscribe_ml_model_info(self._on_model))
        self._schedule(LOADING_TIMEOUT, self._stop_loading)

    def _on_model(self, data):
        self.model = data
        self.loading = False

    def _stop_loading(self):
        self.loading = False

    def toggle_status(self) -> bool:
        """Flip active <-> inactive. Anything else (e.g. training) becomes active."""
        if not self.model:
            logger.warning("[VIEW] No model record to toggle")
            return False
        new_status = 'inactive' if self.model.get('status') == 'active' else 'active'
        logger.info(f"[VIEW] Setting model status to {new_status}")
        return self.sync.update_ml_model_status(new_status)

    def update_predictions(self, predictions: Dict[str, Any]) -> bool:
        return self.sync.update_ml_model_predictions(predictions)

    def state(self):
        status = self.model.get('status') if self.model else None
        return {
            'loading': self.loading,
            'model': self.model,
            'status_color': display.model_status_color(status),
        }


class RobotArmView(BaseView):
    """Robot position, plot selection and the three movement commands."""

    name = 'robot-arm'

    def __init__(self, sync, config=None, timer_factory=threading.Timer):
        super().__init__(sync, config, timer_factory)
        self.plot_count = self.config.get('robot', {}).get('plot_count', DEFAULT_PLOT_COUNT)
        self.position = RobotArmPosition()
        self.plots: List[Dict[str, Any]] = []
        self.selected_plot = HOME_PLOT
        self.is_moving = False
        self._move_timer = None

    def _subscribe(self):
        self._watch(self.sync.subscribe_robot_arm_position(self._on_robot))
        self._watch(self.sync.subscribe_plots(self._on_plots))

    def _on_robot(self, data):
        if not data:
            return
        self.position = RobotArmPosition.from_dict(data)
        self.is_moving = self.position.status == 'moving'

    def _on_plots(self, plots):
        if plots:
            self.plots = plots
        else:
            # Nothing stored yet: show the default bed layout
            self.plots = list(initial_plots(self.plot_count).values())

    def select_plot(self, plot_id: int):
        self.selected_plot = plot_id

    def _start_move(self, plot_id: int, duration: float, arrival_message: str) -> bool:
        self.is_moving = True
        ok = self.sync.move_robot_to_plot(plot_id)
        if self._move_timer is not None:
            self._move_timer.cancel()
        self._move_timer = self._schedule(duration, lambda: self._arrive(plot_id, arrival_message))
        return ok

    def _arrive(self, plot_id: int, message: str):
        self.position = RobotArmPosition(current_plot=plot_id, status='idle', last_action=message)
        self.is_moving = False
        self._move_timer = None

    def move_to_plot(self, plot_id: Optional[int] = None) -> bool:
        target = plot_id if plot_id is not None else self.selected_plot
        self.selected_plot = target
        return self._start_move(target, MOVE_DURATION, f"Arrived at Plot {target}")

    def return_home(self) -> bool:
        return self._start_move(HOME_PLOT, RETURN_HOME_DURATION, 'Returned to home position')

    def emergency_stop(self) -> bool:
        ok = self.sync.update_robot_status('idle')
        if self._move_timer is not None:
            self._move_timer.cancel()
            self._move_timer = None
        self.is_moving = False
        self.position = RobotArmPosition(
            current_plot=self.position.current_plot,
            status='idle',
            last_action='Emergency stop activated'
        )
        logger.warning("[VIEW] Robot arm emergency stop")
        return ok

    def state(self):
        return {
            'position': self.position.to_dict(),
            'status_color': display.robot_status_color(self.position.status),
            'plots': self.plots,
            'selected_plot': self.selected_plot,
            'is_moving': self.is_moving,
        }


class SensorControlView(BaseView):
    name = 'sensors'

    def __init__(self, sync, config=None, timer_factory=threading.Timer):
        super().__init__(sync, config, timer_factory)
        self.sensor_meta = display.sensor_display_config(self.config.get('sensors'))
        self.current = CurrentSensorValues()
        self.light = LightControl()
        self.reading: Dict[str, bool] = {}

    def _subscribe(self):
        self._watch(self.sync.subscribe_current_sensor_values(self._on_current))
        self._watch(self.sync.subscribe_light_control(self._on_light))

    def _on_current(self, data):
        self.current = CurrentSensorValues.from_dict(data)

    def _on_light(self, data):
        if data:
            self.light = LightControl.from_dict(data)

    def read_sensor(self, sensor_type: str) -> bool:
        """Ask the rig for a fresh reading; the in-progress flag clears after a fixed delay."""
        self.reading[sensor_type] = True
        key = self.sync.trigger_sensor_reading(sensor_type)
        self._schedule(SENSOR_READ_DURATION, lambda: self.reading.update({sensor_type: False}))
        return key is not None

    def read_all(self) -> bool:
        results = [self.read_sensor(sensor_type) for sensor_type in SENSOR_TYPES]
        return all(results)

    def calibrate(self, sensor_type: str) -> bool:
        return self.sync.calibrate_sensor(sensor_type) is not None

    def set_light_intensity(self, intensity) -> bool:
        intensity = int(min(max(intensity, 0), 100))
        self.light.intensity = intensity
        return self.sync.update_light_control({'intensity': intensity})

    def set_auto_light(self, enabled: bool) -> bool:
        self.light.is_auto = bool(enabled)
        return self.sync.update_light_control({'isAuto': self.light.is_auto})

    def set_light_status(self, on: bool) -> bool:
        self.light.status = 'on' if on else 'off'
        return self.sync.update_light_control({'status': self.light.status})

    def state(self):
        sensors = []
        for sensor_type in SENSOR_TYPES:
            meta = self.sensor_meta[sensor_type]
            value = self.current.get(sensor_type)
            sensors.append({
                'type': sensor_type,
                'title': meta['title'],
                'unit': meta['unit'],
                'last_reading': value,
                'display': display.format_value(value, meta['unit']),
                'reading': self.reading.get(sensor_type, False),
            })
        return {
            'sensors': sensors,
            'light': self.light.to_dict(),
        }


class LayoutView(BaseView):
    """Navigation tabs, theme mode and connection badge."""

    name = 'layout'

    TABS = [
        {'id': 'dashboard', 'label': 'Dashboard', 'endpoint': 'web.dashboard'},
        {'id': 'ml-model', 'label': 'ML Model', 'endpoint': 'web.ml_model'},
        {'id': 'robot-arm', 'label': 'Robot Arm Control', 'endpoint': 'web.robot_arm'},
        {'id': 'sensors', 'label': 'Sensor Controls', 'endpoint': 'web.sensors'},
    ]
    THEME_MODES = ('dark', 'light')

    def __init__(self, sync, config=None, timer_factory=threading.Timer, user_prefs=None):
        super().__init__(sync, config, timer_factory)
        self.user_prefs = user_prefs
        self.current_tab = 'dashboard'
        default_mode = self.config.get('ui', {}).get('theme_mode', 'dark')
        if user_prefs is not None:
            default_mode = user_prefs.get_preference('ui.theme_mode', default=default_mode)
        self.theme_mode = default_mode if default_mode in self.THEME_MODES else 'dark'

    def select_tab(self, tab_id: str) -> bool:
        if tab_id not in [tab['id'] for tab in self.TABS]:
            return False
        self.current_tab = tab_id
        return True

    def toggle_theme(self) -> str:
        self.theme_mode = 'light' if self.theme_mode == 'dark' else 'dark'
        if self.user_prefs is not None:
            self.user_prefs.set_preference('ui.theme_mode', self.theme_mode)
        logger.debug(f"[VIEW] Theme set to {self.theme_mode}")
        return self.theme_mode

    def state(self):
        return {
            'tabs': [{'id': tab['id'], 'label': tab['label']} for tab in self.TABS],
            'current_tab': self.current_tab,
            'theme_mode': self.theme_mode,
            'connected': bool(self.sync.store.is_initialized),
            'version': VERSION,
        }
