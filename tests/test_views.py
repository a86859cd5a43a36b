import pytest

from mushroom_dashboard.app.core.seed import initialize_rig_data
from mushroom_dashboard.app.utils.user_preferences import UserPreferencesManager
from mushroom_dashboard.app.web.views import (
    DashboardView,
    LayoutView,
    MLModelView,
    RobotArmView,
    SensorControlView,
)


# ---------------- Dashboard ----------------

def test_dashboard_loading_ends_on_first_history(sync, timers):
    view = DashboardView(sync, timer_factory=timers)
    assert view.state()['loading'] is True
    view.mount()
    # absent histories still deliver an empty list
    assert view.state()['loading'] is False


def test_dashboard_loading_timeout(sync, timers):
    view = DashboardView(sync, timer_factory=timers)
    view.mount()
    view.loading = True
    timers.fire_all()
    assert view.loading is False
    assert timers.timers[0].delay == 3.0


def test_dashboard_cards_follow_current_values(sync, timers):
    view = DashboardView(sync, timer_factory=timers)
    view.mount()
    assert view.state()['data_initialized'] is False

    sync.store.set('sensors/current', {'temperature': 31, 'humidity': 85, 'co2': 820, 'moisture': 70, 'ph': 6.5})
    state = view.state()

    assert state['data_initialized'] is True
    cards = {card['type']: card for card in state['cards']}
    assert cards['temperature']['display'] == '31.0°C'
    assert cards['temperature']['status'] == 'Warning'
    assert cards['humidity']['status'] == 'Optimal'
    assert cards['ph']['progress'] == pytest.approx(6.5 / 14 * 100)


def test_dashboard_respects_configured_bands(sync, timers):
    config = {'sensors': {'temperature': {'optimal_max': 35}}}
    view = DashboardView(sync, config, timer_factory=timers)
    view.mount()
    sync.store.set('sensors/current/temperature', 31)
    cards = {card['type']: card for card in view.state()['cards']}
    assert cards['temperature']['status'] == 'Optimal'


def test_dashboard_charts_receive_history(sync, timers):
    view = DashboardView(sync, timer_factory=timers)
    view.mount()
    sync.write_sensor_reading('co2', 900)
    sync.write_sensor_reading('co2', 950)
    chart = view.state()['charts']['co2']
    assert [point['value'] for point in chart['data']] == [900, 950]
    assert chart['unit'] == 'ppm'


def test_dashboard_initialize_and_alerts(sync, timers):
    view = DashboardView(sync, timer_factory=timers)
    view.mount()
    assert view.initialize_data() is True
    assert view.state()['data_initialized'] is True
    assert view.state()['current']['temperature'] == 24.5

    older = sync.create_alert('info', 'first')
    newer = sync.create_alert('warning', 'second')
    sync.store.set(f'alerts/{older}/timestamp', 1)
    state = view.state()
    assert [a['id'] for a in state['alerts']] == [newer, older]
    assert state['unacknowledged_alerts'] == 2

    assert view.acknowledge_alert(newer) is True
    assert view.state()['unacknowledged_alerts'] == 1


def test_unmount_stops_updates(sync, timers, fake_db):
    view = DashboardView(sync, timer_factory=timers)
    view.mount()
    view.unmount()
    sync.store.set('sensors/current/temperature', 40)
    assert view.current.temperature == 0
    assert fake_db.listeners == []
    assert all(t.cancelled for t in timers.timers)


def test_mount_twice_subscribes_once(sync, timers, fake_db):
    view = MLModelView(sync, timer_factory=timers)
    view.mount()
    view.mount()
    assert len(fake_db.listeners) == 1


# ---------------- ML model ----------------

def test_ml_model_toggle(sync, timers, fake_db):
    view = MLModelView(sync, timer_factory=timers)
    view.mount()
    assert view.state()['model'] is None
    assert view.state()['loading'] is False
    assert view.toggle_status() is False

    initialize_rig_data(sync)
    assert view.state()['model']['status'] == 'active'

    assert view.toggle_status() is True
    assert fake_db.read('mlModel/status') == 'inactive'
    assert view.state()['status_color'] == '#9e9e9e'

    view.toggle_status()
    assert fake_db.read('mlModel/status') == 'active'

    sync.update_ml_model_status('training')
    view.toggle_status()
    assert fake_db.read('mlModel/status') == 'active'


def test_ml_model_predictions(sync, timers, fake_db):
    view = MLModelView(sync, timer_factory=timers)
    view.mount()
    initialize_rig_data(sync)
    view.update_predictions({'fruitingReadiness': 90, 'estimatedHarvestDate': '2025-12-01', 'healthScore': 95})
    assert view.state()['model']['predictions']['fruitingReadiness'] == 90


# ---------------- Robot arm ----------------

def test_robot_defaults_without_store_data(sync, timers):
    view = RobotArmView(sync, timer_factory=timers)
    view.mount()
    state = view.state()
    assert state['position'] == {'currentPlot': 1, 'status': 'idle', 'lastAction': 'Waiting for data...'}
    assert [p['id'] for p in state['plots']] == [1, 2, 3, 4, 5, 6]
    assert state['plots'][4]['status'] == 'inactive'


def test_robot_move_then_arrive(sync, timers, fake_db):
    view = RobotArmView(sync, timer_factory=timers)
    view.mount()

    assert view.move_to_plot(3) is True
    assert fake_db.read('robotArm/status') == 'moving'
    assert fake_db.read('robotArm/targetPlot') == 3
    assert view.state()['is_moving'] is True
    assert timers.timers[-1].delay == 3.0

    timers.fire_all()
    state = view.state()
    assert state['is_moving'] is False
    assert state['position'] == {'currentPlot': 3, 'status': 'idle', 'lastAction': 'Arrived at Plot 3'}


def test_robot_moves_to_selected_plot(sync, timers, fake_db):
    view = RobotArmView(sync, timer_factory=timers)
    view.mount()
    view.select_plot(5)
    view.move_to_plot()
    assert fake_db.read('robotArm/targetPlot') == 5


def test_robot_return_home(sync, timers, fake_db):
    view = RobotArmView(sync, timer_factory=timers)
    view.mount()
    view.return_home()
    assert fake_db.read('robotArm/targetPlot') == 1
    assert timers.timers[-1].delay == 2.0
    timers.fire_all()
    assert view.state()['position']['lastAction'] == 'Returned to home position'


def test_robot_emergency_stop_cancels_pending_arrival(sync, timers, fake_db):
    view = RobotArmView(sync, timer_factory=timers)
    view.mount()
    view.move_to_plot(4)
    assert view.emergency_stop() is True

    timers.fire_all()
    state = view.state()
    assert fake_db.read('robotArm/status') == 'idle'
    assert state['is_moving'] is False
    assert state['position']['lastAction'] == 'Emergency stop activated'


def test_robot_follows_remote_status(sync, timers):
    view = RobotArmView(sync, timer_factory=timers)
    view.mount()
    sync.store.set('robotArm', {'currentPlot': 2, 'status': 'operating', 'lastAction': 'Harvesting'})
    state = view.state()
    assert state['position']['currentPlot'] == 2
    assert state['status_color'] == '#2196f3'
    assert state['is_moving'] is False


# ---------------- Sensor controls ----------------

def test_sensor_read_marks_in_progress(sync, timers, fake_db):
    view = SensorControlView(sync, timer_factory=timers)
    view.mount()

    assert view.read_sensor('ph') is True
    sensors = {s['type']: s for s in view.state()['sensors']}
    assert sensors['ph']['reading'] is True
    assert sensors['co2']['reading'] is False

    timers.fire_all()
    sensors = {s['type']: s for s in view.state()['sensors']}
    assert sensors['ph']['reading'] is False
    commands = fake_db.read('commands/sensors')
    assert [c['sensorType'] for c in commands.values()] == ['ph']


def test_sensor_read_all_and_calibrate(sync, timers, fake_db):
    view = SensorControlView(sync, timer_factory=timers)
    view.mount()
    assert view.read_all() is True
    assert view.calibrate('moisture') is True
    actions = [c['action'] for c in fake_db.read('commands/sensors').values()]
    assert actions.count('read') == 5
    assert actions.count('calibrate') == 1


def test_light_controls(sync, timers, fake_db):
    view = SensorControlView(sync, timer_factory=timers)
    view.mount()
    assert view.state()['light'] == {'intensity': 75, 'isAuto': True, 'status': 'on'}

    view.set_light_intensity(140)
    view.set_auto_light(False)
    view.set_light_status(False)

    assert fake_db.read('lightControl') == {'intensity': 100, 'isAuto': False, 'status': 'off'}
    assert view.state()['light'] == {'intensity': 100, 'isAuto': False, 'status': 'off'}


def test_sensor_view_shows_current_values(sync, timers):
    view = SensorControlView(sync, timer_factory=timers)
    view.mount()
    sync.write_sensor_reading('temperature', 24.5)
    sensors = {s['type']: s for s in view.state()['sensors']}
    assert sensors['temperature']['display'] == '24.5°C'
    assert sensors['temperature']['last_reading'] == 24.5


# ---------------- Layout ----------------

def test_layout_tabs_and_theme(sync, user_prefs):
    view = LayoutView(sync, user_prefs=user_prefs)
    state = view.state()
    assert [tab['id'] for tab in state['tabs']] == ['dashboard', 'ml-model', 'robot-arm', 'sensors']
    assert state['current_tab'] == 'dashboard'
    assert state['theme_mode'] == 'dark'
    assert state['connected'] is True

    assert view.select_tab('robot-arm') is True
    assert view.select_tab('settings') is False
    assert view.state()['current_tab'] == 'robot-arm'

    assert view.toggle_theme() == 'light'
    assert user_prefs.get_preference('ui.theme_mode') == 'light'


def test_layout_theme_survives_restart(sync, user_prefs):
    LayoutView(sync, user_prefs=user_prefs).toggle_theme()
    reloaded = UserPreferencesManager(
        user_config_path=user_prefs.user_config_path,
        default_config_path=user_prefs.default_config_path,
    )
    assert LayoutView(sync, user_prefs=reloaded).theme_mode == "light"


def test_dashboard_treats_non_numeric_values_as_absent(sync, timers):
    view = DashboardView(sync, timer_factory=timers)
    view.mount()
    sync.store.set('sensors/current', {'temperature': 'n/a', 'humidity': 85, 'co2': 820, 'moisture': 70, 'ph': float('nan')})

    state = view.state()
    assert state['data_initialized'] is False
    assert state['current']['temperature'] is None
    cards = {card['type']: card for card in state['cards']}
    assert cards['temperature']['display'] == '--'
    assert cards['temperature']['status'] == 'Warning'
    assert cards['ph']['progress'] == 0.0
    assert cards['co2']['status'] == 'Optimal'


# ---------------- Camera feed ----------------

def test_video_idle_without_stream_url(sync, timers):
    view = DashboardView(sync, timer_factory=timers)
    view.mount()
    video = view.state()['video']
    assert video == {
        'stream_url': None,
        'connected': False,
        'connecting': False,
        'error': 'No video stream available',
    }
    # only the loading timer was started
    assert len(timers.timers) == 1


def test_video_retry_fails_without_stream_url(sync, timers):
    view = DashboardView(sync, timer_factory=timers)
    view.mount()

    assert view.retry_video() is True
    assert view.retry_video() is False
    assert view.state()['video']['connecting'] is True
    assert timers.timers[-1].delay == 2.0

    timers.fire_all()
    video = view.state()['video']
    assert video['connecting'] is False
    assert video['connected'] is False
    assert video['error'] == 'Connection failed - No stream URL configured'


def test_video_connects_on_mount_with_stream_url(sync, timers):
    config = {'video': {'stream_url': 'http://rig-cam.local:81/stream'}}
    view = DashboardView(sync, config, timer_factory=timers)
    view.mount()
    assert view.state()['video']['connecting'] is True

    timers.fire_all()
    video = view.state()['video']
    assert video['connected'] is True
    assert video['error'] is None
    assert video['stream_url'] == 'http://rig-cam.local:81/stream'
