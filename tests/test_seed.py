import copy

from mushroom_dashboard.app.core.seed import initialize_rig_data, initial_plots

NOW_MS = 1_764_000_000_000
NOW_ISO = "2025-11-24T16:00:00"


def test_initialize_writes_every_dashboard_path(sync, fake_db):
    assert initialize_rig_data(sync, NOW_MS, NOW_ISO) is True

    assert fake_db.read('sensors/current') == {
        'ph': 6.5, 'moisture': 72.8, 'co2': 820, 'humidity': 85.2, 'temperature': 24.5
    }
    assert fake_db.read('mlModel/status') == 'active'
    assert fake_db.read('mlModel/predictions/fruitingReadiness') == 78
    assert fake_db.read('robotArm') == {
        'currentPlot': 1,
        'targetPlot': 1,
        'status': 'idle',
        'lastAction': 'System initialized',
        'commandTimestamp': NOW_MS,
    }
    assert fake_db.read('lightControl') == {'intensity': 75, 'isAuto': True, 'status': 'on'}
    assert fake_db.read('commands/robotArm/lastCommand') == 'none'

    plots = fake_db.read('plots')
    assert list(plots) == [f"plot_{i}" for i in range(1, 7)]
    assert plots['plot_5']['status'] == 'inactive'
    assert plots['plot_1']['lastVisited'] == NOW_ISO


def test_repeated_initialization_is_idempotent(sync, fake_db):
    initialize_rig_data(sync, NOW_MS, NOW_ISO)
    first = copy.deepcopy(fake_db.root)

    initialize_rig_data(sync, NOW_MS, NOW_ISO)
    initialize_rig_data(sync, NOW_MS, NOW_ISO)

    assert fake_db.root == first


def test_initialization_overwrites_drifted_state(sync, fake_db):
    initialize_rig_data(sync, NOW_MS, NOW_ISO)
    first = copy.deepcopy(fake_db.root)

    sync.update_robot_status('moving')
    sync.update_light_control({'intensity': 10})
    initialize_rig_data(sync, NOW_MS, NOW_ISO)

    assert fake_db.root == first


def test_initialization_leaves_history_and_alerts_alone(sync, fake_db):
    sync.write_sensor_reading('ph', 6.8)
    key = sync.create_alert('info', 'System started successfully')

    initialize_rig_data(sync, NOW_MS, NOW_ISO)

    assert len(fake_db.read('sensors/ph/history')) == 1
    assert fake_db.read(f'alerts/{key}/message') == 'System started successfully'


def test_initialization_reports_failed_writes(sync, fake_db):
    fake_db.failing_paths.add('mlModel')
    assert initialize_rig_data(sync, NOW_MS, NOW_ISO) is False
    # remaining paths are still written
    assert fake_db.read('lightControl') is not None


def test_initial_plots_count():
    plots = initial_plots(8, NOW_ISO)
    assert len(plots) == 8
    assert [p['status'] for p in plots.values()].count('inactive') == 1


def test_seed_and_sync_build_the_same_plots(sync, fake_db):
    initialize_rig_data(sync, NOW_MS, NOW_ISO)
    assert fake_db.read('plots') == initial_plots(6, NOW_ISO)


def test_initialization_accepts_clock_keywords(sync, fake_db):
    assert initialize_rig_data(sync, timestamp_ms=NOW_MS, timestamp_iso=NOW_ISO, plot_count=3) is True
    assert fake_db.read('robotArm/commandTimestamp') == NOW_MS
    assert list(fake_db.read('plots')) == ['plot_1', 'plot_2', 'plot_3']
