from flask import Blueprint, render_template, jsonify, redirect, url_for, current_app, request
import math
import time
import logging
from datetime import datetime

from mushroom_dashboard.app.core import version as version_module
from mushroom_dashboard.app.database.models import SENSOR_TYPES

logger = logging.getLogger(__name__)

# Create Flask Blueprint
web_bp = Blueprint('web', __name__, template_folder='templates')


def get_view(name):
    """Look up a mounted view registered by the orchestrator."""
    return current_app.config['VIEWS'][name]


def _bad_request(message):
    return jsonify({'success': False, 'message': message}), 400


def _write_result(ok, **extra):
    """JSON body for a store write; failed writes were already logged."""
    body = {'success': bool(ok)}
    body.update(extra)
    if not ok:
        body.setdefault('message', 'Store write failed')
        return jsonify(body), 502
    return jsonify(body)


def _valid_sensor(sensor_type):
    return sensor_type in SENSOR_TYPES


def _finite_number(value):
    """float(value) when it is a finite number, else None."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@web_bp.app_context_processor
def inject_layout():
    """Navigation and theme for every page."""
    views = current_app.config.get('VIEWS', {})
    layout = views.get('layout')
    return {'layout': layout.state() if layout else {}}


@web_bp.app_template_filter('strftime')
def strftime_filter(timestamp_ms, format_string='%Y-%m-%d %H:%M:%S'):
    """Convert epoch milliseconds to formatted datetime string."""
    try:
        return datetime.fromtimestamp(float(timestamp_ms) / 1000).strftime(format_string)
    except (ValueError, TypeError):
        return 'Invalid timestamp'


@web_bp.route('/status', methods=['GET'])
def get_status():
    """Health check endpoint."""
    try:
        layout = get_view('layout')
        return jsonify({
            'success': True,
            'status': 'online',
            'store_connected': layout.state()['connected'],
            'version': version_module.VERSION,
            'timestamp': time.time()
        }), 200
    except Exception as e:
        logger.error(f"[WEB] Status check error: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@web_bp.route('/api/version')
def api_version():
    """Dashboard version info; pass ?firmware=X.Y.Z to check rig firmware compatibility."""
    info = version_module.get_version_info()
    body = {
        'success': True,
        'version': info.get('version'),
        'major': info.get('major'),
        'minor': info.get('minor'),
        'patch': info.get('patch'),
        'release_date': info.get('release_date'),
        'release_name': info.get('release_name'),
        'features': info.get('features'),
    }
    firmware = request.args.get('firmware')
    if firmware:
        body['firmware_compatible'] = version_module.is_firmware_compatible(firmware)
    return jsonify(body)

# =======================================================
#                  WEB PAGE ROUTES
# =======================================================

@web_bp.route('/')
def index():
    """Redirect to dashboard."""
    return redirect(url_for('web.dashboard'))


@web_bp.route('/dashboard')
def dashboard():
    get_view('layout').select_tab('dashboard')
    return render_template('dashboard.html', **get_view('dashboard').state())


@web_bp.route('/ml-model')
def ml_model():
    get_view('layout').select_tab('ml-model')
    return render_template('ml_model.html', **get_view('ml-model').state())


@web_bp.route('/robot-arm')
def robot_arm():
    get_view('layout').select_tab('robot-arm')
    return render_template('robot_arm.html', **get_view('robot-arm').state())


@web_bp.route('/sensors')
def sensors():
    get_view('layout').select_tab('sensors')
    return render_template('sensors.html', **get_view('sensors').state())

# =======================================================
#                  JSON STATE (polled by the pages)
# =======================================================

@web_bp.route('/api/dashboard')
def api_dashboard():
    return jsonify(get_view('dashboard').state())


@web_bp.route('/api/ml-model')
def api_ml_model():
    return jsonify(get_view('ml-model').state())


@web_bp.route('/api/robot-arm')
def api_robot_arm():
    return jsonify(get_view('robot-arm').state())


@web_bp.route('/api/sensors')
def api_sensors():
    return jsonify(get_view('sensors').state())


@web_bp.route('/api/layout')
def api_layout():
    return jsonify(get_view('layout').state())

# =======================================================
#                  ACTIONS
# =======================================================

@web_bp.route('/api/initialize', methods=['POST'])
def initialize_data():
    """Write the starting records for every dashboard path."""
    ok = get_view('dashboard').initialize_data()
    logger.info(f"[WEB] Store initialization requested, success={ok}")
    return _write_result(ok)


@web_bp.route('/api/alerts/<alert_id>/acknowledge', methods=['POST'])
def acknowledge_alert(alert_id):
    ok = get_view('dashboard').acknowledge_alert(alert_id)
    return _write_result(ok, alert_id=alert_id)


@web_bp.route('/api/video/retry', methods=['POST'])
def retry_video():
    """Retry the camera feed connection; poll /api/dashboard for the outcome."""
    view = get_view('dashboard')
    started = view.retry_video()
    return jsonify({'success': True, 'started': started, 'video': view.state()['video']})


@web_bp.route('/api/ml-model/toggle', methods=['POST'])
def toggle_model_status():
    view = get_view('ml-model')
    if not view.model:
        return jsonify({'success': False, 'message': 'No model data'}), 404
    return _write_result(view.toggle_status())


@web_bp.route('/api/ml-model/predictions', methods=['POST'])
def update_model_predictions():
    """
    Overwrite the model predictions.
    Receives: {"fruitingReadiness": 80, "estimatedHarvestDate": "2025-12-05", "healthScore": 90}
    """
    data = request.get_json(silent=True) or {}
    required = ['fruitingReadiness', 'estimatedHarvestDate', 'healthScore']
    if not all(key in data for key in required):
        return _bad_request('Missing required fields')
    predictions = {key: data[key] for key in required}
    return _write_result(get_view('ml-model').update_predictions(predictions))


@web_bp.route('/api/robot-arm/move', methods=['POST'])
def move_robot():
    """
    Send the robot arm to a plot.
    Receives: {"plot": 3}
    """
    data = request.get_json(silent=True) or {}
    try:
        plot_id = int(data['plot'])
    except (KeyError, TypeError, ValueError, OverflowError):
        return _bad_request("Missing or invalid 'plot' field")
    view = get_view('robot-arm')
    if not 1 <= plot_id <= view.plot_count:
        return _bad_request(f"Plot must be between 1 and {view.plot_count}")
    return _write_result(view.move_to_plot(plot_id), plot=plot_id)


@web_bp.route('/api/robot-arm/home', methods=['POST'])
def robot_home():
    return _write_result(get_view('robot-arm').return_home())


@web_bp.route('/api/robot-arm/stop', methods=['POST'])
def robot_stop():
    return _write_result(get_view('robot-arm').emergency_stop())


@web_bp.route('/api/sensors/<sensor_type>/read', methods=['POST'])
def read_sensor(sensor_type):
    if not _valid_sensor(sensor_type):
        return _bad_request(f"Unknown sensor: {sensor_type}")
    return _write_result(get_view('sensors').read_sensor(sensor_type), sensor=sensor_type)


@web_bp.route('/api/sensors/read-all', methods=['POST'])
def read_all_sensors():
    return _write_result(get_view('sensors').read_all())


@web_bp.route('/api/sensors/<sensor_type>/calibrate', methods=['POST'])
def calibrate_sensor(sensor_type):
    if not _valid_sensor(sensor_type):
        return _bad_request(f"Unknown sensor: {sensor_type}")
    return _write_result(get_view('sensors').calibrate(sensor_type), sensor=sensor_type)


@web_bp.route('/api/sensors/<sensor_type>/reading', methods=['POST'])
def ingest_reading(sensor_type):
    """
    Record a reading reported by the rig.
    Receives: {"value": 24.5}
    """
    if not _valid_sensor(sensor_type):
        return _bad_request(f"Unknown sensor: {sensor_type}")
    data = request.get_json(silent=True) or {}
    value = _finite_number(data.get('value'))
    if value is None:
        return _bad_request("Missing or invalid 'value' field")
    sync = get_view('sensors').sync
    return _write_result(sync.write_sensor_reading(sensor_type, value), sensor=sensor_type, value=value)


@web_bp.route('/api/light', methods=['POST'])
def control_light():
    """
    Partial light update.
    Receives any of: {"intensity": 60, "isAuto": false, "status": "on"}
    """
    data = request.get_json(silent=True) or {}
    view = get_view('sensors')
    if not any(key in data for key in ('intensity', 'isAuto', 'status')):
        return _bad_request('Nothing to update')

    intensity = status = None
    if 'isAuto' in data and not isinstance(data['isAuto'], bool):
        return _bad_request("Invalid 'isAuto' value (must be true or false)")
    if 'intensity' in data:
        intensity = _finite_number(data['intensity'])
        if intensity is None:
            return _bad_request("Invalid 'intensity' value")
    if 'status' in data:
        status = str(data['status']).lower()
        if status not in ('on', 'off'):
            return _bad_request("Invalid status (must be on or off)")

    ok = True
    if intensity is not None:
        ok = view.set_light_intensity(intensity) and ok
    if 'isAuto' in data:
        ok = view.set_auto_light(data['isAuto']) and ok
    if status is not None:
        ok = view.set_light_status(status == 'on') and ok

    return _write_result(ok, light=view.light.to_dict())


@web_bp.route('/api/layout/theme', methods=['POST'])
def toggle_theme():
    mode = get_view('layout').toggle_theme()
    return jsonify({'success': True, 'theme_mode': mode})


@web_bp.route('/api/layout/tab', methods=['POST'])
def select_tab():
    data = request.get_json(silent=True) or {}
    tab_id = data.get('tab')
    if not get_view('layout').select_tab(tab_id):
        return _bad_request(f"Unknown tab: {tab_id}")
    return jsonify({'success': True, 'current_tab': tab_id})
