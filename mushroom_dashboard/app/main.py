# Mushroom Rig Dashboard - Main Orchestrator
# Connects the realtime store, mounts the view modules and serves the Flask UI

import os
import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS
from dotenv import load_dotenv

# Load environment variables
load_dotenv(os.path.join(os.path.dirname(__file__), '..', 'config', '.env'))

from mushroom_dashboard.app.cloud.firebase import FirebaseStore
from mushroom_dashboard.app.cloud.sync import RigSync
from mushroom_dashboard.app.database.models import HISTORY_LIMIT
from mushroom_dashboard.app.utils.user_preferences import UserPreferencesManager
from mushroom_dashboard.app.web.routes import web_bp
from mushroom_dashboard.app.web.views import (
    DashboardView,
    LayoutView,
    MLModelView,
    RobotArmView,
    SensorControlView,
)

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class DashboardOrchestrator:
    """
    Main orchestrator for the Mushroom Rig Dashboard.
    Manages:
    - Flask web server
    - Firebase Realtime Database connection
    - View module lifecycle (mount on start, unmount on shutdown)
    """

    def __init__(self, store: Optional[FirebaseStore] = None,
                 user_prefs: Optional[UserPreferencesManager] = None):
        # Load configuration (with user preferences merged)
        self.user_prefs = user_prefs or UserPreferencesManager()
        self.config = self.user_prefs.get_merged_config()

        # Flask app
        self.app = Flask(__name__,
                         template_folder='web/templates',
                         static_folder='web/static')

        CORS(self.app, resources={
            r"/api/*": {"origins": "*"},
            r"/status": {"origins": "*"},
        })

        self.app.register_blueprint(web_bp)

        # Realtime store
        firebase_config = self.config.get('firebase', {})
        if store is None:
            db_url = os.getenv('FIREBASE_DATABASE_URL', firebase_config.get('database_url'))
            config_path = os.getenv('FIREBASE_CONFIG_PATH',
                                    firebase_config.get('config_path', 'config/firebase_config.json'))
            store = FirebaseStore(config_path=config_path, db_url=db_url)
        self.store = store

        if self.store.is_initialized:
            logger.info("[FIREBASE] Connected to Realtime Database")
        else:
            logger.warning("[FIREBASE] Not initialized - dashboard will show empty data")

        history_limit = self.config.get('dashboard', {}).get('history_limit', HISTORY_LIMIT)
        self.sync = RigSync(self.store, history_limit=history_limit)

        # View modules
        self.views = {
            'dashboard': DashboardView(self.sync, self.config),
            'ml-model': MLModelView(self.sync, self.config),
            'robot-arm': RobotArmView(self.sync, self.config),
            'sensors': SensorControlView(self.sync, self.config),
            'layout': LayoutView(self.sync, self.config, user_prefs=self.user_prefs),
        }
        self.app.config['VIEWS'] = self.views
        self.app.config['DASHBOARD_CONFIG'] = self.config
        self.app.config['USER_PREFS'] = self.user_prefs
        self.is_running = False

    def mount_views(self):
        for view in self.views.values():
            view.mount()

    def start(self, host='0.0.0.0', port=5000, debug=False):
        """Mount every view and serve the dashboard (blocks)."""
        try:
            self.mount_views()
            self.is_running = True
            logger.info(f"[WEB] Starting Flask server on {host}:{port}")
            logger.info(f"[WEB] Access dashboard at: http://{host}:{port}/dashboard")
            self.app.run(host=host, port=port, debug=debug, use_reloader=False)
        except KeyboardInterrupt:
            logger.info("[MAIN] Shutting down...")
        except Exception as e:
            logger.error(f"[MAIN] Error: {e}")
        finally:
            self.shutdown()

    def shutdown(self):
        """Graceful shutdown."""
        logger.info("[MAIN] Shutting down dashboard...")
        self.is_running = False
        for view in self.views.values():
            view.unmount()
        self.store.close()
        logger.info("[MAIN] Goodbye!")


def create_app(store: Optional[FirebaseStore] = None,
               user_prefs: Optional[UserPreferencesManager] = None) -> Flask:
    """Build the Flask app with every view mounted (for WSGI servers and tests)."""
    orchestrator = DashboardOrchestrator(store=store, user_prefs=user_prefs)
    orchestrator.mount_views()
    orchestrator.app.config['ORCHESTRATOR'] = orchestrator
    return orchestrator.app


def main():
    """Entry point."""
    orchestrator = DashboardOrchestrator()
    host = os.getenv('DASHBOARD_HOST', orchestrator.config.get('web', {}).get('host', '0.0.0.0'))
    port = int(os.getenv('DASHBOARD_PORT', orchestrator.config.get('web', {}).get('port', 5000)))
    orchestrator.start(host=host, port=port, debug=False)


if __name__ == '__main__':
    main()
