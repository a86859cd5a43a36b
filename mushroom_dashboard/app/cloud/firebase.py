"""Mushroom Rig Dashboard - Firebase Realtime Database access
Subscribe-by-path and write-by-path facade over the Admin SDK.
"""

import copy
import os
import logging
from typing import Any, Callable, Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, db as firebase_db

logger = logging.getLogger(__name__)

Unsubscribe = Callable[[], None]


def _split_path(path: str) -> List[str]:
    return [part for part in path.split('/') if part]


def _set_in(tree: Any, keys: List[str], data: Any) -> Any:
    """Write `data` at `keys` inside `tree` and return the new tree.

    A None value removes the child, like a delete in the Realtime Database.
    """
    if not keys:
        return data
    if not isinstance(tree, dict):
        tree = {}
    head, rest = keys[0], keys[1:]
    child = _set_in(tree.get(head), rest, data)
    if child is None or child == {}:
        tree.pop(head, None)
    else:
        tree[head] = child
    return tree


def apply_event(value: Any, event_type: str, path: str, data: Any) -> Any:
    """Fold one listener event into the last known value of a subscribed path."""
    keys = _split_path(path)
    if event_type == 'patch':
        for child_path, child_value in (data or {}).items():
            value = _set_in(value, keys + _split_path(child_path), child_value)
    else:
        value = _set_in(value, keys, data)
    if value == {}:
        return None
    return value


class _Subscription:
    """One long-lived listener plus the value it has assembled so far."""

    def __init__(self, path: str, callback: Callable[[Any], None]):
        self.path = path
        self.callback = callback
        self.value: Any = None
        self.registration = None

    def on_event(self, event):
        self.value = apply_event(self.value, event.event_type, event.path, event.data)
        try:
            self.callback(copy.deepcopy(self.value))
        except Exception as e:
            logger.error(f"[FIREBASE] Subscriber for '{self.path}' failed: {e}")

    def close(self):
        if self.registration is None:
            return
        try:
            self.registration.close()
        except Exception as e:
            logger.warning(f"[FIREBASE] Failed to close listener on '{self.path}': {e}")
        self.registration = None


class FirebaseStore:
    """
    Thin facade over Firebase Realtime Database.
    Reads are push subscriptions keyed by path; writes are full or partial
    overwrites keyed by path. Errors are logged, never retried.
    """

    def __init__(self, config_path: str = "config/firebase_config.json", db_url: Optional[str] = None,
                 reference_factory: Optional[Callable[[str], Any]] = None):
        self.config_path = config_path
        self.db_url = db_url
        self.is_initialized = False
        self.firebase_app = None
        self._subscriptions: List[_Subscription] = []

        if reference_factory is not None:
            self._reference = reference_factory
            self.is_initialized = True
        else:
            self._reference = firebase_db.reference
            self._initialize_firebase()

    def _resolve_config_path(self) -> str:
        if os.path.isabs(self.config_path):
            return self.config_path
        return os.path.join(os.path.dirname(__file__), '..', '..', self.config_path)

    def _initialize_firebase(self):
        """Initialize Firebase Admin SDK with service account."""
        try:
            if firebase_admin._apps:
                self.firebase_app = firebase_admin.get_app()
                self.is_initialized = True
                logger.info("[FIREBASE] Using existing Firebase app")
                return

            full_path = self._resolve_config_path()
            if not os.path.exists(full_path):
                logger.warning(f"[FIREBASE] Config not found: {full_path}")
                return

            cred = credentials.Certificate(full_path)
            if self.db_url:
                self.firebase_app = firebase_admin.initialize_app(cred, {
                    'databaseURL': self.db_url
                })
            else:
                self.firebase_app = firebase_admin.initialize_app(cred)

            self.is_initialized = True
            logger.info("[FIREBASE] Initialized successfully")

        except Exception as e:
            logger.error(f"[FIREBASE] Initialization failed: {e}")
            self.is_initialized = False

    # ==================== READS ====================
    def subscribe(self, path: str, callback: Callable[[Any], None]) -> Unsubscribe:
        """
        Attach a long-lived listener to `path`.

        Args:
            path: Store path, e.g. 'sensors/current'
            callback: Called with the full value at `path` (None when absent)
                      once on attach and again after every remote change.

        Returns:
            A callable that detaches the listener.
        """
        subscription = _Subscription(path, callback)

        if not self.is_initialized:
            logger.debug(f"[FIREBASE] Not initialized, '{path}' will stay empty")
            callback(None)
            return lambda: None

        try:
            subscription.registration = self._reference(path).listen(subscription.on_event)
            self._subscriptions.append(subscription)
            logger.debug(f"[FIREBASE] Subscribed to '{path}'")
        except Exception as e:
            logger.error(f"[FIREBASE] Subscribe to '{path}' failed: {e}")
            return lambda: None

        def unsubscribe():
            subscription.close()
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
            logger.debug(f"[FIREBASE] Unsubscribed from '{path}'")

        return unsubscribe

    def get(self, path: str) -> Any:
        """One-shot read. Returns None when absent or on failure."""
        if not self.is_initialized:
            return None
        try:
            return self._reference(path).get()
        except Exception as e:
            logger.error(f"[FIREBASE] Read of '{path}' failed: {e}")
            return None

    # ==================== WRITES ====================
    def set(self, path: str, value: Any) -> bool:
        """Overwrite the value at `path`."""
        if not self.is_initialized:
            logger.debug(f"[FIREBASE] Not initialized, skipping write to '{path}'")
            return False
        try:
            self._reference(path).set(value)
            return True
        except Exception as e:
            logger.error(f"[FIREBASE] Write to '{path}' failed: {e}")
            return False

    def update(self, path: str, fields: Dict[str, Any]) -> bool:
        """Partially overwrite the children of `path`."""
        if not self.is_initialized:
            logger.debug(f"[FIREBASE] Not initialized, skipping update of '{path}'")
            return False
        try:
            self._reference(path).update(fields)
            return True
        except Exception as e:
            logger.error(f"[FIREBASE] Update of '{path}' failed: {e}")
            return False

    def push(self, path: str, value: Any) -> Optional[str]:
        """Append a child under `path` with a generated key. Returns the key."""
        if not self.is_initialized:
            logger.debug(f"[FIREBASE] Not initialized, skipping push to '{path}'")
            return None
        try:
            new_ref = self._reference(path).push(value)
            return new_ref.key
        except Exception as e:
            logger.error(f"[FIREBASE] Push to '{path}' failed: {e}")
            return None

    def close(self):
        """Detach every open listener."""
        for subscription in list(self._subscriptions):
            subscription.close()
        self._subscriptions.clear()
        logger.info("[FIREBASE] Listeners closed")


def create_firebase_store(config_path: str = "config/firebase_config.json", db_url: Optional[str] = None) -> FirebaseStore:
    """Factory function to create FirebaseStore instance."""
    return FirebaseStore(config_path=config_path, db_url=db_url)
