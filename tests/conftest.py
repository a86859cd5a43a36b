from __future__ import annotations

import copy
import itertools

import pytest

from mushroom_dashboard.app.cloud.firebase import FirebaseStore
from mushroom_dashboard.app.cloud.sync import RigSync
from mushroom_dashboard.app.utils.user_preferences import UserPreferencesManager


def _keys(path):
    return [part for part in path.split('/') if part]


class FakeEvent:
    def __init__(self, event_type, path, data):
        self.event_type = event_type
        self.path = path
        self.data = data


class FakeRegistration:
    def __init__(self, db, listener):
        self._db = db
        self._listener = listener
        self.closed = False

    def close(self):
        self.closed = True
        if self._listener in self._db.listeners:
            self._db.listeners.remove(self._listener)


class FakeReference:
    """Enough of firebase_admin.db.Reference for the dashboard."""

    def __init__(self, db, path):
        self._db = db
        self.path = '/'.join(_keys(path))
        self.key = _keys(path)[-1] if _keys(path) else None

    def child(self, path):
        return FakeReference(self._db, f"{self.path}/{path}")

    def get(self):
        self._db.calls.append(('get', self.path))
        return copy.deepcopy(self._db.read(self.path))

    def set(self, value):
        self._db.fail_if_requested(self.path)
        self._db.calls.append(('set', self.path, copy.deepcopy(value)))
        self._db.write(self.path, copy.deepcopy(value))
        self._db.notify(self.path, 'put', value)

    def update(self, value):
        self._db.fail_if_requested(self.path)
        self._db.calls.append(('update', self.path, copy.deepcopy(value)))
        for key, child in value.items():
            self._db.write(f"{self.path}/{key}", copy.deepcopy(child))
        self._db.notify(self.path, 'patch', value)

    def push(self, value=''):
        key = f"-N{next(self._db.counter):05d}"
        ref = self.child(key)
        ref.set(value)
        return ref

    def listen(self, callback):
        listener = (self.path, callback)
        self._db.listeners.append(listener)
        callback(FakeEvent('put', '/', copy.deepcopy(self._db.read(self.path))))
        return FakeRegistration(self._db, listener)


class FakeDatabase:
    """In-memory Realtime Database tree that emits listener events like the SDK."""

    def __init__(self):
        self.root = {}
        self.listeners = []
        self.calls = []
        self.counter = itertools.count(1)
        self.failing_paths = set()

    def reference(self, path='/'):
        return FakeReference(self, path)

    def fail_if_requested(self, path):
        if path in self.failing_paths:
            raise RuntimeError(f"permission denied at {path}")

    def read(self, path):
        node = self.root
        for key in _keys(path):
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        return node if node != {} else None

    def write(self, path, value):
        keys = _keys(path)
        if not keys:
            self.root = value if isinstance(value, dict) else {}
            return
        node = self.root
        for key in keys[:-1]:
            if not isinstance(node.get(key), dict):
                node[key] = {}
            node = node[key]
        if value is None or value == {}:
            node.pop(keys[-1], None)
        else:
            node[keys[-1]] = value

    def notify(self, path, event_type, data):
        written = _keys(path)
        for listen_path, callback in list(self.listeners):
            listened = _keys(listen_path)
            if written[:len(listened)] == listened:
                relative = '/' + '/'.join(written[len(listened):])
                callback(FakeEvent(event_type, relative, copy.deepcopy(data)))
            elif listened[:len(written)] == written:
                callback(FakeEvent('put', '/', copy.deepcopy(self.read(listen_path))))


class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def is_alive(self):
        return self.started and not (self.cancelled or self.fired)

    def fire(self):
        if not self.cancelled:
            self.fired = True
            self.callback()


class FakeTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    def fire_all(self):
        for timer in list(self.timers):
            if timer.is_alive():
                timer.fire()


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def store(fake_db) -> FirebaseStore:
    return FirebaseStore(reference_factory=fake_db.reference)


@pytest.fixture
def sync(store) -> RigSync:
    return RigSync(store)


@pytest.fixture
def timers() -> FakeTimerFactory:
    return FakeTimerFactory()


@pytest.fixture
def user_prefs(tmp_path) -> UserPreferencesManager:
    default = tmp_path / "config.yaml"
    default.write_text(
        "ui:\n"
        "  theme_mode: dark\n"
        "robot:\n"
        "  plot_count: 6\n"
        "sensors:\n"
        "  temperature:\n"
        "    optimal_max: 28\n"
    )
    return UserPreferencesManager(
        user_config_path=str(tmp_path / "user_preferences.yaml"),
        default_config_path=str(default),
    )
