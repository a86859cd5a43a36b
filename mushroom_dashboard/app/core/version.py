"""
Mushroom Rig Dashboard - Version Constants

Semantic Versioning: MAJOR.MINOR.PATCH
- MAJOR: Breaking changes (store layout, JSON API changes)
- MINOR: New features (backward compatible)
- PATCH: Bug fixes, small improvements
"""

# Version Components
MAJOR = 1
MINOR = 0
PATCH = 0

# Formatted Versions
VERSION = f"{MAJOR}.{MINOR}.{PATCH}"
FULL_VERSION = f"v{VERSION}"

# Release Info
RELEASE_DATE = "2026-10-19"
RELEASE_NAME = "First Flush"

# Oldest ESP32 firmware that writes the same store layout
MIN_FIRMWARE_VERSION = "1.0.0"

# Feature Flags
FEATURES = {
    'realtime_sync': True,           # - Admin SDK listeners per store path
    'robot_arm_control': True,       # - Move / home / emergency stop
    'sensor_commands': True,         # - Read + calibrate requests for the ESP32
    'light_control': True,           # - Intensity, auto mode, on/off
    'alerts': True,                  # - List + acknowledge
    'theme_toggle': True,            # - Dark/light, persisted in user preferences
    'video_feed': True,              # - ESP32-CAM MJPEG stream panel
}


def get_version_info():
    """Get version information as dictionary"""
    return {
        'version': VERSION,
        'major': MAJOR,
        'minor': MINOR,
        'patch': PATCH,
        'release_date': RELEASE_DATE,
        'release_name': RELEASE_NAME,
        'features': FEATURES,
    }


def is_firmware_compatible(firmware_version: str) -> bool:
    """Check if ESP32 firmware version is compatible"""
    return _is_version_compatible(firmware_version, MIN_FIRMWARE_VERSION)


def _is_version_compatible(current: str, minimum: str) -> bool:
    """Check if current version meets minimum requirement"""
    try:
        current_parts = [int(x) for x in current.split('.')]
        min_parts = [int(x) for x in minimum.split('.')]

        # MAJOR must match
        if current_parts[0] != min_parts[0]:
            return False

        # MINOR must be >= minimum
        if len(current_parts) > 1 and len(min_parts) > 1:
            if current_parts[1] < min_parts[1]:
                return False

        return True
    except (ValueError, IndexError):
        return False
