"""
Centralized configuration for the Qibla compass.

This module provides the runtime settings for:
- Mock location provider (development without GPS)
- Mock magnetometer (synthetic heading streams)
- Session telemetry (JSONL logs)
- Console display and logging

The Config class contains all constants as class attributes, making them
accessible throughout the application without instantiation.

The Kaaba coordinates, the 100 ms sampling interval and the device-frame
offset are fixed by the core modules and are deliberately not listed here.

Usage:
    from qibla_compass.utils.config import Config

    if Config.TELEMETRY_ENABLED:
        # Record the session
"""

import os


class Config:
    """System configuration constants for the Qibla compass."""

    # ==========================================================================
    # MOCK LOCATION: Position reported when no GPS is attached
    # ==========================================================================

    MOCK_LATITUDE = 38.3452               # Alicante
    MOCK_LONGITUDE = -0.4810
    MOCK_PERMISSION_GRANTED = True
    MOCK_LOCATION_FAILS = False

    # ==========================================================================
    # MOCK MAGNETOMETER: Synthetic horizontal field
    # ==========================================================================

    MOCK_SENSOR_AVAILABLE = True
    MOCK_SENSOR_MODE = "rotating"         # "static" or "rotating"
    MOCK_SENSOR_HEADING_DEG = 0.0         # Field angle for static mode
    MOCK_ROTATION_DEG_PER_SEC = 30.0      # Angular speed for rotating mode
    MOCK_FIELD_STRENGTH_UT = 45.0         # Typical horizontal field (μT)
    MOCK_NOISE_UT = 0.3                   # Gaussian noise std-dev (μT), 0 disables
    MOCK_SEED = None                      # Seed for reproducible noise

    # ==========================================================================
    # TELEMETRY: Session logs
    # ==========================================================================

    TELEMETRY_ENABLED = False
    TELEMETRY_OUTPUT_DIR = os.getenv("QIBLA_TELEMETRY_DIR", "logs")

    # ==========================================================================
    # DISPLAY & LOGGING
    # ==========================================================================

    DISPLAY_INTERVAL_SEC = 0.5            # Console refresh cadence
    LOG_LEVEL = os.getenv("QIBLA_LOG_LEVEL", "INFO")
