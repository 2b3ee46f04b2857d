"""
Builder for the compass and its collaborators.
"""

from typing import Optional

from qibla_compass.core.compass.orchestrator import QiblaCompass
from qibla_compass.core.hardware.mock_providers import MockLocationProvider, MockMagnetometer
from qibla_compass.core.telemetry.telemetry_logger import TelemetryLogger
from qibla_compass.utils.config_sections import (
    MockLocationConfig,
    MockSensorConfig,
    TelemetryConfig,
    load_mock_location_config,
    load_mock_sensor_config,
    load_telemetry_config,
)


class Builder:
    """Creates every dependency of the compass from configuration."""

    def build_location_provider(self, config: Optional[MockLocationConfig] = None):
        print("  📦 Creating location provider...")
        return MockLocationProvider(config or load_mock_location_config())

    def build_sensor_provider(self, config: Optional[MockSensorConfig] = None):
        print("  📦 Creating magnetometer...")
        return MockMagnetometer(config or load_mock_sensor_config())

    def build_telemetry(self, config: Optional[TelemetryConfig] = None) -> Optional[TelemetryLogger]:
        config = config or load_telemetry_config()
        if not config.enabled:
            return None
        print("  📊 Creating TelemetryLogger...")
        return TelemetryLogger(output_dir=config.output_dir)

    def build_compass(
        self,
        location_provider=None,
        sensor_provider=None,
        *,
        telemetry: Optional[TelemetryLogger] = None,
    ) -> QiblaCompass:
        print("  📦 Creating QiblaCompass...")
        return QiblaCompass(
            location_provider=location_provider or self.build_location_provider(),
            sensor_provider=sensor_provider or self.build_sensor_provider(),
            telemetry=telemetry,
        )

    def build_full_system(
        self,
        location_config: Optional[MockLocationConfig] = None,
        sensor_config: Optional[MockSensorConfig] = None,
        telemetry_config: Optional[TelemetryConfig] = None,
    ) -> QiblaCompass:
        """Build providers, optional telemetry and the compass in one call."""
        return self.build_compass(
            self.build_location_provider(location_config),
            self.build_sensor_provider(sensor_config),
            telemetry=self.build_telemetry(telemetry_config),
        )
