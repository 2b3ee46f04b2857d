#!/usr/bin/env python3
"""
🧭 Qibla Compass - console runner

Runs the compass against the mock location provider and magnetometer and
prints the current snapshot at a fixed cadence.

Flow:
1. Build providers, telemetry and compass
2. initialize()
3. Display loop until Ctrl+C or --duration
4. teardown() and telemetry summary
"""

import argparse
import logging
import time
from dataclasses import replace
from typing import List, Optional

from qibla_compass.core.compass.builder import Builder
from qibla_compass.core.imu.orientation_state import format_snapshot
from qibla_compass.utils.config_sections import (
    load_display_config,
    load_mock_location_config,
    load_mock_sensor_config,
    load_telemetry_config,
)
from qibla_compass.utils.ctrl_handler import CtrlCHandler

LOG_FORMAT = '%(asctime)s.%(msecs)03d [%(levelname)s] %(message)s'


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Qibla compass with mock sensors")
    parser.add_argument("--lat", type=float, help="Observer latitude in degrees")
    parser.add_argument("--lon", type=float, help="Observer longitude in degrees")
    parser.add_argument("--mode", choices=["static", "rotating"], help="Mock magnetometer mode")
    parser.add_argument("--heading", type=float, help="Field angle for static mode (degrees)")
    parser.add_argument("--duration", type=float, default=None, help="Stop after N seconds")
    parser.add_argument("--no-sensor", action="store_true", help="Simulate a device without magnetometer")
    parser.add_argument("--deny-permission", action="store_true", help="Simulate denied location permission")
    parser.add_argument("--location-fails", action="store_true", help="Simulate a failing location fix")
    parser.add_argument("--telemetry", action="store_true", help="Write a JSONL telemetry session")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, ...)")
    return parser.parse_args(argv)


def build_configs(args: argparse.Namespace):
    """Apply command line overrides on top of Config."""
    location = load_mock_location_config()
    if args.lat is not None:
        location = replace(location, latitude=args.lat)
    if args.lon is not None:
        location = replace(location, longitude=args.lon)
    if args.deny_permission:
        location = replace(location, permission_granted=False)
    if args.location_fails:
        location = replace(location, fail_fix=True)

    sensor = load_mock_sensor_config()
    if args.mode:
        sensor = replace(sensor, mode=args.mode)
    if args.heading is not None:
        sensor = replace(sensor, heading_deg=args.heading)
    if args.no_sensor:
        sensor = replace(sensor, available=False)

    telemetry = load_telemetry_config()
    if args.telemetry:
        telemetry = replace(telemetry, enabled=True)

    return location, sensor, telemetry


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    display = load_display_config()

    logging.basicConfig(
        level=(args.log_level or display.log_level).upper(),
        format=LOG_FORMAT,
        datefmt='%H:%M:%S',
    )

    print("=" * 60)
    print("🧭 Qibla Compass")
    print("=" * 60)

    location_config, sensor_config, telemetry_config = build_configs(args)

    print("\n🔧 Initializing components...")
    builder = Builder()
    compass = builder.build_full_system(location_config, sensor_config, telemetry_config)

    with CtrlCHandler() as ctrl_handler:
        try:
            compass.initialize()
            snapshot = compass.get_snapshot()
            print(format_snapshot(snapshot))
            if snapshot.error_reason:
                return 1

            start = time.time()
            while not ctrl_handler.should_stop:
                if args.duration is not None and time.time() - start >= args.duration:
                    break
                if ctrl_handler.wait(display.interval_sec):
                    break
                print(format_snapshot(compass.get_snapshot()))
        finally:
            compass.teardown()
            if compass.telemetry:
                compass.telemetry.finalize_session()
            print("[COMPASS] Stopped")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
