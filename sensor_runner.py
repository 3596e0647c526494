"""
vital-node Sensor Runner - Standalone sensor collection process
Runs the full pipeline against simulated sensors and prints snapshots.
Usage: python sensor_runner.py [--duration 30] [--log-level INFO]
"""
import argparse
import json
import logging
import signal
import sys
import threading

from vital_node.pipeline import SensorPipeline
from vital_node.sensors.simulated import (
    SimulatedAmbientReader,
    SimulatedIMUReader,
    SimulatedPPGReader,
)

logger = logging.getLogger('sensor_runner')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the vital-node sensor pipeline on simulated sensors")
    parser.add_argument('--duration', type=float, default=30.0,
                        help="Seconds to run (0 = until interrupted)")
    parser.add_argument('--interval', type=float, default=2.0,
                        help="Seconds between printed snapshots")
    parser.add_argument('--heart-rate', type=float, default=72.0,
                        help="Pulse rate of the simulated PPG signal")
    parser.add_argument('--cadence', type=float, default=110.0,
                        help="Simulated walking cadence (steps/min)")
    parser.add_argument('--fall-at', type=float, default=None,
                        help="Inject a fall this many seconds after start")
    parser.add_argument('--anchor', action='store_true',
                        help="Also simulate the anchor board's TVOC and light sensors")
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    parser.add_argument('--log-file', default=None,
                        help="Also write DEBUG logs to this file")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    )
    if args.log_file:
        fh = logging.FileHandler(args.log_file)
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s'))
        logging.getLogger().addHandler(fh)

    pipeline = SensorPipeline(
        mpu6050_reader=SimulatedIMUReader(cadence_spm=args.cadence, fall_at_s=args.fall_at),
        max30102_reader=SimulatedPPGReader(heart_rate_bpm=args.heart_rate, noise_counts=20.0),
        ambient_reader=(SimulatedAmbientReader(gas_adc=1417, light_adc=2048) if args.anchor
                        else SimulatedAmbientReader()),
    )

    done = threading.Event()

    # Handle SIGTERM gracefully
    def shutdown(signum, frame):
        logger.info("Shutdown signal received — stopping pipeline...")
        done.set()

    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)

    pipeline.start()
    logger.info(f"✓ Pipeline active: {pipeline.get_status()['active_sensors']}")

    elapsed = 0.0
    try:
        while not done.wait(args.interval):
            elapsed += args.interval
            snapshot = pipeline.snapshot()
            print(json.dumps(snapshot.to_dict()))
            if args.duration and elapsed >= args.duration:
                break
    finally:
        pipeline.stop()

    return 0


if __name__ == '__main__':
    sys.exit(main())
