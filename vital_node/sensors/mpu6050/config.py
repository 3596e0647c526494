"""
MPU6050 Sensor Configuration
Scale factors and step/fall detection parameters
"""

from dataclasses import dataclass

# Full-scale range -> sensitivity, from the MPU6050 register map
ACCEL_SENSITIVITY = {
    2: 16384.0,
    4: 8192.0,
    8: 4096.0,
    16: 2048.0,
}

GYRO_SENSITIVITY = {
    250: 131.0,
    500: 65.5,
    1000: 32.8,
    2000: 16.4,
}


@dataclass
class MPU6050Config:
    """
    Configuration parameters for the MPU6050 accelerometer and gyroscope.

    Holds the raw-count scale factors for the configured full-scale range and
    every tunable of the step and fall detectors. Defaults are tuned for 100 Hz
    sampling on a wrist-worn node.
    """

    # Sampling settings
    sample_rate: int = 100  # Hz
    collection_interval: float = 0.01  # 1/100 = 10ms between samples

    # Scale factors (±2g, ±2000°/s)
    accel_sensitivity: float = 16384.0  # LSB/g
    gyro_sensitivity: float = 16.4  # LSB/(°/s)

    # Step detection
    lpf_alpha: float = 0.02  # gravity estimate low-pass
    ema_alpha: float = 0.01  # walk signal baseline
    dyn_gain: float = 1.0  # dynamic threshold gain
    threshold_bias: float = 0.12  # g, added to the baseline
    hysteresis_ratio: float = 0.6  # low threshold = ratio * high threshold
    motion_weight: float = 1.8
    delta_weight: float = 1.5
    step_min_interval_ms: int = 220  # ~270 steps/min cadence cap
    gyro_gate_dps: float = 120.0  # XY rotation above this is not a step
    min_xy_activity_g: float = 0.08  # motion needed to open a candidate
    min_peak_magnitude: float = 0.06
    min_xy_motion_g: float = 0.05
    min_xy_delta_g: float = 0.05

    # Fall detection
    fall_extreme_accel_g: float = 5.0  # alone is sufficient
    fall_impact_accel_g: float = 3.3  # needs the angle condition as well
    fall_angle_threshold_deg: float = 45.0
    fall_cooldown_ms: int = 10000
    fall_hold_ms: int = 3000  # how long the collector keeps fall_detected raised

    @classmethod
    def for_range(cls, accel_range_g: int = 2, gyro_range_dps: int = 2000) -> 'MPU6050Config':
        """
        Create a configuration matching a sensor full-scale range.

        Args:
            accel_range_g:  Accelerometer range in g (2, 4, 8 or 16).
            gyro_range_dps: Gyroscope range in °/s (250, 500, 1000 or 2000).

        Raises:
            ValueError if either range is not supported by the sensor.

        Returns:
            MPU6050Config with matching sensitivities.
        """
        if accel_range_g not in ACCEL_SENSITIVITY:
            raise ValueError(f"Unsupported accelerometer range: ±{accel_range_g}g")
        if gyro_range_dps not in GYRO_SENSITIVITY:
            raise ValueError(f"Unsupported gyroscope range: ±{gyro_range_dps}°/s")

        return cls(
            accel_sensitivity=ACCEL_SENSITIVITY[accel_range_g],
            gyro_sensitivity=GYRO_SENSITIVITY[gyro_range_dps],
        )
