"""
MPU6050 Signal Processor
Step counting and fall detection from raw accelerometer/gyroscope counts
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import MPU6050Config

logger = logging.getLogger(__name__)

# Thresholds in MPU6050Config are tuned at this rate
REFERENCE_SAMPLE_RATE = 100.0


class FallDirection(Enum):
    """Direction of a detected fall, relative to the wearer."""

    NONE = 0
    FRONT = 1
    BACK = 2
    LEFT = 3
    RIGHT = 4
    FRONT_LEFT = 5
    FRONT_RIGHT = 6
    BACK_LEFT = 7
    BACK_RIGHT = 8


# Clockwise from Front, one entry per 45° sector
_SECTORS = (
    FallDirection.FRONT,
    FallDirection.FRONT_RIGHT,
    FallDirection.RIGHT,
    FallDirection.BACK_RIGHT,
    FallDirection.BACK,
    FallDirection.BACK_LEFT,
    FallDirection.LEFT,
    FallDirection.FRONT_LEFT,
)


@dataclass(frozen=True)
class InertialSample:
    """One raw accelerometer + gyroscope reading (sensor counts)."""

    ax: int
    ay: int
    az: int
    gx: int = 0
    gy: int = 0
    gz: int = 0
    t_ms: int = 0


@dataclass(frozen=True)
class FallResult:
    """Outcome of one fall detection call."""

    fall_detected: bool = False
    direction: FallDirection = FallDirection.NONE
    fall_angle_deg: float = 0.0
    ax_g: float = 0.0
    ay_g: float = 0.0
    roll_deg: float = 0.0
    pitch_deg: float = 0.0


def calculate_roll_angle(ax_g: float, ay_g: float, az_g: float) -> float:
    """Roll in degrees: atan2(ay, sqrt(ax² + az²))."""
    return math.degrees(math.atan2(ay_g, math.sqrt(ax_g * ax_g + az_g * az_g)))


def calculate_pitch_angle(ax_g: float, ay_g: float, az_g: float) -> float:
    """Pitch in degrees: atan2(-ax, sqrt(ay² + az²))."""
    return math.degrees(math.atan2(-ax_g, math.sqrt(ay_g * ay_g + az_g * az_g)))


def fall_angle(roll_deg: float, pitch_deg: float) -> float:
    """
    Fall heading atan2(roll, pitch) in degrees, normalised to [0, 360).

    Args:
        roll_deg:  Roll angle (degrees).
        pitch_deg: Pitch angle (degrees).

    Returns:
        Heading with 0° = Front, increasing clockwise towards Right.
    """
    return math.degrees(math.atan2(roll_deg, pitch_deg)) % 360.0


def determine_fall_direction(roll_deg: float, pitch_deg: float) -> FallDirection:
    """
    Classify a fall heading into one of eight 45° sectors.

    Args:
        roll_deg:  Roll angle (degrees).
        pitch_deg: Pitch angle (degrees).

    Returns:
        FallDirection, or FallDirection.NONE when both angles are ~0.
    """
    if abs(roll_deg) < 1e-6 and abs(pitch_deg) < 1e-6:
        return FallDirection.NONE

    # Shift by half a sector so Front covers [337.5°, 22.5°)
    sector = int(((fall_angle(roll_deg, pitch_deg) + 22.5) % 360.0) // 45.0)
    return _SECTORS[sector]


def _scale_alpha(alpha: float, sample_rate: float) -> float:
    """Keep a one-pole filter's time constant when the sample rate changes."""
    return 1.0 - (1.0 - alpha) ** (REFERENCE_SAMPLE_RATE / sample_rate)


class MotionDetector:
    """
    Step and fall detection for one MPU6050 stream

    Step detection:
    - Gravity estimate via one-pole low-pass filter
    - Planar (X-Y) walk signal with an EMA-based dynamic threshold
    - Hysteresis peak detector gated by XY gyro rate and a cadence cap

    Fall detection:
    - Extreme impact alone, or strong impact combined with a large tilt
    - Eight-way direction from roll/pitch
    - Hard cooldown between detections

    All running state lives on the instance, so independent detectors never
    share history.
    """

    def __init__(self, config: Optional[MPU6050Config] = None, sample_rate_hz: Optional[float] = None):
        """
        Initialize the motion detector.

        Args:
            config:         MPU6050 configuration. Defaults to MPU6050Config().
            sample_rate_hz: Overrides config.sample_rate when given.

        Raises:
            ValueError if the sample rate is not positive.
        """
        self.config = config if config else MPU6050Config()
        self.sample_rate = float(sample_rate_hz if sample_rate_hz is not None else self.config.sample_rate)

        if self.sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {self.sample_rate}")

        self.lpf_alpha = _scale_alpha(self.config.lpf_alpha, self.sample_rate)
        self.ema_alpha = _scale_alpha(self.config.ema_alpha, self.sample_rate)

        self.reset()

        logger.info(f"Motion detector initialized ({self.sample_rate:.1f} Hz)")
        logger.info(
            f"  Step: gain={self.config.dyn_gain:.1f}, "
            f"interval={self.config.step_min_interval_ms}ms, "
            f"gyro gate={self.config.gyro_gate_dps:.0f}dps"
        )
        logger.info(
            f"  Fall: extreme≥{self.config.fall_extreme_accel_g}g OR "
            f"impact≥{self.config.fall_impact_accel_g}g + tilt≥{self.config.fall_angle_threshold_deg}°, "
            f"cooldown={self.config.fall_cooldown_ms}ms"
        )

    def reset(self):
        """
        Clear all running state (gravity, baseline, hysteresis, timestamps).

        Returns:
            None.
        """
        self.gravity = [0.0, 0.0, 0.0]
        self.baseline = 0.0
        self.last_step_ms: Optional[int] = None
        self.last_fall_ms: Optional[int] = None

        self._initialized = False
        self._prev_ax = 0.0
        self._prev_ay = 0.0

        # Candidate step window
        self._above = False
        self._peak_value = 0.0
        self._peak_motion = 0.0
        self._peak_delta = 0.0

    # ------------------------------------------------------------------
    # Unit conversion
    # ------------------------------------------------------------------

    def to_g(self, sample: InertialSample):
        """Convert raw accelerometer counts to g."""
        s = self.config.accel_sensitivity
        return sample.ax / s, sample.ay / s, sample.az / s

    def to_dps(self, sample: InertialSample):
        """Convert raw gyroscope counts to °/s."""
        s = self.config.gyro_sensitivity
        return sample.gx / s, sample.gy / s, sample.gz / s

    # ------------------------------------------------------------------
    # Step detection
    # ------------------------------------------------------------------

    def detect_step(self, sample: InertialSample, now_ms: int) -> bool:
        """
        Feed one sample to the step detector.

        Args:
            sample: Raw inertial sample.
            now_ms: Sample time in milliseconds.

        Returns:
            True if this sample completed an accepted step.
        """
        cfg = self.config
        ax, ay, az = self.to_g(sample)
        gx, gy, _ = self.to_dps(sample)

        if not self._initialized:
            # Seed from the first reading so a tilted device does not look like motion
            self.gravity = [ax, ay, az]
            self._prev_ax, self._prev_ay = ax, ay
            self._initialized = True

        a = self.lpf_alpha
        self.gravity[0] = (1 - a) * self.gravity[0] + a * ax
        self.gravity[1] = (1 - a) * self.gravity[1] + a * ay
        self.gravity[2] = (1 - a) * self.gravity[2] + a * az

        # Z is left out to reject wrist rotation
        xy_motion = math.hypot(ax - self.gravity[0], ay - self.gravity[1])
        xy_delta = math.hypot(ax - self._prev_ax, ay - self._prev_ay)
        xy_gyro = math.hypot(gx, gy)

        self._prev_ax, self._prev_ay = ax, ay

        walk_signal = cfg.motion_weight * xy_motion + cfg.delta_weight * xy_delta

        self.baseline = (1 - self.ema_alpha) * self.baseline + self.ema_alpha * walk_signal
        th_hi = cfg.dyn_gain * (self.baseline + cfg.threshold_bias)
        th_lo = th_hi * cfg.hysteresis_ratio

        if not self._above:
            if (walk_signal > th_hi
                    and xy_gyro < cfg.gyro_gate_dps
                    and xy_motion > cfg.min_xy_activity_g):
                self._above = True
                self._peak_value = walk_signal
                self._peak_motion = xy_motion
                self._peak_delta = xy_delta
                logger.debug(
                    f"Step candidate opened (signal={walk_signal:.3f}, "
                    f"motion={xy_motion:.3f}, delta={xy_delta:.3f}, gyro={xy_gyro:.1f})"
                )
            return False

        self._peak_value = max(self._peak_value, walk_signal)
        self._peak_motion = max(self._peak_motion, xy_motion)
        self._peak_delta = max(self._peak_delta, xy_delta)

        if walk_signal >= th_lo:
            return False

        # Falling edge closes the candidate
        self._above = False
        peak_magnitude = self._peak_value - th_lo

        if self.last_step_ms is not None and now_ms - self.last_step_ms < cfg.step_min_interval_ms:
            logger.debug(f"Step rejected: {now_ms - self.last_step_ms}ms since last step")
            return False

        if (peak_magnitude > cfg.min_peak_magnitude
                and self._peak_motion > cfg.min_xy_motion_g
                and self._peak_delta > cfg.min_xy_delta_g):
            self.last_step_ms = now_ms
            logger.debug(
                f"Step detected (peak={peak_magnitude:.3f}, "
                f"motion={self._peak_motion:.3f}, delta={self._peak_delta:.3f})"
            )
            return True

        logger.debug(
            f"Step candidate too weak (peak={peak_magnitude:.3f}, "
            f"motion={self._peak_motion:.3f}, delta={self._peak_delta:.3f})"
        )
        return False

    # ------------------------------------------------------------------
    # Fall detection
    # ------------------------------------------------------------------

    def detect_fall(self, sample: InertialSample, now_ms: int) -> FallResult:
        """
        Evaluate one sample for a fall event.

        Args:
            sample: Raw inertial sample.
            now_ms: Sample time in milliseconds.

        Returns:
            FallResult. fall_detected is True at most once per cooldown window.
        """
        cfg = self.config
        ax, ay, az = self.to_g(sample)

        roll = calculate_roll_angle(ax, ay, az)
        pitch = calculate_pitch_angle(ax, ay, az)
        heading = fall_angle(roll, pitch)

        if self.last_fall_ms is not None and now_ms - self.last_fall_ms < cfg.fall_cooldown_ms:
            return FallResult(
                fall_angle_deg=heading, ax_g=ax, ay_g=ay, roll_deg=roll, pitch_deg=pitch,
            )

        total_accel = math.sqrt(ax * ax + ay * ay + az * az)
        total_tilt = math.hypot(roll, pitch)

        extreme_impact = total_accel >= cfg.fall_extreme_accel_g
        impact_with_tilt = (total_accel >= cfg.fall_impact_accel_g
                            and total_tilt >= cfg.fall_angle_threshold_deg)

        if not (extreme_impact or impact_with_tilt):
            return FallResult(
                fall_angle_deg=heading, ax_g=ax, ay_g=ay, roll_deg=roll, pitch_deg=pitch,
            )

        direction = determine_fall_direction(roll, pitch)
        self.last_fall_ms = now_ms

        trigger = "extreme impact" if extreme_impact else "impact + tilt"
        logger.warning(
            f"⚠ Fall detected [{trigger}]: total={total_accel:.2f}g, tilt={total_tilt:.1f}°, "
            f"direction={direction.name} ({heading:.1f}°)"
        )

        return FallResult(
            fall_detected=True,
            direction=direction,
            fall_angle_deg=heading,
            ax_g=ax,
            ay_g=ay,
            roll_deg=roll,
            pitch_deg=pitch,
        )

    def reset_fall(self):
        """
        Clear the fall cooldown so the next sample may trigger again.

        Returns:
            None.
        """
        self.last_fall_ms = None
        logger.info("Fall cooldown reset manually")

    def get_status(self) -> dict:
        """
        Return the current detector state.

        Returns:
            Dict with sample rate, baseline, gravity estimate and last event times.
        """
        return {
            'sample_rate': self.sample_rate,
            'baseline': self.baseline,
            'step_threshold': self.config.dyn_gain * (self.baseline + self.config.threshold_bias),
            'fall_cooldown_ms': self.config.fall_cooldown_ms,
            'gravity': tuple(self.gravity),
            'last_step_ms': self.last_step_ms,
            'last_fall_ms': self.last_fall_ms,
        }

    def __repr__(self):
        return f"<MotionDetector(rate={self.sample_rate:.0f}Hz, last_step={self.last_step_ms})>"
