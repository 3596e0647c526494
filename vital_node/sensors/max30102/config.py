"""
MAX30102 Sensor Configuration
Heart rate and SpO2 estimation parameters
"""

from dataclasses import dataclass, field
from typing import Tuple


@dataclass
class MAX30102Config:
    """
    Configuration parameters for the MAX30102 heart rate and pulse oximeter sensor.

    Controls buffering, filtering, signal quality floors, heart rate smoothing
    and the SpO2 calibration curve.
    """

    # Sampling settings
    sample_rate: int = 100  # Hz
    collection_interval: float = 0.01  # 100 Hz polling rate
    buffer_size: int = 1000  # ~10 s of history at 100 Hz

    # Filters
    dc_alpha: float = 0.95  # weight of the previous DC estimate
    fir_coeffs: Tuple[float, ...] = field(default=(-0.2, -0.1, 0.0, 0.1, 0.2))
    rms_window: int = 50  # samples used for AC RMS
    rms_min_samples: int = 10

    # Quality thresholds
    min_dc_value: float = 5000.0  # below: sensor detached
    max_dc_value: float = 300000.0  # above: saturated
    min_ac_amplitude: float = 50.0
    min_perfusion_index: float = 0.05  # %

    # Heart beat detection
    min_history_samples: int = 100  # buffered samples before beats are searched
    beat_history_size: int = 15
    min_beat_interval_us: int = 200000  # 300 bpm ceiling
    max_beat_interval_us: int = 2000000  # longer gaps restart the interval chain
    beat_threshold_window: int = 10
    beat_avg_ratio: float = 0.15
    beat_rms_ratio: float = 0.2
    beat_threshold_floor: float = 5.0

    # Heart rate
    min_beats_for_rate: int = 3
    rate_window: int = 5  # most recent intervals in the weighted mean
    smoothing_factor: float = 0.85  # weight of the previous estimate
    hr_min_bpm: float = 40.0
    hr_max_bpm: float = 180.0
    hr_soft_clamp_ratio: float = 0.1
    hrv_min_intervals: int = 5

    # SpO2
    spo2_interval: int = 50  # recompute every N samples (~0.5 s)
    spo2_min_samples: int = 500
    spo2_quad_coeffs: Tuple[float, float, float] = field(default=(-45.06, 30.354, 94.845))
    spo2_linear_coeffs: Tuple[float, float] = field(default=(110.0, -25.0))
    spo2_curve_split: float = 0.7  # R at which the fit switches to linear
    spo2_min_pct: float = 70.0
    spo2_max_pct: float = 100.0
    r_ratio_min: float = 0.5
    r_ratio_max: float = 3.0

    @classmethod
    def for_sample_rate(cls, sample_rate: int) -> 'MAX30102Config':
        """
        Create a configuration for a different PPG sample rate.

        The RMS window, SpO2 cadence and SpO2 history keep their duration in
        seconds. The buffer never shrinks below 1000 samples.

        Args:
            sample_rate: PPG sample rate in Hz.

        Raises:
            ValueError if the rate is not positive.

        Returns:
            MAX30102Config scaled to the given rate.
        """
        if sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate}")

        scale = sample_rate / 100.0
        return cls(
            sample_rate=sample_rate,
            collection_interval=1.0 / sample_rate,
            buffer_size=max(int(1000 * scale), 1000),
            rms_window=max(int(50 * scale), 10),
            spo2_interval=max(int(50 * scale), 1),
            spo2_min_samples=max(int(500 * scale), 50),
        )
