"""
MAX30102 Signal Processor
Streaming heart rate, SpO2 and HRV estimation from raw Red/IR samples
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import numpy as np
from scipy import signal

from .config import MAX30102Config

logger = logging.getLogger(__name__)

# Medical SpO2 bands (%)
SPO2_NORMAL_MIN = 95
SPO2_HYPOXIA_WARNING = 90
SPO2_HYPOXIA_DANGER = 80
SPO2_SEVERE_HYPOXIA = 75


class SpO2Status(Enum):
    """Clinical classification of a SpO2 reading."""

    NORMAL = 0  # 95-100%
    WARNING = 1  # 90-94%
    DANGER = 2  # 80-89%
    SEVERE = 3  # 75-79%
    INVALID = 4  # <75% or not measurable

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    SpO2Status.NORMAL: 'Normal',
    SpO2Status.WARNING: 'Hypoxia warning',
    SpO2Status.DANGER: 'Hypoxia danger',
    SpO2Status.SEVERE: 'Severe hypoxia',
    SpO2Status.INVALID: 'Not measurable',
}


def classify_spo2(spo2_pct: int) -> SpO2Status:
    """
    Map a SpO2 percentage to its clinical band.

    Args:
        spo2_pct: Oxygen saturation in percent.

    Returns:
        SpO2Status for the value.
    """
    if spo2_pct >= SPO2_NORMAL_MIN:
        return SpO2Status.NORMAL
    if spo2_pct >= SPO2_HYPOXIA_WARNING:
        return SpO2Status.WARNING
    if spo2_pct >= SPO2_HYPOXIA_DANGER:
        return SpO2Status.DANGER
    if spo2_pct >= SPO2_SEVERE_HYPOXIA:
        return SpO2Status.SEVERE
    return SpO2Status.INVALID


@dataclass(frozen=True)
class PPGSample:
    """One raw MAX30102 FIFO reading (18-bit ADC counts)."""

    red: int
    ir: int


@dataclass(frozen=True)
class SignalQuality:
    """Signal quality assessment, recomputed on every sample."""

    red_dc: float = 0.0
    ir_dc: float = 0.0
    red_ac_rms: float = 0.0
    ir_ac_rms: float = 0.0
    perfusion_index: float = 0.0  # %
    snr_estimate: float = 0.0  # dB
    contact_detected: bool = False
    quality_good: bool = False


@dataclass(frozen=True)
class VitalEstimate:
    """Latest heart rate / SpO2 output of the estimator."""

    heart_rate_bpm: float = 0.0
    heart_rate_valid: bool = False
    spo2_pct: int = 0
    spo2_valid: bool = False
    spo2_status: SpO2Status = SpO2Status.INVALID
    signal_quality: float = 0.0  # 0.0 - 1.0
    perfusion_index: float = 0.0
    r_ratio: float = 0.0


class SignalBuffer:
    """
    Fixed-capacity circular buffer of raw, DC and filtered Red/IR samples

    Arrays are allocated once; count saturates at capacity.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"Buffer capacity must be positive, got {capacity}")

        self.capacity = capacity
        self.red_raw = np.zeros(capacity, dtype=np.uint32)
        self.ir_raw = np.zeros(capacity, dtype=np.uint32)
        self.red_dc = np.zeros(capacity)
        self.ir_dc = np.zeros(capacity)
        self.red_filtered = np.zeros(capacity)
        self.ir_filtered = np.zeros(capacity)
        self.timestamps = np.zeros(capacity, dtype=np.int64)
        self.head = 0
        self.count = 0

    def push(self, red: int, ir: int, timestamp_us: int) -> int:
        """
        Store one raw sample and advance the write cursor.

        Returns:
            Index the sample was written to.
        """
        index = self.head
        self.red_raw[index] = red
        self.ir_raw[index] = ir
        self.timestamps[index] = timestamp_us

        self.head = (self.head + 1) % self.capacity
        if self.count < self.capacity:
            self.count += 1

        return index

    def set_derived(self, index: int, red_dc: float, ir_dc: float, red_filtered: float, ir_filtered: float):
        self.red_dc[index] = red_dc
        self.ir_dc[index] = ir_dc
        self.red_filtered[index] = red_filtered
        self.ir_filtered[index] = ir_filtered

    def recent(self, values: np.ndarray, n: int) -> np.ndarray:
        """Return up to n most recent entries of one of the buffer arrays, newest first."""
        n = min(n, self.count)
        indices = (self.head - 1 - np.arange(n)) % self.capacity
        return values[indices]

    def clear(self):
        for array in (self.red_raw, self.ir_raw, self.red_dc, self.ir_dc,
                      self.red_filtered, self.ir_filtered, self.timestamps):
            array.fill(0)
        self.head = 0
        self.count = 0

    def __len__(self):
        return self.count


class HeartBeatHistory:
    """Fixed-capacity ring of inter-beat intervals (µs) and beat timestamps."""

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"Beat history capacity must be positive, got {capacity}")

        self.capacity = capacity
        self.intervals = np.zeros(capacity, dtype=np.int64)
        self.timestamps = np.zeros(capacity, dtype=np.int64)
        self.head = 0
        self.count = 0

    def add(self, interval_us: int, timestamp_us: int):
        self.intervals[self.head] = interval_us
        self.timestamps[self.head] = timestamp_us
        self.head = (self.head + 1) % self.capacity
        if self.count < self.capacity:
            self.count += 1

    def recent(self, n: int) -> np.ndarray:
        """Up to n most recent intervals, newest first."""
        n = min(n, self.count)
        indices = (self.head - 1 - np.arange(n)) % self.capacity
        return self.intervals[indices]

    def chronological(self) -> np.ndarray:
        """All stored intervals, oldest first."""
        return self.recent(self.count)[::-1]

    def clear(self):
        self.intervals.fill(0)
        self.timestamps.fill(0)
        self.head = 0
        self.count = 0

    def __len__(self):
        return self.count


class VitalEstimator:
    """
    Real-time PPG processing for one MAX30102 stream

    Per sample:
    - DC tracking (exponential filter) and FIR high-pass for the pulsatile part
    - Signal quality gating (contact, AC amplitude, perfusion index)
    - Beat detection on filtered IR, weighted + smoothed heart rate
    - Ratio-of-ratios SpO2 every spo2_interval samples

    Poor quality or short history never produces new numbers: the last valid
    heart rate is held, SpO2 is marked invalid.
    """

    def __init__(self, config: Optional[MAX30102Config] = None):
        """
        Initialize the estimator

        Args:
            config: MAX30102 configuration

        Raises:
            ValueError if the SpO2 history requirement exceeds the buffer size.
        """
        self.config = config if config else MAX30102Config()

        if self.config.spo2_min_samples > self.config.buffer_size:
            raise ValueError(
                f"spo2_min_samples ({self.config.spo2_min_samples}) exceeds "
                f"buffer_size ({self.config.buffer_size})"
            )

        self.buffer = SignalBuffer(self.config.buffer_size)
        self.beats = HeartBeatHistory(self.config.beat_history_size)
        self._fir = np.asarray(self.config.fir_coeffs, dtype=float)
        self._beat_window = np.zeros(self.config.beat_threshold_window)

        self.reset()

        logger.info("MAX30102 estimator initialized")
        logger.info(f"  Buffer: {self.config.buffer_size} samples @ {self.config.sample_rate} Hz")
        logger.info(f"  HR band: {self.config.hr_min_bpm:.0f}-{self.config.hr_max_bpm:.0f} bpm")

    def reset(self):
        """
        Clear all buffers and estimates.

        Should be called when the sensor is re-attached to avoid stale
        history affecting the next measurement.

        Returns:
            None.
        """
        self.buffer.clear()
        self.beats.clear()

        self._red_dc = 0.0
        self._ir_dc = 0.0
        self._red_zi = np.zeros(len(self._fir) - 1)
        self._ir_zi = np.zeros(len(self._fir) - 1)

        self.quality = SignalQuality()
        self.total_samples = 0

        # Beat detector
        self._beat_window.fill(0.0)
        self._beat_window_idx = 0
        self._prev = 0.0
        self._prev_prev = 0.0
        self.last_beat_us: Optional[int] = None

        # Outputs
        self.heart_rate = 0.0
        self.heart_rate_valid = False
        self.spo2 = 0
        self.spo2_valid = False
        self.r_ratio = 0.0
        self._last_status = SpO2Status.INVALID

    # ------------------------------------------------------------------
    # Per-sample pipeline
    # ------------------------------------------------------------------

    def update_sample(self, red: int, ir: int, now_us: int) -> VitalEstimate:
        """
        Process one raw sample.

        Args:
            red:    Red LED ADC counts.
            ir:     Infrared LED ADC counts.
            now_us: Sample time in microseconds.

        Returns:
            VitalEstimate after this sample.
        """
        index = self.buffer.push(red, ir, now_us)

        self._red_dc = self._track_dc(self._red_dc, red)
        self._ir_dc = self._track_dc(self._ir_dc, ir)

        red_out, self._red_zi = signal.lfilter(self._fir, 1.0, [red - self._red_dc], zi=self._red_zi)
        ir_out, self._ir_zi = signal.lfilter(self._fir, 1.0, [ir - self._ir_dc], zi=self._ir_zi)
        red_filtered = float(red_out[0])
        ir_filtered = float(ir_out[0])

        self.buffer.set_derived(index, self._red_dc, self._ir_dc, red_filtered, ir_filtered)
        self.total_samples += 1

        self.quality = self._evaluate_quality()

        if self.quality.quality_good and self.buffer.count > self.config.min_history_samples:
            if self._detect_heartbeat(ir_filtered, now_us):
                self._register_beat(now_us)

        if self.total_samples % self.config.spo2_interval == 0:
            self._update_spo2()

        return self.estimate

    def _track_dc(self, dc: float, sample: int) -> float:
        if dc == 0.0:
            return float(sample)
        alpha = self.config.dc_alpha
        return alpha * dc + (1.0 - alpha) * sample

    def _evaluate_quality(self) -> SignalQuality:
        cfg = self.config
        red_dc, ir_dc = self._red_dc, self._ir_dc

        contact = (cfg.min_dc_value < red_dc < cfg.max_dc_value
                   and cfg.min_dc_value < ir_dc < cfg.max_dc_value)
        if not contact:
            return SignalQuality(red_dc=red_dc, ir_dc=ir_dc)

        if self.buffer.count < cfg.rms_min_samples:
            red_rms = ir_rms = 0.0
        else:
            red_ac = self.buffer.recent(self.buffer.red_filtered, cfg.rms_window)
            ir_ac = self.buffer.recent(self.buffer.ir_filtered, cfg.rms_window)
            red_rms = float(np.sqrt(np.mean(red_ac ** 2)))
            ir_rms = float(np.sqrt(np.mean(ir_ac ** 2)))

        perfusion_index = 100.0 * ir_rms / ir_dc
        snr = 20.0 * math.log10(ir_rms / cfg.min_ac_amplitude) if ir_rms > 0 else 0.0

        good = (perfusion_index >= cfg.min_perfusion_index
                and ir_rms >= cfg.min_ac_amplitude
                and red_rms >= cfg.min_ac_amplitude)

        return SignalQuality(
            red_dc=red_dc,
            ir_dc=ir_dc,
            red_ac_rms=red_rms,
            ir_ac_rms=ir_rms,
            perfusion_index=perfusion_index,
            snr_estimate=snr,
            contact_detected=True,
            quality_good=good,
        )

    # ------------------------------------------------------------------
    # Heart rate
    # ------------------------------------------------------------------

    def _detect_heartbeat(self, value: float, now_us: int) -> bool:
        """3-point local maximum above an adaptive threshold."""
        cfg = self.config

        self._beat_window[self._beat_window_idx] = value
        self._beat_window_idx = (self._beat_window_idx + 1) % len(self._beat_window)

        avg = float(np.mean(self._beat_window))
        threshold = min(abs(avg * cfg.beat_avg_ratio), self.quality.ir_ac_rms * cfg.beat_rms_ratio)
        threshold = max(threshold, cfg.beat_threshold_floor)

        is_peak = self._prev > self._prev_prev and self._prev > value and self._prev > threshold

        accepted = False
        if is_peak:
            if self.last_beat_us is None or now_us - self.last_beat_us >= cfg.min_beat_interval_us:
                accepted = True
                logger.debug(f"Beat detected: peak={self._prev:.1f}, threshold={threshold:.1f}")

        self._prev_prev = self._prev
        self._prev = value

        return accepted

    def _register_beat(self, now_us: int):
        if self.last_beat_us is not None:
            interval = now_us - self.last_beat_us
            if interval <= self.config.max_beat_interval_us:
                self.beats.add(interval, now_us)
                self._update_heart_rate()
            else:
                logger.debug(f"Beat gap of {interval / 1000:.0f}ms, restarting interval chain")
        self.last_beat_us = now_us

    def _update_heart_rate(self):
        cfg = self.config
        if len(self.beats) < cfg.min_beats_for_rate:
            return

        recent = self.beats.recent(cfg.rate_window)
        weights = np.arange(len(recent), 0, -1)
        avg_interval = float(np.sum(recent * weights) / np.sum(weights))
        raw_hr = 60_000_000.0 / avg_interval

        if self.heart_rate_valid:
            hr = cfg.smoothing_factor * self.heart_rate + (1.0 - cfg.smoothing_factor) * raw_hr
        else:
            hr = raw_hr

        # Soft clamp: outside the band only a fraction of the excess survives
        if hr < cfg.hr_min_bpm:
            hr = cfg.hr_min_bpm + (hr - cfg.hr_min_bpm) * cfg.hr_soft_clamp_ratio
        elif hr > cfg.hr_max_bpm:
            hr = cfg.hr_max_bpm + (hr - cfg.hr_max_bpm) * cfg.hr_soft_clamp_ratio

        self.heart_rate = hr
        self.heart_rate_valid = True
        logger.debug(f"Heart rate: {hr:.1f} bpm (raw {raw_hr:.1f})")

    # ------------------------------------------------------------------
    # SpO2
    # ------------------------------------------------------------------

    def _update_spo2(self):
        cfg = self.config
        q = self.quality

        if self.buffer.count < cfg.spo2_min_samples:
            return

        if not q.quality_good or q.red_dc <= 0 or q.ir_dc <= 0 or q.ir_ac_rms <= 0:
            self._set_spo2_invalid()
            return

        r = (q.red_ac_rms / q.red_dc) / (q.ir_ac_rms / q.ir_dc)

        if r <= cfg.spo2_curve_split:
            a, b, c = cfg.spo2_quad_coeffs
            spo2_f = a * r * r + b * r + c
        else:
            intercept, slope = cfg.spo2_linear_coeffs
            spo2_f = intercept + slope * r

        spo2_f = min(max(spo2_f, cfg.spo2_min_pct), cfg.spo2_max_pct)
        spo2 = int(spo2_f + 0.5)
        self.r_ratio = r

        if (cfg.r_ratio_min <= r <= cfg.r_ratio_max
                and q.perfusion_index >= cfg.min_perfusion_index
                and spo2 >= SPO2_SEVERE_HYPOXIA):
            self.spo2 = spo2
            self.spo2_valid = True
            self._log_status_change(classify_spo2(spo2))
        else:
            logger.debug(
                f"SpO2 rejected: R={r:.3f}, PI={q.perfusion_index:.2f}%, value={spo2_f:.1f}%"
            )
            self._set_spo2_invalid()

    def _set_spo2_invalid(self):
        self.spo2_valid = False
        self._log_status_change(SpO2Status.INVALID)

    def _log_status_change(self, status: SpO2Status):
        if status == self._last_status:
            return
        self._last_status = status

        if status in (SpO2Status.DANGER, SpO2Status.SEVERE):
            logger.warning(f"⚠ SpO2 {self.spo2}% ({status.label}), R={self.r_ratio:.3f}")
        else:
            logger.info(f"SpO2 status: {status.label}")

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    @property
    def estimate(self) -> VitalEstimate:
        q = self.quality
        return VitalEstimate(
            heart_rate_bpm=self.heart_rate if self.heart_rate_valid else 0.0,
            heart_rate_valid=self.heart_rate_valid,
            spo2_pct=self.spo2 if self.spo2_valid else 0,
            spo2_valid=self.spo2_valid,
            spo2_status=classify_spo2(self.spo2) if self.spo2_valid else SpO2Status.INVALID,
            signal_quality=min(q.perfusion_index / 10.0, 1.0) if q.quality_good else 0.0,
            perfusion_index=q.perfusion_index,
            r_ratio=self.r_ratio,
        )

    @property
    def signal_quality(self) -> SignalQuality:
        """Quality assessment of the most recent sample."""
        return self.quality

    def heart_rate_variability(self) -> Optional[dict]:
        """
        Time-domain HRV from the stored beat intervals

        Returns:
            Dict with 'sdnn_ms' and 'rmssd_ms', or None with too few intervals
        """
        if len(self.beats) < self.config.hrv_min_intervals:
            return None

        rr_ms = self.beats.chronological() / 1000.0

        # SDNN: Standard deviation of RR intervals
        sdnn = float(np.std(rr_ms))

        # RMSSD: Root mean square of successive differences
        successive_diffs = np.diff(rr_ms)
        rmssd = float(np.sqrt(np.mean(successive_diffs ** 2)))

        return {'sdnn_ms': sdnn, 'rmssd_ms': rmssd}

    def replay(
            self,
            red: Sequence[int],
            ir: Sequence[int],
            sample_rate_hz: Optional[float] = None,
            start_us: int = 0
    ) -> VitalEstimate:
        """
        Offline processing: feed a recorded Red/IR stream through the pipeline

        Args:
            red: Recorded Red samples
            ir: Recorded IR samples (same length as red)
            sample_rate_hz: Recording rate. Defaults to config.sample_rate
            start_us: Timestamp of the first sample

        Returns:
            VitalEstimate after the last sample
        """
        if len(red) != len(ir):
            raise ValueError(f"Red/IR length mismatch: {len(red)} != {len(ir)}")

        rate = sample_rate_hz if sample_rate_hz else self.config.sample_rate
        if rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {rate}")
        period_us = 1_000_000.0 / rate

        logger.info(f"Replaying {len(red)} samples at {rate} Hz")

        for i, (r, x) in enumerate(zip(red, ir)):
            self.update_sample(int(r), int(x), start_us + int(round(i * period_us)))

        return self.estimate

    def get_status(self) -> dict:
        """
        Return the current estimator state.

        Returns:
            Dict with sample counts, quality flags and latest estimates.
        """
        return {
            'samples_processed': self.total_samples,
            'buffered': len(self.buffer),
            'beats': len(self.beats),
            'contact': self.quality.contact_detected,
            'quality_good': self.quality.quality_good,
            'heart_rate': self.heart_rate if self.heart_rate_valid else None,
            'spo2': self.spo2 if self.spo2_valid else None,
        }

    def __repr__(self):
        return f"<VitalEstimator(samples={self.total_samples}, beats={len(self.beats)})>"
