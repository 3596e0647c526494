"""
Simulated Sensor Readers
Synthetic IMU, PPG and ambient streams for demos and tests.

Every reader produces raw values in the same units the real drivers deliver
(ADC counts for MPU6050 and MAX30102), so the full processing chain runs
unchanged against them.
"""

import logging
from typing import Iterable, Optional

import numpy as np

from .reader import SampleReadError
from .mpu6050.processor import InertialSample
from .max30102.processor import PPGSample
from .ambient.analog import light_lux, mq135_reading
from .ambient.collector import AmbientSample

logger = logging.getLogger(__name__)


class _SimulatedReader:
    """Shared sample counter, RNG and failure injection."""

    def __init__(self, sample_rate: float, failure_rate: float = 0.0, seed: Optional[int] = 42):
        if sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate}")
        if not 0.0 <= failure_rate < 1.0:
            raise ValueError(f"Failure rate must be in [0, 1), got {failure_rate}")

        self.sample_rate = float(sample_rate)
        self.failure_rate = failure_rate
        self.rng = np.random.default_rng(seed)
        self.index = 0

    @property
    def t_s(self) -> float:
        """Time of the next sample in seconds."""
        return self.index / self.sample_rate

    def _maybe_fail(self):
        if self.failure_rate and self.rng.random() < self.failure_rate:
            raise SampleReadError(f"{type(self).__name__}: simulated bus error")


class SimulatedPPGReader(_SimulatedReader):
    """
    Synthetic MAX30102 Red/IR stream.

    The red AC amplitude is derived from r_ratio so the ratio-of-ratios the
    estimator sees equals r_ratio (R = 0.6 reads as roughly 97 % SpO2).
    """

    def __init__(
            self,
            heart_rate_bpm: float = 72.0,
            r_ratio: float = 0.6,
            sample_rate: float = 100.0,
            ir_dc: float = 100000.0,
            red_dc: float = 80000.0,
            ir_ac: float = 5000.0,
            noise_counts: float = 0.0,
            failure_rate: float = 0.0,
            seed: Optional[int] = 42
    ):
        """
        Args:
            heart_rate_bpm: Pulse rate of the synthetic signal
            r_ratio: Target (AC_red/DC_red) / (AC_ir/DC_ir)
            sample_rate: Samples per second
            ir_dc / red_dc: DC levels in ADC counts
            ir_ac: IR pulse amplitude in ADC counts
            noise_counts: Standard deviation of additive Gaussian noise
            failure_rate: Probability that a read raises SampleReadError
            seed: RNG seed for reproducibility
        """
        super().__init__(sample_rate, failure_rate, seed)

        self.heart_rate_bpm = heart_rate_bpm
        self.r_ratio = r_ratio
        self.ir_dc = ir_dc
        self.red_dc = red_dc
        self.ir_ac = ir_ac
        self.red_ac = r_ratio * ir_ac * red_dc / ir_dc
        self.noise_counts = noise_counts

    def _pulse(self, t_s: float) -> float:
        return float(np.sin(2.0 * np.pi * self.heart_rate_bpm / 60.0 * t_s))

    def read(self) -> PPGSample:
        self._maybe_fail()
        pulse = self._pulse(self.t_s)
        self.index += 1

        ir = self.ir_dc + self.ir_ac * pulse
        red = self.red_dc + self.red_ac * pulse
        if self.noise_counts:
            ir += self.rng.normal(0.0, self.noise_counts)
            red += self.rng.normal(0.0, self.noise_counts)

        return PPGSample(red=max(int(round(red)), 0), ir=max(int(round(ir)), 0))

    def generate(self, n_samples: int):
        """
        Produce n_samples at once for offline replay.

        Returns:
            (red, ir) numpy arrays of ADC counts
        """
        samples = [self.read() for _ in range(n_samples)]
        red = np.array([s.red for s in samples], dtype=np.int64)
        ir = np.array([s.ir for s in samples], dtype=np.int64)
        return red, ir


class SimulatedIMUReader(_SimulatedReader):
    """
    Synthetic MPU6050 stream: device lying flat (gravity on +Z) with a short
    X-axis jolt per step and an optional lateral impact.
    """

    def __init__(
            self,
            cadence_spm: float = 110.0,
            step_accel_g: float = 0.5,
            walk_after_s: float = 1.0,
            fall_at_s: Optional[float] = None,
            fall_accel_g: float = 6.0,
            accel_sensitivity: float = 16384.0,
            sample_rate: float = 100.0,
            noise_g: float = 0.0,
            failure_rate: float = 0.0,
            seed: Optional[int] = 42
    ):
        """
        Args:
            cadence_spm: Steps per minute (0 = standing still)
            step_accel_g: Size of the per-step X jolt in g
            walk_after_s: Quiet warm-up before the first step
            fall_at_s: Time of a single lateral (+Y) impact, None for no fall
            fall_accel_g: Size of the impact in g
            accel_sensitivity: LSB per g of the simulated accelerometer
            sample_rate: Samples per second
            noise_g: Standard deviation of additive Gaussian noise in g
            failure_rate: Probability that a read raises SampleReadError
            seed: RNG seed for reproducibility
        """
        super().__init__(sample_rate, failure_rate, seed)

        self.cadence_spm = cadence_spm
        self.step_accel_g = step_accel_g
        self.walk_after_s = walk_after_s
        self.fall_at_s = fall_at_s
        self.fall_accel_g = fall_accel_g
        self.accel_sensitivity = accel_sensitivity
        self.noise_g = noise_g

        self._fall_index = None if fall_at_s is None else int(round(fall_at_s * sample_rate))
        self._step_period = None
        if cadence_spm > 0:
            self._step_period = max(int(round(sample_rate * 60.0 / cadence_spm)), 1)
        self._walk_start = int(round(walk_after_s * sample_rate))

    def _is_step_sample(self, i: int) -> bool:
        if self._step_period is None or i < self._walk_start:
            return False
        return (i - self._walk_start) % self._step_period == 0

    def read(self) -> InertialSample:
        self._maybe_fail()
        i = self.index
        self.index += 1

        ax, ay, az = 0.0, 0.0, 1.0
        if self._is_step_sample(i):
            ax += self.step_accel_g
        if self._fall_index is not None and i == self._fall_index:
            ay += self.fall_accel_g
        if self.noise_g:
            ax, ay, az = np.array([ax, ay, az]) + self.rng.normal(0.0, self.noise_g, 3)

        s = self.accel_sensitivity
        return InertialSample(
            ax=int(round(ax * s)),
            ay=int(round(ay * s)),
            az=int(round(az * s)),
            t_ms=int(round(i * 1000.0 / self.sample_rate)),
        )

    def expected_steps(self, n_samples: int) -> int:
        """Number of step jolts within the first n_samples."""
        return sum(1 for i in range(n_samples) if self._is_step_sample(i))


class SimulatedAmbientReader(_SimulatedReader):
    """
    Slowly drifting room temperature and humidity.

    With gas_adc / light_adc set it also plays the anchor board: the raw
    MQ135 and photoresistor counts go through the same conversions as the
    hardware, so TVOC and lux arrive already in ppb and lux.
    """

    def __init__(
            self,
            temperature_c: float = 22.5,
            humidity_pct: Optional[float] = 45.0,
            gas_adc: Optional[int] = None,
            light_adc: Optional[int] = None,
            drift_amplitude: float = 0.5,
            drift_period_s: float = 600.0,
            sample_rate: float = 1.0,
            failure_rate: float = 0.0,
            seed: Optional[int] = 42
    ):
        """
        Args:
            temperature_c: Mean temperature
            humidity_pct: Mean humidity, None for a temperature-only sensor
            gas_adc: Mean MQ135 ADC count (1417 is about 20 ppb), None for no gas sensor
            light_adc: Mean photoresistor ADC count, None for no light sensor
            drift_amplitude: Temperature swing in °C; humidity and the ADC counts follow it
            drift_period_s: Period of the drift
        """
        super().__init__(sample_rate, failure_rate, seed)
        self.temperature_c = temperature_c
        self.humidity_pct = humidity_pct
        self.gas_adc = gas_adc
        self.light_adc = light_adc
        self.drift_amplitude = drift_amplitude
        self.drift_period_s = drift_period_s

    def read(self) -> AmbientSample:
        self._maybe_fail()
        drift = self.drift_amplitude * np.sin(2.0 * np.pi * self.t_s / self.drift_period_s)
        self.index += 1

        # DHT sensors report in 0.1 steps
        temperature = round(self.temperature_c + drift, 1)
        humidity = None
        if self.humidity_pct is not None:
            humidity = round(self.humidity_pct - 2.0 * drift, 1)

        tvoc = None
        if self.gas_adc is not None:
            tvoc = mq135_reading(int(round(self.gas_adc + 10.0 * drift))).tvoc_ppb

        lux = None
        if self.light_adc is not None:
            lux = light_lux(min(max(int(round(self.light_adc - 40.0 * drift)), 0), 4095))

        return AmbientSample(temperature_c=float(temperature),
                             humidity_pct=None if humidity is None else float(humidity),
                             tvoc_ppb=tvoc,
                             lux=lux)


class SequenceReader:
    """
    Replays a fixed list of samples. Exceptions in the list are raised
    instead of returned; SampleReadError once the list is exhausted.
    """

    def __init__(self, samples: Iterable):
        self._samples = list(samples)
        self._position = 0

    def read(self):
        if self._position >= len(self._samples):
            raise SampleReadError("Sequence exhausted")

        item = self._samples[self._position]
        self._position += 1

        if isinstance(item, BaseException):
            raise item
        return item

    def __len__(self):
        return len(self._samples) - self._position
