"""
MAX30102 Sensor Module for vital-node
Heart rate and SpO2 estimation from the MAX30102 pulse oximeter

Architecture:
- Collector: Red/IR sampling thread publishing into the state store
- Processor: Streaming HR/SpO2 estimation with signal quality gating

Capabilities:
- Heart rate (BPM) from beat intervals on the filtered IR channel
- Blood oxygen saturation (SpO2%) via ratio of ratios
- Heart rate variability (HRV - SDNN, RMSSD)
- Offline replay of recorded Red/IR streams
"""

from .collector import MAX30102Collector
from .processor import (
    VitalEstimator,
    VitalEstimate,
    PPGSample,
    SignalBuffer,
    SignalQuality,
    HeartBeatHistory,
    SpO2Status,
    classify_spo2,
)
from .config import MAX30102Config

__all__ = [
    'MAX30102Collector',
    'VitalEstimator',
    'VitalEstimate',
    'PPGSample',
    'SignalBuffer',
    'SignalQuality',
    'HeartBeatHistory',
    'SpO2Status',
    'classify_spo2',
    'MAX30102Config',
]

__version__ = '1.0.0'
