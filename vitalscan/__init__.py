"""
vitalscan — vital-sign estimation from facial landmark tracks.

A face tracker delivers per-frame landmarks and a forehead pixel sampler;
a :class:`~vitalscan.session.ScanSession` collects one observation window
and turns it into heart rate, respiration rate, blink rate and an HRV
proxy.  The :mod:`vitalscan.history` module ranks a wellness index against
previously recorded outcomes.
"""

from vitalscan.config import get_profile, ScanProfile
from vitalscan.models import BiometricSample, ScanState, VitalsResult
from vitalscan.session import ScanSession

__version__ = "0.1.0"
__author__ = "vitalscan"

__all__ = [
    "BiometricSample",
    "ScanProfile",
    "ScanSession",
    "ScanState",
    "VitalsResult",
    "get_profile",
]
