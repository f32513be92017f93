"""
Módulo de utilidades comunes del sistema.
"""

from .math import clamp
from .metrics import PerformanceMetrics, get_metrics

__all__ = ['clamp', 'PerformanceMetrics', 'get_metrics']
