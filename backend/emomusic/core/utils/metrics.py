"""
Módulo de instrumentación y medición de rendimiento.

Mide latencias de las etapas con I/O del sistema (detección de mood,
petición de recomendaciones, envío de pistas al dispositivo) para exponerlas
en el endpoint /metrics.
"""

import statistics
import time
from collections import defaultdict, deque
from contextlib import contextmanager
from typing import Any, Deque, Dict, Optional

# Mediciones que se conservan por etapa (las más recientes)
MAX_SAMPLES_PER_STAGE = 1000


class PerformanceMetrics:
    """
    Gestor de métricas de rendimiento del sistema.

    Todas las mediciones se hacen desde el event loop, por lo que no
    necesita sincronización. Cada etapa guarda como máximo ``max_samples``
    duraciones; las más antiguas se descartan.
    """

    def __init__(self, max_samples: int = MAX_SAMPLES_PER_STAGE):
        self.max_samples = max_samples
        self.measurements: Dict[str, Deque[float]] = defaultdict(
            lambda: deque(maxlen=self.max_samples)
        )

    @contextmanager
    def measure(self, stage_name: str):
        """
        Context manager para medir el tiempo de ejecución de una etapa.

        Funciona también alrededor de un ``await``: mide tiempo de pared,
        incluidas las suspensiones.

        Example:
            with metrics.measure('recommendation_fetch') as timing:
                tracks = await fetcher.request(mood, 20)
            print(f"Tardó {timing['duration']} segundos")
        """
        start_time = time.perf_counter()
        timing_info: Dict[str, Any] = {'stage': stage_name}

        try:
            yield timing_info
        finally:
            duration = time.perf_counter() - start_time
            timing_info['duration'] = duration
            self.measurements[stage_name].append(duration)

    def get_statistics(self, stage_name: Optional[str] = None) -> Dict:
        """
        Calcula estadísticas sobre las mediciones realizadas.

        Args:
            stage_name: Etapa específica (None para todas)

        Returns:
            Diccionario con count/mean/median/stdev/min/max por etapa
        """
        if stage_name:
            stages = {stage_name: self.measurements.get(stage_name, ())}
        else:
            stages = dict(self.measurements)

        stats = {}
        for name, times in stages.items():
            if not times:
                continue

            stats[name] = {
                'count': len(times),
                'mean': statistics.mean(times),
                'median': statistics.median(times),
                'stdev': statistics.stdev(times) if len(times) > 1 else 0.0,
                'min': min(times),
                'max': max(times),
            }

        return stats


# Instancia compartida del proceso
_global_metrics: Optional[PerformanceMetrics] = None


def get_metrics() -> PerformanceMetrics:
    """Obtiene la instancia global de métricas, creándola si no existe."""
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = PerformanceMetrics()
    return _global_metrics
