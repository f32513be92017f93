"""
Utilidades matemáticas comunes del sistema.
"""


def clamp(x: float, lo: float, hi: float) -> float:
    """
    Restringe un valor al rango [lo, hi].

    Examples:
        >>> clamp(1.5, 0.0, 1.0)
        1.0
        >>> clamp(-0.2, 0.0, 1.0)
        0.0
    """
    return max(lo, min(hi, x))
