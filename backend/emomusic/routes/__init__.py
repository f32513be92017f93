"""
Módulo de rutas de la API Flask.

Este paquete contiene los blueprints que definen los endpoints
de la API REST del reproductor por mood.
"""

from .health import health_bp
from .mood import mood_bp
from .player import player_bp

__all__ = ['health_bp', 'mood_bp', 'player_bp']
