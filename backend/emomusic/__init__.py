"""
EmoMusic - Reproductor musical guiado por el estado de ánimo.

El mood se elige explícitamente o se infiere con la webcam, y se traduce en
una cola de reproducción gestionada sobre Spotify.
"""

__version__ = "0.4.0"
