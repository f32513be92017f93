"""
Utilidades compartidas para hablar con la Web API de Spotify vía spotipy.

El token de acceso (bearer) lo aporta la configuración: el flujo de login
queda fuera del sistema.
"""

import logging
from contextlib import contextmanager
from typing import Optional

import requests
import spotipy
from spotipy.exceptions import SpotifyException

from .errors import NetworkError, NoDeviceError

logger = logging.getLogger(__name__)


def create_client(access_token: str, requests_timeout: Optional[float] = 10) -> spotipy.Spotify:
    """
    Crea un cliente spotipy autenticado con un bearer token.

    Args:
        access_token (str): Token OAuth con scopes de streaming
        requests_timeout (float): Timeout HTTP por petición (s)

    Returns:
        spotipy.Spotify: Cliente listo para usar

    Raises:
        NetworkError: Si no hay token configurado
    """
    if not access_token:
        raise NetworkError("No hay token de acceso de Spotify configurado (SPOTIFY_ACCESS_TOKEN)")

    return spotipy.Spotify(auth=access_token, requests_timeout=requests_timeout, retries=0)


@contextmanager
def translate_errors(operation: str):
    """
    Traduce las excepciones de spotipy/requests a la jerarquía del sistema.

    - 404 con razón NO_ACTIVE_DEVICE -> NoDeviceError
    - Cualquier otro error HTTP o de transporte -> NetworkError
    """
    try:
        yield
    except SpotifyException as e:
        if e.http_status == 404 and getattr(e, 'reason', None) == 'NO_ACTIVE_DEVICE':
            raise NoDeviceError(f"{operation}: no hay dispositivo activo") from e
        logger.error(f"{operation}: Spotify respondió {e.http_status}: {e.msg}")
        raise NetworkError(f"{operation}: Spotify respondió {e.http_status}") from e
    except requests.exceptions.RequestException as e:
        logger.error(f"{operation}: error de transporte: {e}")
        raise NetworkError(f"{operation}: error de transporte: {e}") from e
