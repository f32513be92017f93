"""
Script de demostración: detección de mood por webcam + reproducción en Spotify.

Arranca una sesión de detección con la webcam, y con el mood detectado (o el
indicado con --mood) carga una cola de recomendaciones y la reproduce en el
dispositivo Spotify Connect disponible.

Uso:
    SPOTIFY_ACCESS_TOKEN=... python backend/scripts/run_mood_player.py
    SPOTIFY_ACCESS_TOKEN=... python backend/scripts/run_mood_player.py --mood happy

Controles (en la consola):
    n = siguiente, p = anterior, Enter = pausa/reanudar, q = salir
"""

import argparse
import asyncio
import logging
import os
import sys

from emomusic.core.camera import WebcamCapture
from emomusic.core.detection import MoodDetectionSession
from emomusic.core.emotion.deepface_detector import DeepFaceExpressionDetector
from emomusic.core.errors import EmoMusicError
from emomusic.core.playback import PlaybackSessionManager, PlaybackState
from emomusic.core.playback.spotify_device import SpotifyConnectDevice
from emomusic.core.recommendation import SpotifyRecommendationFetcher

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def parse_args():
    parser = argparse.ArgumentParser(description="Demo EmoMusic: webcam -> mood -> Spotify")
    parser.add_argument('--mood', choices=['sad', 'neutral', 'happy', 'energetic'],
                        help='Mood explícito (omite la detección por webcam)')
    parser.add_argument('--camera', type=int, default=0, help='Índice de la cámara')
    parser.add_argument('--limit', type=int, default=20, help='Número de pistas a pedir')
    parser.add_argument('--device', default=None, help='Nombre del dispositivo Spotify Connect')
    parser.add_argument('--detection-timeout', type=float, default=None,
                        help='Tiempo máximo de detección (s)')
    return parser.parse_args()


async def wait_until_ready(manager: PlaybackSessionManager, timeout: float = 15.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while manager.state not in (PlaybackState.READY, PlaybackState.ACTIVE, PlaybackState.PAUSED):
        if loop.time() > deadline:
            raise EmoMusicError("No apareció ningún dispositivo de Spotify. Abre Spotify en algún equipo.")
        await asyncio.sleep(0.2)


async def run(args):
    token = os.environ.get('SPOTIFY_ACCESS_TOKEN')
    if not token:
        print("Error: define SPOTIFY_ACCESS_TOKEN con un token válido de Spotify")
        return 1

    manager = PlaybackSessionManager(
        device=SpotifyConnectDevice(access_token=token, device_name=args.device),
        fetcher=SpotifyRecommendationFetcher(access_token=token),
        limit=args.limit,
    )

    mood = args.mood
    if mood is None:
        print("\nMira a la cámara... (la primera detección puede tardar: carga de modelos)\n")
        session = MoodDetectionSession(
            detector=DeepFaceExpressionDetector(),
            camera_factory=lambda: WebcamCapture(camera_index=args.camera),
            timeout=args.detection_timeout,
        )
        await session.start()
        mood = await session.wait()
        if mood is None:
            print(f"Error: no se pudo detectar el mood ({session.error.message if session.error else 'detenido'})")
            return 1

    print(f"\nMood: {mood}\n")

    async with manager:
        await wait_until_ready(manager)
        await manager.set_mood(mood)

        loop = asyncio.get_running_loop()
        while True:
            snapshot = manager.snapshot()
            track = snapshot['current_track']
            if track:
                print(f"[{snapshot['state']}] {track['title']} - {track['artist']} "
                      f"({snapshot['queue']['index'] + 1}/{snapshot['queue']['length']})")

            key = (await loop.run_in_executor(None, sys.stdin.readline)).strip()
            try:
                if key == 'q':
                    break
                elif key == 'n':
                    navigation = await manager.next()
                    if navigation.at_boundary:
                        print("Fin de la cola")
                elif key == 'p':
                    navigation = await manager.previous()
                    if navigation.at_boundary:
                        print("Inicio de la cola")
                elif key == '':
                    await manager.toggle()
            except EmoMusicError as e:
                print(f"Error: {e.message}")

    return 0


def main():
    print("=" * 70)
    print("Demo EmoMusic - Webcam + Spotify")
    print("=" * 70)
    return asyncio.run(run(parse_args()))


if __name__ == "__main__":
    sys.exit(main())
