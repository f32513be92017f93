"""
Blueprint para endpoints de salud y monitoreo de la API.
"""

from flask import Blueprint, jsonify

from ..core.utils.metrics import get_metrics

health_bp = Blueprint('health', __name__)


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Endpoint de verificación de estado del servicio.

    Example:
        GET /health

        Response:
        {
            "status": "ok"
        }
    """
    return jsonify({'status': 'ok'}), 200


@health_bp.route('/metrics', methods=['GET'])
def metrics_statistics():
    """
    Estadísticas de latencia por etapa del proceso.

    Etapas: mood_detection, recommendation_fetch, track_dispatch.

    Example:
        GET /metrics

        Response:
        {
            "recommendation_fetch": {"count": 3, "mean": 0.41, ...}
        }
    """
    return jsonify(get_metrics().get_statistics()), 200
