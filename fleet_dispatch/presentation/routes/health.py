from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from fleet_dispatch import db
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.routes.health")

health_bp = Blueprint('health', __name__)


@health_bp.get('/health')
def health():
    """Liveness plus a database round trip"""
    try:
        db.session.execute(text('SELECT 1'))
    except SQLAlchemyError as e:
        logger.error(f"Health check database probe failed: {e}")
        return jsonify({'status': 'degraded', 'database': 'unavailable'}), 503
    return jsonify({'status': 'ok', 'database': 'ok'})
