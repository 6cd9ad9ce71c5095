import logging

logger = logging.getLogger(__name__)


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    from .blueprints.api import inventory_api_bp

    app.register_blueprint(inventory_api_bp, url_prefix='/api/inventory')
    logger.debug("Registered blueprints: %s", ", ".join(sorted(app.blueprints)))
