from .inventory_routes import inventory_api_bp

__all__ = ['inventory_api_bp']
