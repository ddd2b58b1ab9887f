from .mapping_routes import router

__all__ = ["router"]
