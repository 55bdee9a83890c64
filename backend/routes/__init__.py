from .trigger_routes import router as trigger_router

__all__ = ["trigger_router"]
