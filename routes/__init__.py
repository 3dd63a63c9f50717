"""HTTP routers."""

from routes.skins import router as skins_router

__all__ = ["skins_router"]
