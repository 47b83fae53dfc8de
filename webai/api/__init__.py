"""HTTP routers for the WebAI API."""

from .bots import router as bots_router
from .chat import router as chat_router
from .deps import Services, client_ip, get_services
from .projects import router as projects_router
from .sites import router as sites_router

ROUTERS = (bots_router, chat_router, sites_router, projects_router)

__all__ = [
    "ROUTERS",
    "Services",
    "bots_router",
    "chat_router",
    "client_ip",
    "get_services",
    "projects_router",
    "sites_router",
]
