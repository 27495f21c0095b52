"""View layer (routing) for the posbridge printing service."""


from .health import router as health_router
from .printer import router as printer_router
from .printing import router as print_router
from .ws import ws_router


__all__ = [
    "health_router",
    "printer_router",
    "print_router",
    "ws_router",
]
