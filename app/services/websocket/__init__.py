from app.services.websocket.handlers import HandlerContext, HandlerResult, dispatch, handler
from app.services.websocket.manager import ConnectionManager

__all__ = [
    "ConnectionManager",
    "HandlerContext",
    "HandlerResult",
    "dispatch",
    "handler",
]
