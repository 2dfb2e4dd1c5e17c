from waypoint.middleware.base import DefineMiddleware, Middleware

__all__ = ["DefineMiddleware", "Middleware"]
