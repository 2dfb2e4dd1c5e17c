"""
Controllers and route modules loaded by dotted path in the routing tests.
"""

from waypoint.requests import Request
from waypoint.routing import Controller


class UserController(Controller):
    def index(self):
        return {"users": ["US123", "US456"]}

    def show(self, user: str):
        return {"user": user}


class PhotoController(Controller):
    def index(self):
        return "photos.index"

    def store(self, request: Request):
        return {"stored": request.input("title")}

    def show(self, photo: str):
        return f"photos.show {photo}"

    def update(self, photo: str):
        return f"photos.update {photo}"

    def destroy(self, photo: str):
        return f"photos.destroy {photo}"


class HealthController:
    def __call__(self):
        return "healthy"


def status():
    return "ok"


def register(routes):
    routes.get("/status", status, name="status")
    routes.get("/health", HealthController, name="health")
