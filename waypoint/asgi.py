from __future__ import annotations

from waypoint.concurrency import run_in_threadpool
from waypoint.kernel import Kernel
from waypoint.logging import logger
from waypoint.requests import Request
from waypoint.routing.router import Router
from waypoint.types import Receive, Scope, Send


class WaypointApp:
    """
    Serves a `Kernel` as an ASGI application.

    Dispatching is synchronous, so each request is handled in a worker
    thread. The route table is finalized during the lifespan startup, or
    on the first request when the server sends no lifespan events.

    ```python
    router = Router()
    router.get("/", home)

    app = WaypointApp(Kernel(router))
    ```
    """

    def __init__(self, kernel: Kernel | None = None, router: Router | None = None) -> None:
        self.kernel = kernel if kernel is not None else Kernel(router)

    @property
    def router(self) -> Router:
        return self.kernel.router

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self.handle_lifespan(scope, receive, send)
            return

        if scope["type"] != "http":
            await send({"type": "websocket.close", "code": 1000})
            return

        body = await self.read_body(receive)
        request = Request.from_scope(scope, body)
        response = await run_in_threadpool(self.kernel.handle, request)
        await response(scope, receive, send)
        await run_in_threadpool(self.kernel.terminate, request, response)

    async def read_body(self, receive: Receive) -> bytes:
        chunks: list[bytes] = []
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
            chunks.append(message.get("body", b""))
            more_body = message.get("more_body", False)
        return b"".join(chunks)

    async def handle_lifespan(self, scope: Scope, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                try:
                    self.router.finalize()
                except Exception as exc:
                    logger.error(f"Startup failed: {exc}", exc_info=exc)
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return
