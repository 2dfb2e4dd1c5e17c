from waypoint.middleware import DefineMiddleware


class Throttle:
    def __init__(self, limit: int, *, per: str = "minute") -> None:
        self.limit = limit
        self.per = per

    def handle(self, request, next):
        return next(request)


def test_middleware_repr():
    middleware = DefineMiddleware(Throttle, 60, per="second")

    assert repr(middleware) == "DefineMiddleware(Throttle, 60, per='second')"


def test_middleware_iter():
    cls, args, kwargs = DefineMiddleware(Throttle, 60, per="second")

    assert (cls, args, kwargs) == (Throttle, (60,), {"per": "second"})


def test_middleware_call_builds_the_instance():
    instance = DefineMiddleware("tests.middleware.test_define_middleware.Throttle", 10)()

    assert isinstance(instance, Throttle)
    assert (instance.limit, instance.per) == (10, "minute")
