"""Dishka scope tree for the Vidacure container."""

from dishka import BaseScope, new_scope


class Scope(BaseScope):  # type: ignore[misc]  # BaseScope is designed to be subclassed
    """APP -> UOW.

    APP holds config, the database engine, the broker adapter and the stateless
    auth services. UOW owns one database session and is opened per HTTP request
    by ContainerMiddleware and per run of ``vidacure doctor add``.
    """

    APP = new_scope("APP")
    UOW = new_scope("UOW")
