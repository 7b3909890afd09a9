from dataclasses import dataclass
from typing import dataclass_transform


@dataclass_transform(frozen_default=True)
class _ServiceMeta(type):
    """Turns every subclass into a frozen dataclass.

    Most services live in the APP scope and are shared by concurrent requests,
    so their collaborators are fixed at construction.
    """

    def __new__(mcs, name: str, bases: tuple, namespace: dict):
        cls = super().__new__(mcs, name, bases, namespace)
        if not any(isinstance(b, mcs) for b in bases):
            return cls
        return dataclass(frozen=True)(cls)


class Service(metaclass=_ServiceMeta):
    """Base class for domain services."""
