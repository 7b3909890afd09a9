from typing import Protocol


class Port(Protocol):
    """Marker base for interfaces the domain needs from the outside world.

    Adapters in ``vidacure.infrastructure`` subclass the concrete port explicitly.
    """
