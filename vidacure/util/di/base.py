from dishka import Provider as DishkaProvider

from vidacure.util.di.scope import Scope


class Provider(DishkaProvider):
    """Base for Vidacure DI providers.

    Providers default to Scope.UOW; APP-scoped factories say so explicitly.
    """

    scope = Scope.UOW
