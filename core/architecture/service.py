import inspect
from typing import Any, Callable, Dict, Type, TypeVar

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.db.core import SessionDep

T = TypeVar("T", bound="AbstractService")


class AbstractService:
    """
    Base class for request-scoped services.

    Subclasses declare what they need in ``DEPENDENCIES`` (constructor keyword
    name -> annotated FastAPI dependency); ``get_dependency()`` turns that
    mapping into a dependency callable FastAPI can resolve.
    """

    DEPENDENCIES: Dict[str, Any] = {"session": SessionDep}

    def __init__(self, session: AsyncSession, **kwargs):
        """
        Initialize the service with an AsyncSession.

        :param session: SQLAlchemy AsyncSession instance.
        """
        self.session = session

    @classmethod
    def _get_dependency_function(cls: Type[T]) -> Callable[..., T]:
        """
        Build a factory whose signature mirrors ``DEPENDENCIES``.

        FastAPI inspects the signature, resolves every annotated parameter and
        calls the factory with the results.
        """

        def factory(**kwargs) -> T:
            return cls(**kwargs)

        factory.__signature__ = inspect.Signature(
            [
                inspect.Parameter(
                    name, inspect.Parameter.KEYWORD_ONLY, annotation=annotation
                )
                for name, annotation in cls.DEPENDENCIES.items()
            ]
        )
        factory.__name__ = f"get_{cls.__name__}"
        return factory

    @classmethod
    def get_dependency(cls: Type[T]) -> Any:
        """
        Returns a FastAPI dependency for this service.

        This can be used in route definitions to inject the service automatically.
        """
        return Depends(cls._get_dependency_function())
