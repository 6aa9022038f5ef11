from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, FrozenSet, Iterable, Mapping, Optional, Type

from commerce_adaptor.core.exceptions import ConstructionError
from commerce_adaptor.core.logging import get_logger

logger = get_logger(__name__)

AdaptorFactoryFunc = Callable[[Mapping[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class AdaptorDescriptor:
    """
    Metadata and constructor for one adaptor type.

    Attributes:
        vendor: Unique vendor tag; None means the adaptor can only be
            resolved by configuration shape
        config_schema: Configuration fields the adaptor requires
        factory: Async callable building a ready adaptor from a configuration
        adaptor_type: Family the adaptor belongs to, used to filter resolution
        name: Human readable name for logs
    """

    vendor: Optional[str]
    config_schema: FrozenSet[str]
    factory: AdaptorFactoryFunc = field(compare=False)
    adaptor_type: str = "commerce"
    name: str = ""

    def __post_init__(self):
        object.__setattr__(self, "config_schema", frozenset(self.config_schema))
        if not self.name:
            object.__setattr__(self, "name", self.vendor or getattr(self.factory, "__qualname__", "adaptor"))

    @classmethod
    def for_class(cls, adaptor_class: Type, adaptor_type: str = "commerce") -> "AdaptorDescriptor":
        """
        Describe an adaptor class from its VENDOR and CONFIG_SCHEMA attributes.

        The class must provide an async ``create(config)`` classmethod.
        """
        if not callable(getattr(adaptor_class, "create", None)):
            raise ValueError(f"{adaptor_class.__name__} has no create(config) classmethod")

        return cls(
            vendor=getattr(adaptor_class, "VENDOR", None),
            config_schema=frozenset(getattr(adaptor_class, "CONFIG_SCHEMA", ())),
            factory=adaptor_class.create,
            adaptor_type=adaptor_type,
            name=adaptor_class.__name__
        )

    def missing_fields(self, config: Mapping[str, Any]) -> FrozenSet[str]:
        return self.config_schema - set(config)

    def matches(self, config_keys: Iterable[str]) -> bool:
        """True if every required field is among ``config_keys``."""
        return self.config_schema <= set(config_keys)

    async def construct(self, config: Mapping[str, Any]) -> Any:
        """
        Build an adaptor instance for ``config``.

        Raises:
            ConstructionError: If required fields are missing or the factory fails
        """
        missing = self.missing_fields(config)
        if missing:
            raise ConstructionError(
                f"Cannot construct {self.name}: missing fields {', '.join(sorted(missing))}",
                vendor=self.vendor,
                context={"fields": sorted(missing)}
            )

        try:
            instance = await self.factory(config)
        except ConstructionError:
            raise
        except Exception as e:
            logger.error(f"Error constructing {self.name} adaptor: {str(e)}")
            raise ConstructionError(
                f"Failed to construct {self.name} adaptor: {str(e)}",
                vendor=self.vendor,
                original_exception=e
            ) from e

        logger.info(f"Constructed {self.name} adaptor")
        return instance
