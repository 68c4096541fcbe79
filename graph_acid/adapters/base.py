r"""
Base store adapter with common functionality.

Provides the adapter registry and the lifecycle shared by every store.

    from graph_acid.adapters.base import BaseStore

    class MyStore(BaseStore):
        def begin(self) -> Any:
            ...
"""

from abc import ABC, abstractmethod
from typing import Any

from graph_acid.operations import Operation
from graph_acid.types import Payload

__all__ = ["BaseStore", "AdapterRegistry"]


class AdapterRegistry:
    """Registry for store adapters."""

    _adapters: dict[str, type["BaseStore"]] = {}

    @classmethod
    def register(cls, name: str) -> Any:
        """Decorator to register an adapter class."""

        def decorator(adapter_cls: type["BaseStore"]) -> type["BaseStore"]:
            cls._adapters[name] = adapter_cls
            return adapter_cls

        return decorator

    @classmethod
    def get(cls, name: str) -> type["BaseStore"] | None:
        """Get adapter class by name."""
        return cls._adapters.get(name)

    @classmethod
    def list(cls) -> list[str]:
        """List registered adapter names."""
        return list(cls._adapters.keys())

    @classmethod
    def create(cls, name: str, **kwargs: Any) -> "BaseStore":
        """Create adapter instance by name."""
        adapter_cls = cls.get(name)
        if adapter_cls is None:
            valid = ", ".join(cls.list()) or "none"
            msg = f"Unknown store '{name}'. Registered: {valid}"
            raise ValueError(msg)
        return adapter_cls(**kwargs)


class BaseStore(ABC):
    """Base class for transactional store adapters.

    Subclasses implement the five transactional operations; connection
    handling, context management and repr are shared.
    """

    _connected: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable store name."""
        ...

    @property
    def version(self) -> str:
        """Store version string."""
        return "unknown"

    @property
    def connected(self) -> bool:
        """Whether adapter is currently connected."""
        return self._connected

    @abstractmethod
    def connect(self, *, uri: str | None = None, **kwargs: Any) -> None:
        """Establish connection to the store."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection to the store."""
        ...

    @abstractmethod
    def begin(self) -> Any:
        """Open a transaction and return its handle."""
        ...

    @abstractmethod
    def commit(self, tx: Any) -> None:
        """Commit the transaction."""
        ...

    @abstractmethod
    def abort(self, tx: Any) -> None:
        """Roll back the transaction, releasing its resources."""
        ...

    @abstractmethod
    def execute(self, tx: Any, operation: Operation, parameters: Payload) -> Payload:
        """Execute a named operation inside the transaction."""
        ...

    @abstractmethod
    def wipe(self) -> None:
        """Delete all data."""
        ...

    def __enter__(self) -> "BaseStore":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - disconnect."""
        if self._connected:
            self.disconnect()

    def __repr__(self) -> str:
        status = "connected" if self._connected else "disconnected"
        return f"{self.__class__.__name__}({self.name}, {status})"
