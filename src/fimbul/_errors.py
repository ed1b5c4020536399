"""Errors raised while defining and evaluating computation nodes."""

from collections.abc import Hashable


class FimbulError(Exception):
    """Base class for all fimbul errors."""


class DuplicateKeyError(FimbulError):
    """Raised when a node is defined under a key that is already registered."""

    def __init__(self, key: Hashable) -> None:
        self.key = key
        super().__init__(f"Node {key!r} already exists")


class UnknownDependencyError(FimbulError):
    """Raised when a node declares a dependency that has not been defined yet."""

    def __init__(self, key: Hashable, dependency: Hashable) -> None:
        self.key = key
        self.dependency = dependency
        super().__init__(f"Node {key!r} depends on {dependency!r}, which has not been defined yet")


class UndefinedNodeError(FimbulError, LookupError):
    """Raised when a requested node key is not registered."""

    def __init__(self, key: Hashable) -> None:
        self.key = key
        super().__init__(f"Node {key!r} is not defined")


class DependencyResolutionError(FimbulError):
    """Raised by the async evaluator when resolving a dependency fails.

    Attributes:
        key: The dependency whose resolution failed.
        dependent: The node that was being resolved when the dependency failed.
        error: The wrapped error, also available as ``__cause__``.

    """

    def __init__(self, key: Hashable, dependent: Hashable, error: BaseException) -> None:
        self.key = key
        self.dependent = dependent
        self.error = error
        super().__init__(f"Failed to resolve dependency {key!r} of {dependent!r}: {error}")

    @property
    def root_cause(self) -> BaseException:
        """The innermost error, unwrapping nested dependency failures."""
        error: BaseException = self.error
        while isinstance(error, DependencyResolutionError):
            error = error.error
        return error
