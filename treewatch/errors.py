"""
Exceptions raised by the treewatch observation engine.
"""


class TreewatchError(Exception):
    """Base class for treewatch errors."""

    pass


class ContextNotFound(TreewatchError, LookupError):
    """Raised when a root wrapper is not registered with the registry."""

    pass


class InvalidContainer(TreewatchError, TypeError):
    """Raised when create() is given something that cannot be observed."""

    pass
