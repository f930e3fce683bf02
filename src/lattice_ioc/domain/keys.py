from typing import Any


def describe_key(key: Any) -> str:
    """Return a readable label for a definition name or capability key.

    Args:
        key: A string name or a type used as a capability.

    Returns:
        The string itself, or the qualified name of a type.
    """
    if isinstance(key, str):
        return key
    return getattr(key, "__qualname__", None) or repr(key)
