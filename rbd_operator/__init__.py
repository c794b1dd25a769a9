"""
Desired state of the components managed by the Rainbond cluster operator.

A component handler turns the declared intent of a component and the facts
about its cluster into the kubernetes objects that should exist for it.
"""

__all__ = [
    "cluster",
    "manifest",
    "merge",
    "topology",
    "handler",
    "render",
    "store",
    "exceptions",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
