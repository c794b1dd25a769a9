"""Run a single reconciliation pass of a component handler.

This drives a handler the same way the reconciliation loop does, without
applying anything: the optional capabilities are only used when the handler
implements them.
"""

from dataclasses import dataclass, field
import logging

from .context import trace_step
from .handler import ComponentHandler, Replicaser, ResourcesCreator
from .manifest import KubernetesObject

__all__ = ["RenderedComponent", "render_component"]

_LOGGER = logging.getLogger(__name__)


@dataclass
class RenderedComponent:
    """The desired state produced by one pass of a handler."""

    resources: list[KubernetesObject]
    """Objects created or updated on every pass."""

    create_if_not_exists: list[KubernetesObject] = field(default_factory=list)
    """Objects only created when missing."""

    replicas: int | None = None
    """Desired replica count, for handlers that declare one."""

    def objects(self) -> list[KubernetesObject]:
        """Return all objects, the create-only objects first."""
        return self.create_if_not_exists + self.resources


def render_component(handler: ComponentHandler) -> RenderedComponent:
    """Resolve and render the handler's desired state.

    A failure while resolving propagates and nothing is rendered.
    """
    name = type(handler).__name__
    with trace_step(f"render {name}"):
        handler.before()
        result = RenderedComponent(resources=handler.resources())
        if isinstance(handler, ResourcesCreator):
            result.create_if_not_exists = handler.resources_create_if_not_exists()
        if isinstance(handler, Replicaser):
            result.replicas = handler.replicas()
        handler.after()
    _LOGGER.debug(
        "Rendered %d objects for %s (replicas=%s)",
        len(result.objects()),
        name,
        result.replicas,
    )
    return result
