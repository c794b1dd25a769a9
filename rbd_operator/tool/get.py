"""rbd-operator get action."""

import logging
import pathlib
from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
from typing import cast

from rbd_operator.handler import PodLister, Replicaser

from . import selector
from .format import print_columns


_LOGGER = logging.getLogger(__name__)


class GetReplicasAction:
    """Get the desired replica count of a component."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "replicas",
                help="Get the desired replica count of a component",
                description="Print the number of replicas the component handler declares",
            ),
        )
        selector.add_component_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        path: pathlib.Path,
        component: str,
        namespace: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        handler = await selector.build_handler(path, component, namespace)
        if not isinstance(handler, Replicaser):
            print(f"Component {component} does not declare replicas")
            return
        print(handler.replicas())


class GetPodsAction:
    """Get the pods of a component."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "pods",
                aliases=["pod"],
                help="Get the pods of a component",
                description="Print the pods in the cluster state selected by the component labels",
            ),
        )
        selector.add_component_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        path: pathlib.Path,
        component: str,
        namespace: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        handler = await selector.build_handler(path, component, namespace)
        if not isinstance(handler, PodLister):
            print(f"Component {component} does not list pods")
            return
        pods = handler.list_pods()
        if not pods:
            print(f"No pods found for component {component}")
            return
        rows = [
            [
                pod.namespace or "",
                pod.name,
                (pod.status.phase if pod.status else None) or "Unknown",
            ]
            for pod in pods
        ]
        print_columns(["NAMESPACE", "NAME", "PHASE"], rows)


class GetAction:
    """Get details about a component."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "get",
                help="Print information about a component",
                description="Print information about a component in a cluster state file",
            ),
        )
        subcmds = args.add_subparsers(
            title="Available commands",
            required=True,
        )
        GetReplicasAction.register(subcmds)
        GetPodsAction.register(subcmds)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        # No-op given subcommands are always the dispatch target
