"""rbd-operator build action."""

from argparse import (
    ArgumentParser,
    BooleanOptionalAction,
    _SubParsersAction as SubParsersAction,
)
import logging
import pathlib
from typing import cast

from rbd_operator.render import render_component

from . import selector
from .format import FORMATTERS

_LOGGER = logging.getLogger(__name__)


class BuildAction:
    """rbd-operator build action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "build",
                help="Build the objects of a component from a cluster state file",
                description="""Render the objects a component handler would apply
                    for the component, including the claims that are only created
                    when missing.""",
            ),
        )
        selector.add_component_flags(args)
        args.add_argument(
            "--output",
            "-o",
            choices=sorted(FORMATTERS),
            default="yaml",
            help="Output format of the command",
        )
        args.add_argument(
            "--create-if-not-exists",
            type=bool,
            action=BooleanOptionalAction,
            default=True,
            help="Include objects that are only created when missing",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        path: pathlib.Path,
        component: str,
        namespace: str | None,
        output: str,
        create_if_not_exists: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        handler = await selector.build_handler(path, component, namespace)
        rendered = render_component(handler)
        objects = rendered.objects() if create_if_not_exists else rendered.resources
        FORMATTERS[output]().print([obj.to_doc() for obj in objects])
