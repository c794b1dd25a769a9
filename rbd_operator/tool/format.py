"""Library for formatting output."""

from abc import ABC, abstractmethod
from typing import Any

import sys
from typing import TextIO
import yaml
import json


PADDING = 4


class StructFormatter(ABC):
    """A formatter that prints a list of objects."""

    @abstractmethod
    def print(self, data: list[Any], file: TextIO = sys.stdout) -> None:
        """Print the data objects."""


class YamlFormatter(StructFormatter):
    """A formatter that prints one yaml document per object."""

    def print(self, data: list[Any], file: TextIO = sys.stdout) -> None:
        """Format the data objects."""
        print(
            yaml.dump_all(data, sort_keys=False, explicit_start=True, allow_unicode=True),
            end="",
            file=file,
        )


class JsonFormatter(StructFormatter):
    """A formatter that prints a json list."""

    def print(self, data: list[Any], file: TextIO = sys.stdout) -> None:
        """Format the data objects."""
        json.dump(data, sort_keys=False, indent=4, ensure_ascii=False, fp=file)
        print(file=file)


FORMATTERS: dict[str, type[StructFormatter]] = {
    "yaml": YamlFormatter,
    "json": JsonFormatter,
}


def print_columns(
    headers: list[str], rows: list[list[str]], file: TextIO = sys.stdout
) -> None:
    """Print the rows aligned in columns sized to the widest value."""
    data = [headers] + rows
    widths = [max(len(str(row[i])) for row in data) for i in range(len(headers))]
    format_string = "".join([f"{{:{w + PADDING}}}" for w in widths])
    for row in data:
        print(format_string.format(*[str(x) for x in row]).rstrip(), file=file)
