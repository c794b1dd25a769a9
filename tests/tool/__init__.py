"""Test helpers for rbd-operator tools."""

import asyncio
from dataclasses import dataclass
import os
import subprocess
import sys

TESTDATA = "tests/testdata/cluster.yaml"


@dataclass
class CommandResult:
    """Output of a finished command."""

    returncode: int
    stdout: str
    stderr: str


async def run_command(
    args: list[str], env: dict[str, str] | None = None
) -> CommandResult:
    """Run the rbd-operator command line tool in a subprocess."""
    proc = await asyncio.create_subprocess_exec(
        sys.executable,
        "-m",
        "rbd_operator",
        *args,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env={**os.environ, **(env or {})},
    )
    out, err = await proc.communicate()
    return CommandResult(
        returncode=proc.returncode or 0,
        stdout=out.decode("utf-8"),
        stderr=err.decode("utf-8"),
    )
