"""
Node.js toolchain runners.

Poseidon (circomlibjs) and Groth16 (snarkjs) run in Node, the same
implementations the circuit was compiled against. This module owns every
subprocess call into that toolchain.
"""
from __future__ import annotations

import asyncio
import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def message(self) -> str:
        """Best human-readable failure text."""
        return (self.stderr.strip() or self.stdout.strip()
                or f"exit status {self.returncode}")


def node_env(node_modules: Optional[Path] = None) -> dict[str, str]:
    env = dict(os.environ)
    if node_modules is not None:
        existing = env.get("NODE_PATH")
        env["NODE_PATH"] = (
            f"{node_modules}{os.pathsep}{existing}" if existing else str(node_modules)
        )
    return env


def run_node_script(
    script: str,
    args: Sequence[str],
    node_bin: str = "node",
    node_modules: Optional[Path] = None,
) -> ToolResult:
    """Run ``node -e script args...`` synchronously."""
    proc = subprocess.run(
        [node_bin, "-e", script, *args],
        capture_output=True,
        text=True,
        env=node_env(node_modules),
        check=False,
    )
    return ToolResult(proc.returncode, proc.stdout, proc.stderr)


async def run_command(
    cmd: Sequence[str],
    cwd: Optional[Path] = None,
    env: Optional[dict[str, str]] = None,
) -> ToolResult:
    """
    Run a command asynchronously and capture its output.

    No timeout is applied. If the awaiting task is cancelled the child
    process is killed before the cancellation propagates.
    """
    logger.debug("Running %s", cmd[0])
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd else None,
        env=env,
    )
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        raise
    return ToolResult(
        proc.returncode if proc.returncode is not None else -1,
        stdout.decode(errors="replace"),
        stderr.decode(errors="replace"),
    )
