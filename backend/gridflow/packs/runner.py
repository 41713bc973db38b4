"""Server side of the runner boundary: run a pack's runner.py in a subprocess.

The payload goes to the runner on stdin as JSON; whatever JSON object it
prints on stdout is the answer. Failures are reported as ``{"error": ...}``
mappings rather than raised, so the HTTP layer can pass them straight on.
"""
import asyncio
import json
import shlex
import shutil
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from .manifest import pack_dir


def find_python(candidates: list[str]) -> list[str]:
    """First candidate interpreter found on PATH, else the current one."""
    for candidate in candidates:
        argv = shlex.split(candidate)
        if argv and shutil.which(argv[0]):
            return argv
    return [sys.executable]


async def run_pack(
    root: Path,
    slug: str,
    payload: dict[str, Any],
    python_candidates: list[str],
    timeout: float = 120.0,
) -> dict[str, Any]:
    directory = pack_dir(root, slug)
    if directory is None:
        return {"error": "Invalid pack"}
    runner = directory / "runner.py"
    if not runner.is_file():
        return {"error": f"runner.py not found for pack '{directory.name}'"}

    argv = [*find_python(python_candidates), str(runner)]
    logger.debug(f"Starting runner for {directory.name}: {argv}")
    proc = await asyncio.create_subprocess_exec(
        *argv,
        cwd=str(directory),
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        out, err = await asyncio.wait_for(
            proc.communicate(json.dumps(payload).encode("utf-8")), timeout=timeout,
        )
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        logger.warning(f"Runner for {directory.name} timed out after {timeout}s")
        return {"error": "runner timeout"}

    stdout = out.decode("utf-8", errors="replace")
    stderr = err.decode("utf-8", errors="replace")
    if proc.returncode != 0 and not stdout.strip():
        return {"error": f"runner exited with code {proc.returncode}", "stderr": stderr,
                "code": proc.returncode}
    try:
        decoded = json.loads(stdout)
    except json.JSONDecodeError:
        return {"error": "invalid JSON from runner", "raw": stdout, "stderr": stderr}
    if not isinstance(decoded, dict):
        return {"error": "runner must print a JSON object", "raw": stdout}
    return decoded
