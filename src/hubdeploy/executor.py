"""Runs deployment commands and captures their combined output."""

from __future__ import annotations

import logging
import subprocess
import uuid
from pathlib import Path
from typing import List, Tuple

from .config import DeploymentConfig
from .models import DeploymentError

logger = logging.getLogger(__name__)


def split_command(command: List[str]) -> Tuple[str, List[str]]:
    """Splits a command line into the executable and its arguments."""
    if not command:
        return "", []
    return command[0], list(command[1:])


def run_deployment(deployment: DeploymentConfig) -> Tuple[uuid.UUID, bytes, DeploymentError | None]:
    """Runs the deployment command inside its work dir.

    The command is started with ``cwd`` set instead of changing the process
    working directory, so nothing process-wide is touched. Only the dispatcher
    calls this, one deployment at a time.

    Returns the result id, the combined stdout/stderr and an error, if any.
    Output is returned on failure too.
    """
    result_id = uuid.uuid1()
    logger.info("%s> starting %r deployment in %r", result_id, deployment.type, deployment.work_dir)

    work_dir = Path(deployment.work_dir)
    if not work_dir.is_dir():
        return result_id, b"", DeploymentError(
            f"{result_id}> chdir to {deployment.work_dir!r} failed: not a directory"
        )

    executable, args = split_command(deployment.command)
    if not executable:
        return result_id, b"", DeploymentError(f"{result_id}> no command to run")

    try:
        completed = subprocess.run(
            [executable, *args],
            cwd=str(work_dir),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            check=False,
        )
    except OSError as exc:
        return result_id, b"", DeploymentError(f"{result_id}> execution failed with {exc}")

    output = completed.stdout or b""
    if completed.returncode != 0:
        text = output.decode("utf-8", errors="replace")
        return result_id, output, DeploymentError(
            f"{result_id}> execution failed with exit status {completed.returncode}: {text}",
            output=output,
            returncode=completed.returncode,
        )

    logger.debug("%s", output.decode("utf-8", errors="replace"))
    logger.info("%s> completed without errors.", result_id)
    return result_id, output, None
