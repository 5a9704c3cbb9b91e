"""Subprocess-based generator adapter for the ``claude`` CLI."""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
from collections.abc import Sequence
from pathlib import Path

from dirqueue.domain.errors import GeneratorError

logger = logging.getLogger(__name__)

MAX_OUTPUT_BYTES = 10 * 1024 * 1024
_STDERR_TAIL_CHARS = 500


@dataclasses.dataclass
class CliGenerator:
    """
    Run the generator as a child process, one call per job.

    Parameters
    ----------
    command          : executable plus any fixed leading arguments
    workdir          : working directory of the child (the tool keys its
                       conversation history on it)
    timeout          : seconds before the child is terminated; None waits forever
    max_output_bytes : stdout larger than this is treated as a failure
    """

    command: Sequence[str] = ("claude",)
    workdir: Path | None = None
    timeout: float | None = None
    max_output_bytes: int = MAX_OUTPUT_BYTES

    def build_args(
        self,
        prompt: str,
        *,
        continue_conversation: bool,
        model: str | None = None,
    ) -> list[str]:
        args = [*self.command, "--dangerously-skip-permissions"]
        if model:
            args += ["--model", model]
        if continue_conversation:
            args.append("-c")
        args += ["-p", prompt]
        return args

    async def generate(
        self,
        prompt: str,
        *,
        continue_conversation: bool,
        model: str | None = None,
    ) -> str:
        args = self.build_args(
            prompt, continue_conversation=continue_conversation, model=model
        )
        logger.debug(
            "Invoking %s (model=%s, continue=%s)",
            args[0],
            model or "default",
            continue_conversation,
        )
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                cwd=self.workdir,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise GeneratorError(f"Generator command not found: {args[0]}") from exc
        except OSError as exc:
            raise GeneratorError(f"Generator failed to start: {exc}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except TimeoutError as exc:
            await _terminate(process)
            raise GeneratorError(
                f"Generator timed out after {self.timeout}s", timed_out=True
            ) from exc
        except asyncio.CancelledError:
            await _terminate(process)
            raise

        stderr_text = stderr.decode("utf-8", errors="replace")[-_STDERR_TAIL_CHARS:]
        if process.returncode != 0:
            raise GeneratorError(
                f"Generator exited with code {process.returncode}: {stderr_text.strip()}",
                exit_code=process.returncode,
                stderr=stderr_text,
            )
        if len(stdout) > self.max_output_bytes:
            raise GeneratorError(
                f"Generator output exceeds {self.max_output_bytes} bytes",
                exit_code=process.returncode,
            )
        return stdout.decode("utf-8", errors="replace")


async def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.terminate()
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(process.wait(), timeout=2)
    except TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()
