"""
GeneratorPort — boundary around the external text-generation tool.

The tool is opaque: a prompt goes in, text comes out, or the call fails with
GeneratorError. The tool keeps conversational state between calls, which is
why the coordinator never invokes it concurrently.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class GeneratorPort(Protocol):
    async def generate(
        self,
        prompt: str,
        *,
        continue_conversation: bool,
        model: str | None = None,
    ) -> str:
        """
        Produce a response for `prompt`.

        Parameters
        ----------
        prompt                : message text, passed through verbatim
        continue_conversation : False starts a fresh conversation
        model                 : concrete model id, or None for the tool default

        Raises
        ------
        GeneratorError   on non-zero exit, timeout, or failure to start
        """
        ...
