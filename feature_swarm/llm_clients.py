"""
Agent-calling capability for Feature Swarm.

This module provides:
- ChatProvider protocol: the single capability the lifecycle needs
- ChatMessage / ChatOptions / ChatResponse value types
- ClaudeCliProvider, an async provider backed by the Claude Code CLI

Providers may raise freely; the agent invoker absorbs every exception.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Protocol, Sequence, runtime_checkable

from feature_swarm.errors import AgentInvocationError

if TYPE_CHECKING:
    from feature_swarm.config import ClaudeConfig
    from feature_swarm.logger import SwarmLogger


@dataclass(frozen=True)
class ChatMessage:
    """One message in a chat request."""
    role: str
    content: str


@dataclass(frozen=True)
class ChatOptions:
    """Per-call generation options."""
    system: str = ""
    max_tokens: int = 2048
    temperature: float = 0.3
    model: str = ""


@dataclass
class ChatResponse:
    """Raw provider answer. ``content`` is not assumed to be JSON."""
    content: str
    usage: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class ChatProvider(Protocol):
    """Anything that can answer a chat request asynchronously."""

    async def chat(
        self,
        messages: Sequence[ChatMessage],
        options: ChatOptions,
    ) -> ChatResponse:
        ...


@dataclass
class ClaudeCliProvider:
    """
    Provider for the Claude Code CLI.

    Runs ``claude --print --output-format json`` as an asyncio subprocess
    and returns the ``result`` text of the JSON envelope.
    """

    config: ClaudeConfig
    logger: Optional[SwarmLogger] = None
    working_dir: Optional[str] = None

    def _build_command(self, prompt: str, options: ChatOptions) -> list[str]:
        cmd = [
            self.config.binary,
            "--print",
            "--output-format", "json",
            "--max-turns", "1",
        ]
        model = options.model or self.config.model
        if model:
            cmd.extend(["--model", model])
        if options.system:
            cmd.extend(["--append-system-prompt", options.system])
        # "--" keeps prompts that start with dashes from being read as flags
        cmd.extend(["--", prompt])
        return cmd

    def _log(self, event_type: str, data: Optional[dict] = None, level: str = "info") -> None:
        """Log an event if logger is configured."""
        if self.logger:
            self.logger.log(event_type, data, level=level)

    @staticmethod
    def _render_prompt(messages: Sequence[ChatMessage]) -> str:
        if len(messages) == 1:
            return messages[0].content
        return "\n\n".join(f"[{m.role}]\n{m.content}" for m in messages)

    async def chat(
        self,
        messages: Sequence[ChatMessage],
        options: ChatOptions,
    ) -> ChatResponse:
        """
        Execute one chat request.

        Raises:
            AgentInvocationError: On non-zero exit, timeout, or an
                unparseable CLI envelope.
        """
        prompt = self._render_prompt(messages)
        cmd = self._build_command(prompt, options)

        self._log("claude_invocation_start", {
            "prompt_length": len(prompt),
            "timeout": self.config.timeout_seconds,
        }, level="debug")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.working_dir,
            )
        except FileNotFoundError:
            raise AgentInvocationError(
                f"{self.config.binary} CLI not found. Please install it first."
            )

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self.config.timeout_seconds
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            self._log("claude_invocation_timeout", {
                "timeout_seconds": self.config.timeout_seconds,
            }, level="error")
            raise AgentInvocationError(
                f"Claude CLI timed out after {self.config.timeout_seconds} seconds"
            )

        stderr_text = stderr.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            self._log("claude_invocation_error", {
                "returncode": proc.returncode,
                "stderr": stderr_text[:500],
            }, level="error")
            raise AgentInvocationError(
                f"Claude CLI exited with code {proc.returncode}",
                stderr=stderr_text,
                returncode=proc.returncode if proc.returncode is not None else -1,
            )

        try:
            data = json.loads(stdout.decode("utf-8", errors="replace"))
        except json.JSONDecodeError as e:
            raise AgentInvocationError(f"Failed to parse Claude output as JSON: {e}")

        subtype = data.get("subtype", "")
        if isinstance(subtype, str) and subtype.startswith("error_"):
            raise AgentInvocationError(f"Claude CLI returned error: {subtype}", returncode=0)

        usage = {
            "cost_usd": data.get("total_cost_usd", 0.0),
            "num_turns": data.get("num_turns", 0),
            "duration_ms": data.get("duration_ms", 0),
        }
        self._log("claude_invocation_complete", usage, level="debug")
        return ChatResponse(content=str(data.get("result", "")), usage=usage)
