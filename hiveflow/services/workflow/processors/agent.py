"""Agent Node Processor.

Agent nodes run a coding agent CLI through the task collaborator:

    claude-code: claude -p <prompt>
    codex:       codex exec <prompt>
    custom:      config.command with {{prompt}} replaced
"""

import json
import shlex
from datetime import UTC, datetime
from typing import Any

from hiveflow.models.enums import AgentType, NodeType
from hiveflow.schemas.graph import AgentConfig, AgentNode
from hiveflow.services.workflow.interfaces import TaskExecutionRequest
from hiveflow.services.workflow.processors.base import BaseProcessor
from hiveflow.services.workflow.processors.task import TaskDelegationMixin

PROMPT_PLACEHOLDER = "{{prompt}}"


def render_prompt(prompt: str, node_input: Any, now: datetime) -> str:
    """Substitute ``{{input}}`` and ``{{timestamp}}`` in a prompt template."""
    rendered_input = (
        node_input if isinstance(node_input, str) else json.dumps(node_input, default=str)
    )
    return prompt.replace("{{input}}", rendered_input).replace(
        "{{timestamp}}", now.isoformat()
    )


class AgentNodeProcessor(TaskDelegationMixin, BaseProcessor[AgentNode]):
    node_type = NodeType.AGENT

    async def process(self, node_input: Any) -> dict[str, Any]:
        agent_config = self.node.data.agent_config
        if agent_config is None:
            raise self.configuration_error("Agent node has no agentConfig")
        if not agent_config.prompt.strip():
            raise self.configuration_error("Agent prompt is empty")

        prompt = agent_config.prompt
        if agent_config.template_variables:
            prompt = render_prompt(prompt, node_input, datetime.now(UTC))

        timeout = (
            agent_config.timeout / 1000
            if agent_config.timeout
            else self.settings.TASK_TIMEOUT_SECONDS
        )
        state = await self.run_task(
            TaskExecutionRequest(
                task_ref=f"agent:{self.node.id}",
                command=self._command(agent_config, prompt),
                cwd=self.node.data.config.get("workingDirectory"),
            ),
            timeout=timeout,
        )

        return {
            "agentType": agent_config.agent_type.value,
            "prompt": prompt,
            "executionId": state.execution_id,
            "output": state.output,
            "completedAt": datetime.now(UTC).isoformat(),
        }

    def _command(self, agent_config: AgentConfig, prompt: str) -> str:
        quoted = shlex.quote(prompt)
        match agent_config.agent_type:
            case AgentType.CLAUDE_CODE:
                return f"claude -p {quoted}"
            case AgentType.CODEX:
                return f"codex exec {quoted}"
            case AgentType.CUSTOM:
                template = self.node.data.config.get("command")
                if not template:
                    raise self.configuration_error("Custom agent needs config.command")
                return template.replace(PROMPT_PLACEHOLDER, quoted)
