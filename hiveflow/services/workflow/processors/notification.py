"""Notification Node Processor."""

import json
from typing import Any

from hiveflow.models.enums import NodeType
from hiveflow.schemas.graph import NotificationNode
from hiveflow.services.workflow.interfaces import NotificationRequest
from hiveflow.services.workflow.processors.base import BaseProcessor


class NotificationNodeProcessor(BaseProcessor[NotificationNode]):
    """Sends a message through the notification collaborator.

    ``config.message`` defaults to the node input rendered as JSON.
    Delivery errors fail the node; transport errors are retried when the
    node sets ``config.retries``.
    """

    node_type = NodeType.NOTIFICATION

    async def process(self, node_input: Any) -> dict[str, Any]:
        channel = self.node.data.notification_type
        if channel is None:
            raise self.configuration_error("Notification node has no notificationType")

        notifier = self.dependencies.notifier
        if notifier is None:
            raise self.configuration_error("Notifier not configured")

        config = self.node.data.config
        message = config.get("message") or json.dumps(node_input, indent=2, default=str)
        await notifier.send(
            NotificationRequest(
                channel=channel,
                message=message,
                title=config.get("title"),
                webhook_url=config.get("webhookUrl"),
                email_to=config.get("emailTo"),
            )
        )
        return {"notified": True, "type": channel.value}
