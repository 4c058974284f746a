"""Webhook ingress."""

from replybot.webhook.app import create_app
from replybot.webhook.router import WebhookRouter, parse_messages_upsert

__all__ = ["WebhookRouter", "create_app", "parse_messages_upsert"]
