"""Messaging gateway clients."""

from replybot.gateway.base import MessagingGateway, RawMessageRecord
from replybot.gateway.evolution import EvolutionGateway

__all__ = ["EvolutionGateway", "MessagingGateway", "RawMessageRecord"]
