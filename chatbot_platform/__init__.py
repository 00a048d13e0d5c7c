"""
Chatbot Platform: register, create system-prompt agents ("projects") and hold
persistent per-project conversations with a chat-completion API.
"""

from .app import ChatbotPlatform
from .services.conversation import ConversationState

__all__ = ["ChatbotPlatform", "ConversationState"]
