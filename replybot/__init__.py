"""
replybot - debounced WhatsApp replies driven by a tool-calling model
"""

__version__ = "0.1.0"
__logo__ = "💈"
