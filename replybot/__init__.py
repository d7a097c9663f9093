"""
ReplyBot - automated inbound-message reply engine.
"""

__version__ = "2.1.0"
__logo__ = "💬"
