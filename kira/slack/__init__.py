"""
Slack Integration
=================

Slack transport for the assistant: the Bolt app and its event handlers.
"""

from kira.slack.app import create_slack_app, create_socket_handler
from kira.slack.handlers import register_handlers

__all__ = ["create_slack_app", "create_socket_handler", "register_handlers"]
