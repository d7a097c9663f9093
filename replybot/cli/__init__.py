"""CLI module for ReplyBot."""
