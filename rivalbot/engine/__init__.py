"""Content strategy recommendations."""

from rivalbot.engine.content_strategy import compare_content_updates

__all__ = ["compare_content_updates"]
