"""Change feed abstraction — per-job push notifications for live clients."""

import os

_feed_instance = None


def get_feed():
    """Return the configured change feed (singleton).

    Uses the in-memory feed by default. Configure via the
    PACKING_FEED_ADAPTER environment variable.
    """
    global _feed_instance
    if _feed_instance is None:
        adapter = os.environ.get("PACKING_FEED_ADAPTER", "memory")
        if adapter == "memory":
            from packing.feed.memory_adapter import InMemoryChangeFeed

            _feed_instance = InMemoryChangeFeed()
        else:
            raise ValueError(f"Unknown feed adapter: {adapter}")
    return _feed_instance


def reset_feed():
    """Reset the feed singleton (useful for testing)."""
    global _feed_instance
    _feed_instance = None
