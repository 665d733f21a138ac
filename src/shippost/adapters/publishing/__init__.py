"""Publishing adapters."""

from shippost.adapters.publishing.post_bridge import PostBridgePublisher

__all__ = ["PostBridgePublisher"]
