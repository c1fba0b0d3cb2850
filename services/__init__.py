"""Services layer - league logic separated from Discord API."""
from .activity_tracker import ActivityTracker
from .gateway import MemberGateway
from .news_feeds import NewsFeedService
from .welcome import WelcomeService

__all__ = [
    "ActivityTracker",
    "MemberGateway",
    "NewsFeedService",
    "WelcomeService",
]
