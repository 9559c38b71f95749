"""UIDHound: topic UID index for DocFX projects."""

from uidhound.core.models.topic import CoarseType, Topic, TopicType
from uidhound.services.change_watcher import ChangeType, TopicChange, TopicChangeWatcher
from uidhound.services.topic_cache import TopicCache

__all__ = [
    "ChangeType",
    "CoarseType",
    "Topic",
    "TopicCache",
    "TopicChange",
    "TopicChangeWatcher",
    "TopicType",
]
