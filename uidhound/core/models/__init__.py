from .topic import CoarseType, Topic, TopicType

__all__ = ["CoarseType", "Topic", "TopicType"]
