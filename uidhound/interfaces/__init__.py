"""Narrow interfaces consumed by the topic cache."""
