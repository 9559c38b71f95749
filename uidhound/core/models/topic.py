from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class CoarseType(str, Enum):
    """Which extraction path produced a topic."""

    CONCEPTUAL = "Conceptual"
    MANAGED_REFERENCE = "ManagedReference"


class TopicType(str, Enum):
    """Well-known topic types used to filter topic lists."""

    CONCEPTUAL = "Conceptual"
    NAMESPACE = "Namespace"
    TYPE = "Type"
    PROPERTY = "Property"
    METHOD = "Method"
    POWERSHELL_CMDLET = "PowerShellCmdlet"
    OTHER = "Other"


@dataclass
class Topic:
    """Metadata for a single documentable unit, keyed by its UID."""

    uid: str
    coarse_type: CoarseType
    detailed_type: TopicType
    source_file: str
    name: str = ""
    title: str = ""
    member_type: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.uid
        if not self.title:
            self.title = self.name

    def copy(self) -> Topic:
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the snapshot wire representation.

        Returns:
            Dictionary keyed by the persisted (camelCase) field names
        """
        data: dict[str, Any] = {
            "uid": self.uid,
            "coarseType": self.coarse_type.value,
            "detailedType": self.detailed_type.value,
            "sourceFile": self.source_file,
            "name": self.name,
            "title": self.title,
        }
        if self.member_type is not None:
            data["memberType"] = self.member_type
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Topic:
        """Build a topic from its snapshot representation.

        Raises:
            ValueError: If the record is not a mapping, has no UID or source
                file, or carries an unknown coarse / detailed type
        """
        if not isinstance(data, dict):
            raise ValueError(f"Topic record must be an object, got {type(data).__name__}")
        uid = data.get("uid")
        if not isinstance(uid, str) or not uid:
            raise ValueError("Topic record has no uid")
        source_file = data.get("sourceFile")
        if not isinstance(source_file, str) or not source_file:
            raise ValueError(f"Topic {uid!r} has no sourceFile")
        member_type = data.get("memberType")
        return cls(
            uid=uid,
            coarse_type=CoarseType(data.get("coarseType")),
            detailed_type=TopicType(data.get("detailedType")),
            source_file=source_file,
            name=str(data.get("name") or ""),
            title=str(data.get("title") or ""),
            member_type=str(member_type) if member_type is not None else None,
        )
