"""Models for vocabulary items, skill tiers and session cards."""
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Tuple, Union

ItemId = Union[int, str]

# Learner default meaning "pick the tier from the card's history"
AUTO_TIER = 0


class SkillTier(IntEnum):
    """Difficulty tiers, each with its own interaction mode."""
    BEGINNER = 1  # Multiple choice
    INTERMEDIATE = 2  # Typed, diacritics and one typo tolerated
    ADVANCED = 3  # Typed, exact

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def next_tier(self) -> Optional["SkillTier"]:
        """The tier above this one, or None at the top."""
        if self is SkillTier.ADVANCED:
            return None
        return SkillTier(self.value + 1)

    @classmethod
    def parse(cls, value: Any) -> "SkillTier":
        """Coerce a stored or user-supplied value into a tier."""
        if isinstance(value, SkillTier):
            return value
        if isinstance(value, str) and not value.isdigit():
            return cls[value.upper()]
        return cls(int(value))


class CardKind(Enum):
    """Why a card is part of a session."""
    NEW = "new"
    REVIEW = "review"


@dataclass(frozen=True)
class VocabularyItem:
    """A learnable word of one language pair."""
    id: ItemId
    term: str
    translation: str
    category: str = "basics"
    base_difficulty: int = 1
    romanization: str = ""
    alternate_translations: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def key(self) -> str:
        """Progress documents key items by the string form of their id."""
        return str(self.id)

    @property
    def accepted_translations(self) -> Tuple[str, ...]:
        return (self.translation, *self.alternate_translations)

    def with_alternate(self, translation: str) -> "VocabularyItem":
        """Return a copy that also accepts ``translation``."""
        if translation in self.accepted_translations:
            return self
        return VocabularyItem(
            id=self.id,
            term=self.term,
            translation=self.translation,
            category=self.category,
            base_difficulty=self.base_difficulty,
            romanization=self.romanization,
            alternate_translations=self.alternate_translations + (translation,),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the vocabulary file field names."""
        data = {
            "id": self.id,
            "word": self.term,
            "translation": self.translation,
            "romanization": self.romanization,
            "category": self.category,
            "difficulty": self.base_difficulty,
        }
        if self.alternate_translations:
            data["alternates"] = list(self.alternate_translations)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VocabularyItem":
        return cls(
            id=data["id"],
            term=data["word"],
            translation=data["translation"],
            category=data.get("category") or "basics",
            base_difficulty=int(data.get("difficulty") or 1),
            romanization=data.get("romanization") or "",
            alternate_translations=tuple(data.get("alternates") or ()),
        )


@dataclass(frozen=True)
class SessionCard:
    """An item scheduled into a session, tagged new or review."""
    item: VocabularyItem
    kind: CardKind

    def to_dict(self) -> Dict[str, Any]:
        return {"item": self.item.to_dict(), "kind": self.kind.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionCard":
        return cls(item=VocabularyItem.from_dict(data["item"]), kind=CardKind(data["kind"]))
