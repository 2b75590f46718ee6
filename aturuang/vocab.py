"""Closed vocabularies shared by the prompt, the normalizer and the bot icons."""

from enum import Enum


class Category(str, Enum):
    FOOD = "food"
    COFFEE = "coffee"
    TRANSPORT = "transport"
    SHOPPING = "shopping"
    ENTERTAINMENT = "entertainment"
    BILLS = "bills"
    HEALTH = "health"
    GROCERIES = "groceries"
    SNACK = "snack"
    DRINK = "drink"
    OTHER = "other"

    @property
    def emoji(self) -> str:
        return _CATEGORY_EMOJI[self]

    @classmethod
    def coerce(cls, value: str) -> "Category":
        """Map a model-supplied category onto the closed set, falling back to OTHER."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.OTHER


class Mood(str, Enum):
    HAPPY = "happy"
    SATISFIED = "satisfied"
    EXCITED = "excited"
    NEUTRAL = "neutral"
    RELUCTANT = "reluctant"
    REGRET = "regret"
    GUILTY = "guilty"

    @property
    def emoji(self) -> str:
        return _MOOD_EMOJI[self]


_CATEGORY_EMOJI = {
    Category.FOOD: "🍔",
    Category.COFFEE: "☕",
    Category.TRANSPORT: "🚗",
    Category.SHOPPING: "🛍",
    Category.ENTERTAINMENT: "🎮",
    Category.BILLS: "📄",
    Category.HEALTH: "💊",
    Category.GROCERIES: "🥬",
    Category.SNACK: "🍿",
    Category.DRINK: "🥤",
    Category.OTHER: "💸",
}

_MOOD_EMOJI = {
    Mood.HAPPY: "😊",
    Mood.SATISFIED: "😌",
    Mood.EXCITED: "🤩",
    Mood.NEUTRAL: "😐",
    Mood.RELUCTANT: "😕",
    Mood.REGRET: "😔",
    Mood.GUILTY: "😣",
}


def category_emoji(category: str) -> str:
    return Category.coerce(category).emoji


def mood_emoji(mood: str | None) -> str:
    """Icon for a mood, or an empty string for absent or unrecognised moods."""
    if not mood:
        return ""
    try:
        return Mood(mood.strip().lower()).emoji
    except ValueError:
        return ""
