"""Category and source-category enumerations."""

from enum import Enum


class Category(str, Enum):
    """Topical categories, in tie-break order."""
    MODEL_RELEASE = "model-release"
    RESEARCH_PAPER = "research-paper"
    DEVELOPER_TOOL = "developer-tool"
    PRODUCT_LAUNCH = "product-launch"
    TUTORIAL_GUIDE = "tutorial-guide"
    INDUSTRY_NEWS = "industry-news"
    AI_AGENTS = "ai-agents"
    CREATIVE_AI = "creative-ai"
    INFRASTRUCTURE = "infrastructure"
    SAFETY_ETHICS = "safety-ethics"

    @property
    def label(self) -> str:
        """Human readable name, e.g. ``model release``."""
        return self.value.replace("-", " ")

    @classmethod
    def from_label(cls, value: str) -> "Category | None":
        """Look up a category by identifier or readable label."""
        normalized = value.strip().lower().replace(" ", "-")
        for category in cls:
            if category.value == normalized:
                return category
        return None


CATEGORY_ORDER: tuple[Category, ...] = tuple(Category)

# Catch-all category used when nothing more specific applies
GENERAL_CATEGORY = Category.INDUSTRY_NEWS


class SourceCategory(str, Enum):
    """Kind of feed an item came from."""
    NEWS_OUTLET = "news-outlet"
    COMMUNITY_FORUM = "community-forum"
    ACADEMIC_REPOSITORY = "academic-repository"
    VIDEO_CHANNEL = "video-channel"
    NEWSLETTER = "newsletter"

    @classmethod
    def normalize(cls, value: "str | SourceCategory | None") -> "SourceCategory":
        """Map crawler labels (``youtube``, ``research``, ...) onto the enumeration."""
        if isinstance(value, SourceCategory):
            return value
        if not value:
            return cls.NEWS_OUTLET

        key = value.strip().lower().replace("_", "-")
        for member in cls:
            if member.value == key:
                return member
        return SOURCE_CATEGORY_ALIASES.get(key, cls.NEWS_OUTLET)


SOURCE_CATEGORY_ALIASES: dict[str, SourceCategory] = {
    "youtube": SourceCategory.VIDEO_CHANNEL,
    "video": SourceCategory.VIDEO_CHANNEL,
    "podcast": SourceCategory.VIDEO_CHANNEL,
    "research": SourceCategory.ACADEMIC_REPOSITORY,
    "academic": SourceCategory.ACADEMIC_REPOSITORY,
    "arxiv": SourceCategory.ACADEMIC_REPOSITORY,
    "community": SourceCategory.COMMUNITY_FORUM,
    "reddit": SourceCategory.COMMUNITY_FORUM,
    "forum": SourceCategory.COMMUNITY_FORUM,
    "hackernews": SourceCategory.COMMUNITY_FORUM,
    "newsletters": SourceCategory.NEWSLETTER,
    "news": SourceCategory.NEWS_OUTLET,
    "blog": SourceCategory.NEWS_OUTLET,
    "company": SourceCategory.NEWS_OUTLET,
}
