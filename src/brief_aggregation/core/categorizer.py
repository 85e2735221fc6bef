"""
Feed categorization and favicon derivation.

Keyword matching over a source's name and URL assigns one of a fixed set of
categories; the favicon URL is derived from the source's domain.
"""

from typing import Optional
from urllib.parse import quote, urlparse

from brief_aggregation.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CATEGORY = "Technology"
DEFAULT_CONFIDENCE = 0.1

FAVICON_SERVICE_URL = "https://www.google.com/s2/favicons?domain={domain}&sz=32"

CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "Technology": [
        "tech", "technology", "programming", "software", "ai", "artificial intelligence",
        "machine learning", "data science", "cybersecurity", "blockchain", "crypto",
        "webdev", "react", "javascript", "python", "startup", "entrepreneur",
        "techcrunch", "wired", "ars technica", "hacker news", "verge",
    ],
    "Business": [
        "business", "entrepreneur", "startup", "venture", "capital", "funding",
        "investment", "strategy", "management", "leadership", "corporate",
        "forbes", "bloomberg", "wsj", "economist", "inc",
    ],
    "Startups": [
        "startup", "entrepreneur", "founder", "venture", "funding", "pitch",
        "accelerator", "incubator", "seed", "series", "unicorn", "scale",
        "y combinator", "techstars", "500 startups",
    ],
    "Productivity": [
        "productivity", "time management", "focus", "habits", "efficiency",
        "workflow", "tools", "apps", "software", "automation", "organization",
        "getting things done", "gtd", "pomodoro",
    ],
    "News": [
        "news", "current events", "politics", "world", "breaking", "latest",
        "cnn", "bbc", "reuters", "ap", "npr", "pbs",
    ],
    "Communities": [
        "reddit", "discussion", "forum", "network", "social media", "twitter",
        "facebook", "instagram", "linkedin",
    ],
    "Science": [
        "science", "research", "study", "discovery", "innovation", "breakthrough",
        "nature", "science magazine", "scientific american",
    ],
    "Health": [
        "health", "medical", "wellness", "fitness", "nutrition", "medicine",
        "healthcare", "doctor", "patient", "treatment", "therapy",
    ],
    "Finance": [
        "finance", "money", "investment", "trading", "stock", "market",
        "economy", "financial", "wealth", "retirement", "savings",
    ],
    "Entertainment": [
        "entertainment", "movie", "film", "tv", "show", "celebrity",
        "hollywood", "netflix", "streaming", "music", "gaming",
    ],
    "Education": [
        "education", "learning", "course", "tutorial", "study", "academic",
        "university", "college", "school", "teaching", "training",
    ],
    "Politics": [
        "politics", "government", "policy", "election", "democracy", "republican",
        "democrat", "congress", "senate", "president", "political",
    ],
    "Sports": [
        "sports", "athletic", "game", "team", "player", "coach",
        "football", "basketball", "baseball", "soccer", "olympics",
    ],
    "Lifestyle": [
        "lifestyle", "life", "living", "personal", "wellness", "mindfulness",
        "happiness", "relationships", "family", "home", "travel",
    ],
}

FEED_CATEGORIES = list(CATEGORY_KEYWORDS)


class CategoryResult:
    """Result of categorizing a feed."""

    def __init__(self, category: str, confidence: float, method: str) -> None:
        """Initialize category result.

        Args:
            category: Chosen category
            confidence: Match confidence in [0, 1]
            method: "keyword" when keywords matched, "default" otherwise
        """
        self.category = category
        self.confidence = confidence
        self.method = method

    def __repr__(self) -> str:
        return f"<CategoryResult(category={self.category}, confidence={self.confidence:.2f}, method={self.method})>"


class FeedCategorizer:
    """Keyword-based feed categorizer."""

    def __init__(self, keywords: Optional[dict[str, list[str]]] = None) -> None:
        self.keywords = keywords or CATEGORY_KEYWORDS

    def categorize(self, name: Optional[str], url: Optional[str]) -> CategoryResult:
        """Pick the category whose keywords occur most often in name and URL.

        Substring matching, so short keywords also hit inside longer words.
        The first category in table order wins ties.
        """
        text = f"{name or ''} {url or ''}".lower()

        best_category, best_score = DEFAULT_CATEGORY, 0
        for category, keywords in self.keywords.items():
            score = sum(1 for keyword in keywords if keyword in text)
            if score > best_score:
                best_category, best_score = category, score

        if best_score == 0:
            return CategoryResult(DEFAULT_CATEGORY, DEFAULT_CONFIDENCE, "default")

        result = CategoryResult(best_category, min(best_score / 3, 1.0), "keyword")
        logger.debug(f"Categorized {name!r} as {result.category} ({result.confidence:.2f})")
        return result


def extract_domain(url: Optional[str]) -> Optional[str]:
    """Host part of ``url`` without port; scheme-less URLs are accepted."""
    raw = (url or "").strip()
    if not raw:
        return None
    if "://" not in raw:
        raw = f"https://{raw}"
    host = urlparse(raw).hostname
    return host or None


def favicon_url_for(url: Optional[str]) -> Optional[str]:
    """Favicon service URL for the site hosting ``url``."""
    domain = extract_domain(url)
    if not domain:
        return None
    return FAVICON_SERVICE_URL.format(domain=quote(domain))


def create_categorizer() -> FeedCategorizer:
    """Create a FeedCategorizer with the built-in keyword table."""
    return FeedCategorizer()
