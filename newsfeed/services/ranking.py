from typing import List, Tuple

from ..models.schemas import Article, UserPreferences
from ..utils.dates import sort_key

# Fixed weights: a preferred outlet outranks a preferred category, which
# outranks a preferred author.
SOURCE_WEIGHT = 3
CATEGORY_WEIGHT = 2
AUTHOR_WEIGHT = 1


class PersonalizationRanker:
    """Reorder (never filter) a feed by how well each article matches the user's preferences."""

    @staticmethod
    def score(article: Article, preferences: UserPreferences) -> int:
        score = 0
        if article.source in preferences.preferred_sources:
            score += SOURCE_WEIGHT
        if article.category is not None and article.category in preferences.preferred_categories:
            score += CATEGORY_WEIGHT
        if article.author is not None and article.author in preferences.preferred_authors:
            score += AUTHOR_WEIGHT
        return score

    @classmethod
    def rank(cls, articles: List[Article], preferences: UserPreferences) -> List[Article]:
        """Highest score first, newest first within a score.

        With no preferences at all the input is returned as is.  ``sorted`` is
        stable (also with ``reverse=True``), so articles tied on both score and
        timestamp keep their input order.
        """
        if preferences.is_empty:
            return articles

        def key(article: Article) -> Tuple[int, float]:
            return cls.score(article, preferences), sort_key(article.published_at)

        return sorted(articles, key=key, reverse=True)
