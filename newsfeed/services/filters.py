"""Client-side filtering of an aggregated article list.

Every active filter contributes one predicate and an article must satisfy
all of them.  A filter is active only when its field is non-empty.  A date
bound that cannot be parsed is ignored rather than treated as an error.
"""
from datetime import datetime
from typing import Callable, List, Optional

from ..models.schemas import Article, QueryFilters
from ..utils.dates import end_of_day, parse_timestamp

Predicate = Callable[[Article], bool]


class FilterEngine:
    @staticmethod
    def apply(articles: List[Article], filters: QueryFilters) -> List[Article]:
        predicates = build_predicates(filters)
        if not predicates:
            return list(articles)
        return [a for a in articles if all(p(a) for p in predicates)]


def build_predicates(filters: QueryFilters) -> List[Predicate]:
    """Predicates for the active filters, cheapest first."""
    predicates: List[Predicate] = []

    if filters.sources:
        sources = set(filters.sources)
        predicates.append(lambda a: a.source in sources)

    if filters.categories:
        categories = set(filters.categories)
        predicates.append(lambda a: a.category is not None and a.category in categories)

    if filters.authors:
        authors = set(filters.authors)
        predicates.append(lambda a: a.author is not None and a.author in authors)

    lower = parse_timestamp(filters.from_date)
    upper = end_of_day(filters.to_date)
    if lower is not None or upper is not None:
        predicates.append(_date_range(lower, upper))

    query = (filters.query or "").lower()
    if query.strip():
        predicates.append(lambda a: (
            query in a.title.lower()
            or query in a.description.lower()
            or query in a.content.lower()
        ))

    return predicates


def _date_range(lower: Optional[datetime], upper: Optional[datetime]) -> Predicate:
    def within(article: Article) -> bool:
        published = parse_timestamp(article.published_at)
        if published is None:
            return False
        if lower is not None and published < lower:
            return False
        if upper is not None and published > upper:
            return False
        return True
    return within
