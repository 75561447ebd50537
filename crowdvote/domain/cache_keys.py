"""Construction déterministe des clés de cache.

Règles:
- liste:  `content:list:{page}:{limit}:{sort_by}:{sort_order}:{status}:{creator}:{type}:{tags}`
- détail: `content:{content_id}:data`
- commit: `commit:{content_id}:{adresse en minuscules}`

Un filtre absent et le filtre explicite `all` produisent la même clé; les tags
sont dédupliqués et triés avant sérialisation. Les champs libres (créateur,
type, chaque tag) sont percent-encodés: aucun séparateur `:` ou `,` ne peut y
apparaître, deux requêtes distinctes ont donc deux clés distinctes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import quote

from crowdvote.domain.errors import ValidationError
from crowdvote.domain.lifecycle import ContentStatus

ALL = "all"
LIST_PREFIX = "content:list"
LIST_PATTERN = f"{LIST_PREFIX}:*"
MAX_PAGE_SIZE = 100
SORTABLE_FIELDS = (
    "submission_time",
    "voting_start_time",
    "voting_end_time",
    "upvotes",
    "downvotes",
    "total_usd_value",
    "content_id",
)


def _escape(part: str) -> str:
    # percent-encodage: ':' ',' '*' et '%' ne peuvent plus fusionner deux champs
    return quote(part, safe="")


@dataclass(frozen=True)
class ContentQuery:
    """Paramètres normalisés d'une requête de liste."""

    status: ContentStatus | None = None
    creator: str | None = None
    content_type: str | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)
    page: int = 1
    limit: int = 10
    sort_by: str = "submission_time"
    sort_order: str = "desc"

    @classmethod
    def build(
        cls,
        status: str | ContentStatus | None = None,
        creator: str | None = None,
        content_type: str | None = None,
        tags: list[str] | tuple[str, ...] | None = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "submission_time",
        sort_order: str = "desc",
    ) -> ContentQuery:
        """Normalise et valide les paramètres bruts d'une requête."""
        if page < 1:
            raise ValidationError(f"page must be >= 1, got {page}", details={"page": page})
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(
                f"limit must be between 1 and {MAX_PAGE_SIZE}, got {limit}",
                details={"limit": limit},
            )
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"Unsupported sort field: {sort_by}", details={"sort_by": sort_by})
        order = sort_order.lower()
        if order not in ("asc", "desc"):
            raise ValidationError(
                f"Unsupported sort order: {sort_order}", details={"sort_order": sort_order}
            )
        return cls(
            status=_normalize_status(status),
            creator=_normalize_filter(creator, lower=True),
            content_type=_normalize_filter(content_type),
            tags=_normalize_tags(tags),
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=order,
        )

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def _normalize_filter(value: str | None, lower: bool = False) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value or value.lower() == ALL:
        return None
    return value.lower() if lower else value


def _normalize_tags(tags: list[str] | tuple[str, ...] | None) -> tuple[str, ...]:
    cleaned = {t.strip() for t in tags or () if t and t.strip()}
    return tuple(sorted(t for t in cleaned if t.lower() != ALL))


def _normalize_status(value: str | ContentStatus | None) -> ContentStatus | None:
    if value is None or isinstance(value, ContentStatus):
        return value
    value = value.strip().lower()
    if not value or value == ALL:
        return None
    try:
        return ContentStatus(value)
    except ValueError as err:
        raise ValidationError(f"Unknown status filter: {value}", details={"status": value}) from err


def list_cache_key(query: ContentQuery) -> str:
    """Clé de cache stable pour une page de liste."""
    parts = [
        str(query.page),
        str(query.limit),
        query.sort_by,
        query.sort_order,
        query.status.value if query.status else ALL,
        _escape(query.creator or ALL),
        _escape(query.content_type or ALL),
        ",".join(_escape(t) for t in query.tags) if query.tags else ALL,
    ]
    return ":".join([LIST_PREFIX, *parts])


def detail_cache_key(content_id: int) -> str:
    return f"content:{int(content_id)}:data"


def commit_cache_key(content_id: int, normalized_address: str) -> str:
    return f"commit:{int(content_id)}:{normalized_address}"
