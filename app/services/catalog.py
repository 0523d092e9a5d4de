"""
Catalog service for server listings.

Listings are imported from scraped awesome-list entries; each is
categorized and tagged by keyword and returned together with its vote tally
and review summary.
"""

import logging
import re
from typing import Any, Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound, StorageError, ValidationError
from app.models.review import ReviewStats
from app.models.server import Server
from app.models.vote import VoteCounts

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "utilities"

# Checked in order; the first category with a matching keyword wins
CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "filesystem": ["file", "filesystem", "directory", "folder", "storage", "drive"],
    "database": [
        "database", "sql", "postgres", "mysql", "mongo", "redis", "sqlite", "supabase",
        "firebase", "dynamo", "cassandra", "neo4j", "clickhouse", "snowflake", "bigquery",
        "duckdb", "qdrant", "pinecone", "chroma", "weaviate", "milvus", "vector",
    ],
    "browser-automation": [
        "browser", "playwright", "puppeteer", "selenium", "chrome", "firefox", "scraping",
        "web-scraping", "crawl",
    ],
    "cloud-platforms": [
        "aws", "azure", "gcp", "google-cloud", "cloudflare", "kubernetes", "k8s", "docker",
        "terraform", "cloud", "vercel", "netlify", "heroku",
    ],
    "version-control": ["git", "github", "gitlab", "bitbucket", "version-control", "commit"],
    "communication": [
        "slack", "discord", "telegram", "email", "sms", "whatsapp", "teams", "notion",
        "message", "chat", "notification",
    ],
    "search": ["search", "fetch", "web", "google", "bing", "brave", "tavily", "perplexity", "serp"],
    "ai-tools": [
        "ai", "llm", "openai", "anthropic", "gemini", "claude", "gpt", "embedding", "memory",
        "thinking", "reasoning", "agent",
    ],
    "code-execution": [
        "code", "execute", "sandbox", "python", "javascript", "repl", "interpreter", "runtime",
    ],
    "media": [
        "image", "video", "audio", "music", "youtube", "spotify", "media", "animation",
        "blender", "maya", "ffmpeg",
    ],
    "productivity": [
        "calendar", "task", "todo", "project", "jira", "linear", "asana", "trello", "monday",
        "airtable", "sheets",
    ],
    "utilities": ["time", "weather", "currency", "calculator", "convert", "utility", "tool", "helper"],
}

TAG_KEYWORDS = [
    "api", "automation", "search", "database", "cloud", "ai", "ml",
    "web", "file", "git", "docker", "kubernetes", "slack", "discord",
    "email", "sms", "notification", "calendar", "task", "project",
    "code", "python", "javascript", "typescript", "rust", "go",
    "postgresql", "mysql", "mongodb", "redis", "sqlite", "vector",
    "browser", "scraping", "image", "video", "audio", "media",
]
MAX_TAGS = 5
DEFAULT_TAGS = ["mcp", "server"]

SORT_OPTIONS = ("score", "rating", "name")

_GITHUB_OWNER = re.compile(r"github\.com/([^/]+)")


def slugify(name: str) -> str:
    """Lowercase slug of a listing name, at most 50 characters."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug[:50]


def author_from_url(github_url: Optional[str]) -> str:
    """Owner segment of a github.com URL, or "Unknown"."""
    match = _GITHUB_OWNER.search(github_url or "")
    return match.group(1) if match else "Unknown"


def categorize(name: str, description: Optional[str]) -> str:
    """Pick the first category whose keywords appear in the name or description."""
    text = f"{name} {description or ''}".lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(keyword in text for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def generate_tags(name: str, description: Optional[str]) -> list[str]:
    """Up to five keyword tags found in the name or description."""
    text = f"{name} {description or ''}".lower()
    tags = [keyword for keyword in TAG_KEYWORDS if keyword in text][:MAX_TAGS]
    return tags or list(DEFAULT_TAGS)


def _listing_to_dict(
    server: Server,
    counts: Optional[VoteCounts],
    stats: Optional[ReviewStats],
) -> dict[str, Any]:
    return {
        "id": server.id,
        "name": server.name,
        "description": server.description,
        "author": server.author,
        "github_url": server.github_url,
        "category": server.category,
        "tags": server.tags or [],
        "votes": {
            "upvotes": counts.upvotes if counts else 0,
            "downvotes": counts.downvotes if counts else 0,
            "score": counts.score if counts else 0,
        },
        "stats": {
            "review_count": stats.review_count if stats else 0,
            "average_rating": float(stats.average_rating) if stats else 0.0,
        },
    }


class CatalogService:
    """Service for browsing and importing server listings"""

    @staticmethod
    def _listing_query():
        return (
            select(Server, VoteCounts, ReviewStats)
            .outerjoin(VoteCounts, VoteCounts.item_id == Server.id)
            .outerjoin(ReviewStats, ReviewStats.item_id == Server.id)
        )

    @staticmethod
    async def list_servers(
        db: AsyncSession,
        category: Optional[str] = None,
        sort: str = "score",
        skip: int = 0,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """
        List servers with their vote tally and review summary.

        Args:
            db: Database session
            category: Optional category filter
            sort: "score" (net votes), "rating" (average rating) or "name"
            skip: Number of servers to skip
            limit: Maximum number of servers to return

        Returns:
            List of listing dicts

        Raises:
            ValidationError: If sort is unknown
        """
        if sort not in SORT_OPTIONS:
            raise ValidationError(f"sort must be one of {', '.join(SORT_OPTIONS)}")

        query = CatalogService._listing_query()
        if category:
            query = query.where(Server.category == category)

        if sort == "score":
            query = query.order_by(func.coalesce(VoteCounts.score, 0).desc(), Server.name)
        elif sort == "rating":
            query = query.order_by(
                func.coalesce(ReviewStats.average_rating, 0).desc(),
                func.coalesce(ReviewStats.review_count, 0).desc(),
                Server.name,
            )
        else:
            query = query.order_by(Server.name)

        try:
            result = await db.execute(query.offset(skip).limit(limit))
            rows = result.all()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list servers: {e}") from e

        return [_listing_to_dict(server, counts, stats) for server, counts, stats in rows]

    @staticmethod
    async def get_server(db: AsyncSession, server_id: str) -> dict[str, Any]:
        """
        Get one server with its vote tally and review summary.

        Raises:
            NotFound: If no server has that ID
        """
        try:
            result = await db.execute(
                CatalogService._listing_query().where(Server.id == server_id)
            )
            row = result.first()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load server {server_id}: {e}") from e

        if not row:
            raise NotFound(f"Server {server_id} not found")
        server, counts, stats = row
        return _listing_to_dict(server, counts, stats)

    @staticmethod
    async def import_servers(db: AsyncSession, entries: Iterable[dict[str, Any]]) -> int:
        """
        Create or refresh listings from scraped entries.

        Each entry needs a name and may carry url, description and author.
        Listings are keyed by the slug of their name, so re-importing the same
        list updates rows instead of duplicating them.

        Returns:
            Number of listings written
        """
        imported = 0
        seen: dict[str, Server] = {}
        try:
            for entry in entries:
                name = (entry.get("name") or "").strip()
                if not name:
                    logger.warning(f"Skipping catalog entry without a name: {entry}")
                    continue

                server_id = slugify(name)
                if not server_id:
                    logger.warning(f"Skipping catalog entry with unusable name: {name!r}")
                    continue
                description = entry.get("description")
                github_url = entry.get("url")

                server = seen.get(server_id) or await db.get(Server, server_id)
                if server is None:
                    server = Server(id=server_id)
                    db.add(server)
                seen[server_id] = server

                server.name = name
                server.description = description
                server.github_url = github_url
                server.author = entry.get("author") or author_from_url(github_url)
                server.category = categorize(name, description)
                server.tags = generate_tags(name, description)
                imported += 1

            await db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Failed to import servers: {type(e).__name__}: {e}", exc_info=True)
            raise StorageError("Failed to import servers") from e

        logger.info(f"Imported {imported} servers")
        return imported
