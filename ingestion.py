"""
News ingestion pipeline.

One pass per topic, strictly sequential: resolve the category, pull the
latest articles from the news source, drop placeholders and already-ingested
URLs, rewrite each article with the model and store it as a news post owned
by the admin user. Per-article and per-topic failures are counted, never
raised; only a missing admin user aborts the run.
"""
import logging
import threading
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from bson import ObjectId
from pymongo.database import Database

from database import COLL_CATEGORY, COLL_USER
from errors import AdminUserNotFoundError
from schemas import LinkPreview, Post
from store import insert_post, news_post_exists

logger = logging.getLogger(__name__)

REMOVED_PLACEHOLDER = "[Removed]"


@dataclass(frozen=True)
class Topic:
    name: str
    keywords: Tuple[str, ...]


TOPICS: Tuple[Topic, ...] = (
    Topic("Technology", ("technology", "tech", "ai", "software", "internet")),
    Topic("Politics", ("politics", "government", "election", "policy")),
    Topic("Business", ("business", "economy", "finance", "market", "stock")),
    Topic("Sports", ("sports", "football", "basketball", "soccer", "olympics")),
    Topic("Health", ("health", "medical", "medicine", "covid", "vaccine")),
    Topic("Science", ("science", "research", "study", "discovery", "climate")),
    Topic("Entertainment", ("entertainment", "celebrity", "movie", "music", "tv")),
    Topic("World", ("international", "global", "world", "foreign")),
)


@dataclass
class IngestionResult:
    success: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def is_usable_article(article: Dict[str, Any]) -> bool:
    title = (article.get("title") or "").strip()
    description = (article.get("description") or "").strip()
    # the url is the dedup key, so an article without one cannot be tracked
    return bool(title) and title != REMOVED_PLACEHOLDER and bool(description) and bool(article.get("url"))


class NewsIngestionPipeline:
    def __init__(
        self,
        db: Database,
        news_client,
        rewriter,
        topics: Iterable[Topic] = TOPICS,
        page_size: int = 5,
        topic_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.db = db
        self.news_client = news_client
        self.rewriter = rewriter
        self.topics = tuple(topics)
        self.page_size = page_size
        self.topic_delay = topic_delay
        self.sleep = sleep
        self._active_runs = 0
        self._lock = threading.Lock()

    def run(self) -> IngestionResult:
        with self._lock:
            self._active_runs += 1
            overlapping = self._active_runs > 1
        if overlapping:
            # Dedup check and insert are not atomic; overlapping runs can store the same article twice.
            logger.warning("News ingestion started while another run is in progress")
        try:
            return self._run()
        finally:
            with self._lock:
                self._active_runs -= 1

    def _run(self) -> IngestionResult:
        logger.info("Starting news fetch and processing...")
        admin = self.db[COLL_USER].find_one({"role": "admin"}, {"_id": 1})
        if not admin:
            raise AdminUserNotFoundError("Admin user not found")

        result = IngestionResult()
        for index, topic in enumerate(self.topics):
            if index:
                self.sleep(self.topic_delay)
            try:
                self.process_topic(topic, admin["_id"], result)
            except Exception as e:
                logger.error(f"Error processing {topic.name} news: {e}", exc_info=True)
                result.failed += 1

        logger.info(f"News processing completed. Success: {result.success}, Failed: {result.failed}")
        return result

    def process_topic(self, topic: Topic, admin_id: ObjectId, result: IngestionResult) -> None:
        category = self.db[COLL_CATEGORY].find_one({"name": topic.name}, {"_id": 1})
        if not category:
            logger.warning(f"Category {topic.name} not found in database; skipping topic")
            return

        articles = self.news_client.search(topic.keywords, page_size=self.page_size)
        if not articles:
            logger.info(f"No articles found for category: {topic.name}")
            return

        for article in articles:
            try:
                self.process_article(article, topic, category["_id"], admin_id, result)
            except Exception as e:
                logger.error(f"Error processing article '{article.get('title')}': {e}", exc_info=True)
                result.failed += 1

    def process_article(
        self,
        article: Dict[str, Any],
        topic: Topic,
        category_id: ObjectId,
        admin_id: ObjectId,
        result: IngestionResult,
    ) -> Optional[Dict[str, Any]]:
        if not is_usable_article(article):
            logger.info("Skipping article with missing content")
            return None

        url = article.get("url")
        if news_post_exists(self.db, url):
            logger.info(f"Article already exists: {article.get('title')}")
            return None

        rewritten = self.rewriter.rewrite(article, topic.name)
        if rewritten is None:
            result.failed += 1
            return None

        post = Post(
            title=rewritten.title,
            content=rewritten.content,
            author=admin_id,
            type="image" if rewritten.image else "news",
            image=rewritten.image,
            categories=[category_id],
            tags=rewritten.tags,
            is_news=True,
            original_source=url,
            published_at=rewritten.published_at,
            link=LinkPreview(
                url=url,
                title=article.get("title"),
                description=article.get("description"),
                image=article.get("urlToImage"),
            ),
        )
        doc = insert_post(self.db, post)
        result.success += 1
        logger.info(f"Successfully processed: {rewritten.title}")
        return doc
