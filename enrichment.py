"""Best-effort AI enrichment for user posts: category suggestion and tags."""
import logging
import re
from typing import Iterable, List

from bson import ObjectId
from pymongo.database import Database

from database import COLL_CATEGORY, get_documents
from errors import AIClientError
from rewriter import split_tags

logger = logging.getLogger(__name__)

MAX_TAG_LENGTH = 20

CATEGORIZE_PROMPT = """
Analyze the following content and determine which category it best fits into:
Categories: {categories}

Content: {content}

Respond with just the category name that best matches this content.
"""

TAGS_PROMPT = """
Generate 3-5 relevant tags for the following content. Tags should be single words, lowercase, and comma-separated.

Content: {content}

Respond with just the tags, comma-separated.
"""


class ContentEnricher:
    def __init__(self, ai, db: Database, topic_names: Iterable[str]):
        self.ai = ai
        self.db = db
        self.topic_names = list(topic_names)

    def categorize(self, content: str) -> List[ObjectId]:
        """Id of the single best-fitting active category, or [] when nothing matches."""
        prompt = CATEGORIZE_PROMPT.format(categories=", ".join(self.topic_names), content=content)
        try:
            answer = self.ai.generate(prompt).strip().strip(".").strip()
        except AIClientError as e:
            logger.error(f"Error categorizing content: {e}")
            return []
        if not answer:
            return []

        categories = get_documents(self.db, COLL_CATEGORY, {"is_active": True})
        lowered = answer.lower()
        for category in categories:
            if category["name"].lower() == lowered:
                return [category["_id"]]
        # the model sometimes wraps the name in a sentence
        for category in categories:
            if re.search(rf"\b{re.escape(category['name'].lower())}\b", lowered):
                return [category["_id"]]

        logger.info(f"AI category '{answer}' matched no stored category")
        return []

    def generate_tags(self, content: str) -> List[str]:
        try:
            answer = self.ai.generate(TAGS_PROMPT.format(content=content))
        except AIClientError as e:
            logger.error(f"Error generating tags: {e}")
            return []
        return [tag for tag in split_tags(answer) if len(tag) <= MAX_TAG_LENGTH]
