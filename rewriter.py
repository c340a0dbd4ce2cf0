"""
Content rewriter: turns a raw news article into a platform-native post.

The model is asked to answer in a fixed three-marker format::

    TITLE: ...
    SUMMARY: ...
    TAGS: a, b, c

Anything that does not carry a usable TITLE and SUMMARY is a rewrite failure;
there is no looser recovery.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from errors import AIClientError

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200

_TITLE_RE = re.compile(r"TITLE:[ \t]*(.+)")
_SUMMARY_RE = re.compile(r"SUMMARY:[ \t]*([\s\S]+?)(?=TAGS:|\Z)")
_TAGS_RE = re.compile(r"TAGS:[ \t]*(.+)")

REWRITE_PROMPT = """
You are an AI news editor for Intelixir, a social news platform. Your task is to rewrite and summarize news articles to make them unique, engaging, and platform-appropriate.

Original Article:
Title: {title}
Description: {description}
Content: {content}
Category: {topic}

Please provide:
1. A new, engaging title (max 100 characters) that captures the essence but uses different wording
2. A concise, well-written summary (200-400 words) that:
   - Covers the key points
   - Is completely rewritten in your own words
   - Is engaging and informative
   - Avoids direct copying
   - Maintains factual accuracy
3. 3-5 relevant tags (single words, comma-separated)

Format your response exactly like this:
TITLE: [Your new title here]
SUMMARY: [Your summary here]
TAGS: [tag1, tag2, tag3, tag4, tag5]
"""


@dataclass
class ParsedRewrite:
    title: str
    summary: str
    tags: List[str] = field(default_factory=list)


@dataclass
class RewrittenArticle:
    title: str
    content: str
    tags: List[str]
    image: Optional[str]
    original_url: str
    published_at: Optional[datetime]


def build_rewrite_prompt(article: Dict[str, Any], topic: str) -> str:
    description = article.get("description") or ""
    return REWRITE_PROMPT.format(
        title=article.get("title") or "",
        description=description,
        content=article.get("content") or description,
        topic=topic,
    )


def split_tags(raw: str) -> List[str]:
    raw = raw.strip().strip("[]")
    tags = [t.strip().lower() for t in raw.split(",")]
    return [t for t in tags if t]


def parse_rewrite_response(text: str) -> Optional[ParsedRewrite]:
    """Parse a TITLE/SUMMARY/TAGS response. None when the format is broken."""
    if not text:
        return None
    title_match = _TITLE_RE.search(text)
    summary_match = _SUMMARY_RE.search(text)
    if not title_match or not summary_match:
        return None

    title = title_match.group(1).strip()
    summary = summary_match.group(1).strip()
    if not title or not summary:
        return None

    tags_match = _TAGS_RE.search(text)
    tags = split_tags(tags_match.group(1)) if tags_match else []
    return ParsedRewrite(title=title, summary=summary, tags=tags)


def parse_published_at(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None


class ContentRewriter:
    def __init__(self, ai):
        self.ai = ai

    def rewrite(self, article: Dict[str, Any], topic: str) -> Optional[RewrittenArticle]:
        """One best-effort model call. Returns None on any failure."""
        try:
            text = self.ai.generate(build_rewrite_prompt(article, topic))
        except AIClientError as e:
            logger.error(f"AI processing error for '{article.get('title')}': {e}")
            return None

        parsed = parse_rewrite_response(text)
        if parsed is None:
            logger.error(f"AI response format invalid for '{article.get('title')}'")
            return None

        return RewrittenArticle(
            title=parsed.title[:MAX_TITLE_LENGTH],
            content=parsed.summary,
            tags=parsed.tags,
            image=article.get("urlToImage"),
            original_url=article.get("url"),
            published_at=parse_published_at(article.get("publishedAt")),
        )
