"""
Lead qualification and scoring for positive comments.
"""

import math
from dataclasses import dataclass, field
from typing import Any

from engagehub.models.comment import Comment, Sentiment
from engagehub.models.lead import LeadPriority, LeadSource

INTEREST_KEYWORDS: tuple[str, ...] = (
    "interested", "price", "cost", "buy", "purchase", "more info", "details",
)

HIGH_PRIORITY_SCORE = 0.7


@dataclass
class LeadDraft:
    """Attributes of a lead to be created from a comment."""

    source: LeadSource
    name: str
    username: str | None
    platform_profile_url: str | None
    priority: LeadPriority
    score: int
    lead_metadata: dict[str, Any] = field(default_factory=dict)


def shows_interest(text: str | None) -> bool:
    """True when the text contains a buying-intent keyword."""
    if not text:
        return False
    lowered = text.casefold()
    return any(keyword in lowered for keyword in INTEREST_KEYWORDS)


def lead_score(sentiment_score: float) -> int:
    """Map a sentiment score in [-1, 1] to an integer in [0, 100], rounding halves up."""
    raw = math.floor((sentiment_score + 1) * 50 + 0.5)
    return max(0, min(100, raw))


def lead_priority(sentiment_score: float) -> LeadPriority:
    return LeadPriority.HIGH if sentiment_score > HIGH_PRIORITY_SCORE else LeadPriority.MEDIUM


def is_candidate(comment: Comment) -> bool:
    """
    Whether a comment qualifies for lead generation.

    Positive sentiment or a strong score, plus an interest keyword.
    """
    if comment.is_lead:
        return False
    polar = comment.sentiment == Sentiment.POSITIVE or comment.sentiment_score > 0.5
    return polar and shows_interest(comment.comment_text)


def score_comment(comment: Comment) -> LeadDraft:
    """Build the lead attributes for a qualifying comment."""
    profile_url = None
    if comment.author_id:
        profile_url = f"https://{comment.platform}.com/{comment.author_id}"

    return LeadDraft(
        source=LeadSource(comment.platform),
        name=comment.author_name or comment.author_username or "Unknown",
        username=comment.author_username,
        platform_profile_url=profile_url,
        priority=lead_priority(comment.sentiment_score),
        score=lead_score(comment.sentiment_score),
        lead_metadata={
            "original_comment": comment.comment_text,
            "sentiment": Sentiment(comment.sentiment).value,
        },
    )
