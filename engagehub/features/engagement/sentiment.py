"""
Keyword-based sentiment classifier.

Deterministic and side-effect free: the same text always produces the same
label and score.
"""

from dataclasses import dataclass

from engagehub.models.comment import Sentiment

POSITIVE_KEYWORDS: tuple[str, ...] = (
    "love", "great", "amazing", "excellent", "good", "awesome", "best",
    "fantastic", "wonderful", "perfect", "beautiful", "thanks", "thank you",
    "happy", "excited",
)

NEGATIVE_KEYWORDS: tuple[str, ...] = (
    "hate", "bad", "worst", "terrible", "awful", "horrible", "disappointed",
    "angry", "frustrated", "poor", "sad", "upset", "disgusting",
)

# Scores strictly above/below these bounds are polar
POSITIVE_THRESHOLD = 0.3
NEGATIVE_THRESHOLD = -0.3


@dataclass(frozen=True)
class SentimentResult:
    label: Sentiment
    score: float


NEUTRAL = SentimentResult(label=Sentiment.NEUTRAL, score=0.0)


def classify(text: str | None) -> SentimentResult:
    """
    Classify text as positive, negative or neutral.

    Each keyword counts at most once, matched as a substring of the
    case-folded text. The score is ``(pos - neg) / (pos + neg)`` and lies
    in [-1, 1]; text with no keyword hits is neutral with score 0.

    Examples:
        >>> classify("I love this, thanks!").label
        <Sentiment.POSITIVE: 'positive'>
        >>> classify("").score
        0.0
    """
    if not text:
        return NEUTRAL

    lowered = text.casefold()
    positive = sum(1 for word in POSITIVE_KEYWORDS if word in lowered)
    negative = sum(1 for word in NEGATIVE_KEYWORDS if word in lowered)

    total = positive + negative
    if total == 0:
        return NEUTRAL

    score = (positive - negative) / total

    if score > POSITIVE_THRESHOLD:
        label = Sentiment.POSITIVE
    elif score < NEGATIVE_THRESHOLD:
        label = Sentiment.NEGATIVE
    else:
        label = Sentiment.NEUTRAL

    return SentimentResult(label=label, score=score)
