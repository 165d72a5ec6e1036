"""Social ledger maintenance and speech filtering."""

from craftmind.social.ledger import Social, classify_sentiment_answer, keyword_sentiment

__all__ = ["Social", "classify_sentiment_answer", "keyword_sentiment"]
