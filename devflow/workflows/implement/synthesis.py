"""Merge completed reviews into one feedback summary."""

import logging
from typing import Mapping, Sequence

from ...reviewers.base import ReviewResult

logger = logging.getLogger(__name__)


def format_review_block(name: str, review: ReviewResult) -> str:
    """Render one reviewer's feedback."""
    header = f"**{name} Review**"
    if review.backend_type and review.model:
        header += f" ({review.backend_type}/{review.model})"

    lines = [header, f"- Feedback: {review.feedback}"]
    if review.suggestions:
        lines.append(f"- Suggestions: {', '.join(review.suggestions)}")
    if review.concerns:
        lines.append(f"- Concerns: {', '.join(review.concerns)}")
    return "\n".join(lines)


def synthesize_reviews(
    completed_reviewers: Sequence[str],
    reviews: Mapping[str, ReviewResult],
) -> str:
    """
    Merge reviews in queue order (not mapping order).

    Reviewers without a stored result are left out.
    """
    blocks = []
    for name in completed_reviewers:
        review = reviews.get(name)
        if review is None:
            logger.warning(f"No review stored for reviewer '{name}', omitting from synthesis")
            continue
        blocks.append(format_review_block(name, review))
    return "\n\n".join(blocks)
