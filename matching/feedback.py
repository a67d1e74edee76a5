"""
Feedback Recorder

Append-only log of human matching decisions, kept for re-tuning the
matcher. Both the auto-link engine (implicit feedback) and the explicit
feedback endpoint write through this class.
"""

import logging
import sqlite3
from typing import Any, Dict, Optional

from services.database.db import Database
from .errors import PersistenceError

logger = logging.getLogger(__name__)


class FeedbackRecorder:
    """
    Persists feedback rows.

    Semantically odd input (e.g. a rejection without an actual catalog id) is
    stored as-is; nothing here validates the decision.
    """

    def __init__(self, db: Database):
        self.db = db

    def record(self, input_text: Optional[str], suggested_catalog_id: Optional[str],
               user_choice: Optional[bool], actual_catalog_id: Optional[str] = None,
               confidence_score: Optional[float] = None, category_id: Optional[str] = None,
               user_id: Optional[str] = None) -> int:
        """
        Append one feedback row and return its ID.

        Raises:
            PersistenceError: if the row could not be written
        """
        feedback = {
            'input_text': input_text,
            'suggested_catalog_id': suggested_catalog_id,
            'user_choice': user_choice,
            'actual_catalog_id': actual_catalog_id,
            'confidence_score': confidence_score,
            'user_id': user_id,
            'category_id': category_id,
        }
        try:
            with self.db.transaction():
                feedback_id = self.db.insert_feedback(feedback)
        except sqlite3.Error as e:
            logger.error(f"Error recording feedback: {e}")
            raise PersistenceError("Failed to record feedback", step="feedback") from e

        logger.info(f"Feedback recorded: choice={user_choice} suggested={suggested_catalog_id} "
                    f"confidence={confidence_score}")
        return feedback_id

    def record_quietly(self, **kwargs) -> Optional[int]:
        """Record feedback without letting a failure reach the caller's primary action."""
        try:
            return self.record(**kwargs)
        except PersistenceError as e:
            logger.warning(f"Feedback dropped: {e}")
            return None

    def summary(self) -> Dict[str, Any]:
        """Acceptance statistics used when re-tuning thresholds."""
        stats = self.db.get_feedback_summary()
        total = stats['total'] or 0
        accepted = stats['accepted'] or 0
        return {
            'total': total,
            'accepted': accepted,
            'rejected': stats['rejected'] or 0,
            'accept_rate': round(accepted / total, 4) if total else None,
            'avg_confidence': stats['avg_confidence'],
            'avg_accepted_confidence': stats['avg_accepted_confidence'],
            'avg_rejected_confidence': stats['avg_rejected_confidence'],
        }
