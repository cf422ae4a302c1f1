"""Reconciliation of raw class scores into activity confidences."""

import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from .errors import UnknownActivityLabel
from .mapping import ActivityMappingTable

logger = logging.getLogger(__name__)


class ActivityType(Enum):
    """Activities reported to the rest of the system."""
    SPEAKING = "Speaking"
    CONVERSATION = "Conversation"
    SINGING = "Singing"
    LAUGHING = "Laughing"
    CRYING = "Crying"
    COUGHING = "Coughing"
    SNORING = "Snoring"
    MUSIC = "Music"
    TELEVISION = "Television"
    COOKING = "Cooking"
    EATING = "Eating"
    CLEANING = "Cleaning"
    WALKING = "Walking"
    DOOR = "Door"
    PHONE_RINGING = "PhoneRinging"
    ALARM = "Alarm"
    WATER_RUNNING = "WaterRunning"
    PET = "Pet"


class ActivityVocabulary:
    """Closed set of recognized activity labels."""

    def __init__(self, labels: Optional[Iterable[str]] = None):
        """Initialize vocabulary.

        Args:
            labels: Recognized labels (ActivityType values if None)
        """
        if labels is None:
            labels = (activity.value for activity in ActivityType)
        self._labels = frozenset(labels)

    def resolve(self, label: str) -> Optional[str]:
        """Return the label if it is recognized, otherwise None."""
        return label if label in self._labels else None

    @property
    def labels(self) -> frozenset:
        return self._labels

    def __contains__(self, label: object) -> bool:
        return label in self._labels

    def __len__(self) -> int:
        return len(self._labels)


class ActivityReconciler:
    """Applies a mapping table to a raw score vector.

    For every raw class whose score strictly exceeds an entry's threshold,
    the entry's activity is a candidate with that score. An activity's
    confidence is the maximum over its candidates. Unknown activities are
    dropped and reported, without stopping reconciliation.
    """

    def __init__(self, vocabulary: Optional[ActivityVocabulary] = None):
        self.vocabulary = vocabulary if vocabulary is not None else ActivityVocabulary()

    def reconcile(
        self,
        raw_scores: np.ndarray,
        table: ActivityMappingTable,
    ) -> Dict[str, float]:
        """Map raw class scores to activity confidences."""
        result, _ = self.reconcile_with_report(raw_scores, table)
        return result

    def reconcile_with_report(
        self,
        raw_scores: np.ndarray,
        table: ActivityMappingTable,
    ) -> Tuple[Dict[str, float], List[UnknownActivityLabel]]:
        """Like ``reconcile``, also returning the unknown-label reports."""
        result: Dict[str, float] = {}
        unknown: List[UnknownActivityLabel] = []

        for raw_index, score in enumerate(np.asarray(raw_scores, dtype=np.float64).reshape(-1)):
            score = float(score)
            for entry in table.lookup(raw_index):
                if not score > entry.threshold:
                    continue

                activity = self.vocabulary.resolve(entry.activity)
                if activity is None:
                    report = UnknownActivityLabel(entry.activity, raw_index)
                    logger.error(
                        f"Activity type '{entry.activity}' does not exist "
                        f"(raw class {raw_index}, score {score:.3f})"
                    )
                    unknown.append(report)
                    continue

                if score > result.get(activity, float("-inf")):
                    result[activity] = score

        return result, unknown
