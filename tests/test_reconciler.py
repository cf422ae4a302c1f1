"""Tests for activity reconciliation."""

import logging

import pytest
import numpy as np


def _table(mapping):
    from audio_activity.mapping import ActivityMappingTable, ThresholdEntry

    return ActivityMappingTable({
        index: [ThresholdEntry(label, threshold) for label, threshold in entries]
        for index, entries in mapping.items()
    })


@pytest.fixture
def reconciler():
    """Reconciler that knows activities A and B."""
    from audio_activity.reconciler import ActivityReconciler, ActivityVocabulary
    return ActivityReconciler(ActivityVocabulary(["A", "B"]))


class TestActivityReconciler:
    """Test cases for ActivityReconciler."""

    def test_only_scores_above_threshold(self, reconciler):
        """Test classes below their threshold are excluded."""
        table = _table({0: [("A", 0.5)], 1: [("B", 0.5)]})

        result = reconciler.reconcile([0.7, 0.3], table)

        assert result == {"A": pytest.approx(0.7)}

    def test_duplicate_activity_uses_max(self, reconciler):
        """Test qualifying candidates for one activity aggregate by max."""
        from audio_activity.mapping import ActivityMappingTable, ThresholdEntry

        table = ActivityMappingTable({0: [ThresholdEntry("A", 0.5), ThresholdEntry("A", 0.8)]})

        assert reconciler.reconcile([0.9], table) == {"A": pytest.approx(0.9)}

    def test_max_across_raw_classes(self, reconciler):
        """Test corroborating raw classes report the strongest score."""
        table = _table({0: [("A", 0.5)], 1: [("A", 0.5)], 2: [("A", 0.1)]})

        result = reconciler.reconcile([0.6, 0.8, 0.2], table)

        assert result == {"A": pytest.approx(0.8)}

    def test_equal_to_threshold_does_not_qualify(self, reconciler):
        """Test the threshold comparison is strict."""
        table = _table({0: [("A", 0.5)]})

        assert reconciler.reconcile([0.5], table) == {}

    def test_fan_out_to_several_activities(self, reconciler):
        """Test one raw class can support several activities."""
        table = _table({0: [("A", 0.6), ("B", 0.2)]})

        assert reconciler.reconcile([0.4], table) == {"B": pytest.approx(0.4)}
        assert reconciler.reconcile([0.7], table) == {
            "A": pytest.approx(0.7),
            "B": pytest.approx(0.7),
        }

    def test_empty_scores(self, reconciler):
        """Test an empty score vector yields an empty result."""
        table = _table({0: [("A", 0.5)]})

        assert reconciler.reconcile(np.array([]), table) == {}

    def test_unmapped_classes_contribute_nothing(self, reconciler):
        """Test raw classes without entries are ignored."""
        table = _table({3: [("A", 0.5)]})

        assert reconciler.reconcile([0.99, 0.99, 0.99], table) == {}

    def test_uncalibrated_scores(self, reconciler):
        """Test scores outside [0, 1] are treated as plain confidences."""
        table = _table({0: [("A", 0.5)], 1: [("B", 0.0)]})

        result = reconciler.reconcile([2.5, -1.0], table)

        assert result == {"A": pytest.approx(2.5)}

    def test_unknown_label_dropped_and_reported(self, reconciler, caplog):
        """Test unknown labels are dropped without stopping reconciliation."""
        table = _table({0: [("Ghost", 0.1), ("A", 0.1)], 1: [("B", 0.1)]})

        with caplog.at_level(logging.ERROR):
            result, unknown = reconciler.reconcile_with_report([0.9, 0.4], table)

        assert result == {"A": pytest.approx(0.9), "B": pytest.approx(0.4)}
        assert len(unknown) == 1
        assert unknown[0].label == "Ghost"
        assert unknown[0].raw_index == 0
        assert "Ghost" in caplog.text

    def test_empty_vocabulary_recognizes_nothing(self):
        """Test an explicitly empty vocabulary is not replaced by the defaults."""
        from audio_activity.reconciler import ActivityReconciler, ActivityVocabulary

        reconciler = ActivityReconciler(ActivityVocabulary([]))
        table = _table({0: [("Speaking", 0.5)]})

        result, unknown = reconciler.reconcile_with_report([0.9], table)

        assert result == {}
        assert [report.label for report in unknown] == ["Speaking"]

    def test_unknown_label_below_threshold_not_reported(self, reconciler):
        """Test only candidates that qualify are validated."""
        table = _table({0: [("Ghost", 0.9)]})

        _, unknown = reconciler.reconcile_with_report([0.5], table)

        assert unknown == []


class TestActivityVocabulary:
    """Test cases for ActivityVocabulary."""

    def test_default_vocabulary(self):
        """Test the default vocabulary is the ActivityType values."""
        from audio_activity.reconciler import ActivityType, ActivityVocabulary

        vocabulary = ActivityVocabulary()

        assert len(vocabulary) == len(ActivityType)
        assert vocabulary.resolve("Speaking") == "Speaking"
        assert vocabulary.resolve("speaking") is None

    def test_custom_vocabulary(self):
        """Test an explicit label list replaces the default."""
        from audio_activity.reconciler import ActivityVocabulary

        vocabulary = ActivityVocabulary(["Hoovering"])

        assert "Hoovering" in vocabulary
        assert "Speaking" not in vocabulary
