import pytest

from meetscribe.diarization.stabilizer import SpeakerLabelStabilizer

from conftest import seg


def labels(segments):
    return [s.speaker_id for s in segments]


def test_single_flip_is_suppressed():
    stabilizer = SpeakerLabelStabilizer(required_consecutive=2, short_segment_duration=0.3)
    result = stabilizer.stabilize_sequence(
        [seg("A", 0, 1), seg("A", 1, 2), seg("B", 2, 3), seg("B", 3, 4), seg("A", 4, 5)]
    )

    assert labels(result) == ["A", "A", "A", "B", "B"]
    assert stabilizer.stats.committed_changes == 1
    assert stabilizer.stats.suppressed_changes == 2
    assert stabilizer.pending_label == "A"
    assert stabilizer.pending_count == 1


def test_raw_labels_are_kept():
    stabilizer = SpeakerLabelStabilizer(required_consecutive=2, short_segment_duration=0.3)
    result = stabilizer.stabilize_sequence([seg("A", 0, 1), seg("B", 1, 2)])

    assert [s.raw_speaker_id for s in result] == ["A", "B"]
    assert labels(result) == ["A", "A"]


def test_no_change_without_required_consecutive_observations():
    stabilizer = SpeakerLabelStabilizer(required_consecutive=3, short_segment_duration=0.0)
    raw = ["A", "B", "A", "B", "B", "A", "C", "C"]
    result = stabilizer.stabilize_sequence([seg(label, i, i + 1) for i, label in enumerate(raw)])

    out = labels(result)
    for i in range(1, len(out)):
        if out[i] != out[i - 1]:
            assert raw[i - 2 : i + 1] == [out[i]] * 3
    assert out == ["A"] * len(raw)


def test_third_label_replaces_pending():
    stabilizer = SpeakerLabelStabilizer(required_consecutive=2)
    assert stabilizer.stabilize("B", "A") == "A"
    assert stabilizer.pending_label == "B"
    assert stabilizer.stabilize("C", "A") == "A"
    assert stabilizer.pending_label == "C"
    assert stabilizer.pending_count == 1
    assert stabilizer.stabilize("C", "A") == "C"


def test_commit_clears_pending_state():
    stabilizer = SpeakerLabelStabilizer(required_consecutive=2)
    stabilizer.stabilize("B", "A")
    assert stabilizer.stabilize("B", "A") == "B"

    assert stabilizer.pending_label is None
    assert stabilizer.pending_count == 0
    assert stabilizer.last_stable_label == "B"


def test_matching_label_resets_pending():
    stabilizer = SpeakerLabelStabilizer(required_consecutive=2)
    stabilizer.stabilize("B", "A")
    assert stabilizer.stabilize("A", "A") == "A"
    assert stabilizer.pending_label is None
    # B has to start over
    assert stabilizer.stabilize("B", "A") == "A"


def test_required_consecutive_one_commits_immediately():
    stabilizer = SpeakerLabelStabilizer(required_consecutive=1, short_segment_duration=0.0)
    result = stabilizer.stabilize_sequence([seg("A", 0, 1), seg("B", 1, 2), seg("A", 2, 3)])
    assert labels(result) == ["A", "B", "A"]


def test_short_segments_inherit_current_label():
    stabilizer = SpeakerLabelStabilizer(required_consecutive=2, short_segment_duration=0.3)
    result = stabilizer.stabilize_sequence(
        [seg("A", 0.0, 1.0), seg("B", 1.0, 1.1), seg("A", 1.1, 2.0)]
    )

    assert labels(result) == ["A", "A", "A"]
    assert stabilizer.stats.short_segments_inherited == 1
    # The short B never counted toward a change
    assert stabilizer.stats.pending_changes == 0


def test_short_first_segment_without_current_label_is_stabilized():
    stabilizer = SpeakerLabelStabilizer(required_consecutive=2, short_segment_duration=0.3)
    result = stabilizer.stabilize_sequence([seg("B", 0.0, 0.1), seg("B", 0.1, 1.0)])
    assert labels(result) == ["B", "B"]


def test_current_label_carries_in():
    stabilizer = SpeakerLabelStabilizer(required_consecutive=2)
    result = stabilizer.stabilize_sequence([seg("B", 0, 1)], current_label="A")
    assert labels(result) == ["A"]


def test_empty_raw_label_is_no_op():
    stabilizer = SpeakerLabelStabilizer(required_consecutive=2)
    assert stabilizer.stabilize("", "A") == "A"
    assert stabilizer.pending_label is None


def test_reset_clears_state_and_stats():
    stabilizer = SpeakerLabelStabilizer(required_consecutive=2)
    stabilizer.stabilize("B", "A")
    stabilizer.reset()

    assert stabilizer.pending_label is None
    assert stabilizer.last_stable_label is None
    assert stabilizer.stats.pending_changes == 0


def test_stats_suppression_rate():
    stabilizer = SpeakerLabelStabilizer(required_consecutive=2, short_segment_duration=0.0)
    stabilizer.stabilize_sequence([seg("A", 0, 1), seg("B", 1, 2), seg("B", 2, 3), seg("A", 3, 4)])

    stats = stabilizer.stats
    assert stats.committed_changes == 1
    assert stats.suppressed_changes == 2
    assert stats.suppression_rate == pytest.approx(2 / 3)
    assert "Suppressed changes: 2 (66%)" in stats.describe()


def test_temporal_smooth_counts_merges():
    stabilizer = SpeakerLabelStabilizer(required_consecutive=1, short_segment_duration=0.0)
    stabilized = stabilizer.stabilize_sequence([seg("A", 0, 2), seg("B", 2, 2.2), seg("A", 2.2, 4)])
    smoothed = stabilizer.temporal_smooth(stabilized, min_duration_for_change=0.5)

    assert labels(smoothed) == ["A", "A", "A"]
    assert labels(stabilized) == ["A", "B", "A"]
    assert stabilizer.stats.temporal_smooths == 1


def test_invalid_required_consecutive():
    with pytest.raises(ValueError):
        SpeakerLabelStabilizer(required_consecutive=0)


def test_period_one_alternation_never_changes_label():
    stabilizer = SpeakerLabelStabilizer(required_consecutive=2, short_segment_duration=0.3)
    raw = ["A", "B"] * 10
    result = stabilizer.stabilize_sequence([seg(label, i, i + 1) for i, label in enumerate(raw)])

    assert set(labels(result)) == {"A"}
    assert stabilizer.stats.committed_changes == 0
