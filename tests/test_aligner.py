import pytest

from meetscribe.transcript.aligner import TranscriptSpeakerAligner

from conftest import seg


def test_words_split_proportionally_between_speakers():
    aligner = TranscriptSpeakerAligner()
    result = aligner.align(
        "one two three four five six seven eight nine ten",
        [seg("speaker_0", 0.0, 5.0), seg("speaker_1", 5.0, 10.0)],
        chunk_start=60.0,
        chunk_duration=10.0,
    )

    assert [(s.speaker, s.text) for s in result] == [
        ("speaker_0", "one two three four five"),
        ("speaker_1", "six seven eight nine ten"),
    ]
    assert (result[1].start_time, result[1].end_time) == (65.0, 70.0)


def test_no_segments_gives_one_unknown_speaker_span():
    result = TranscriptSpeakerAligner().align("hello there", [], chunk_start=5.0, chunk_duration=10.0)

    assert len(result) == 1
    assert result[0].speaker is None
    assert result[0].text == "hello there"
    assert (result[0].start_time, result[0].end_time) == (5.0, 15.0)


def test_empty_transcript_with_segments_gives_nothing():
    assert TranscriptSpeakerAligner().align("   ", [seg("A", 0, 1)], 0.0, 1.0) == []


def test_segment_with_empty_window_is_skipped():
    result = TranscriptSpeakerAligner().align(
        "one two", [seg("A", 0.0, 0.1), seg("B", 0.1, 10.0)], chunk_start=0.0, chunk_duration=10.0
    )
    assert [(s.speaker, s.text) for s in result] == [("B", "one two")]


def test_segment_beyond_transcript_is_skipped():
    result = TranscriptSpeakerAligner().align(
        "one two three four", [seg("A", 0.0, 10.0), seg("B", 10.0, 12.0)], chunk_start=0.0, chunk_duration=10.0
    )
    assert [s.speaker for s in result] == ["A"]


def test_repeated_speakers_stay_separate():
    result = TranscriptSpeakerAligner().align(
        "a b c d", [seg("A", 0, 1), seg("A", 1, 2), seg("B", 2, 4)], chunk_start=0.0, chunk_duration=4.0
    )
    assert [(s.speaker, s.text) for s in result] == [("A", "a"), ("A", "b"), ("B", "c d")]


def test_word_ranges_cover_each_word_at_most_once():
    segments = [seg("A", 0, 3), seg("B", 3, 7), seg("A", 7, 10)]
    ranges = TranscriptSpeakerAligner.word_ranges(23, segments, 10.0)

    covered = [i for lo, hi in ranges for i in range(lo, hi)]
    assert len(covered) == len(set(covered))
    assert all(0 <= i < 23 for i in covered)


def test_non_positive_duration_rejected():
    with pytest.raises(ValueError):
        TranscriptSpeakerAligner().align("a b", [seg("A", 0, 1)], 0.0, 0.0)
