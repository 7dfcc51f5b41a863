import pytest

from meetscribe.transcript.merger import TranscriptMerger, combine_chunks
from meetscribe.transcript.models import AlignedSegment, TranscriptChunk


def test_applies_in_index_order_regardless_of_arrival():
    applied = []
    merger = TranscriptMerger(lambda index, item: applied.append((index, item)))

    assert merger.submit(2, "c") == 0
    assert merger.submit(1, "b") == 0
    assert merger.waiting == [1, 2]
    assert merger.submit(0, "a") == 3

    assert applied == [(0, "a"), (1, "b"), (2, "c")]
    assert merger.next_index == 3
    assert merger.waiting == []


def test_duplicate_submission_rejected():
    merger = TranscriptMerger(lambda index, item: None)
    merger.submit(0, "a")
    merger.submit(2, "c")

    with pytest.raises(ValueError):
        merger.submit(0, "again")
    with pytest.raises(ValueError):
        merger.submit(2, "again")


def test_reset_starts_from_given_index():
    applied = []
    merger = TranscriptMerger(lambda index, item: applied.append(index))
    merger.submit(1, "b")
    merger.reset(first_index=5)

    merger.submit(5, "f")
    assert applied == [5]


def chunk(index, segments=(), error=None):
    return TranscriptChunk(
        index=index,
        start_time=index * 60.0,
        duration=60.0,
        transcript=" ".join(s.text for s in segments),
        segments=tuple(segments),
        error=error,
    )


def test_combine_chunks_formats_speaker_lines():
    chunks = [
        chunk(1, [AlignedSegment("see you", "speaker_1", 60.0, 62.0)]),
        chunk(
            0,
            [
                AlignedSegment("hi there", "speaker_0", 0.0, 5.0),
                AlignedSegment("hello", "speaker_1", 5.0, 9.0),
            ],
        ),
        chunk(2, [AlignedSegment("background noise", None, 120.0, 180.0)]),
    ]

    assert combine_chunks(chunks) == (
        "Speaker 1: hi there\nSpeaker 2: hello\nSpeaker 2: see you\nbackground noise"
    )


def test_combine_chunks_skips_failed_and_empty():
    chunks = [
        chunk(0, [AlignedSegment("kept", "2", 0.0, 1.0), AlignedSegment("  ", "2", 1.0, 2.0)]),
        chunk(1, error="Processing failed: timed out"),
    ]
    assert combine_chunks(chunks) == "Speaker 2: kept"
    assert combine_chunks([]) == ""
