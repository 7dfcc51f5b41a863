import math

import pytest

from meetscribe.meeting.classifier import MeetingClassifier, MeetingType, cosine_similarity

from conftest import seg


def unit(angle):
    return (math.cos(angle), math.sin(angle))


def classifier(**kwargs):
    params = dict(embedding_strategy="first", full_duration=60.0, full_segment_count=20, confident_threshold=0.8)
    params.update(kwargs)
    return MeetingClassifier(**params)


def two_speaker_meeting(similarity=0.1, count=25, total=90.0):
    """count alternating segments covering total seconds; first embeddings at the given cosine."""
    step = total / count
    a, b = (1.0, 0.0), (similarity, math.sqrt(1 - similarity**2))
    segments = []
    for i in range(count):
        speaker = "speaker_0" if i % 2 == 0 else "speaker_1"
        embedding = a if speaker == "speaker_0" else b
        segments.append(seg(speaker, i * step, (i + 1) * step, embedding))
    return segments


def test_two_speakers_is_one_on_one_with_high_confidence():
    result = classifier().classify(two_speaker_meeting())

    assert result.meeting_type == MeetingType.ONE_ON_ONE
    assert result.speaker_count == 2
    assert result.confidence == pytest.approx(0.96)
    assert result.is_confident


@pytest.mark.parametrize(
    "speakers, expected",
    [
        ([], MeetingType.UNKNOWN),
        (["A"], MeetingType.UNKNOWN),
        (["A", "B"], MeetingType.ONE_ON_ONE),
        (["A", "B", "C"], MeetingType.GROUP),
        (["A", "B", "C", "D", "E"], MeetingType.GROUP),
    ],
)
def test_type_from_distinct_speaker_count(speakers, expected):
    segments = [seg(s, i, i + 1) for i, s in enumerate(speakers)]
    assert classifier().classify(segments).meeting_type == expected


def test_empty_input_is_unknown_and_not_confident():
    result = classifier().classify([])

    assert result.speaker_count == 0
    assert result.meeting_type == MeetingType.UNKNOWN
    # Only the separation term contributes: 0.4 * 1.0
    assert result.confidence == pytest.approx(0.4)
    assert not result.is_confident


def test_confidence_stays_in_unit_interval():
    # Identical embeddings -> separation 0; anti-parallel -> similarity -1 clamps separation at 1
    same = [seg("A", 0, 100, (1.0, 0.0)), seg("B", 100, 200, (1.0, 0.0))]
    opposite = [seg("A", 0, 100, (1.0, 0.0)), seg("B", 100, 200, (-1.0, 0.0))]

    assert 0.0 <= classifier().confidence(same) <= 1.0
    assert classifier().separation_confidence(same) == pytest.approx(0.0)
    assert classifier().separation_confidence(opposite) == 1.0


def test_separation_without_embeddings_is_neutral():
    segments = [seg("A", 0, 1), seg("B", 1, 2)]
    assert classifier().separation_confidence(segments) == 0.5


def test_separation_single_speaker_is_full():
    assert classifier().separation_confidence([seg("A", 0, 1, (1.0, 0.0))]) == 1.0


def test_group_separation_uses_all_pairs():
    segments = [seg("A", 0, 1, unit(0.0)), seg("B", 1, 2, unit(math.pi / 2)), seg("C", 2, 3, unit(math.pi))]
    # cosines: A-B 0, A-C -1, B-C 0 -> mean -1/3 -> separation clamped to 1
    assert classifier().separation_confidence(segments) == 1.0


def test_first_vs_centroid_embedding_strategy():
    segments = [
        seg("A", 0, 1, (1.0, 0.0)),
        seg("B", 1, 2, (1.0, 0.0)),  # B's first embedding happens to match A
        seg("B", 2, 3, (0.0, 1.0)),
        seg("B", 3, 4, (0.0, 1.0)),
    ]
    first = classifier(embedding_strategy="first").separation_confidence(segments)
    centroid = classifier(embedding_strategy="centroid").separation_confidence(segments)

    assert first == pytest.approx(0.0)
    assert centroid > first


def test_confidence_saturates():
    segments = two_speaker_meeting(similarity=0.0, count=40, total=600.0)
    assert classifier().confidence(segments) == pytest.approx(1.0)


def test_not_confident_below_threshold():
    result = classifier().classify([seg("A", 0, 5), seg("B", 5, 10)])
    assert result.confidence < 0.8
    assert not result.is_confident


def test_unknown_strategy_rejected():
    with pytest.raises(ValueError):
        MeetingClassifier(embedding_strategy="median")


def test_cosine_similarity_edge_cases():
    assert cosine_similarity((1.0, 0.0), (1.0, 0.0)) == pytest.approx(1.0)
    assert cosine_similarity((1.0, 0.0), (0.0, 1.0)) == pytest.approx(0.0)
    assert cosine_similarity((1.0,), (1.0, 0.0)) == 0.0
    assert cosine_similarity((0.0, 0.0), (1.0, 0.0)) == 0.0
    assert cosine_similarity((), ()) == 0.0


def test_display_names():
    assert MeetingType.ONE_ON_ONE.display_name == "1:1"
    assert MeetingType.GROUP.display_name == "Group"
    assert MeetingType.UNKNOWN.value == "unknown"
