import pytest
from pydantic import ValidationError

from learning_timeline.refinement_generator.suggestions import (CheckpointImprove, ConceptAdd, SUGGESTION_ARRAYS,
                                                                apply_suggestion_to_video,
                                                                normalize_suggestion_bundle, parse_suggestion)


def _video(make_concepts):
    return {
        "duration": 694,
        "concepts": make_concepts(5),
        "checkpoints": [
            {"timestamp": 90, "type": "quickQuiz", "prompt": "First?"},
            {"timestamp": 300, "type": "reflection", "prompt": "Second?"},
        ],
        "quiz": [{"question": "What is REST?", "options": ["A", "B"], "correctAnswer": 0}],
    }


def test_concept_add_appends_one_concept(make_concepts):
    video = _video(make_concepts)
    suggestion = parse_suggestion("conceptAdd", {
        "concept": {"concept": "Pagination", "timestamp": 400, "conceptType": "main"},
        "reason": "Not covered",
    })

    result = apply_suggestion_to_video(video, suggestion)

    assert len(result["concepts"]) == 6
    assert result["concepts"][-1]["concept"] == "Pagination"
    assert result["checkpoints"] == video["checkpoints"]
    assert result["quiz"] == video["quiz"]
    assert len(video["concepts"]) == 5


def test_added_concept_is_bounded_by_duration(make_concepts):
    suggestion = parse_suggestion("conceptAdd", {"concept": {"concept": "Late", "timestamp": "20:00"}})
    result = apply_suggestion_to_video(_video(make_concepts), suggestion)
    assert result["concepts"][-1]["timestamp"] == 694


def test_concept_improve_replaces_by_title(make_concepts):
    suggestion = parse_suggestion("conceptImprove", {
        "original": {"concept": "Concept 2"},
        "improved": {"concept": "Concept 2, clarified", "timestamp": 120, "visualEmphasis": "yes"},
    })
    result = apply_suggestion_to_video(_video(make_concepts), suggestion)

    titles = [c["concept"] for c in result["concepts"]]
    assert titles == ["Concept 0", "Concept 1", "Concept 2, clarified", "Concept 3", "Concept 4"]
    assert result["concepts"][2]["visualEmphasis"] is True


def test_improve_without_match_changes_nothing(make_concepts):
    video = _video(make_concepts)
    suggestion = parse_suggestion("quizImprove", {
        "original": {"question": "Unknown question"},
        "improved": {"question": "Better"},
    })
    assert apply_suggestion_to_video(video, suggestion)["quiz"] == video["quiz"]


def test_checkpoint_improve_replaces_by_index(make_concepts):
    suggestion = parse_suggestion("checkpointImprove", {
        "originalIndex": 1,
        "improved": {"timestamp": 320, "type": "application", "prompt": "Try it"},
    })
    result = apply_suggestion_to_video(_video(make_concepts), suggestion)

    assert result["checkpoints"][0]["prompt"] == "First?"
    assert result["checkpoints"][1]["type"] == "application"
    assert result["checkpoints"][1]["pauseDelaySeconds"] == 0.35


def test_checkpoint_improve_out_of_range_is_ignored(make_concepts):
    video = _video(make_concepts)
    suggestion = parse_suggestion("checkpointImprove", {"originalIndex": 7, "improved": {"timestamp": 1}})
    assert apply_suggestion_to_video(video, suggestion)["checkpoints"] == video["checkpoints"]


def test_quiz_add_and_checkpoint_add(make_concepts):
    video = _video(make_concepts)
    quiz_add = parse_suggestion("quizAdd", {"question": {"question": "New?", "options": ["x"], "correctAnswer": 0}})
    checkpoint_add = parse_suggestion("checkpointAdd", {"checkpoint": {"timestamp": 500, "type": "prediction"}})

    assert len(apply_suggestion_to_video(video, quiz_add)["quiz"]) == 2
    assert len(apply_suggestion_to_video(video, checkpoint_add)["checkpoints"]) == 3


def test_parse_suggestion_picks_variant():
    assert isinstance(parse_suggestion("conceptAdd", {"concept": {}}), ConceptAdd)
    assert isinstance(parse_suggestion("checkpointImprove", {"originalIndex": 0, "improved": {}}), CheckpointImprove)


@pytest.mark.parametrize("suggestion_type, payload", [
    ("timelineGap", {"startTime": 1, "endTime": 2}),
    ("conceptAdd", {}),
    ("conceptImprove", {"improved": {}}),
    ("checkpointImprove", {"originalIndex": -1, "improved": {}}),
    ("quizAdd", {"question": "not an object"}),
])
def test_parse_suggestion_rejects_bad_payloads(suggestion_type, payload):
    with pytest.raises(ValidationError):
        parse_suggestion(suggestion_type, payload)


def test_normalize_fills_missing_arrays():
    bundle = normalize_suggestion_bundle({"conceptsToAdd": [{"reason": "x"}], "timelineGaps": None, "note": "kept"})
    assert set(SUGGESTION_ARRAYS) <= set(bundle)
    assert bundle["conceptsToAdd"] == [{"reason": "x"}]
    assert bundle["timelineGaps"] == []
    assert bundle["note"] == "kept"
