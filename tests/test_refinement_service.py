import json

import pytest

from conftest import FakeAssetManager, FakeGemini
from learning_timeline.common.artifact_store import ArtifactStore
from learning_timeline.common.exceptions import MissingConceptsError, VideoNotFoundError
from learning_timeline.refinement_generator.service import RefinementService
from learning_timeline.refinement_generator.structured_output_schema import ENGAGEMENT_ANALYSIS_SCHEMA
from learning_timeline.refinement_generator.suggestions import parse_suggestion

ENGAGEMENT = {
    "engagementRate": {"score": 70, "strengths": ["Pacing"], "weaknesses": []},
    "overallAnalysis": {"totalScore": 68, "tier": "Good", "topPriorities": []},
}


@pytest.fixture
def assets(make_concepts):
    return FakeAssetManager({
        "vid-1": {"status": "ready", "duration": 694, "title": "APIs", "concepts": make_concepts(5),
                  "checkpoints": [], "quiz": []},
        "empty": {"status": "ready", "concepts": []},
    })


def _service(assets, gemini, supervisor, **kwargs):
    return RefinementService(assets, gemini, supervisor, **kwargs)


def test_refinement_stores_normalized_suggestions(assets, supervisor):
    response = 'Here you go:\n```json\n{"conceptsToAdd": [{"concept": {"concept": "Auth"}, "reason": "gap"}]}\n```'
    gemini = FakeGemini([response])
    service = _service(assets, gemini, supervisor)

    service.start_refinement("vid-1", focus_area="pacing")

    video = assets.videos["vid-1"]
    assert video["refinementStatus"] == "complete"
    assert video["refinementFocusArea"] == "pacing"
    assert len(video["refinementSuggestions"]["conceptsToAdd"]) == 1
    assert video["refinementSuggestions"]["quizQuestionsToImprove"] == []
    assert video["refinementCompletedAt"] is not None
    assert 'wants to improve: "pacing"' in gemini.generate_calls[0]["prompt"]
    assert supervisor.submitted == ["refine:vid-1"]


def test_refinement_uses_stored_engagement_analysis(assets, supervisor):
    assets.videos["vid-1"]["engagementAnalysis"] = ENGAGEMENT
    gemini = FakeGemini(["{}"])
    _service(assets, gemini, supervisor).start_refinement("vid-1")

    prompt = gemini.generate_calls[0]["prompt"]
    assert "**Engagement Score**: 70/100" in prompt
    assert "CREATOR FOCUS" not in prompt


def test_restart_clears_previous_results_and_focus(assets, supervisor):
    assets.videos["vid-1"].update({"refinementStatus": "error", "refinementError": "boom",
                                   "refinementFocusArea": "old focus"})
    gemini = FakeGemini(["{}"])
    _service(assets, gemini, supervisor).start_refinement("vid-1")

    video = assets.videos["vid-1"]
    assert video["refinementStatus"] == "complete"
    assert "refinementError" not in video
    assert "refinementFocusArea" not in video


def test_unparseable_refinement_response_is_an_error(assets, supervisor):
    _service(assets, FakeGemini(["Sorry, no suggestions today."]), supervisor).start_refinement("vid-1")

    video = assets.videos["vid-1"]
    assert video["refinementStatus"] == "error"
    assert video["refinementError"] == "Failed to parse AI response"
    assert "refinementSuggestions" not in video


def test_refinement_needs_concepts(assets, supervisor):
    service = _service(assets, FakeGemini(), supervisor)
    with pytest.raises(MissingConceptsError):
        service.start_refinement("empty")
    with pytest.raises(VideoNotFoundError):
        service.start_refinement("missing")
    assert "refinementStatus" not in assets.videos["empty"]


def test_engagement_analysis_is_stored(assets, supervisor):
    gemini = FakeGemini([json.dumps(ENGAGEMENT)])
    service = _service(assets, gemini, supervisor)

    service.start_engagement_analysis("vid-1")

    video = assets.videos["vid-1"]
    assert video["engagementStatus"] == "complete"
    assert video["engagementAnalysis"] == ENGAGEMENT
    assert video["engagementAnalyzedAt"] is not None
    assert gemini.generate_calls[0]["response_schema"] is ENGAGEMENT_ANALYSIS_SCHEMA

    status = service.get_engagement_status("vid-1")
    assert status["engagementStatus"] == "complete"
    assert status["engagementError"] is None


def test_engagement_without_concepts_leaves_status_unchanged(assets, supervisor):
    assets.videos["empty"]["engagementStatus"] = "complete"
    service = _service(assets, FakeGemini(), supervisor)

    with pytest.raises(MissingConceptsError):
        service.start_engagement_analysis("empty")

    assert assets.videos["empty"]["engagementStatus"] == "complete"
    assert supervisor.submitted == []


def test_engagement_failure_records_error(assets, supervisor):
    _service(assets, FakeGemini([RuntimeError("model overloaded")]), supervisor).start_engagement_analysis("vid-1")

    video = assets.videos["vid-1"]
    assert video["engagementStatus"] == "error"
    assert video["engagementError"] == "model overloaded"


def test_status_defaults_to_idle(assets, supervisor):
    service = _service(assets, FakeGemini(), supervisor)
    assert service.get_refinement_status("vid-1") == {
        "refinementStatus": "idle",
        "refinementSuggestions": None,
        "refinementCompletedAt": None,
        "refinementError": None,
    }
    assert service.get_engagement_status("vid-1")["engagementStatus"] == "idle"
    with pytest.raises(VideoNotFoundError):
        service.get_refinement_status("missing")


def test_apply_suggestion_persists_and_returns_video(assets, supervisor):
    service = _service(assets, FakeGemini(), supervisor)
    suggestion = parse_suggestion("conceptAdd", {"concept": {"concept": "Auth", "timestamp": 999}})

    updated = service.apply_suggestion("vid-1", suggestion)

    assert len(updated["concepts"]) == 6
    assert updated["concepts"][-1]["timestamp"] == 694
    assert len(assets.videos["vid-1"]["concepts"]) == 6
    assert updated["id"] == "vid-1"


def test_apply_suggestion_updates_existing_snapshot(assets, supervisor, tmp_path):
    artifacts = ArtifactStore(str(tmp_path))
    with open(artifacts.path_for("vid-1"), "w", encoding="utf-8") as f:
        json.dump({"videoId": "vid-1", "parsedAnalysis": {"concepts": [], "summary": "kept"}}, f)
    service = _service(assets, FakeGemini(), supervisor, artifacts=artifacts)

    service.apply_suggestion("vid-1", parse_suggestion("quizAdd", {"question": {"question": "Q?"}}))

    with open(artifacts.path_for("vid-1"), encoding="utf-8") as f:
        snapshot = json.load(f)
    assert len(snapshot["parsedAnalysis"]["concepts"]) == 5
    assert snapshot["parsedAnalysis"]["quiz"] == [{"question": "Q?"}]
    assert snapshot["parsedAnalysis"]["summary"] == "kept"
