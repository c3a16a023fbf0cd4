"""Unit tests for exam content parsing and loaders."""

import json

import pytest

from src.modules.exam import (
    ChoiceQuestion,
    ClozeQuestion,
    Exam,
    InMemoryExamLoader,
    JsonFileExamLoader,
    QuestionKind,
    StepsQuestion,
    TextQuestion,
    VideoEmbed,
    build_exam,
)
from src.shared.exceptions import (
    ExamNotFoundError,
    InvalidExamContentError,
    QuestionNotFoundError,
)


class TestQuestionKind:
    """Tests for QuestionKind."""

    def test_legacy_video_tag(self):
        assert QuestionKind.parse("youtube-embed") == QuestionKind.VIDEO_EMBED
        assert QuestionKind.parse("video-embed") == QuestionKind.VIDEO_EMBED

    def test_fillers(self):
        fillers = {kind for kind in QuestionKind if kind.is_filler}
        assert fillers == {QuestionKind.INFO_BLOCK, QuestionKind.VIDEO_EMBED}

    def test_unknown_tag(self):
        with pytest.raises(ValueError):
            QuestionKind.parse("essay")


class TestBuildExam:
    """Tests for converting builder content into an Exam."""

    def test_builds_every_kind_in_order(self, sample_exam):
        kinds = [q.kind for q in sample_exam.elements]
        assert kinds == [
            QuestionKind.SHORT_TEXT,
            QuestionKind.SINGLE_CHOICE,
            QuestionKind.INFO_BLOCK,
            QuestionKind.MULTIPLE_CHOICE,
            QuestionKind.TRUE_FALSE,
            QuestionKind.CLOZE,
            QuestionKind.STEPS,
            QuestionKind.FLASHCARD,
            QuestionKind.VIDEO_EMBED,
        ]
        assert sample_exam.title == "Cell Biology"
        assert sample_exam.introduction_text == "Answer every question without notes."

    def test_numeric_ids_become_strings(self, sample_exam):
        assert sample_exam.elements[0].id == "1700000000001"

    def test_scorable_questions_skip_fillers(self, sample_exam):
        assert sample_exam.element_count == 9
        assert len(sample_exam.scorable_questions) == 7

    def test_time_limit(self, sample_exam):
        first = sample_exam.elements[0]
        assert first.time_limit_seconds == 30
        assert first.has_time_limit
        assert not sample_exam.elements[1].has_time_limit

    @pytest.mark.parametrize("value", [0, "", None])
    def test_blank_time_limit_means_untimed(self, value):
        exam = build_exam("e", {"questions": [{"id": "a", "type": "short-text", "timeLimit": value}]})
        assert exam.elements[0].time_limit_seconds is None

    def test_negative_time_limit_rejected(self):
        with pytest.raises(InvalidExamContentError):
            build_exam("e", {"questions": [{"id": "a", "type": "short-text", "timeLimit": -5}]})

    def test_choice_fields(self, sample_exam):
        question = sample_exam.elements[3]
        assert isinstance(question, ChoiceQuestion)
        assert question.correct_labels == ["Nucleus", "Lysosome"]

    def test_correct_index_out_of_range(self):
        content = {"questions": [{"id": "a", "type": "single-choice", "choices": ["x"], "correct": [3]}]}
        with pytest.raises(InvalidExamContentError, match="out of range"):
            build_exam("e", content)

    def test_cloze_segments(self, sample_exam):
        question = sample_exam.elements[5]
        assert isinstance(question, ClozeQuestion)
        assert question.gap_tokens == ("1", "2")
        segments = question.segments()
        assert [s.text for s in segments if not s.is_gap] == ["The ", " is the powerhouse of the ", "."]
        assert [s.gap for s in segments if s.is_gap] == ["1", "2"]

    def test_cloze_repeated_gap_counted_once(self):
        question = ClozeQuestion(id="c", prompt="{{1}} and {{1}} and {{3}}")
        assert question.gap_tokens == ("1", "3")
        assert question.gap_count == 2

    def test_video_embed_url(self, sample_exam):
        video = sample_exam.elements[-1]
        assert isinstance(video, VideoEmbed)
        assert video.embed_url == "https://www.youtube.com/embed/dQw4w9WgXcQ"
        assert VideoEmbed(id="v").embed_url is None

    def test_unknown_type_rejected(self):
        with pytest.raises(InvalidExamContentError, match="unknown element type"):
            build_exam("e", {"questions": [{"id": "a", "type": "essay"}]})

    def test_duplicate_ids_rejected(self):
        content = {"questions": [{"id": "a", "type": "short-text"}, {"id": "a", "type": "long-text"}]}
        with pytest.raises(InvalidExamContentError, match="duplicate"):
            build_exam("e", content)

    def test_column_metadata_wins(self, exam_content):
        exam = build_exam("e", exam_content, title="Row title", description="", introduction_text=None)
        assert exam.title == "Row title"
        assert exam.description == ""
        assert exam.introduction_text == exam_content["introductionText"]

    def test_empty_content(self):
        exam = build_exam("empty", {})
        assert exam.element_count == 0
        assert exam.scorable_questions == []

    def test_get_question(self, sample_exam):
        assert sample_exam.get_question("q2").prompt == "Which organelle makes ATP?"
        with pytest.raises(QuestionNotFoundError):
            sample_exam.get_question("missing")


class TestInMemoryExamLoader:
    """Tests for InMemoryExamLoader."""

    @pytest.mark.asyncio
    async def test_load_registered_exam(self, three_question_exam):
        loader = InMemoryExamLoader({"three": three_question_exam})
        assert await loader.load_exam("three") is three_question_exam

    @pytest.mark.asyncio
    async def test_add_content(self, exam_content):
        loader = InMemoryExamLoader()
        loader.add_content("bio", exam_content)
        exam = await loader.load_exam("bio")
        assert exam.element_count == 9

    @pytest.mark.asyncio
    async def test_missing_exam(self):
        with pytest.raises(ExamNotFoundError):
            await InMemoryExamLoader().load_exam("nope")


class TestJsonFileExamLoader:
    """Tests for JsonFileExamLoader."""

    @pytest.mark.asyncio
    async def test_load_document(self, tmp_path, exam_content):
        (tmp_path / "bio.json").write_text(json.dumps(exam_content), encoding="utf-8")
        loader = JsonFileExamLoader(tmp_path)

        exam = await loader.load_exam("bio")

        assert isinstance(exam, Exam)
        assert exam.id == "bio"
        assert exam.element_count == 9
        assert loader.list_exam_ids() == ["bio"]

    @pytest.mark.asyncio
    async def test_load_exported_row(self, tmp_path):
        row = {
            "title": "Exported",
            "description": "From the database",
            "content": {"questions": [{"id": "a", "type": "steps", "steps": ["one", "two"]}]},
        }
        (tmp_path / "row.json").write_text(json.dumps(row), encoding="utf-8")

        exam = await JsonFileExamLoader(tmp_path).load_exam("row")

        assert exam.title == "Exported"
        assert exam.description == "From the database"
        assert isinstance(exam.elements[0], StepsQuestion)

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(ExamNotFoundError):
            await JsonFileExamLoader(tmp_path).load_exam("absent")

    @pytest.mark.asyncio
    async def test_path_like_id_not_found(self, tmp_path):
        with pytest.raises(ExamNotFoundError):
            await JsonFileExamLoader(tmp_path).load_exam("../secrets")

    @pytest.mark.asyncio
    async def test_invalid_json(self, tmp_path):
        (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(InvalidExamContentError, match="invalid JSON"):
            await JsonFileExamLoader(tmp_path).load_exam("bad")

    @pytest.mark.asyncio
    async def test_non_object_document(self, tmp_path):
        (tmp_path / "list.json").write_text("[]", encoding="utf-8")
        with pytest.raises(InvalidExamContentError):
            await JsonFileExamLoader(tmp_path).load_exam("list")

    def test_list_missing_library(self, tmp_path):
        assert JsonFileExamLoader(tmp_path / "nowhere").list_exam_ids() == []


def test_text_question_defaults():
    question = TextQuestion(id="t", kind=QuestionKind.LONG_TEXT)
    assert question.is_scorable
    assert question.answer == ""
