"""Tests for IntroductionExtractor and ResponseGenerator."""

import pytest

from conftest import ZOE_JSON
from icebreaker.llm import IntroductionExtractor, ResponseGenerator, parse_introduction
from icebreaker.llm.extractor import EXTRACTION_PROMPT
from icebreaker.models import ExtractionFailure, ExtractionSuccess, Message

ALL_FIELDS = ["firstName", "lastName", "age", "interests"]


class TestParseIntroduction:
    def test_complete_record(self):
        result = parse_introduction(ZOE_JSON)

        assert isinstance(result, ExtractionSuccess)
        assert result.introduction.to_dict() == {
            "firstName": "Zoe",
            "lastName": "Zach",
            "age": 15,
            "interests": ["rock climbing"],
        }

    def test_empty_object_misses_everything(self):
        result = parse_introduction("{}")

        assert isinstance(result, ExtractionFailure)
        assert result.missing_fields == ALL_FIELDS

    def test_partial_record(self):
        result = parse_introduction('{"lastName": "Zach", "age": 15}')

        assert result.missing_fields == ["firstName", "interests"]

    def test_invalid_values_are_reported(self):
        result = parse_introduction(
            '{"firstName": "Zoe", "lastName": "Zach", "age": "unknown", "interests": []}'
        )

        assert result.missing_fields == ["age", "interests"]

    def test_nulls_count_as_missing(self):
        result = parse_introduction(
            '{"firstName": "Zoe", "lastName": null, "age": 15, "interests": ["chess"]}'
        )

        assert result.missing_fields == ["lastName"]

    def test_json_wrapped_in_prose(self):
        raw = f"Here is what I found:\n```json\n{ZOE_JSON}\n```"

        assert isinstance(parse_introduction(raw), ExtractionSuccess)

    @pytest.mark.parametrize("raw", ["", "no idea", "{not json}", "[1, 2]"])
    def test_unparseable_reply(self, raw):
        result = parse_introduction(raw)

        assert isinstance(result, ExtractionFailure)
        assert result.missing_fields == ALL_FIELDS

    def test_numeric_string_age_is_accepted(self):
        result = parse_introduction(
            '{"firstName": "Zoe", "lastName": "Zach", "age": "15", "interests": ["x"]}'
        )

        assert result.introduction.age == 15


class TestIntroductionExtractor:
    @pytest.mark.asyncio
    async def test_extracts_zoe(self, mock_llm):
        mock_llm.complete.return_value = ZOE_JSON
        extractor = IntroductionExtractor(mock_llm)

        result = await extractor.extract(
            [Message.from_user("name is Zoe, last name is Zach, am 15, like rock climbing")]
        )

        assert result.success is True
        assert result.introduction.first_name == "Zoe"
        kwargs = mock_llm.complete.call_args.kwargs
        assert kwargs["system"] == EXTRACTION_PROMPT
        assert kwargs["messages"] == [
            {
                "role": "user",
                "content": "name is Zoe, last name is Zach, am 15, like rock climbing",
            }
        ]

    @pytest.mark.asyncio
    async def test_hi_misses_every_field(self, mock_llm):
        extractor = IntroductionExtractor(mock_llm)

        result = await extractor.extract([Message.from_user("hi")])

        assert result.success is False
        assert result.missing_fields == ALL_FIELDS

    @pytest.mark.asyncio
    async def test_llm_error_is_not_fatal(self, mock_llm):
        mock_llm.complete.side_effect = RuntimeError("LLM API error: boom")
        extractor = IntroductionExtractor(mock_llm)

        result = await extractor.extract([Message.from_user("I'm Zoe")])

        assert result.missing_fields == ALL_FIELDS

    @pytest.mark.asyncio
    async def test_empty_log_skips_llm(self, mock_llm):
        extractor = IntroductionExtractor(mock_llm)

        result = await extractor.extract([])

        assert result.success is False
        mock_llm.complete.assert_not_called()


class TestResponseGenerator:
    @pytest.mark.asyncio
    async def test_streams_chunks(self, mock_llm):
        responder = ResponseGenerator(mock_llm)

        chunks = [
            chunk
            async for chunk in responder.stream([Message.from_user("hi")], ALL_FIELDS)
        ]

        assert chunks == ["What is", " your name?"]

    @pytest.mark.asyncio
    async def test_prompt_lists_missing_fields(self, mock_llm):
        responder = ResponseGenerator(mock_llm, max_tokens=128)

        async for _ in responder.stream([Message.from_user("hi")], ["age", "interests"]):
            pass

        kwargs = mock_llm.stream.call_args.kwargs
        assert "age, interests" in kwargs["system"]
        assert kwargs["max_tokens"] == 128
        assert kwargs["messages"] == [{"role": "user", "content": "hi"}]
