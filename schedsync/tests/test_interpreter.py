"""Tests for the interpreter: prompt, model call and end-to-end interpret()."""

import datetime as dt
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import requests

from schedsync.config import LLMSettings
from schedsync.errors import InterpretationError, ModelConfigError, ModelTransportError
from schedsync.interpreter import interpret, llm
from schedsync.interpreter.prompts import build_system_prompt
from schedsync.models.slots import Action

REF = dt.date(2024, 6, 3)


def _settings(api_key="sk-test"):
    return SimpleNamespace(llm=LLMSettings(api_key=api_key))


def _response(status=200, payload=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.text = text
    resp.json.return_value = payload
    return resp


class TestSystemPrompt:
    """The instruction text given to the model."""

    def test_contains_reference_date_and_weekday(self):
        prompt = build_system_prompt(REF)
        assert "2024-06-03" in prompt
        assert "Monday" in prompt

    def test_mentions_full_day_sentinel(self):
        prompt = build_system_prompt(REF)
        assert "start_hour=0, end_hour=24" in prompt

    def test_includes_event_range_when_given(self):
        prompt = build_system_prompt(REF, (dt.date(2024, 6, 3), dt.date(2024, 6, 9)))
        assert "between 2024-06-03 and 2024-06-09" in prompt

    def test_omits_range_when_absent(self):
        assert "scheduling between" not in build_system_prompt(REF)


class TestModelCall:
    """The single HTTP call to the model."""

    @pytest.mark.asyncio
    async def test_missing_key_is_config_error(self):
        with patch.object(llm, "get_settings", return_value=_settings(api_key="")), \
                patch.object(llm.requests, "post") as post:
            with pytest.raises(ModelConfigError):
                await llm.complete("system", "hello")
        post.assert_not_called()

    @pytest.mark.asyncio
    async def test_returns_first_text_block(self):
        payload = {"content": [{"type": "text", "text": '{"action": "add", "dates": []}'}]}
        with patch.object(llm, "get_settings", return_value=_settings()), \
                patch.object(llm.requests, "post", return_value=_response(payload=payload)) as post:
            text = await llm.complete("system prompt", "I'm free Monday")

        assert text == '{"action": "add", "dates": []}'
        _, kwargs = post.call_args
        assert kwargs["headers"]["x-api-key"] == "sk-test"
        assert kwargs["json"]["system"] == "system prompt"
        assert kwargs["json"]["messages"] == [{"role": "user", "content": "I'm free Monday"}]

    @pytest.mark.asyncio
    async def test_non_2xx_is_transport_error(self):
        with patch.object(llm, "get_settings", return_value=_settings()), \
                patch.object(llm.requests, "post", return_value=_response(status=529, text="overloaded")):
            with pytest.raises(ModelTransportError) as exc_info:
                await llm.complete("system", "hello")
        assert exc_info.value.context == {"upstream_status": 529}

    @pytest.mark.asyncio
    async def test_network_failure_is_transport_error(self):
        with patch.object(llm, "get_settings", return_value=_settings()), \
                patch.object(llm.requests, "post", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(ModelTransportError):
                await llm.complete("system", "hello")

    @pytest.mark.asyncio
    async def test_unexpected_envelope_is_transport_error(self):
        with patch.object(llm, "get_settings", return_value=_settings()), \
                patch.object(llm.requests, "post", return_value=_response(payload={"content": []})):
            with pytest.raises(ModelTransportError):
                await llm.complete("system", "hello")


class TestInterpret:
    """interpret() end to end with the model call mocked."""

    @pytest.mark.asyncio
    async def test_interprets_reply(self):
        reply = (
            '```json\n{"action": "add", "dates": [{"date": "2024-06-08", '
            '"slots": [{"start_hour": 14, "end_hour": 17, "availability_type": "available"}]}]}\n```'
        )
        with patch.object(llm, "complete", AsyncMock(return_value=reply)) as complete:
            change_set = await interpret("I'm free Saturday 2-5 PM", REF)

        complete.assert_awaited_once()
        system, message = complete.await_args.args
        assert "2024-06-03" in system
        assert message == "I'm free Saturday 2-5 PM"
        assert change_set.action == Action.ADD
        assert change_set.dates[0].date == dt.date(2024, 6, 8)
        assert (change_set.dates[0].slots[0].start_hour, change_set.dates[0].slots[0].end_hour) == (14, 17)

    @pytest.mark.asyncio
    async def test_unparseable_reply_raises_without_retry(self):
        complete = AsyncMock(return_value="Sorry, I can't help with that.")
        with patch.object(llm, "complete", complete):
            with pytest.raises(InterpretationError) as exc_info:
                await interpret("gibberish", REF)
        assert complete.await_count == 1
        assert exc_info.value.context["raw"] == "Sorry, I can't help with that."

    @pytest.mark.asyncio
    async def test_empty_dates_is_empty_change_set(self):
        with patch.object(llm, "complete", AsyncMock(return_value='{"action": "add", "dates": []}')):
            change_set = await interpret("hello there", REF)
        assert change_set.is_empty
