"""Tests for JSON extraction and the circuit breaker."""
import pytest

from ..circuit_breaker import CircuitBreaker, CircuitBreakerConfig, CircuitBreakerOpenError, CircuitState
from ..json_extractor import extract_json_from_text, extract_text_content


class TestJsonExtractor:

    def test_fenced_block(self):
        assert extract_json_from_text('text\n```json\n{"a": 1}\n```\nmore') == {"a": 1}

    def test_plain_fence(self):
        assert extract_json_from_text('```\n{"a": 2}\n```') == {"a": 2}

    def test_embedded_object(self):
        assert extract_json_from_text('Answer: {"a": {"b": 3}} done') == {"a": {"b": 3}}

    def test_no_json(self):
        assert extract_json_from_text("nothing here") is None
        assert extract_json_from_text("") is None

    def test_array_is_rejected(self):
        assert extract_json_from_text("[1, 2]") is None

    def test_text_content(self):
        assert extract_text_content("plain") == "plain"
        assert extract_text_content([{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]) == "ab"
        assert extract_text_content(None) == ""


class TestCircuitBreaker:

    @pytest.fixture
    def clock(self):
        return [0.0]

    @pytest.fixture
    def breaker(self, clock):
        config = CircuitBreakerConfig(name="test", failure_threshold=2, recovery_timeout=10.0, success_threshold=1)
        return CircuitBreaker(config, clock=lambda: clock[0])

    @staticmethod
    async def fail():
        raise RuntimeError("down")

    @staticmethod
    async def succeed():
        return "ok"

    @pytest.mark.asyncio
    async def test_opens_after_threshold(self, breaker):
        for _ in range(2):
            with pytest.raises(RuntimeError):
                await breaker.call(self.fail)

        assert breaker.state == CircuitState.OPEN
        with pytest.raises(CircuitBreakerOpenError):
            await breaker.call(self.succeed)
        assert breaker.stats.rejected_calls == 1

    @pytest.mark.asyncio
    async def test_recovers_after_timeout(self, breaker, clock):
        for _ in range(2):
            with pytest.raises(RuntimeError):
                await breaker.call(self.fail)

        clock[0] = 11.0
        assert await breaker.call(self.succeed) == "ok"
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_failed_probe_reopens(self, breaker, clock):
        for _ in range(2):
            with pytest.raises(RuntimeError):
                await breaker.call(self.fail)

        clock[0] = 11.0
        with pytest.raises(RuntimeError):
            await breaker.call(self.fail)
        assert breaker.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_status_and_reset(self, breaker):
        with pytest.raises(RuntimeError):
            await breaker.call(self.fail)

        status = breaker.get_status()
        assert status["name"] == "test"
        assert status["stats"]["failed_calls"] == 1

        breaker.reset()
        assert breaker.get_status()["stats"]["total_calls"] == 0
