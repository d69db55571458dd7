import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest
from openai import OpenAIError

from blog.articles.services.backends import (
    GenerateApiBackend,
    MalformedResponseError,
    OpenAIChatBackend,
    TranslationBackendError,
    build_backend,
    extract_translated_text,
)
from blog.articles.services.segmenter import segment
from blog.articles.services.translation import (
    ChunkedTranslator,
    ResultStatus,
    TranslationResult,
    reassemble,
)
from blog.config import Config

from conftest import FailingBackend, PrefixBackend, SleepRecorder, make_translator


class FlakyBackend:
    """처음 failures 회는 실패, 이후 성공"""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    async def translate(self, text: str) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise TranslationBackendError(f"attempt {self.calls} failed")
        return text.upper()


class BracketBackend:
    async def translate(self, text: str) -> str:
        return f"[{text}]"


# --- chunk 단위 재시도 ---

async def test_chunk_succeeds_after_transient_failures():
    backend = FlakyBackend(failures=2)
    sleep = SleepRecorder()
    translator = ChunkedTranslator(backend, retry_delay=1.0, sleep=sleep)

    result = await translator.translate_chunk(segment("bonjour", 500)[0])

    assert result.status == ResultStatus.TRANSLATED
    assert result.text == "BONJOUR"
    assert result.attempts == 3
    assert backend.calls == 3
    assert sleep.delays == [1.0, 1.0]


async def test_chunk_falls_back_after_max_retries():
    backend = FailingBackend("HTTP 500")
    sleep = SleepRecorder()
    translator = ChunkedTranslator(backend, max_retries=3, retry_delay=1.0, sleep=sleep)

    result = await translator.translate_chunk(segment("<p>Salut</p>", 500)[0])

    assert result.is_fallback
    assert result.text == "<p>Salut</p>"
    assert result.original == "<p>Salut</p>"
    assert result.reason == "HTTP 500"
    assert result.attempts == 3
    assert len(backend.calls) == 3
    # 마지막 시도 뒤에는 대기하지 않음
    assert sleep.delays == [1.0, 1.0]


async def test_unexpected_backend_exception_counts_as_chunk_failure():
    class BrokenBackend:
        def __init__(self):
            self.calls = []

        async def translate(self, text):
            self.calls.append(text)
            raise RuntimeError("client closed")

    backend = BrokenBackend()
    sleep = SleepRecorder()
    translator = ChunkedTranslator(backend, max_retries=3, retry_delay=1.0, sleep=sleep)

    result = await translator.translate_chunk(segment("<p>Salut</p>", 500)[0])

    assert result.is_fallback
    assert result.text == "<p>Salut</p>"
    assert "RuntimeError" in result.reason
    assert result.attempts == 3
    assert len(backend.calls) == 3
    assert sleep.delays == [1.0, 1.0]


async def test_task_cancellation_is_not_swallowed():
    class CancelledBackend:
        async def translate(self, text):
            raise asyncio.CancelledError()

    translator = make_translator(CancelledBackend(), max_retries=3)
    with pytest.raises(asyncio.CancelledError):
        await translator.translate_chunk(segment("bonjour", 500)[0])


def test_max_retries_must_be_positive():
    with pytest.raises(ValueError):
        ChunkedTranslator(PrefixBackend(), max_retries=0)


# --- 문서 번역 ---

async def test_empty_document_makes_no_backend_calls():
    backend = PrefixBackend()
    sleep = SleepRecorder()
    translator = ChunkedTranslator(backend, sleep=sleep)

    outcome = await translator.translate_document("   ")

    assert outcome.text == ""
    assert outcome.results == []
    assert backend.calls == []
    assert sleep.delays == []


async def test_document_chunks_are_reassembled_in_order():
    text = "".join(f"<p>Phrase numéro {i}.</p>" for i in range(30))
    translator = make_translator(BracketBackend(), min_chunk_size=60)

    outcome = await translator.translate_document(text)

    expected = "".join(f"[{c.text}]" for c in segment(text, 60))
    assert outcome.text == expected
    assert [r.index for r in outcome.results] == list(range(len(outcome.results)))
    assert outcome.succeeded == len(outcome.results)
    assert outcome.fell_back == 0


async def test_request_pacing_skips_final_chunk():
    sleep = SleepRecorder()
    translator = ChunkedTranslator(PrefixBackend(), min_chunk_size=500, request_delay=0.2, sleep=sleep)

    outcome = await translator.translate_document("a" * 1050)

    assert len(outcome.results) == 3
    assert sleep.delays == [0.2, 0.2]


async def test_total_backend_failure_returns_original_text():
    text = "<h1>Titre</h1>" + "<p>" + "mot " * 300 + "</p>"
    backend = FailingBackend()
    translator = make_translator(backend, min_chunk_size=200, max_retries=3)

    outcome = await translator.translate_document(text)

    assert outcome.text == text
    assert outcome.succeeded == 0
    assert outcome.fell_back == len(outcome.results)
    assert len(backend.calls) == 3 * len(outcome.results)


async def test_partial_failure_keeps_translated_chunks():
    class FailSecond:
        def __init__(self):
            self.seen = 0

        async def translate(self, text):
            self.seen += 1
            # 두 번째 청크(시도 2~4)만 실패
            if 2 <= self.seen <= 4:
                raise TranslationBackendError("boom")
            return text.upper()

    translator = make_translator(FailSecond(), min_chunk_size=500, max_retries=3)

    outcome = await translator.translate_document("a" * 500 + "b" * 500 + "c" * 10)

    assert outcome.text == "A" * 500 + "b" * 500 + "C" * 10
    assert [r.status for r in outcome.results] == [
        ResultStatus.TRANSLATED, ResultStatus.FALLBACK, ResultStatus.TRANSLATED,
    ]


async def test_cancellation_falls_back_for_remaining_chunks():
    cancel = asyncio.Event()

    class CancelAfterFirst:
        async def translate(self, text):
            cancel.set()
            return text.upper()

    sleep = SleepRecorder()
    translator = ChunkedTranslator(CancelAfterFirst(), min_chunk_size=500, sleep=sleep)

    outcome = await translator.translate_document("a" * 1050, cancel_event=cancel)

    assert outcome.cancelled is True
    assert outcome.text == "A" * 500 + "a" * 550
    assert [r.reason for r in outcome.results[1:]] == ["cancelled", "cancelled"]
    assert outcome.attempted == 1
    assert sleep.delays == []


async def test_forced_cuts_are_reported_on_outcome():
    text = "<div>" + "<span>a</span>" * 10
    translator = make_translator(BracketBackend(), min_chunk_size=5, max_extension_attempts=3)

    outcome = await translator.translate_document(text)

    assert outcome.forced_cuts == 1
    assert outcome.results[0].forced is True
    assert outcome.results[0].text == "[<div>]"


async def test_translate_multiple_preserves_input_order():
    translator = make_translator(PrefixBackend())
    assert await translator.translate_multiple(["un", "", "trois"]) == ["EN un", "", "EN trois"]


async def test_translate_to_english_returns_text():
    translator = make_translator(PrefixBackend())
    assert await translator.translate_to_english("<p>Bonjour</p>") == "EN <p>Bonjour</p>"


def test_reassemble():
    assert reassemble([]) == ""
    results = [
        TranslationResult(index=1, status=ResultStatus.TRANSLATED, text="B", original="b"),
        TranslationResult(index=0, status=ResultStatus.FALLBACK, text="a", original="a", reason="x"),
    ]
    assert reassemble(results) == "aB"


# --- 응답 필드 우선순위 ---

@pytest.mark.parametrize("payload, expected", [
    ({"translated_text": "a", "translation": "b", "response": "c"}, "a"),
    ({"translatedText": "a", "text": "b"}, "a"),
    ({"translation": "b", "text": "c"}, "b"),
    ({"response": "r", "text": "t"}, "t"),
    ({"response": "r"}, "r"),
    ({"translated_text": "", "response": "r"}, "r"),
])
def test_extract_translated_text_priority(payload, expected):
    assert extract_translated_text(payload) == expected


@pytest.mark.parametrize("payload", [{}, {"foo": "bar"}, {"response": 42}, ["response"], None])
def test_extract_translated_text_rejects_unknown_shapes(payload):
    with pytest.raises(MalformedResponseError):
        extract_translated_text(payload)


# --- GenerateApiBackend ---

def _generate_backend(handler) -> GenerateApiBackend:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GenerateApiBackend("http://llm.test/api/generate", "llama3.2:3b", client=client)


async def test_generate_backend_posts_model_and_prompt():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content)
        captured["url"] = str(request.url)
        return httpx.Response(200, json={"response": "<p>Hello</p>"})

    backend = _generate_backend(handler)
    assert await backend.translate("<p>Bonjour</p>") == "<p>Hello</p>"

    body = captured["body"]
    assert captured["url"] == "http://llm.test/api/generate"
    assert body["model"] == "llama3.2:3b"
    assert body["stream"] is False
    assert "<p>Bonjour</p>" in body["prompt"]
    assert "French" in body["prompt"] and "English" in body["prompt"]


async def test_generate_backend_non_2xx_is_backend_error():
    backend = _generate_backend(lambda request: httpx.Response(500, text="oops"))
    with pytest.raises(TranslationBackendError, match="HTTP 500"):
        await backend.translate("bonjour")


async def test_generate_backend_missing_field_is_malformed():
    backend = _generate_backend(lambda request: httpx.Response(200, json={"done": True}))
    with pytest.raises(MalformedResponseError):
        await backend.translate("bonjour")


async def test_generate_backend_invalid_json_is_malformed():
    backend = _generate_backend(lambda request: httpx.Response(200, text="not json"))
    with pytest.raises(MalformedResponseError):
        await backend.translate("bonjour")


async def test_generate_backend_timeout_is_backend_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    backend = _generate_backend(handler)
    with pytest.raises(TranslationBackendError, match="Timeout"):
        await backend.translate("bonjour")


async def test_generate_backend_invalid_url_is_backend_error():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    backend = GenerateApiBackend("http://exa mple.com:xx/api", "m", client=client)
    with pytest.raises(TranslationBackendError, match="Invalid endpoint URL"):
        await backend.translate("bonjour")


async def test_invalid_endpoint_url_falls_back_to_original():
    translator = make_translator(GenerateApiBackend("http://exa mple.com:xx/api", "m"), max_retries=2)

    outcome = await translator.translate_document("<p>Bonjour</p>")

    assert outcome.text == "<p>Bonjour</p>"
    assert outcome.fell_back == 1
    assert outcome.results[0].attempts == 2


async def test_unreachable_endpoint_falls_back_to_original():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    translator = make_translator(_generate_backend(handler), max_retries=3)
    outcome = await translator.translate_document("<p>Bonjour</p>")

    assert outcome.text == "<p>Bonjour</p>"
    assert len(calls) == 3


# --- OpenAIChatBackend ---

class _FakeCompletions:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return self.response


def _openai_backend(completions: _FakeCompletions) -> OpenAIChatBackend:
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAIChatBackend(client, "gpt-4o-mini")


async def test_openai_backend_returns_message_content():
    completions = _FakeCompletions(SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content="Hello"))]
    ))
    assert await _openai_backend(completions).translate("Bonjour") == "Hello"
    assert completions.kwargs["model"] == "gpt-4o-mini"
    assert "Bonjour" in completions.kwargs["messages"][0]["content"]


async def test_openai_backend_empty_choices_is_malformed():
    completions = _FakeCompletions(SimpleNamespace(choices=[]))
    with pytest.raises(MalformedResponseError):
        await _openai_backend(completions).translate("Bonjour")


async def test_openai_backend_error_is_backend_error():
    completions = _FakeCompletions(error=OpenAIError("rate limited"))
    with pytest.raises(TranslationBackendError):
        await _openai_backend(completions).translate("Bonjour")


# --- 설정 기반 백엔드 선택 ---

def test_build_backend_defaults_to_generate_api():
    backend = build_backend(Config(TRANSLATION_PROVIDER="generate", TRANSLATE_API_URL="http://llm.test/api/generate"))
    assert isinstance(backend, GenerateApiBackend)
    assert backend.url == "http://llm.test/api/generate"


def test_build_backend_openai():
    backend = build_backend(Config(TRANSLATION_PROVIDER="OpenAI", OPENAI_API_KEY="sk-test"))
    assert isinstance(backend, OpenAIChatBackend)


def test_unknown_provider_is_rejected():
    with pytest.raises(ValueError):
        Config(TRANSLATION_PROVIDER="deepl")
