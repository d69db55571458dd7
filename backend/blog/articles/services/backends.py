# backend/blog/articles/services/backends.py
"""
외부 번역 엔드포인트 연동

- GenerateApiBackend: Ollama 호환 `/api/generate` (model, prompt, stream=false)
- OpenAIChatBackend: OpenAI 호환 Chat Completions

모든 실패(비정상 상태 코드, 전송 오류/타임아웃, 번역 필드 누락)는
TranslationBackendError로 통일해서 올립니다. 재시도/폴백은 호출자 책임입니다.
"""

import logging
from typing import Optional, Protocol

import httpx
from openai import AsyncOpenAI, OpenAIError

from ...config import Config

logger = logging.getLogger(__name__)

# 응답 JSON에서 번역문을 찾는 필드 우선순위
RESPONSE_TEXT_FIELDS: tuple[str, ...] = (
    "translated_text",
    "translatedText",
    "translation",
    "text",
    "response",
)

PROMPT_TEMPLATE = (
    "You are a professional translator. Translate from {source} to {target}. "
    "Preserve all HTML tags and attributes exactly. Only translate the text content between tags. "
    "Be accurate and natural. Return ONLY the translated HTML without any introduction, explanation, "
    "or additional text. If the input contains HTML tags, keep all tags intact. If the input contains "
    "no HTML tags, return only the translated plain text without adding any tags. :\n\n{text}"
)


class TranslationBackendError(Exception):
    """번역 요청 1회 실패 (재시도 대상)"""


class MalformedResponseError(TranslationBackendError):
    """응답에 인식 가능한 번역 필드가 없음"""


class TranslationBackend(Protocol):
    async def translate(self, text: str) -> str: ...


def build_prompt(text: str, source_lang: str, target_lang: str) -> str:
    return PROMPT_TEMPLATE.format(source=source_lang, target=target_lang, text=text)


def extract_translated_text(payload: object) -> str:
    """우선순위 테이블 순서로 비어있지 않은 첫 문자열 필드를 반환."""
    if isinstance(payload, dict):
        for field in RESPONSE_TEXT_FIELDS:
            value = payload.get(field)
            if isinstance(value, str) and value:
                return value
    raise MalformedResponseError("No translation in response")


class GenerateApiBackend:
    def __init__(
        self,
        url: str,
        model: str,
        *,
        source_lang: str = "French",
        target_lang: str = "English",
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.model = model
        self.source_lang = source_lang
        self.target_lang = target_lang
        self.timeout = timeout
        self._client = client

    async def _post(self, client: httpx.AsyncClient, body: dict) -> httpx.Response:
        response = await client.post(
            self.url,
            json=body,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response

    async def translate(self, text: str) -> str:
        body = {
            "model": self.model,
            "prompt": build_prompt(text, self.source_lang, self.target_lang),
            "stream": False,
        }
        try:
            if self._client is not None:
                response = await self._post(self._client, body)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._post(client, body)
            data = response.json()
        except httpx.TimeoutException as e:
            raise TranslationBackendError(f"Timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise TranslationBackendError(f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise TranslationBackendError(f"Transport error: {e}") from e
        except httpx.InvalidURL as e:
            raise TranslationBackendError(f"Invalid endpoint URL: {e}") from e
        except ValueError as e:
            raise MalformedResponseError("Response is not valid JSON") from e
        return extract_translated_text(data)


class OpenAIChatBackend:
    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        *,
        source_lang: str = "French",
        target_lang: str = "English",
    ):
        self.client = client
        self.model = model
        self.source_lang = source_lang
        self.target_lang = target_lang

    async def translate(self, text: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "user", "content": build_prompt(text, self.source_lang, self.target_lang)},
                ],
                stream=False,
            )
        except OpenAIError as e:
            raise TranslationBackendError(f"OpenAI error: {e}") from e

        choices = response.choices or []
        content = choices[0].message.content if choices else None
        if not content:
            raise MalformedResponseError("No translation in response")
        return content


def build_backend(config: Config) -> TranslationBackend:
    """설정값(TRANSLATION_PROVIDER)에 따라 번역 백엔드 생성"""
    if config.TRANSLATION_PROVIDER == "openai":
        client = AsyncOpenAI(
            api_key=config.OPENAI_API_KEY,
            base_url=config.OPENAI_BASE_URL,
            timeout=config.TRANSLATE_TIMEOUT,
        )
        logger.info(f"Translation backend: openai (model={config.OPENAI_MODEL})")
        return OpenAIChatBackend(
            client,
            config.OPENAI_MODEL,
            source_lang=config.TRANSLATE_SOURCE_LANG,
            target_lang=config.TRANSLATE_TARGET_LANG,
        )

    logger.info(f"Translation backend: generate ({config.TRANSLATE_API_URL}, model={config.TRANSLATE_MODEL})")
    return GenerateApiBackend(
        config.TRANSLATE_API_URL,
        config.TRANSLATE_MODEL,
        source_lang=config.TRANSLATE_SOURCE_LANG,
        target_lang=config.TRANSLATE_TARGET_LANG,
        timeout=config.TRANSLATE_TIMEOUT,
    )
