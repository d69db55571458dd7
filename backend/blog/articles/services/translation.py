# backend/blog/articles/services/translation.py
"""
번역 서비스 모듈

본문을 HTML 안전 청크로 나눈 뒤(segmenter), 청크별로 외부 번역 엔드포인트를
순차 호출하고(재시도 + 원문 폴백), 결과를 원래 순서대로 이어 붙입니다.

번역 실패는 호출자에게 전파하지 않습니다. 엔드포인트가 완전히 죽어 있어도
모든 청크가 원문으로 폴백되어 원문과 동일한 텍스트가 반환됩니다.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Awaitable, Callable, List, Optional, Sequence

from fastapi import Depends

from ...config import settings
from .backends import TranslationBackend, TranslationBackendError, build_backend
from .segmenter import DEFAULT_MAX_EXTENSION_ATTEMPTS, Chunk, segment

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ResultStatus(str, Enum):
    TRANSLATED = "translated"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class TranslationResult:
    index: int
    status: ResultStatus
    # 최종적으로 사용되는 텍스트 (번역문 또는 원문)
    text: str
    original: str
    reason: Optional[str] = None
    attempts: int = 0
    # 분할 단계에서 강제 절단된 청크
    forced: bool = False

    @property
    def is_fallback(self) -> bool:
        return self.status == ResultStatus.FALLBACK


@dataclass
class TranslationOutcome:
    text: str
    results: List[TranslationResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def attempted(self) -> int:
        return sum(1 for r in self.results if r.attempts > 0)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if not r.is_fallback)

    @property
    def fell_back(self) -> int:
        return sum(1 for r in self.results if r.is_fallback)

    @property
    def forced_cuts(self) -> int:
        return sum(1 for r in self.results if r.forced)


def reassemble(results: Sequence[TranslationResult]) -> str:
    """결과 텍스트를 index 순서대로 구분자 없이 연결"""
    return "".join(r.text for r in sorted(results, key=lambda r: r.index))


class ChunkedTranslator:
    def __init__(
        self,
        backend: TranslationBackend,
        *,
        min_chunk_size: int = 500,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        request_delay: float = 0.2,
        max_extension_attempts: int = DEFAULT_MAX_EXTENSION_ATTEMPTS,
        sleep: Sleep = asyncio.sleep,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.backend = backend
        self.min_chunk_size = min_chunk_size
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.request_delay = request_delay
        self.max_extension_attempts = max_extension_attempts
        self._sleep = sleep

    async def translate_chunk(self, chunk: Chunk) -> TranslationResult:
        """청크 1개 번역. max_retries 회 실패하면 원문으로 폴백 (예외 없음)."""
        reason = None
        for attempt in range(1, self.max_retries + 1):
            started = time.monotonic()
            try:
                translated = await self.backend.translate(chunk.text)
            except TranslationBackendError as e:
                reason = str(e) or e.__class__.__name__
            except Exception as e:
                # 예상하지 못한 오류도 청크 단위 실패로 처리 (CancelledError는 전파)
                reason = f"{e.__class__.__name__}: {e}"
            else:
                reason = None

            if reason is not None:
                logger.warning(
                    f"Chunk {chunk.index + 1} attempt {attempt}/{self.max_retries} failed "
                    f"after {time.monotonic() - started:.3f}s: {reason}"
                )
                if attempt < self.max_retries:
                    await self._sleep(self.retry_delay)
                continue

            logger.debug(
                f"Chunk {chunk.index + 1} translated in {time.monotonic() - started:.3f}s "
                f"({len(chunk.text)} -> {len(translated)} chars)"
            )
            return TranslationResult(
                index=chunk.index,
                status=ResultStatus.TRANSLATED,
                text=translated,
                original=chunk.text,
                attempts=attempt,
                forced=chunk.forced,
            )

        logger.error(f"Chunk {chunk.index + 1} fell back to original text: {reason}")
        return TranslationResult(
            index=chunk.index,
            status=ResultStatus.FALLBACK,
            text=chunk.text,
            original=chunk.text,
            reason=reason,
            attempts=self.max_retries,
            forced=chunk.forced,
        )

    async def translate_document(
        self,
        text: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TranslationOutcome:
        """문서 전체 번역 (분할 -> 순차 번역 -> 재조립)"""
        if not text or not text.strip():
            logger.info("Empty text, skipping translation")
            return TranslationOutcome(text="")

        t0 = time.time()
        chunks = segment(text, self.min_chunk_size, self.max_extension_attempts)
        logger.info(
            f"Translating {len(text)} chars in {len(chunks)} chunk(s) "
            f"(min {self.min_chunk_size} chars, HTML-safe)"
        )

        results: List[TranslationResult] = []
        cancelled = False
        for chunk in chunks:
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                results.append(TranslationResult(
                    index=chunk.index,
                    status=ResultStatus.FALLBACK,
                    text=chunk.text,
                    original=chunk.text,
                    reason="cancelled",
                    forced=chunk.forced,
                ))
                continue

            results.append(await self.translate_chunk(chunk))

            # 레이트 리밋 회피: 마지막 청크 뒤에는 대기하지 않음
            if not chunk.is_final and not (cancel_event is not None and cancel_event.is_set()):
                await self._sleep(self.request_delay)

        outcome = TranslationOutcome(text=reassemble(results), results=results, cancelled=cancelled)
        logger.info(
            f"Translation completed in {time.time() - t0:.2f}s: chunks={len(chunks)}, "
            f"succeeded={outcome.succeeded}, fell_back={outcome.fell_back}, forced_cuts={outcome.forced_cuts}, "
            f"cancelled={cancelled}, len {len(text)} -> {len(outcome.text)}"
        )
        return outcome

    async def translate_to_english(self, text: str) -> str:
        outcome = await self.translate_document(text)
        return outcome.text

    async def translate_documents(self, texts: Sequence[str]) -> List[TranslationOutcome]:
        """여러 문서를 독립적으로 번역 (입력 순서 유지)"""
        return list(await asyncio.gather(*(self.translate_document(t) for t in texts)))

    async def translate_multiple(self, texts: Sequence[str]) -> List[str]:
        return [o.text for o in await self.translate_documents(texts)]


_translator: Optional[ChunkedTranslator] = None


def get_translator() -> ChunkedTranslator:
    """설정 기반 번역기 (FastAPI 의존성 / CLI 공용)"""
    global _translator
    if _translator is None:
        _translator = ChunkedTranslator(
            build_backend(settings),
            min_chunk_size=settings.TRANSLATE_MIN_CHUNK_SIZE,
            max_retries=settings.TRANSLATE_MAX_RETRIES,
            retry_delay=settings.TRANSLATE_RETRY_DELAY_MS / 1000,
            request_delay=settings.TRANSLATE_REQUEST_DELAY_MS / 1000,
            max_extension_attempts=settings.TRANSLATE_MAX_EXTENSION_ATTEMPTS,
        )
    return _translator


# Annotated 별칭: 라우터에서 `translator: TranslatorDep` 로 주입 (테스트에서 override)
TranslatorDep = Annotated[ChunkedTranslator, Depends(get_translator)]
