# backend/blog/articles/services/segmenter.py
"""
HTML 안전 청크 분할 모듈

번역 API는 긴 입력을 처리하지 못하므로 본문(HTML 또는 일반 텍스트)을
최소 크기 이상의 청크로 나눕니다. 청크 경계는 태그(`<...>`) 내부에 놓이지
않으며, 열린 태그는 가능한 한 같은 청크 안에서 닫힙니다.

모든 청크의 text를 순서대로 이어 붙이면 항상 원문과 정확히 같습니다.
"""

import logging
import re
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)

DEFAULT_MAX_EXTENSION_ATTEMPTS = 100

# 스택에 쌓지 않는 void 요소
VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img",
    "input", "link", "meta", "source", "track", "wbr",
})

TAG_RE = re.compile(r"<(/?)([a-zA-Z][a-zA-Z0-9]*)[^>]*>")
CLOSING_TAG_RE = re.compile(r"</[^>]+>")


class SegmentationSafetyLimitExceeded(UserWarning):
    """태그 균형 탐색이 max_attempts 를 넘겨 강제 절단됨 (치명적이지 않음)"""


@dataclass(frozen=True)
class Chunk:
    text: str
    index: int
    is_final: bool
    # 안전 한도 초과로 강제 절단된 청크 (태그 불균형 가능)
    forced: bool = False


def has_unclosed_tags(text: str) -> bool:
    """열린 태그가 닫히지 않았거나 닫는 태그 짝이 맞지 않으면 True."""
    stack: List[str] = []
    for match in TAG_RE.finditer(text):
        full_tag, closing, name = match.group(0), match.group(1), match.group(2)
        if full_tag.endswith("/>") or name.lower() in VOID_ELEMENTS:
            continue
        if closing:
            if not stack or stack[-1] != name:
                return True
            stack.pop()
        else:
            stack.append(name)
    return bool(stack)


def is_inside_tag(text: str, position: int) -> bool:
    """text[:position] 와 text[position:] 사이의 경계가 `<...>` 내부인지 여부."""
    return text.rfind("<", 0, position) > text.rfind(">", 0, position)


def find_safe_cut_position(text: str, position: int) -> int:
    """position 이상에서 태그 내부가 아닌 첫 경계를 반환.

    닫는 `>` 가 없는 미완성 태그라면 나머지 전체를 포함하도록 len(text)를 반환합니다.
    """
    if position >= len(text):
        return len(text)
    if is_inside_tag(text, position):
        next_close = text.find(">", position)
        if next_close == -1:
            return len(text)
        return next_close + 1
    return position


def segment(
    text: str,
    min_chunk_size: int,
    max_attempts: int = DEFAULT_MAX_EXTENSION_ATTEMPTS,
) -> List[Chunk]:
    """text를 HTML 안전 청크 목록으로 분할합니다.

    Args:
        text: 원문 (HTML 조각 또는 일반 텍스트)
        min_chunk_size: 마지막 청크를 제외한 각 청크의 최소 글자 수
        max_attempts: 청크당 닫는 태그 탐색(확장) 최대 횟수

    Returns:
        index 순서의 Chunk 목록. 빈 문자열/공백만 있는 입력은 빈 목록.
    """
    if min_chunk_size <= 0:
        raise ValueError("min_chunk_size must be positive")
    if not text or not text.strip():
        return []
    if len(text) <= min_chunk_size:
        return [Chunk(text=text, index=0, is_final=True)]

    total = len(text)
    pieces: List[tuple[str, bool]] = []
    current = 0

    while current < total:
        base_end = min(current + min_chunk_size, total)
        if base_end == total:
            pieces.append((text[current:], False))
            break

        end = find_safe_cut_position(text, base_end)
        candidate = text[current:end]
        attempts = 0
        forced = False

        while end < total and has_unclosed_tags(candidate):
            if attempts >= max_attempts:
                # 안전 한도 초과: 최소 크기 기준 경계에서 강제 절단
                end = find_safe_cut_position(text, base_end)
                candidate = text[current:end]
                forced = True
                logger.warning(
                    f"{SegmentationSafetyLimitExceeded.__name__}: safety limit exceeded at offset {current} "
                    f"({max_attempts} attempts); forcing cut at {end}"
                )
                break
            attempts += 1
            next_closing = CLOSING_TAG_RE.search(text, end)
            if next_closing is None:
                # 더 이상 닫는 태그가 없으면 나머지 전체가 마지막 청크
                end = total
                candidate = text[current:]
                break
            end = find_safe_cut_position(text, next_closing.end())
            candidate = text[current:end]

        pieces.append((candidate, forced))
        current = end

    last = len(pieces) - 1
    return [
        Chunk(text=piece, index=i, is_final=(i == last), forced=forced)
        for i, (piece, forced) in enumerate(pieces)
    ]
