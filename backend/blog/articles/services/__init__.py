# backend/blog/articles/services/__init__.py
"""
Articles 서비스 모듈 패키지

각 모듈별 책임:
- segmenter.py: HTML 안전 청크 분할
- backends.py: 외부 번역 엔드포인트 연동 (generate API / OpenAI)
- translation.py: 청크 순차 번역 (재시도, 원문 폴백) 및 재조립
"""
