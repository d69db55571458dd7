import json
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_file="../.env", env_file_encoding="utf-8", extra="ignore")

    # FastAPI 애플리케이션 설정
    ENVIRONMENT: str = "development"
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # 데이터베이스 설정
    POSTGRES_SSLMODE: str = "disable"
    DATABASE_URL: str = "postgresql+asyncpg://user:postgres@db:5432/blog_db"

    # 세션 인증 설정 (세션 토큰은 서명된 JWT, 실제 유효성은 sessions 테이블 기준)
    SESSION_SECRET_KEY: str = "your-secret-key"
    SESSION_ALGORITHM: str = "HS256"
    SESSION_EXPIRE_DAYS: int = 7
    SESSION_COOKIE_NAME: str = "blog.session_token"
    ALLOW_REGISTRATIONS: bool = False

    # CORS 설정
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # 번역 엔진 선택: "generate" (Ollama 호환 /api/generate) | "openai"
    TRANSLATION_PROVIDER: str = "generate"
    TRANSLATE_API_URL: str = "http://localhost:11434/api/generate"
    TRANSLATE_MODEL: str = "llama3.2:3b"
    TRANSLATE_SOURCE_LANG: str = "French"
    TRANSLATE_TARGET_LANG: str = "English"
    TRANSLATE_TIMEOUT: float = 60.0
    TRANSLATE_MIN_CHUNK_SIZE: int = 500
    TRANSLATE_MAX_RETRIES: int = 3
    TRANSLATE_RETRY_DELAY_MS: int = 1000
    TRANSLATE_REQUEST_DELAY_MS: int = 200
    TRANSLATE_MAX_EXTENSION_ATTEMPTS: int = 100
    # 기사 생성/수정 시 백그라운드 번역 여부
    AUTO_TRANSLATE: bool = True

    # OpenAI API 설정 (TRANSLATION_PROVIDER=openai 일 때 사용)
    OPENAI_API_KEY: str | None = None
    OPENAI_BASE_URL: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"

    # 슬러그 중복 회피 시도 횟수 (초과 시 랜덤 접미사)
    SLUG_MAX_ATTEMPTS: int = 50
    # 동일 IP 조회수 중복 집계 방지 기간
    VIEW_DEDUP_HOURS: int = 24

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _normalise_cors(cls, value):
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            raw = value.strip()
            if raw.startswith("[") and raw.endswith("]"):
                try:
                    parsed = json.loads(raw)
                    if isinstance(parsed, list):
                        return parsed
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in raw.split(",") if item.strip()]
        raise ValueError("CORS_ORIGINS must be a string or list of strings")

    @field_validator("TRANSLATION_PROVIDER", mode="before")
    @classmethod
    def _normalise_provider(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            if value not in {"generate", "openai"}:
                raise ValueError("TRANSLATION_PROVIDER must be 'generate' or 'openai'")
        return value


settings = Config()
