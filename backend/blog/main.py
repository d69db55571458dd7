import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .database import engine
from .db_models import *
from .config import settings
from .auth.router import router as auth_router
from .users.router import router as users_router
from .articles.router import router as articles_router
from .categories.router import router as categories_router
from .tags.router import router as tags_router
from .comments.router import router as comments_router
from .stats.router import router as stats_router

# 로깅 설정 (Docker 환경 최적화)
log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
logging.basicConfig(
    level=log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)  # stdout으로 명시적 출력
    ]
)

# 번역 파이프라인 로그는 별도로 조정 가능
logging.getLogger("blog.articles.services").setLevel(log_level)
# httpx 요청 로그는 청크마다 찍히므로 WARNING 이상만
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)
logger.info(f"Application starting with log level: {settings.LOG_LEVEL}")

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await engine.dispose()

app = FastAPI(lifespan=lifespan)

# CORS 설정 (세션 쿠키 사용을 위해 credentials 허용)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Cookie"],
)

# 라우터 등록
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(articles_router)
app.include_router(categories_router)
app.include_router(tags_router)
app.include_router(comments_router)
app.include_router(stats_router)

# 간단한 헬스 체크 엔드포인트
@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
