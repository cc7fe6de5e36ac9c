import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1 import attempts, quizzes
from app.core.clock import SystemClock
from app.core.config import settings
from app.core.logging import setup_logging
from app.exceptions import BaseAppError
from app.models.base import get_async_session_maker, get_engine
from app.services.attempt_service import create_watchdog_registry, restore_watchdogs

# 로깅 설정
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """시계와 응시 타이머 워치독 준비 / 정리"""
    clock = SystemClock()
    watchdogs = create_watchdog_registry(
        clock,
        run_in_background=settings.watchdog_enabled,
        tick_seconds=settings.watchdog_tick_seconds,
    )
    app.state.clock = clock
    app.state.watchdogs = watchdogs

    if settings.watchdog_enabled:
        try:
            async with get_async_session_maker()() as session:
                await restore_watchdogs(session, watchdogs)
        except SQLAlchemyError:
            # DB가 아직 준비되지 않았으면 요청 처리 시점에 다시 건다
            logger.error("워치독 복구 실패", exc_info=True)

    yield

    await watchdogs.shutdown()
    logger.info("워치독 종료 완료")


app = FastAPI(
    title="Quiz Assessment Backend API",
    description="퀴즈 출제, 응시 세션, 채점 백엔드 API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(quizzes.router, prefix="/api/v1")
app.include_router(attempts.router, prefix="/api/v1")


def create_cors_response(
    status_code: int,
    content: dict,
    request: Request,
) -> JSONResponse:
    """CORS 헤더를 포함한 JSONResponse 생성"""
    response = JSONResponse(
        status_code=status_code,
        content=content,
    )
    # 예외 핸들러 응답에도 CORS 헤더 보장
    origin = request.headers.get("origin")
    if origin and origin in settings.allowed_origins_list:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Allow-Methods"] = "*"
        response.headers["Access-Control-Allow-Headers"] = "*"
    return response


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    # ctx 안의 예외 객체는 JSON 직렬화가 안 되므로 문자열로 바꾼다
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """요청 검증 오류 핸들러"""
    logger.warning(f"요청 검증 오류: path={request.url.path}, errors={len(exc.errors())}")
    return create_cors_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_errors(exc)},
        request=request,
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """데이터베이스 예외 핸들러"""
    logger.error(
        f"Database error: {exc.__class__.__name__}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    detail = "Database error occurred" if settings.environment == "production" else str(exc)
    return create_cors_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": detail},
        request=request,
    )


@app.exception_handler(BaseAppError)
async def app_exception_handler(request: Request, exc: BaseAppError):
    """애플리케이션 커스텀 예외 핸들러"""
    logger.warning(
        f"Application error: {exc.__class__.__name__} - {exc.message}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status_code": exc.status_code,
        },
    )
    return create_cors_response(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.__class__.__name__},
        request=request,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """전역 예외 핸들러 - 모든 미처리 예외를 로깅"""
    logger.error(
        f"Unhandled exception: {exc.__class__.__name__}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
            "query_params": dict(request.query_params),
        },
    )

    # 프로덕션 환경에서는 상세 에러 메시지 숨김
    if settings.environment == "production":
        content = {"detail": "Internal Server Error"}
    else:
        content = {"detail": str(exc), "type": exc.__class__.__name__}
    return create_cors_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
        request=request,
    )


@app.get("/")
async def root():
    """루트 엔드포인트"""
    return {"message": "Quiz Assessment Backend API", "version": "0.1.0"}


@app.get("/health")
async def health_check():
    """헬스 체크 엔드포인트"""
    return {"status": "healthy"}


@app.get("/health/db")
async def health_check_db():
    """데이터베이스 연결 상태 확인"""
    try:
        engine = get_engine()
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "disconnected"},
        )
