import logging
from dataclasses import asdict
from typing import Optional, List, Dict
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Depends, Query, Header, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator, metrics
from prometheus_fastapi_instrumentator.metrics import Info
from prometheus_client import Counter

from blog_posts import config
from blog_posts.auth import Actor, require_actor, get_token_verifier
from blog_posts.database import BlogDatabase
from blog_posts.errors import ServiceError
from blog_posts.models.schemas import (
    PostCreate,
    PostUpdate,
    PostSummary,
    PostResponse,
    PaginatedPosts,
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
)
from blog_posts.repositories import PostRepository, CategoryRepository
from blog_posts.services import PostsService, CategoryService
from blog_posts.user_directory import UserDirectoryClient

# --- 기본 로깅 ---
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger('PostServiceApp')

db = BlogDatabase()
user_directory = UserDirectoryClient()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup resources."""
    # Startup
    get_token_verifier()
    await db.initialize()
    logger.info("Post service initialized: token verifier and database ready")
    yield
    # Shutdown
    await UserDirectoryClient.close()
    await db.close()
    logger.info("Post service shutdown: database and user-service session closed")

app = FastAPI(
    title="Post Service",
    lifespan=lifespan,
    docs_url="/api/posts/swagger",
    openapi_url="/api/posts/openapi.json",
)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Viewed"],
)

# Prometheus 메트릭 설정
# status 레이블은 2xx, 4xx, 5xx 형식
http_requests_total_custom = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ("method", "status"),
)

def http_requests_total_custom_metric(info: Info) -> None:
    status_code = info.response.status_code if info.response is not None else 500
    status_group = "unknown"
    if 200 <= status_code < 300:
        status_group = "2xx"
    elif 300 <= status_code < 400:
        status_group = "3xx"
    elif 400 <= status_code < 500:
        status_group = "4xx"
    elif 500 <= status_code < 600:
        status_group = "5xx"

    http_requests_total_custom.labels(info.method, status_group).inc()

def configure_metrics(application: FastAPI) -> None:
    """Expose request latency and the request counter on /metrics."""
    instrumentator = Instrumentator()
    instrumentator.add(metrics.latency(buckets=config.REQUEST_LATENCY_BUCKETS))
    instrumentator.add(http_requests_total_custom_metric)
    instrumentator.instrument(application).expose(application)


configure_metrics(app)


# --- 에러 핸들러 ---
@app.exception_handler(ServiceError)
async def handle_service_error(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get('msg')))
    return JSONResponse(
        status_code=400,
        content={
            'statusCode': 400,
            'error': 'INVALID_ARGUMENT',
            'message': "; ".join(messages) or 'Invalid request',
        },
    )


async def run_operation(operation, *args, **kwargs):
    """Run a service call, turning unexpected store failures into a 500."""
    try:
        return await operation(*args, **kwargs)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Database error: {e}", exc_info=True)
        raise ServiceError('Database error') from e


# --- 의존성 ---
def get_db() -> BlogDatabase:
    return db


def get_user_directory() -> UserDirectoryClient:
    return user_directory


def get_posts_service(
    database: BlogDatabase = Depends(get_db),
    directory: UserDirectoryClient = Depends(get_user_directory),
) -> PostsService:
    return PostsService(PostRepository(database), CategoryRepository(database), directory)


def get_category_service(database: BlogDatabase = Depends(get_db)) -> CategoryService:
    return CategoryService(CategoryRepository(database))


# --- Posts API ---
@app.post("/api/v1/posts", status_code=201, response_model=PostResponse)
async def create_post(
    payload: PostCreate,
    actor: Actor = Depends(require_actor),
    service: PostsService = Depends(get_posts_service),
):
    return await run_operation(service.create, payload, actor)


@app.get("/api/v1/posts", response_model=PaginatedPosts)
async def list_posts(
    main_category: Optional[str] = Query(None, alias="mainCategory"),
    sub_category: Optional[str] = Query(None, alias="subCategory"),
    page: int = Query(1),
    limit: int = Query(10),
    service: PostsService = Depends(get_posts_service),
):
    """카테고리 필터와 페이지네이션이 적용된 게시물 목록 (최신순)"""
    result = await run_operation(service.find_all, main_category, sub_category, page, limit)
    return asdict(result)


@app.get("/api/v1/posts/search", response_model=List[PostSummary])
async def search_posts(
    keyword: Optional[str] = Query(None),
    service: PostsService = Depends(get_posts_service),
):
    return await run_operation(service.search, keyword)


@app.get("/api/v1/posts/author/{email}", response_model=List[PostSummary])
async def list_posts_by_author(email: str, service: PostsService = Depends(get_posts_service)):
    return await run_operation(service.find_by_author, email)


@app.get("/api/v1/posts/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    x_viewed: Optional[str] = Header(None),
    service: PostsService = Depends(get_posts_service),
):
    """게시물 조회. X-Viewed: true 이면 조회수를 올리지 않음"""
    viewed = (x_viewed or '').strip().lower() == 'true'
    return await run_operation(service.find_one, post_id, viewed=viewed)


@app.get("/api/v1/posts/{post_id}/edit", response_model=PostResponse)
async def get_post_for_edit(
    post_id: str,
    actor: Actor = Depends(require_actor),
    service: PostsService = Depends(get_posts_service),
):
    return await run_operation(service.find_for_edit, post_id, actor)


@app.patch("/api/v1/posts/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: str,
    payload: PostUpdate,
    actor: Actor = Depends(require_actor),
    service: PostsService = Depends(get_posts_service),
):
    return await run_operation(service.update, post_id, payload, actor)


@app.delete("/api/v1/posts/{post_id}", status_code=204)
async def delete_post(
    post_id: str,
    actor: Actor = Depends(require_actor),
    service: PostsService = Depends(get_posts_service),
):
    await run_operation(service.remove, post_id, actor)
    return Response(status_code=204)


# --- Categories API ---
@app.post("/api/v1/categories", status_code=201, response_model=CategoryResponse)
async def create_category(
    payload: CategoryCreate,
    actor: Actor = Depends(require_actor),
    service: CategoryService = Depends(get_category_service),
):
    return await run_operation(service.create, payload, actor)


@app.get("/api/v1/categories", response_model=List[CategoryResponse])
async def list_categories(
    active_only: bool = Query(False, alias="activeOnly"),
    service: CategoryService = Depends(get_category_service),
):
    return await run_operation(service.find_all, active_only)


@app.get("/api/v1/categories/grouped", response_model=Dict[str, List[CategoryResponse]])
async def list_grouped_categories(
    active_only: bool = Query(False, alias="activeOnly"),
    service: CategoryService = Depends(get_category_service),
):
    """그룹별 메인 카테고리와 하위 카테고리 트리"""
    return await run_operation(service.find_grouped, active_only)


@app.get("/api/v1/categories/value/{value}", response_model=CategoryResponse)
async def get_category_by_value(value: str, service: CategoryService = Depends(get_category_service)):
    return await run_operation(service.find_by_value, value)


@app.get("/api/v1/categories/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: str, service: CategoryService = Depends(get_category_service)):
    return await run_operation(service.find_one, category_id)


@app.patch("/api/v1/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    payload: CategoryUpdate,
    actor: Actor = Depends(require_actor),
    service: CategoryService = Depends(get_category_service),
):
    return await run_operation(service.update, category_id, payload, actor)


@app.patch("/api/v1/categories/{category_id}/activate", response_model=CategoryResponse)
async def activate_category(
    category_id: str,
    actor: Actor = Depends(require_actor),
    service: CategoryService = Depends(get_category_service),
):
    return await run_operation(service.activate, category_id, actor)


@app.patch("/api/v1/categories/{category_id}/deactivate", response_model=CategoryResponse)
async def deactivate_category(
    category_id: str,
    actor: Actor = Depends(require_actor),
    service: CategoryService = Depends(get_category_service),
):
    return await run_operation(service.deactivate, category_id, actor)


@app.delete("/api/v1/categories/{category_id}", status_code=204)
async def delete_category(
    category_id: str,
    actor: Actor = Depends(require_actor),
    service: CategoryService = Depends(get_category_service),
):
    await run_operation(service.remove, category_id, actor)
    return Response(status_code=204)


@app.get("/health")
async def handle_health(database: BlogDatabase = Depends(get_db)):
    """Kubernetes를 위한 헬스 체크 엔드포인트"""
    database_ok = await database.health_check()
    return {
        "status": "ok" if database_ok else "degraded",
        "service": "post-service",
        "database": "up" if database_ok else "down",
    }


@app.get("/stats")
async def handle_stats(service: PostsService = Depends(get_posts_service)):
    """대시보드를 위한 통계 엔드포인트"""
    try:
        post_count = await service.count()
    except Exception as e:
        logger.error(f"Failed to get post count: {e}", exc_info=True)
        post_count = 0

    return {
        "post_service": {
            "service_status": "online",
            "post_count": post_count
        }
    }


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Post Service starting on http://0.0.0.0:{config.PORT}")
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
