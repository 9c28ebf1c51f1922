import hmac
import json
import sys
import time
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from config import Settings
from errors import ApiError, ErrorKind, Err, Ok, Result
from models import ProductStore
from queries import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    category_stats,
    filter_by_category,
    paginate,
    parse_page_param,
    search_by_name,
)
from schemas import validate_product

SERVICE_NAME = "product-api"
WELCOME_MESSAGE = "Welcome to the Product API! Go to /api/products to see all products."
UNAUTHORIZED_MESSAGE = "Unauthorized: Invalid API key"

# Prometheus metrics
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "method", "endpoint", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["service", "method", "endpoint"]
)
ERROR_COUNT = Counter(
    "http_errors_total",
    "Total HTTP errors",
    ["service", "endpoint", "error_type"]
)


def configure_logging(settings: Settings):
    # Logs JSON dans un fichier (rotation quotidienne) + console lisible.
    # diagnose=False: pas de variables locales (en-têtes, clé API) dans les tracebacks
    logger.remove()
    logger.add(
        sys.stderr,
        format="{time:YYYY-MM-DDTHH:mm:ss.SSSZ} | {level} | {message}",
        level=settings.log_level,
        diagnose=False,
    )
    logger.add(
        sink=settings.log_file,
        format="{time:YYYY-MM-DDTHH:mm:ss.SSSZ} | {level} | {message} | {extra}",
        level=settings.log_level,
        diagnose=False,
        serialize=True,
        rotation="1 day",
    )


def _endpoint(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


def error_response(request: Request, error: ApiError, exc: Optional[BaseException] = None) -> JSONResponse:
    """
    Single translation point from a classified error to an HTTP response.

    The body is always ``{"error": message}``; internal errors are logged
    with their traceback but never expose it to the client.
    """
    endpoint = _endpoint(request)
    if error.kind is ErrorKind.INTERNAL:
        logger.opt(exception=exc).error(
            "Unhandled error on {} {}",
            request.method,
            request.url.path,
            extra={"error_type": error.kind.label},
        )
    else:
        logger.warning(
            "{} ({} {})",
            error.message,
            request.method,
            request.url.path,
            extra={"error_type": error.kind.label, "status": error.status_code},
        )
    ERROR_COUNT.labels(service=SERVICE_NAME, endpoint=endpoint, error_type=error.kind.label).inc()
    return JSONResponse(status_code=error.status_code, content={"error": error.message})


def respond(request: Request, result: Result, status_code: int = 200) -> Response:
    if result.is_ok:
        return JSONResponse(status_code=status_code, content=jsonable_encoder(result.value))
    return error_response(request, result.error)


# Middleware pour logger les requests avec correlation ID
async def log_requests(request: Request, call_next):
    # Generate or propagate correlation ID (trace-id)
    trace_id = request.headers.get("X-Trace-ID", str(uuid.uuid4()))
    start_time = time.time()

    with logger.contextualize(trace_id=trace_id, service=SERVICE_NAME):
        logger.info(
            "Request: {} {}",
            request.method,
            request.url.path,
            extra={"method": request.method, "url": str(request.url), "trace_id": trace_id}
        )

        response = await call_next(request)

        latency = time.time() - start_time
        REQUEST_COUNT.labels(
            service=SERVICE_NAME,
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code
        ).inc()
        REQUEST_LATENCY.labels(
            service=SERVICE_NAME,
            method=request.method,
            endpoint=request.url.path
        ).observe(latency)

        logger.info(
            f"Response status: {response.status_code}",
            extra={"status": response.status_code, "latency": latency, "trace_id": trace_id}
        )

        response.headers["X-Trace-ID"] = trace_id
        return response


async def authenticate(request: Request, call_next):
    """Reject any request whose x-api-key header does not match the configured key."""
    api_key = request.headers.get("x-api-key")
    expected = request.app.state.settings.api_key
    if not api_key or not hmac.compare_digest(api_key.encode(), expected.encode()):
        logger.warning(f"Rejected {request.method} {request.url.path}: missing or invalid API key")
        return JSONResponse(status_code=401, content={"error": UNAUTHORIZED_MESSAGE})
    return await call_next(request)


async def normalize_errors(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as exc:
        return error_response(request, ApiError.internal(), exc)


def get_store(request: Request) -> ProductStore:
    return request.app.state.store


def _reject_constant(token: str):
    raise ValueError(f"{token} is not valid JSON")


def _is_json(request: Request) -> bool:
    content_type = request.headers.get("content-type", "")
    return content_type.split(";")[0].strip().lower() == "application/json"


async def read_product_payload(request: Request) -> Result:
    """
    Decode the JSON body and validate it as a full product payload.

    Only application/json bodies are parsed; anything else (or an empty
    body) is validated as ``{}``.
    """
    body = await request.body()
    if not body.strip() or not _is_json(request):
        return validate_product({})
    try:
        payload = json.loads(body, parse_constant=_reject_constant)
    except ValueError:
        return Err(ApiError(ErrorKind.MALFORMED_BODY, "Malformed JSON body"))
    return validate_product(payload)


router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
async def root():
    return WELCOME_MESSAGE


@router.get("/metrics")
async def metrics():
    """Endpoint /metrics compatible Prometheus"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/api/products")
async def list_products(
    request: Request,
    category: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    store: ProductStore = Depends(get_store),
):
    logger.info(f"Listing products (category={category}, page={page}, limit={limit})")
    products = filter_by_category(store.list(), category)
    result = paginate(
        products,
        parse_page_param(page, DEFAULT_PAGE),
        parse_page_param(limit, DEFAULT_LIMIT),
    )
    return respond(request, Ok(result))


# Routes littérales (must be before {product_id} route)
@router.get("/api/products/search")
async def search_products(
    request: Request,
    name: Optional[str] = None,
    store: ProductStore = Depends(get_store),
):
    logger.info(f"Searching products by name: {name}")
    return respond(request, search_by_name(store.list(), name))


@router.get("/api/products/stats")
async def product_stats(request: Request, store: ProductStore = Depends(get_store)):
    logger.info("Computing product counts by category")
    return respond(request, Ok(category_stats(store.list())))


@router.get("/api/products/{product_id}")
async def get_product(request: Request, product_id: str, store: ProductStore = Depends(get_store)):
    logger.info(f"Fetching product {product_id}")
    return respond(request, store.find_by_id(product_id))


@router.post("/api/products")
async def create_product(
    request: Request,
    payload: Result = Depends(read_product_payload),
    store: ProductStore = Depends(get_store),
):
    result = payload.map(store.insert)
    if result.is_ok:
        logger.info(f"Product created with ID {result.value.id}")
    return respond(request, result, status_code=201)


@router.put("/api/products/{product_id}")
async def update_product(
    request: Request,
    product_id: str,
    payload: Result = Depends(read_product_payload),
    store: ProductStore = Depends(get_store),
):
    logger.info(f"Updating product {product_id}")
    return respond(request, payload.and_then(lambda fields: store.replace(product_id, fields)))


@router.delete("/api/products/{product_id}")
async def delete_product(request: Request, product_id: str, store: ProductStore = Depends(get_store)):
    logger.info(f"Deleting product {product_id}")
    return respond(request, store.remove(product_id))


def create_app(settings: Optional[Settings] = None, store: Optional[ProductStore] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    if store is None:
        store = ProductStore.seeded() if settings.seed_products else ProductStore()

    configure_logging(settings)

    app = FastAPI(title="Product API")
    app.state.settings = settings
    app.state.store = store

    # Le dernier middleware enregistré est le plus externe:
    # log_requests -> authenticate -> normalize_errors -> routes
    app.middleware("http")(normalize_errors)
    app.middleware("http")(authenticate)
    app.middleware("http")(log_requests)

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    settings = app.state.settings
    logger.info(f"Starting Product API on port {settings.port}")
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
