"""
FastAPI application for the vote tally service.

Serves the ranked results pages, the vote form and submission handler,
and the administrative reset endpoint.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from services.tally_api.config import settings
from services.tally_api.database import Database
from services.tally_api.models import HealthResponse, VoteForm
from services.tally_api.redis_client import RedisClient
from services.tally_api.tally import VoteTally

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Prometheus metrics
votes_submitted = Counter(
    "votes_submitted_total",
    "Total number of vote submissions",
    ["outcome"]
)
vote_count_applied = Counter(
    "vote_count_applied_total",
    "Sum of vote_count over accepted submissions"
)
results_resets = Counter(
    "results_resets_total",
    "Total number of result resets"
)
request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"]
)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Dependencies injected ahead of startup (tests) are left alone
    if getattr(app.state, "tally", None) is not None:
        yield
        return

    logger.info(f"Starting {settings.SERVICE_NAME} service...")
    redis_client = RedisClient(settings.redis_url, settings.REDIS_MAX_CONNECTIONS)
    database = Database(
        settings.postgres_dsn,
        min_size=settings.POSTGRES_POOL_MIN_SIZE,
        max_size=settings.POSTGRES_POOL_MAX_SIZE
    )

    try:
        client = await redis_client.connect()
        await database.initialize()
        app.state.redis_client = redis_client
        app.state.database = database
        app.state.tally = VoteTally.from_settings(client, database, settings)
        logger.info(f"{settings.SERVICE_NAME} started successfully")

    except Exception as e:
        logger.error(f"Failed to start {settings.SERVICE_NAME}: {e}")
        raise

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.SERVICE_NAME} service...")
    await redis_client.close()
    await database.close()
    app.state.tally = None
    logger.info(f"{settings.SERVICE_NAME} shut down successfully")


def create_app(tally: VoteTally = None, redis_client: RedisClient = None,
               database: Database = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        tally: Pre-built tally core; when omitted it is built from settings
            during startup
        redis_client: Redis client used by the readiness probe
        database: Database used by the readiness probe

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Vote Tally",
        description="Vote submission and live election results",
        version=settings.API_VERSION,
        lifespan=lifespan
    )
    app.state.tally = tally
    app.state.redis_client = redis_client
    app.state.database = database

    @app.middleware("http")
    async def prometheus_middleware(request: Request, call_next):
        """Middleware to track request duration."""
        with request_duration.labels(method=request.method, endpoint=request.url.path).time():
            return await call_next(request)

    @app.get("/")
    async def index(request: Request):
        """Ranked results: top candidates, the bottom one, parties and sexes."""
        try:
            overview = await request.app.state.tally.results_overview()
        except Exception as e:
            logger.error(f"Error building results page: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "candidates": overview.candidates,
                "parties": overview.parties,
                "sex_ratio": overview.sex_ratio,
            }
        )

    @app.get("/candidates/{candidate_id}")
    async def candidate_page(request: Request, candidate_id: str):
        """Candidate detail with vote total and top keywords."""
        if not candidate_id.isdecimal():
            return RedirectResponse("/", status_code=status.HTTP_302_FOUND)
        try:
            detail = await request.app.state.tally.candidate_detail(int(candidate_id))
        except Exception as e:
            logger.error(f"Error building candidate page {candidate_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )
        if detail is None:
            return RedirectResponse("/", status_code=status.HTTP_302_FOUND)
        return templates.TemplateResponse(
            request,
            "candidate.html",
            {
                "candidate": detail.candidate,
                "votes": detail.votes,
                "keywords": detail.keywords,
            }
        )

    @app.get("/political_parties/{name}")
    async def political_party_page(request: Request, name: str):
        """Party detail with vote total, candidates and top keywords."""
        try:
            detail = await request.app.state.tally.party_detail(name)
        except Exception as e:
            logger.error(f"Error building party page {name}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )
        return templates.TemplateResponse(
            request,
            "political_party.html",
            {
                "political_party": detail.political_party,
                "votes": detail.votes,
                "candidates": detail.candidates,
                "keywords": detail.keywords,
            }
        )

    async def render_vote_form(request: Request, message: str = ""):
        candidates = await request.app.state.tally.candidates.load_all()
        return templates.TemplateResponse(
            request,
            "vote.html",
            {"candidates": candidates, "message": message}
        )

    @app.get("/vote")
    async def vote_form(request: Request):
        """Empty vote submission form."""
        try:
            return await render_vote_form(request)
        except Exception as e:
            logger.error(f"Error rendering vote form: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    @app.post("/vote")
    async def submit_vote(request: Request):
        """
        Submit a vote.

        - **mynumber**, **name**, **address**: must match the voter registry
        - **vote_count**: votes to cast, bounded by the voter's remaining quota
        - **candidate**: candidate name
        - **keyword**: reason for the vote

        Re-renders the form with the outcome message.
        """
        try:
            form = VoteForm(**dict(await request.form()))
            outcome = await request.app.state.tally.submit(form)
            votes_submitted.labels(outcome=outcome.value).inc()
            if outcome.accepted:
                vote_count_applied.inc(form.vote_count)
            else:
                logger.debug(f"Vote rejected: mynumber={form.mynumber}, outcome={outcome.value}")
            return await render_vote_form(request, outcome.message)

        except Exception as e:
            votes_submitted.labels(outcome="error").inc()
            logger.error(f"Error submitting vote: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )

    @app.get("/initialize")
    async def initialize(request: Request):
        """Reset all results to an empty baseline."""
        try:
            await request.app.state.tally.reset()
            results_resets.inc()
        except Exception as e:
            logger.error(f"Error resetting results: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal server error"
            )
        return Response(status_code=status.HTTP_200_OK)

    @app.get("/health")
    async def liveness():
        """Liveness probe."""
        return Response(status_code=status.HTTP_200_OK)

    @app.get(
        f"/api/{settings.API_VERSION}/health",
        response_model=HealthResponse,
        responses={
            503: {"model": HealthResponse, "description": "Service unhealthy"}
        }
    )
    async def readiness(request: Request):
        """
        Check health of the service and its dependencies.

        Verifies connections to:
        - PostgreSQL
        - Redis
        """
        services = {}

        database = request.app.state.database
        postgres_healthy = database is not None and await database.check_health()
        services["postgresql"] = "connected" if postgres_healthy else "disconnected"

        redis_client = request.app.state.redis_client
        redis_healthy = redis_client is not None and await redis_client.check_health()
        services["redis"] = "connected" if redis_healthy else "disconnected"

        all_healthy = all(
            service_status == "connected" for service_status in services.values()
        )

        response = HealthResponse(
            status="healthy" if all_healthy else "unhealthy",
            services=services,
            timestamp=datetime.utcnow()
        )

        return JSONResponse(
            status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json")
        )

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.tally_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
