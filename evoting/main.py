# main.py
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from evoting.config import FRONTEND_URL
from evoting.database.connection import close_storage, get_storage
from evoting.errors import VotingError
from evoting.routes.candidate_routes import router as candidate_router
from evoting.routes.review_routes import router as review_router
from evoting.routes.user_routes import router as user_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    close_storage()


app = FastAPI(title="E-Voting API", lifespan=lifespan)

origins = [origin.strip() for origin in FRONTEND_URL.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

app.include_router(user_router)
app.include_router(candidate_router)
app.include_router(review_router)


# --- Error handling: every error leaves as {"error": message} ---

@app.exception_handler(VotingError)
async def voting_error_handler(request: Request, exc: VotingError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())[1:])
        problems.append(f"{field}: {err.get('msg')}" if field else err.get("msg"))
    return JSONResponse(status_code=400, content={"error": "; ".join(problems) or "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


# --- General Endpoints ---

@app.get("/", tags=["Root"])
def read_root():
    return {"message": "Backend is running"}


@app.get("/health", tags=["Root"])
def health_check(storage=Depends(get_storage)):
    return {"status": "healthy" if storage.ping() else "degraded", "database": type(storage).__name__}


@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)
