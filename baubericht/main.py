# main.py
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

BASE_DIR = Path(__file__).resolve().parent

# Load .env EARLY (before any local imports that might read env vars)
from dotenv import load_dotenv

load_dotenv(BASE_DIR / ".env")

from baubericht import __version__
from baubericht.app import report_api
from baubericht.app.services.report_service import ReportServiceContext

# ---------- Logging ----------
logger = logging.getLogger("baubericht")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO)

# ---------- ENV ----------
DEBUG = os.getenv("DEBUG", "0") == "1"
MODEL_PROVIDER = os.getenv("MODEL_PROVIDER", "ollama").lower()
MODEL_CLASSIFIER = os.getenv("MODEL_CLASSIFIER", "llama3")
OPENAI_API_KEY = (os.getenv("OPENAI_API_KEY") or "").strip() or None
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
SKIP_LLM_SETUP = os.getenv("SKIP_LLM_SETUP", "0") == "1"
REPORT_USE_LLM = os.getenv("REPORT_USE_LLM", "1") == "1"

_DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://test.local",
]
_origins_env = os.getenv("FRONTEND_ORIGINS", "")
ALLOWED_ORIGINS = (
    [origin.strip() for origin in _origins_env.split(",") if origin.strip()]
    if _origins_env.strip()
    else _DEFAULT_ALLOWED_ORIGINS
)

# ---------- LLM ----------
classifier_chain = None
if not SKIP_LLM_SETUP:
    from baubericht.app.llm import build_classifier_chain, create_chat_llm

    try:
        classifier_llm = create_chat_llm(
            provider=MODEL_PROVIDER,
            model=MODEL_CLASSIFIER,
            temperature=0.0,
            top_p=0.9,
            api_key=OPENAI_API_KEY,
            base_url=OLLAMA_BASE_URL,
        )
        classifier_chain = build_classifier_chain(classifier_llm, debug=DEBUG)
    except ValueError as exc:
        logger.warning("Classifier LLM not available (%s); running heuristics only", exc)

SERVICE_CONTEXT = ReportServiceContext(
    classifier_chain=classifier_chain,
    use_llm_default=REPORT_USE_LLM,
    skip_llm_setup=SKIP_LLM_SETUP or classifier_chain is None,
    logger=logger,
    debug=DEBUG,
)
report_api.configure_report_api(SERVICE_CONTEXT)


# ---------- FastAPI ----------

@asynccontextmanager
async def _lifespan(_app: FastAPI):
    logger.info(
        "Startup: MODEL_PROVIDER=%s MODEL_CLASSIFIER=%s SKIP_LLM_SETUP=%s REPORT_USE_LLM=%s",
        MODEL_PROVIDER,
        MODEL_CLASSIFIER,
        SKIP_LLM_SETUP,
        REPORT_USE_LLM,
    )
    logger.info("ALLOWED_ORIGINS=%s", ALLOWED_ORIGINS)
    yield


app = FastAPI(title="Baubericht Backend", version=__version__, lifespan=_lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

ECHO_ORIGINS = set(ALLOWED_ORIGINS or [])


@app.middleware("http")
async def _cors_echo_middleware(request, call_next):
    response = await call_next(request)
    origin = request.headers.get("origin")
    if origin and origin in ECHO_ORIGINS:
        response.headers["access-control-allow-origin"] = origin
    return response


app.include_router(report_api.router)


# Root (Health)
@app.get("/")
def root():
    return {"ok": True, "service": "baubericht-backend", "health": "/api/health", "docs": "/docs"}


@app.get("/api/health")
def api_health():
    return {
        "ok": True,
        "time": datetime.now(timezone.utc).isoformat(),
        "llm": SERVICE_CONTEXT.classifier_chain is not None,
    }
