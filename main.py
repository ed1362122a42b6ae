import sys

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from kisan_agent.agent import answer_query
from kisan_agent.completion import CompletionService, GroqCompletionService
from kisan_agent.config import Settings
from kisan_agent.diagnosis import PlantDiseaseAnalyzer
from kisan_agent.errors import APIError, CompletionError
from kisan_agent.schemas import (
    ChatQuery,
    ChatReply,
    DiseaseAnalysis,
    ErrorResponse,
    PlantDiseaseRequest,
)

load_dotenv(dotenv_path=".env")

_startup = Settings.from_env()
logger.remove()
logger.add(sys.stderr, level=_startup.log_level)

app = FastAPI(title="Kisan Call Centre Backend", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_startup.allowed_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_settings() -> Settings:
    return Settings.from_env()


def get_completion_service(settings: Settings = Depends(get_settings)) -> CompletionService:
    return GroqCompletionService(settings.groq_api_key, base_url=settings.base_url)


@app.exception_handler(APIError)
def api_error_handler(request: Request, exc: APIError):
    body = ErrorResponse(error=exc.error, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))


def require_credential(settings: Settings) -> None:
    if not settings.has_credential:
        raise APIError(500, "Groq API key not configured")


@app.get("/health")
def health(settings: Settings = Depends(get_settings)):
    return {"ok": True, "has_groq_key": settings.has_credential}


@app.post("/api/groq-query", response_model=ChatReply)
def groq_query(
    req: ChatQuery,
    settings: Settings = Depends(get_settings),
    service: CompletionService = Depends(get_completion_service),
):
    query = (req.query or "").strip()
    if not query:
        raise APIError(400, "Empty query")
    require_credential(settings)

    try:
        reply = answer_query(service, settings.chat_model, query, req.language or "en")
    except CompletionError as e:
        logger.warning("Chat completion failed: {}", e)
        raise APIError(502, "AI service unavailable", details=str(e))
    return ChatReply(response=reply)


@app.post("/api/plant-disease", response_model=DiseaseAnalysis)
def plant_disease(
    req: PlantDiseaseRequest,
    settings: Settings = Depends(get_settings),
    service: CompletionService = Depends(get_completion_service),
):
    if not (req.image_base64 or "").strip():
        raise APIError(400, "No image provided")
    require_credential(settings)

    analyzer = PlantDiseaseAnalyzer.from_settings(service, settings)
    return analyzer.analyze(req.image_base64, req.language or "en")
