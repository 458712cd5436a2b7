import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .errors import CramifyError
from .model_selector import ModelSelector
from .response_cache import ResponseCache
from .settings import settings
from .routers import health
from .routers import learning
from .routers import exam
from .routers import tts

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Cramify API")
app.include_router(health.router)
app.include_router(learning.router)
app.include_router(exam.router)
app.include_router(tts.router)

# One of each per process; routes reach them through deps
app.state.model_selector = ModelSelector(settings.model_cache_ttl_seconds)
app.state.response_cache = ResponseCache(settings.response_cache_ttl_seconds)


@app.exception_handler(CramifyError)
async def cramify_error_handler(request: Request, exc: CramifyError):
	if exc.status_code >= 500:
		logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
	return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.get("/info")
def root():
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"tts_configured": bool(settings.elevenlabs_api_key),
	}
