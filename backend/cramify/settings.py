from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Generative Language API (AI Studio); v1beta accepts responseMimeType
	gemini_base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta", validation_alias="GEMINI_BASE_URL")
	gemini_timeout_seconds: float = Field(default=120, validation_alias="GEMINI_TIMEOUT_SECONDS")
	# Exam endpoints pin a model; it is swapped for the selector's choice if Gemini rejects it
	gemini_exam_generate_model: str = Field(default="gemini-1.5-flash", validation_alias="GEMINI_EXAM_GENERATE_MODEL")
	gemini_exam_ingest_model: str = Field(default="gemini-1.5-flash", validation_alias="GEMINI_EXAM_INGEST_MODEL")

	# In-process caches
	model_cache_ttl_seconds: float = Field(default=3600, validation_alias="MODEL_CACHE_TTL_SECONDS")
	response_cache_ttl_seconds: float = Field(default=3600, validation_alias="RESPONSE_CACHE_TTL_SECONDS")

	# ElevenLabs read-aloud
	elevenlabs_api_key: str | None = Field(default=None, validation_alias="ELEVENLABS_API_KEY")
	elevenlabs_base_url: str = Field(default="https://api.elevenlabs.io/v1", validation_alias="ELEVENLABS_BASE_URL")
	elevenlabs_voice_id: str = Field(default="21m00Tcm4TlvDq8ikWAM", validation_alias="ELEVENLABS_VOICE_ID")
	elevenlabs_model_id: str = Field(default="eleven_multilingual_v2", validation_alias="ELEVENLABS_MODEL_ID")
	tts_max_chunk_chars: int = Field(default=3500, validation_alias="TTS_MAX_CHUNK_CHARS")

	# Exam PDFs are clamped before they go into a prompt
	pdf_max_chars: int = Field(default=80_000, validation_alias="PDF_MAX_CHARS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
