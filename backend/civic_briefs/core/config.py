from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # core
    ENV: str = "dev"
    API_PREFIX: str = "/api"
    API_AUTH_KEY: str | None = None

    # database & redis
    DATABASE_URL: str
    # Keep this as a plain string so redis:// URLs are always accepted
    REDIS_URL: str

    # news search (Brave)
    BRAVE_SEARCH_API_KEY: str | None = None
    BRAVE_SEARCH_URL: str = "https://api.search.brave.com/res/v1/web/search"
    BRAVE_SEARCH_TIMEOUT_SECONDS: int = 20
    NEWS_FRESHNESS: str = "pw"

    # text-to-speech (ElevenLabs)
    ELEVENLABS_API_KEY: str | None = None
    ELEVENLABS_BASE_URL: str = "https://api.elevenlabs.io/v1"
    ELEVENLABS_SARAH_VOICE_ID: str | None = None
    ELEVENLABS_JAMES_VOICE_ID: str | None = None
    ELEVENLABS_MODEL_ID: str = "eleven_monolingual_v1"
    ELEVENLABS_OUTPUT_FORMAT: str = "mp3_44100_192"
    # Dialogue synthesis for a full script routinely takes several minutes
    ELEVENLABS_TIMEOUT_SECONDS: int = 600

    # llm (script writing)
    OPENROUTER_API_KEY: str | None = None
    OPENAI_API_KEY: str | None = None
    LLM_MODEL: str = "anthropic/claude-sonnet-4"
    LLM_MAX_CONCURRENCY: int = 4
    LLM_MAX_TOKENS: int = 2500

    # object storage (S3-compatible)
    STORAGE_ENDPOINT_URL: str | None = None
    STORAGE_ACCESS_KEY: str | None = None
    STORAGE_SECRET_KEY: str | None = None
    STORAGE_REGION: str = "auto"
    STORAGE_BUCKET: str = "civic-pulse-podcasts"
    STORAGE_PUBLIC_URL: str = ""

    # brief content budget
    BILLS_PER_BRIEF: int = 2
    NEWS_PER_BRIEF: int = 5
    BILL_ACTIVITY_WINDOW_DAYS: int = 30
    NEWS_DESCRIPTION_MAX_CHARS: int = 200
    DEFAULT_POLICY_INTERESTS: list[str] = ["Politics", "Healthcare", "Education"]

    # pipeline retry policy (seconds)
    ORCHESTRATOR_RETRY_DELAY_SECONDS: int = 60
    DATA_FETCH_RETRY_DELAY_SECONDS: int = 60
    SCRIPT_RETRY_DELAY_SECONDS: int = 120
    AUDIO_RETRY_DELAY_SECONDS: int = 300
    UPLOAD_RETRY_DELAY_SECONDS: int = 120
    # Redeliveries per stage before the job is marked failed and dropped
    STAGE_MAX_RETRIES: int = 8

    # Every job-scoped blob expires after this long, finished or not
    JOB_ARTIFACT_TTL_SECONDS: int = 60 * 60 * 24 * 3

    # daily scheduler (UTC)
    DAILY_BRIEF_CRON_HOUR: int = 9
    DAILY_BRIEF_CRON_MINUTE: int = 0

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
