from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    SERVICE_NAME: str = "Digital Payment Collection"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Collections backend (payment gateway, receipt generator)
    GATEWAY_BASE_URL: str = "http://localhost:8080/api/v1"
    GATEWAY_API_TOKEN: str = ""
    GATEWAY_TIMEOUT_SECONDS: float = 30.0
    REPAYMENTS_PATH: str = "/collections/repayments"

    # Receipts
    RECEIPT_DOWNLOAD_DIR: str = "./receipts"

    # Cancel behaviour: show the gateway's terminal status instead of clearing the form
    SHOW_CANCELLED_STATUS: bool = True
    DEFAULT_CANCEL_REASON: str = "Cancelled by user"

    # In-memory payment sessions
    SESSION_TTL_MINUTES: int = 60
    MAX_SESSIONS: int = 1000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
