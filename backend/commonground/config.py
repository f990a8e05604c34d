# backend configuration
# loads env vars for mongodb, jwt, thread depth and citation limits

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# load .env from project root
load_dotenv(Path(__file__).parent.parent.parent / ".env")


class Settings(BaseSettings):
    # mongodb
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "commonground_db")

    # jwt auth
    JWT_SECRET: str = os.getenv("JWT_SECRET", "commonground-dev-secret-change-in-production")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # cors
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # threading
    MAX_THREAD_DEPTH: int = 10

    # citations
    MAX_CITATIONS_PER_RESPONSE: int = 10
    CITATION_RESOLVE_DNS: bool = True

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
