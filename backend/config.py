"""Configuration management for the PDF Flipbook server."""
import os
import logging
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Server Configuration
PORT = int(os.getenv("PORT", "3000"))
ENVIRONMENT = os.getenv("NODE_ENV") or os.getenv("ENVIRONMENT", "development")
PUBLIC_URL = os.getenv("RAILWAY_STATIC_URL")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")

# CORS Configuration
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

# Static SPA files
STATIC_DIR = Path(os.getenv("STATIC_DIR", str(Path(__file__).parent / "static")))

# Fetch Configuration
FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "30.0"))  # seconds
PROXY_BASE_URL = os.getenv("PROXY_BASE_URL")
USER_AGENT = os.getenv("USER_AGENT", "Mozilla/5.0 (compatible; PDF-Flipbook/1.0)")

# Rendering Configuration
RENDER_SCALE = float(os.getenv("RENDER_SCALE", "1.5"))
RENDER_CONCURRENCY = int(os.getenv("RENDER_CONCURRENCY", "1"))

# Flipbook Configuration
FLIP_RENDERER = os.getenv("FLIP_RENDERER", "turn")
FLIP_DURATION_MS = int(os.getenv("FLIP_DURATION_MS")) if os.getenv("FLIP_DURATION_MS") else None

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
