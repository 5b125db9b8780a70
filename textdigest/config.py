"""Centralized configuration for the digest pipeline."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(PROJECT_ROOT / ".env")

OUTPUTS_DIR = PROJECT_ROOT / "output"
DEFAULT_OUTPUT_PATH = OUTPUTS_DIR / "digest.md"


def bootstrap_runtime_dirs() -> None:
    OUTPUTS_DIR.mkdir(parents=True, exist_ok=True)


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# LLM provider configuration
PRIMARY_PROVIDER = os.getenv("PRIMARY_PROVIDER", "gemini")
FALLBACK_PROVIDER = os.getenv("FALLBACK_PROVIDER", "openai")
OFFLINE_MODE = _flag("OFFLINE_MODE")

GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")
GEMINI_ENDPOINT = os.getenv(
    "GEMINI_ENDPOINT",
    "https://generativelanguage.googleapis.com/v1beta/openai/",
)
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash-exp")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

AZURE_ENDPOINT = os.getenv("AZURE_ENDPOINT", "")
AZURE_API_KEY = os.getenv("AZURE_API_KEY", "")
AZURE_API_VERSION = os.getenv("AZURE_API_VERSION", "2024-12-01-preview")
AZURE_MODEL = os.getenv("AZURE_MODEL", "o4-mini")

# Generation and reliability
SUMMARY_TEMPERATURE = float(os.getenv("SUMMARY_TEMPERATURE", "0.3"))
CONCLUSIONS_TEMPERATURE = float(os.getenv("CONCLUSIONS_TEMPERATURE", "0.4"))
PRIMARY_TIMEOUT_S = float(os.getenv("PRIMARY_TIMEOUT_S", "30"))
FALLBACK_TIMEOUT_S = float(os.getenv("FALLBACK_TIMEOUT_S", "20"))
PRIMARY_MAX_RETRIES = int(os.getenv("PRIMARY_MAX_RETRIES", "2"))
FALLBACK_MAX_RETRIES = int(os.getenv("FALLBACK_MAX_RETRIES", "1"))
LLM_BACKOFF_BASE_S = float(os.getenv("LLM_BACKOFF_BASE_S", "1.0"))
LLM_BACKOFF_MAX_S = float(os.getenv("LLM_BACKOFF_MAX_S", "15.0"))

# Batching and scheduling
BATCH_SIZE = int(os.getenv("BATCH_SIZE", "20"))
MAX_CONCURRENT_BATCHES = int(os.getenv("MAX_CONCURRENT_BATCHES", "3"))
MAX_CHARS_PER_DOCUMENT = int(os.getenv("MAX_CHARS_PER_DOCUMENT", "50000"))

# Discovery
DEFAULT_DAYS_BACK = int(os.getenv("DEFAULT_DAYS_BACK", "6"))
MAX_FILE_SIZE_MB = int(os.getenv("MAX_FILE_SIZE_MB", "10"))
SUPPORTED_EXTENSIONS = (".txt", ".md", ".log")

# Knowledge graph trigger
GRAPH_MIN_DOCUMENTS = int(os.getenv("GRAPH_MIN_DOCUMENTS", "50"))
GRAPH_MIN_TOKENS = int(os.getenv("GRAPH_MIN_TOKENS", "20000"))
CHARS_PER_TOKEN = int(os.getenv("CHARS_PER_TOKEN", "4"))

# Entity tagging
SPACY_MODEL = os.getenv("SPACY_MODEL", "en_core_web_sm")
NLP_MAX_CHARS = int(os.getenv("NLP_MAX_CHARS", "100000"))

# Fact categorization
COMMON_MIN_FREQUENCY = int(os.getenv("COMMON_MIN_FREQUENCY", "3"))
UNUSUAL_MIN_RARITY = float(os.getenv("UNUSUAL_MIN_RARITY", "0.7"))
LONG_MIN_WORDS = int(os.getenv("LONG_MIN_WORDS", "50"))
FACT_TOP_N = int(os.getenv("FACT_TOP_N", "10"))

# Quality gate
QUALITY_SOURCE_LINKED = float(os.getenv("QUALITY_SOURCE_LINKED", "0.90"))
QUALITY_COVERAGE = float(os.getenv("QUALITY_COVERAGE", "0.80"))
QUALITY_CONFIDENCE = float(os.getenv("QUALITY_CONFIDENCE", "0.75"))
