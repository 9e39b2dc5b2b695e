"""
Spelling Word Collector - Family Sync Service

Shared store behind the spelling practice app: families joined by code,
child profiles, word lists, practice sessions and streaks.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import uvicorn
from contextlib import asynccontextmanager
from pathlib import Path
import logging
import sys
from datetime import datetime

from src.config import get_settings
from src.services.clock import Clock
from src.services.family_service import FamilyAccountService
from src.services.firebase import FirebaseStore
from src.services.logger import init_logger
from src.services.mail import MailService
from src.services.sentences import SentenceGenerator
from src.services.session_service import SessionRecorder
from src.services.store import InMemoryDocumentStore
from src.api.routes import router, set_services

# Configure logging to both file and console
log_dir = Path("logs")
log_dir.mkdir(exist_ok=True)
log_file = log_dir / f"spelling_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

# Create formatters
file_formatter = logging.Formatter(
    '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
console_formatter = logging.Formatter('%(message)s')

# File handler (detailed logs)
file_handler = logging.FileHandler(log_file, encoding='utf-8')
file_handler.setLevel(logging.DEBUG)
file_handler.setFormatter(file_formatter)

# Console handler (user-friendly output)
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.INFO)
console_handler.setFormatter(console_formatter)

# Configure root logger
logging.basicConfig(
    level=logging.DEBUG,
    handlers=[file_handler, console_handler]
)

logger = logging.getLogger(__name__)
logger.info(f"📝 Logging to: {log_file}")


# Global services
firebase_store: FirebaseStore = None
mail_service: MailService = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifecycle management for the application.

    Initializes services on startup, cleans up on shutdown.
    """
    # Startup
    global firebase_store, mail_service

    settings = get_settings()

    print("🐝 Initializing Spelling Word Collector sync...")

    # Initialize logger with settings
    app_logger = init_logger(settings=settings)

    # Show debug status
    debug_flags = []
    if settings.debug_storage:
        debug_flags.append("Storage")
    if settings.debug_api_calls:
        debug_flags.append("API Calls")

    if debug_flags:
        print(f"🐛 Debug logging enabled: {', '.join(debug_flags)}")
        print(f"📊 Debug logs: {settings.debug_log_dir}/")

    clock = Clock(settings.streak_timezone)

    # Initialize the shared store
    if settings.storage_backend == "memory":
        print("⚠️  Using in-memory store - data is lost on restart")
        store = InMemoryDocumentStore()
    else:
        print("📊 Connecting to Firebase...")

        # Try to get credentials from environment variables first, then fall back to file
        creds_dict = settings.get_firebase_credentials_dict()

        firebase_store = FirebaseStore(
            database_url=settings.firebase_database_url,
            credentials_dict=creds_dict,
            credentials_path=settings.google_application_credentials,
            logger=app_logger
        )
        firebase_store.initialize()
        store = firebase_store
        print("✅ Firebase connected")

    # Join code email
    mail_service = MailService(
        sender=settings.gmail_email,
        password=settings.gmail_app_password,
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        app_url=settings.app_url,
        logger=app_logger
    )
    if not settings.gmail_email or not settings.gmail_app_password:
        print("⚠️  GMAIL_EMAIL / GMAIL_APP_PASSWORD missing - join code emails will fail")
        print("   💡 Set them in .env file")

    # Example sentences
    sentences = SentenceGenerator(
        api_key=settings.claude_api_key,
        model=settings.sentence_model,
        max_words=settings.sentence_max_words,
        logger=app_logger
    )
    if settings.claude_api_key:
        key = settings.claude_api_key
        masked_claude = f"{key[:12]}...{key[-4:]}" if len(key) > 16 else "***"
        print(f"✅ ANTHROPIC key: {masked_claude}")
    else:
        print("⚠️  CLAUDE_API_KEY is missing - example sentences disabled")

    families = FamilyAccountService(store, mailer=mail_service, clock=clock, app_logger=app_logger)
    sessions = SessionRecorder(store, clock=clock, logger=app_logger)
    set_services(store, families, sessions, sentences=sentences, clock=clock)

    print(f"🐝 Spelling Word Collector sync ready on port {settings.port}!")
    print(f"📚 API Documentation: http://localhost:{settings.port}/docs")

    yield

    # Shutdown
    print("👋 Shutting down Spelling Word Collector sync...")
    if mail_service:
        mail_service.shutdown()
    if firebase_store:
        firebase_store.shutdown()


# Create FastAPI app
app = FastAPI(
    title="Spelling Word Collector",
    description="""
    Family sync for anxiety-free spelling practice.

    Features:
    - Families shared across devices with a 6-character join code
    - Child profiles with consecutive-day practice streaks
    - Word lists with optional example sentences
    - Practice session history
    - Optional parent PIN for admin actions
    """,
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
# Configure allowed origins from environment variable (default: "*" for all origins)
_settings = get_settings()
_cors_origins = (
    ["*"] if _settings.cors_allowed_origins == "*"
    else [origin.strip() for origin in _settings.cors_allowed_origins.split(",")]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Validation error handler - log details for debugging
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    error_details = []
    for error in errors:
        input_val = error.get('input', 'N/A')
        # Truncate long inputs for readability
        if isinstance(input_val, str) and len(input_val) > 100:
            input_val = input_val[:100] + "..."
        error_details.append(f"{error['loc']}: {error['msg']} (input: {input_val})")

    logger.error(f"❌ Validation Error on {request.url.path}: " + " | ".join(error_details))

    return JSONResponse(
        status_code=422,
        content={"detail": errors}
    )


# Global exception handler - catch unhandled exceptions to prevent crashes
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch all unhandled exceptions to prevent server crashes.
    Logs the error and returns a short generic message.
    """
    error_id = datetime.now().strftime('%Y%m%d_%H%M%S_%f')

    logger.error(f"❌ UNHANDLED EXCEPTION [{error_id}] {request.method} {request.url.path}", exc_info=exc)

    # Never expose exception details to clients; error_id finds them in the logs
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Something went wrong. Please try again.",
            "error_id": error_id
        }
    )


# Include routes
app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint - API info"""
    return {
        "message": "Spelling Word Collector family sync",
        "docs": "/docs",
        "health": "/api/health",
        "version": "1.0.0"
    }


def main():
    """Run the application"""
    settings = get_settings()

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
