import os
from pathlib import Path

from dotenv import load_dotenv

# Load order (later files override earlier):
# 1. project .env (project defaults)
# 2. project .env.local (local overrides)
project_root = Path(__file__).parent.parent
env_file = project_root / ".env"
env_local = project_root / ".env.local"

if env_file.exists():
    load_dotenv(env_file, override=False)
if env_local.exists():
    load_dotenv(env_local, override=True)

from .app import create_app  # noqa: E402
from .core.config import get_settings  # noqa: E402
from .utils.logging import setup_logging  # noqa: E402

settings = get_settings()
os.environ.setdefault("ENVIRONMENT", settings.environment)
setup_logging(log_level=settings.log_level, log_to_file=settings.log_to_file)

app = create_app(settings)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "storyvoice.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
