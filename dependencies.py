"""FastAPI dependency wiring for services held on the application state."""
from fastapi import Request


def _state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise RuntimeError(f"{name} not initialised")
    return service


def get_settings_dep(request: Request):
    return _state(request, "settings")


def get_pipeline(request: Request):
    return _state(request, "pipeline")


def get_enricher(request: Request):
    return _state(request, "enricher")


def get_email_service(request: Request):
    return _state(request, "email")


def get_digest_service(request: Request):
    return _state(request, "digest")


def get_news_client(request: Request):
    return _state(request, "news_client")


def get_scheduler(request: Request):
    return getattr(request.app.state, "scheduler", None)
