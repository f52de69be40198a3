"""Configuration for the homeschool records web application.

The database URL is picked per deployment context so production, preview and
development deploys each talk to their own database:

* ``production`` -> ``DATABASE_URL``
* ``deploy-preview`` / ``branch-deploy`` -> ``DATABASE_URL_PREVIEW`` then ``DATABASE_URL``
* ``development`` -> ``DATABASE_URL_DEV`` then ``DATABASE_URL``

With nothing configured the app falls back to a local SQLite file.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv

from ..config import ReportingConfig, load_reporting_config

load_dotenv()

CONTEXT_PRODUCTION = "production"
CONTEXT_DEPLOY_PREVIEW = "deploy-preview"
CONTEXT_BRANCH_DEPLOY = "branch-deploy"
CONTEXT_DEVELOPMENT = "development"

_EXPLICIT_ENV_ALIASES: Dict[str, str] = {
    "prod": CONTEXT_PRODUCTION,
    "production": CONTEXT_PRODUCTION,
    "dev": CONTEXT_DEVELOPMENT,
    "development": CONTEXT_DEVELOPMENT,
}
_CONTEXT_ALIASES: Dict[str, str] = {
    "dev": CONTEXT_DEVELOPMENT,
    "local": CONTEXT_DEVELOPMENT,
}

DEFAULT_SQLITE_FILE = "homeschool.db"


def _env(environ: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def _first_set(env: Mapping[str, str], *keys: str) -> Optional[str]:
    for key in keys:
        value = (env.get(key) or "").strip()
        if value:
            return value
    return None


def get_deployment_context(environ: Optional[Mapping[str, str]] = None) -> str:
    """Return the effective deployment context.

    ``APP_ENV`` (or ``NODE_ENV``) set to ``prod``/``dev`` wins; otherwise the
    hosting platform's ``CONTEXT``/``NETLIFY_CONTEXT`` is used.
    """

    env = _env(environ)
    explicit = (_first_set(env, "APP_ENV", "NODE_ENV") or "").lower()
    if explicit in _EXPLICIT_ENV_ALIASES:
        return _EXPLICIT_ENV_ALIASES[explicit]
    context = (_first_set(env, "CONTEXT", "NETLIFY_CONTEXT") or CONTEXT_DEVELOPMENT).lower()
    return _CONTEXT_ALIASES.get(context, context)


def sqlite_url(environ: Optional[Mapping[str, str]] = None) -> str:
    env = _env(environ)
    file_name = _first_set(env, "HOMESCHOOL_SQLITE") or DEFAULT_SQLITE_FILE
    return f"sqlite:///{file_name}"


def _normalise_driver(url: str) -> str:
    if url.startswith("postgres://"):
        return "postgresql+psycopg2://" + url[len("postgres://") :]
    if url.startswith("postgresql://"):
        return "postgresql+psycopg2://" + url[len("postgresql://") :]
    return url


def resolve_database_url(environ: Optional[Mapping[str, str]] = None) -> str:
    env = _env(environ)
    context = get_deployment_context(env)
    if context == CONTEXT_PRODUCTION:
        url = _first_set(env, "DATABASE_URL")
    elif context in (CONTEXT_DEPLOY_PREVIEW, CONTEXT_BRANCH_DEPLOY):
        url = _first_set(env, "DATABASE_URL_PREVIEW", "DATABASE_URL")
    else:
        url = _first_set(env, "DATABASE_URL_DEV", "DATABASE_URL")
    return _normalise_driver(url) if url else sqlite_url(env)


def mask_url(url: str) -> str:
    return f"{url[:20]}..." if len(url) > 20 else url


def describe_environment(environ: Optional[Mapping[str, str]] = None) -> Dict[str, object]:
    env = _env(environ)
    context = get_deployment_context(env)
    url = resolve_database_url(env)
    return {
        "context": context,
        "is_production": context == CONTEXT_PRODUCTION,
        "database": url.split(":", 1)[0],
        "database_url": mask_url(url),
    }


def _parse_origins(raw: Optional[str]) -> Tuple[str, ...]:
    origins = tuple(part.strip() for part in (raw or "").split(",") if part.strip())
    return origins or ("*",)


DATABASE_URL = resolve_database_url()
DEPLOYMENT_CONTEXT = get_deployment_context()
CORS_ALLOW_ORIGINS: Tuple[str, ...] = _parse_origins(os.environ.get("CORS_ALLOW_ORIGINS"))
LOG_PATH: Optional[Path] = Path(os.environ["HOMESCHOOL_LOG_PATH"]) if os.environ.get("HOMESCHOOL_LOG_PATH") else None
REPORTING: ReportingConfig = load_reporting_config()
LATEST_LOGS_LIMIT = 20

__all__ = [
    "CONTEXT_BRANCH_DEPLOY",
    "CONTEXT_DEPLOY_PREVIEW",
    "CONTEXT_DEVELOPMENT",
    "CONTEXT_PRODUCTION",
    "CORS_ALLOW_ORIGINS",
    "DATABASE_URL",
    "DEFAULT_SQLITE_FILE",
    "DEPLOYMENT_CONTEXT",
    "LATEST_LOGS_LIMIT",
    "LOG_PATH",
    "REPORTING",
    "describe_environment",
    "get_deployment_context",
    "mask_url",
    "resolve_database_url",
    "sqlite_url",
]
