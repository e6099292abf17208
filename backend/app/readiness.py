"""Readiness checks: config, packages, database, redis."""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from app.infra.db.base import async_pg_connect_args, async_pg_url_without_sslmode, normalize_async_pg_url

logger = logging.getLogger(__name__)

# Result: (passed: bool, message: str)
CheckResult = tuple[bool, str]
ChecksDict = dict[str, CheckResult]

REQUIRED_CHECKS = {"config", "packages", "database"}


def check_config() -> CheckResult:
    """Load settings and read the connection URLs."""
    try:
        from app.settings import get_settings
        s = get_settings()
        _ = s.app_name
        _ = s.database_url
        _ = s.redis_url
        return True, "ok"
    except Exception as e:
        return False, str(e)


def check_packages() -> CheckResult:
    """Import critical modules: uvicorn, sqlalchemy, redis, jwt."""
    missing = []
    for module in ("uvicorn", "sqlalchemy", "redis", "jwt"):
        try:
            __import__(module)
        except ImportError:
            missing.append(module)
    if missing:
        return False, f"missing: {', '.join(missing)}"
    return True, "ok"


async def check_database(database_url: str) -> CheckResult:
    """Run a trivial query against the database."""
    try:
        url = normalize_async_pg_url(database_url)
        engine = create_async_engine(
            async_pg_url_without_sslmode(url),
            connect_args=async_pg_connect_args(url),
            pool_pre_ping=True,
        )
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        await engine.dispose()
        return True, "ok"
    except Exception as e:
        return False, str(e)


async def check_redis(redis_url: str) -> CheckResult:
    """Ping Redis. Optional: without it pushes stay on the local instance."""
    if not redis_url:
        return True, "skipped (not configured)"
    try:
        import redis.asyncio as redis
        client = redis.from_url(redis_url)
        try:
            await client.ping()
        finally:
            await client.aclose()
        return True, "ok"
    except Exception as e:
        return False, str(e)


async def run_all_checks_async() -> ChecksDict:
    """Run all readiness checks. Use from async context (e.g. GET /ready)."""
    from app.settings import get_settings
    s = get_settings()
    return {
        "config": check_config(),
        "packages": check_packages(),
        "database": await check_database(s.database_url),
        "redis": await check_redis(s.redis_url),
    }


def is_ready(checks: ChecksDict) -> tuple[bool, dict[str, str]]:
    """
    True if all required checks pass.
    Returns (ready, summary of name -> "ok" | "skipped ..." | error message).
    """
    summary = {name: msg for name, (passed, msg) in checks.items()}
    ready = all(checks[name][0] for name in REQUIRED_CHECKS if name in checks)
    return ready, summary
