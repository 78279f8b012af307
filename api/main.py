from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request

from basket import router as basket_router
from core import cache, db
from core.config import Settings, get_settings
from core.container import Container, get_connection, get_container
from core.logs import configure_logging
from core.origins import OriginPolicyMiddleware, OriginRuleSet
from provisioning import pipeline


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    origin_policy = OriginRuleSet.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Strict order: cache probe, DB pool, provisioning, then serve.
        cache_handle = await cache.acquire(settings.redis_url, timeout_s=settings.redis_connect_timeout_s)
        try:
            pool = await db.create_pool(settings.database_url)
        except Exception:
            await cache.close_handle(cache_handle)
            raise
        container = Container(
            settings=settings,
            origin_policy=origin_policy,
            pool=pool,
            cache=cache_handle,
        )
        app.state.container = container
        app.state.provisioning = await pipeline.provision(
            container.scope,
            pipeline.build_pipeline(settings),
        )
        try:
            yield
        finally:
            await cache.close_handle(cache_handle)
            await db.close_pool(pool)

    app = FastAPI(title="AgroMind API", lifespan=lifespan)
    app.state.origin_policy = origin_policy

    # One named policy backs every cross-origin decision of the process.
    app.add_middleware(OriginPolicyMiddleware, rules=origin_policy)

    app.include_router(basket_router.router, tags=["basket"])

    @app.get("/health")
    def health(request: Request, container: Container = Depends(get_container)) -> dict:
        report = getattr(request.app.state, "provisioning", None)
        return {
            "status": "ok",
            "cache": "available" if container.cache.available else "disabled",
            "provisioning": report.as_dict() if report is not None else None,
        }

    @app.get("/health/db")
    async def health_db(conn=Depends(get_connection)) -> dict:
        return {"database": "ok" if await db.fetch_value(conn, "SELECT 1") == 1 else "unexpected"}

    @app.get("/")
    def root() -> dict:
        return {"message": "agromind api"}

    return app


app = create_app()
