import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from portal.middleware.errors import register_error_handlers
from portal.middleware.ratelimit import RateLimitMiddleware, make_key_func
from portal.config import settings
from portal.db.session import init_db
from portal.auth.routes import router as auth_router
from portal.users.routes import router as users_router
from portal.tasks.routes import router as tasks_router
from portal.files.routes import router as files_router
from portal.visibility.routes import router as visibility_router
from portal.queries.routes import router as queries_router

def create_app() -> FastAPI:
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title=settings.app_name)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(
        RateLimitMiddleware,
        window_seconds=settings.rate_limit_window_seconds,
        max_calls=settings.rate_limit_max_calls,
        key_func=make_key_func(settings.secret_key),
        include_path_prefixes=("/login", "/sso"),
    )
    register_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(tasks_router)
    app.include_router(files_router)
    app.include_router(visibility_router)
    app.include_router(queries_router)

    @app.on_event("startup")
    def on_startup():
        init_db()

    @app.get("/", tags=["root"])
    def root():
        return {"name": settings.app_name, "env": settings.app_env}

    return app

app = create_app()
