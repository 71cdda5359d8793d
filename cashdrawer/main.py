from typing import Optional

from fastapi import FastAPI

from cashdrawer import db as _db
from cashdrawer.core.config import settings
from cashdrawer.core.errors import install_error_handlers
from cashdrawer.core.logging import configure_logging
from cashdrawer.middleware.request_log import install_request_log
from cashdrawer.routers import health, sections, shifts

# IMPORTA MODELOS antes de create_all
from cashdrawer import models as _models  # noqa: F401


def create_app(engine=None, audit_file: Optional[str] = None) -> FastAPI:
    log = configure_logging()
    engine = engine if engine is not None else _db.engine

    # Crea tablas faltantes
    _db.Base.metadata.create_all(bind=engine)

    app = FastAPI(title=settings.app_name, version=settings.app_version)
    app.state.session_factory = (
        _db.SessionLocal if engine is _db.engine else _db.make_session_factory(engine)
    )

    install_error_handlers(app)
    install_request_log(app, audit_file=audit_file)
    app.include_router(health.router)
    app.include_router(shifts.router)
    app.include_router(sections.router)

    log.info("%s %s started (env=%s)", settings.app_name, settings.app_version, settings.app_env)
    return app


app = create_app()
