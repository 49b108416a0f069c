import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from slotbook.core import config
from slotbook.database import Database
from slotbook.routes import availability_routes, booking_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

logger = logging.getLogger(__name__)


def create_app(database: Database | None = None) -> FastAPI:
    config.validate_runtime_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.database = database or Database(config.DATABASE_URL, echo=config.DB_ECHO)
        try:
            app.state.database.create_all()
        except SQLAlchemyError:
            logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')
        try:
            yield
        finally:
            app.state.database.dispose()

    app = FastAPI(title='slotbook', lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    @app.get('/')
    def root():
        return {'status': 'Booking API Running'}

    app.include_router(availability_routes.router, prefix='/availability')
    app.include_router(booking_routes.router, prefix='/booking')

    return app


app = create_app()
