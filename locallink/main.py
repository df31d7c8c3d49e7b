import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from locallink.core import config
from locallink.database import Base, engine, ensure_calendar_schema
from locallink.models import availability, calendar_event, user  # noqa: F401
from locallink.routes import auth_routes, availability_routes, calendar_routes

logging.basicConfig(level=config.LOG_LEVEL)

app = FastAPI(title='LocalLink Scheduling API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
) 

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_calendar_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'LocalLink Scheduling API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(calendar_routes.router, prefix='/calendar')
app.include_router(availability_routes.router, prefix='/availability')
