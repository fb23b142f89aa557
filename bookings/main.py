import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from bookings.core import config
from bookings.database import Base, engine, ensure_booking_schema
from bookings.models import availability_override, blocked_date, booking, default_availability, user  # noqa: F401
from bookings.routes import (
    blocked_date_routes,
    booking_routes,
    calendar_routes,
    default_availability_routes,
    override_routes,
)

app = FastAPI(title='Provider Calendar API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
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
        ensure_booking_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Provider Calendar API Running'}


app.include_router(calendar_routes.router, prefix='/calendar')
app.include_router(default_availability_routes.router, prefix='/default-availability')
app.include_router(override_routes.router, prefix='/availability-overrides')
app.include_router(blocked_date_routes.router, prefix='/blocked-dates')
app.include_router(booking_routes.router, prefix='/bookings')
