import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from telecare.core import config
from telecare.core.logging import configure_logging
from telecare.database import Base, engine, ensure_availability_schema, ensure_appointment_schema
from telecare.models import (  # noqa: F401
    appointment,
    availability,
    chat_message,
    notification,
    post,
    post_reaction,
    profile,
    user,
)
from telecare.routes import (
    appointment_routes,
    auth_routes,
    availability_routes,
    chat_routes,
    notification_routes,
    post_routes,
    profile_routes,
)

configure_logging()

app = FastAPI(title='Telecare API')

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
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Telecare API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(profile_routes.router, prefix='/profiles')
app.include_router(availability_routes.router, prefix='/availability')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(notification_routes.router, prefix='/notifications')
app.include_router(post_routes.router, prefix='/posts')
app.include_router(chat_routes.router, prefix='/chat')
