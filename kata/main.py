import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from kata.core import config
from kata.core.errors import register_error_handlers
from kata.database import init_db
from kata.routes import auth_routes, sweet_routes, upload_routes
from kata.routes.upload_routes import UPLOAD_URL_PREFIX, ensure_upload_dir

API_VERSION = '1.0.0'

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)


def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        init_db()
        ensure_upload_dir()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL.')
        raise
    logger.info('Kata API started in %s mode', config.APP_ENV)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    initialize_database()
    yield


app = FastAPI(title='Kata API', version=API_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_origin_regex=r'https://.*\.netlify\.app',
    allow_credentials=True,
    allow_methods=['GET', 'POST', 'PUT', 'DELETE', 'PATCH', 'OPTIONS'],
    allow_headers=['Content-Type', 'Authorization'],
)

register_error_handlers(app)


@app.get('/')
def root():
    return {
        'success': True,
        'message': 'Kata API',
        'version': API_VERSION,
        'documentation': f'{config.API_PREFIX}/health',
    }


@app.get(f'{config.API_PREFIX}/health')
def health():
    return {
        'success': True,
        'message': 'API is running',
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }


app.include_router(auth_routes.router, prefix=f'{config.API_PREFIX}/auth')
app.include_router(sweet_routes.router, prefix=f'{config.API_PREFIX}/sweets')
app.include_router(upload_routes.router, prefix=f'{config.API_PREFIX}/uploads')
app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=config.UPLOAD_DIR, check_dir=False), name='uploads')
