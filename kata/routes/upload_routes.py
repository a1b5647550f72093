import logging
import os
import secrets
import time

from fastapi import APIRouter, Depends, File, UploadFile, status

from kata.auth.dependencies import require_admin
from kata.core import config
from kata.core.errors import ValidationError
from kata.schemas import UploadResponse, success_response

router = APIRouter(tags=['uploads'])

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = '/uploads'
READ_CHUNK_BYTES = 64 * 1024
# Stored extension comes from the content type, never the client filename.
IMAGE_EXTENSIONS = {
    'image/png': '.png',
    'image/jpeg': '.jpg',
    'image/gif': '.gif',
    'image/webp': '.webp',
}


def ensure_upload_dir() -> str:
    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    return config.UPLOAD_DIR


def build_upload_filename(content_type: str) -> str:
    extension = IMAGE_EXTENSIONS[content_type]
    unique = f'{int(time.time() * 1000)}-{secrets.randbelow(10**9)}'
    return f'{unique}{extension}'


def read_limited(upload: UploadFile, limit: int) -> bytes:
    content = bytearray()
    while True:
        chunk = upload.file.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        content.extend(chunk)
        if len(content) > limit:
            raise ValidationError(f'File too large. Maximum size is {limit // (1024 * 1024)}MB')
    return bytes(content)


@router.post('', status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def upload_image(file: UploadFile | None = File(default=None)):
    if file is None or not file.filename:
        raise ValidationError('No file uploaded')
    content_type = (file.content_type or '').split(';')[0].strip().lower()
    if content_type not in IMAGE_EXTENSIONS:
        raise ValidationError('Only image uploads are allowed')

    content = read_limited(file, config.MAX_UPLOAD_BYTES)

    filename = build_upload_filename(content_type)
    with open(os.path.join(ensure_upload_dir(), filename), 'wb') as destination:
        destination.write(content)

    logger.info('Stored upload %s (%s bytes)', filename, len(content))
    result = UploadResponse(url=f'{UPLOAD_URL_PREFIX}/{filename}', filename=filename)
    return success_response(result, message='File uploaded successfully')
