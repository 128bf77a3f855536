"""
JSON 請求的 body 大小限制

上傳檔案的路由有自己的上限（max_upload_size），不使用這裡的 dependency
"""
from fastapi import Request

from database import get_settings
from core.exceptions import PayloadTooLarge
from api.errors import http_error


async def limit_body_size(request: Request):
    """
    body 超過 max_body_size 回 413

    先看 Content-Length，沒有時（chunked）再看實際讀到的 body
    """
    limit = get_settings().max_body_size

    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise http_error(PayloadTooLarge(limit))

    if len(await request.body()) > limit:
        raise http_error(PayloadTooLarge(limit))
