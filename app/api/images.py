"""
360° image proxy: cache a remote image locally and serve it back by file name.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, Response

from app.config import settings
from app.schemas.image import ProxyImageRequest, ProxyImageResponse
from app.services.image_cache import ImageProxyCache, get_image_cache

router = APIRouter()


@router.post("/proxy", response_model=ProxyImageResponse)
def proxy_image(body: ProxyImageRequest, cache: ImageProxyCache = Depends(get_image_cache)):
    """Fetch the image once (cached by URL) and return where to load it from."""
    file_name = cache.acquire(body.url)
    return ProxyImageResponse(local_url=f"{settings.image_serve_path.rstrip('/')}/{file_name}")


@router.get("/serve/{file_name}")
def serve_image(file_name: str, cache: ImageProxyCache = Depends(get_image_cache)):
    image = cache.resolve(file_name)
    headers = {"Cache-Control": "public, max-age=31536000, immutable"}
    if image.path is not None:
        return FileResponse(image.path, media_type=image.media_type, headers=headers)
    return Response(content=image.data, media_type=image.media_type, headers=headers)
