from fastapi import HTTPException, Request, status

from services.transform_client import GeminiTransformClient


def get_transform_client(request: Request) -> GeminiTransformClient:
    """Transform client built during app startup (see main.lifespan)."""
    client = getattr(request.app.state, "transform_client", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Image editing is not configured",
        )
    return client
