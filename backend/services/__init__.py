# Services are imported lazily to avoid pulling in google-genai at import time.
# Import specific services where needed:
# from services.image_encoder import encode_file, encode_image_bytes
# from services.transform_client import GeminiTransformClient

__all__ = []
