"""
FastAPI REST API Layer for kokoro-speech.

    - speech.py: OpenAI-compatible endpoint (/api/v1/audio/speech)
    - routes.py: Models, voices, health and metrics endpoints
    - schemas.py: Response Pydantic models
    - dependencies.py: FastAPI dependency injection
"""
