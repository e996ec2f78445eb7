"""FastAPI service for studyunlock."""
