"""FastAPI surface for the meeting listener service."""
