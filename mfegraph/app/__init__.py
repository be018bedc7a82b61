"""FastAPI application and query surfaces for Mfegraph."""
