"""FastAPI application serving the TourBNT API."""
