"""Best-effort Redis caching for read endpoints."""
