"""Cache service for the Redis cache access layer."""
