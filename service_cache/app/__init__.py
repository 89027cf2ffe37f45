"""
Cache Service package.

Exposes namespaced Redis cache entries over HTTP. It provides:

- app.main: API surface for cache CRUD, TTLs, store health and checkpoints.
- app.cache: Redis-backed entry store with an in-process write-through layer.
- app.health: Ping and round-trip probes against Redis.
- app.checkpoint: Process snapshot trigger and outcome classification.
- app.catalog: Memoized slow lookups that never touch Redis.

Guidelines:
- Redis is the source of truth; local caches only save round trips.
- Every key this service writes lives under the ``cache:`` prefix.
"""
