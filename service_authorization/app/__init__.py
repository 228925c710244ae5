"""
Authorization Service package for the RBAC Access Layer.

This package decides whether an entity may perform an action on a
resource by evaluating the entity's roles against ordered policy
statements. It provides:

- app.main: API surface for decision checks, cache stats and health.
- app.rules: Statement model, capability matchers and the decision engine.
- app.store: Role source consumed by the engine.
- app.cache: In-memory LRU/TTL cache and the caching decision wrapper.
- app.middleware: HTTP middleware enforcing decisions on incoming requests.

Guidelines:
- Decisions never raise; anything unexpected resolves to deny.
- Keep the engine stateless; the only shared mutable state is the cache.
"""
