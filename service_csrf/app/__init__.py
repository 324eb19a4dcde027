"""
CSRF Service package.

Issues single-use anti-forgery tokens and validates them on state-changing
requests:

- app.tokens: Token provider interface and the in-memory store with its
  background reclaim sweep.
- app.validation: Token source functions and the multi-source validator.
- app.middleware: HTTP guard invoking the validator and an error handler.
- app.main: FastAPI app, routes, and lifecycle wiring.

Tokens live only in process memory; they do not survive restarts and are
not shared between instances.
"""
