"""
Chat Relay service package.

The relay fronts conversational clients, handling:
- Request normalization for GET query strings and POST JSON bodies
- Optional localization through a spreadsheet-backed translator
- Response memoization keyed by the translated conversation
- A single, unretried call to the upstream model gateway

Structure:
- app.main: FastAPI app, routes, and wiring.
- app.adapters: HTTP clients for the model gateway, translation sheet and speech provider.
- app.caching: Response cache and cache key construction.
- app.domain: Conversation model, translation and the request pipeline.
"""
