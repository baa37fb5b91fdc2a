"""
Services Layer

Business logic of the structuring engine:
- Accept domain inputs (IDs, an EntityStore, an optional RNG)
- Return domain outputs (models, count dicts)
- Raise service errors (app.services.errors), never HTTP exceptions
- Do NOT depend on HTTP request/response objects
"""
