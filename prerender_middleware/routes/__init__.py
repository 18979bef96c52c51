# Routes package init
"""
Route Inventory:
    - health.py:  GET /health   (liveness and prerender configuration summary)
"""
