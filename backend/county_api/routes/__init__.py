"""
County Directory Backend: API Routes Package
==============================================

Route Inventory:
    - counties.py: /api/counties CRUD, list, list-all
    - files.py:    GET /uploads/{filename} (stored icons)
    - health.py:   GET /health

Routes stay thin: they parse the request and hand over to services.
"""
